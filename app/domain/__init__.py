"""
app/domain package marker.
"""

from app.domain.adsense import (
    Account,
    AccountActionResult,
    AccountEarnings,
    AccountStatus,
    DateFilter,
    DateFilterParams,
    DateRangeValidationError,
    DomainBreakdown,
    MultiAccountSummary,
)
from app.domain.metrics import (
    MICROS_PER_UNIT,
    AggregationResult,
    DerivedRatios,
    FanOutResult,
    FetchFailure,
    FetchFailureKind,
    MetricRecord,
    MetricSummary,
)

__all__ = [
    "MICROS_PER_UNIT",
    "Account",
    "AccountActionResult",
    "AccountEarnings",
    "AccountStatus",
    "AggregationResult",
    "DateFilter",
    "DateFilterParams",
    "DateRangeValidationError",
    "DerivedRatios",
    "DomainBreakdown",
    "FanOutResult",
    "FetchFailure",
    "FetchFailureKind",
    "MetricRecord",
    "MetricSummary",
    "MultiAccountSummary",
]
