"""
app/schemas package marker.
"""

from app.schemas.dashboard import (
    AccountActionResponse,
    AccountListResponse,
    AccountResponse,
    DomainViewResponse,
    EarningsViewResponse,
    FetchFailureResponse,
    MetricSummaryResponse,
)

__all__ = [
    "AccountActionResponse",
    "AccountListResponse",
    "AccountResponse",
    "DomainViewResponse",
    "EarningsViewResponse",
    "FetchFailureResponse",
    "MetricSummaryResponse",
]
