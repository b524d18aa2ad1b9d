"""
app/services package marker.
"""

from app.services.aggregation_service import (
    AggregationInputError,
    aggregate_accounts,
    aggregate_domains,
    classify_ctr,
    derive_ratios,
)
from app.services.dashboard_service import (
    DashboardService,
    DomainView,
    EarningsView,
    get_dashboard_service,
)
from app.services.dashboard_session import DashboardSession
from app.services.fan_out import fan_out_with_partial_tolerance
from app.services.request_generation import ViewState

__all__ = [
    "AggregationInputError",
    "aggregate_accounts",
    "aggregate_domains",
    "classify_ctr",
    "derive_ratios",
    "DashboardService",
    "DashboardSession",
    "DomainView",
    "EarningsView",
    "fan_out_with_partial_tolerance",
    "get_dashboard_service",
    "ViewState",
]
