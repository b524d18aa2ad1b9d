"""
app/domain/adsense.py

Typed payloads returned by the AdSense reporting backend.

Each backend endpoint maps to exactly one payload type; the connector picks
the type from the endpoint it called, never from the response contents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from app.domain.metrics import MetricRecord


class AccountStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class DateFilter:
    TODAY = "today"
    YESTERDAY = "yesterday"
    CUSTOM = "custom"
    RANGE = "range"

    ALL = (TODAY, YESTERDAY, CUSTOM, RANGE)


class DateRangeValidationError(ValueError):
    """
    Raised when date filter parameters are incomplete or inconsistent.
    """


@dataclass(frozen=True)
class DateFilterParams:
    """
    Date selection shared by every earnings endpoint.
    """

    date_filter: str | None = None
    custom_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None

    def validate(self) -> None:
        """
        Check the filter before any request leaves the process.
        """

        if self.date_filter is None:
            return
        if self.date_filter not in DateFilter.ALL:
            allowed = ", ".join(DateFilter.ALL)
            raise DateRangeValidationError(
                f"Unsupported date_filter '{self.date_filter}'. Allowed values: {allowed}."
            )
        if self.date_filter == DateFilter.RANGE:
            if self.start_date is None or self.end_date is None:
                raise DateRangeValidationError(
                    "Start date and end date are required for range filter."
                )
            if self.start_date > self.end_date:
                raise DateRangeValidationError("Start date must not be after end date.")

    def to_query_params(self) -> dict[str, str]:
        """
        Render the query string parameters for the selected filter only.
        """

        params: dict[str, str] = {}
        if self.date_filter is None:
            return params
        params["date_filter"] = self.date_filter
        if self.date_filter == DateFilter.CUSTOM and self.custom_date is not None:
            params["custom_date"] = self.custom_date.isoformat()
        if self.date_filter == DateFilter.RANGE:
            if self.start_date is not None:
                params["start_date"] = self.start_date.isoformat()
            if self.end_date is not None:
                params["end_date"] = self.end_date.isoformat()
        return params


@dataclass(frozen=True)
class Account:
    """
    One AdSense publisher account registered with the backend.
    """

    account_key: str
    account_id: str
    display_name: str
    status: str
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


@dataclass(frozen=True)
class AccountEarnings:
    """
    Per-account earnings for one reporting period.
    """

    account_key: str
    account_id: str
    date: str
    record: MetricRecord
    data_age_days: int = 0
    note: str | None = None


@dataclass(frozen=True)
class DomainBreakdown:
    """
    Per-domain earnings for one account plus the backend's summary block.
    """

    account_key: str
    account_id: str
    date: str
    domains: list[MetricRecord]
    summary: MetricRecord
    domain_filter: str | None = None


@dataclass(frozen=True)
class MultiAccountSummary:
    """
    Totals the backend pre-aggregated across all active accounts.
    """

    date: str
    total_accounts: int
    total: MetricRecord
    accounts: list[MetricRecord] = field(default_factory=list)


@dataclass(frozen=True)
class AccountActionResult:
    """
    Outcome of an account management call (upload, connect, validate, delete).
    """

    success: bool
    message: str | None = None
    oauth_url: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
