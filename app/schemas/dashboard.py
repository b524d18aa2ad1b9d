"""
app/schemas/dashboard.py

Response schemas for dashboard endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class MetricSummaryResponse(BaseModel):
    """
    API response model for one account, domain or combined total.
    """

    identifier: str
    earnings_micros: int
    earnings: float
    clicks: int = Field(..., ge=0)
    impressions: int = Field(..., ge=0)
    page_views: int = Field(..., ge=0)
    ctr: float = Field(..., ge=0)
    cpm: float
    rpm: float
    page_ctr: float = Field(..., ge=0)
    cpc: float
    earnings_per_page: float
    impressions_per_page: float = Field(..., ge=0)
    ctr_category: str


class FetchFailureResponse(BaseModel):
    """
    API response model for one account excluded from a combined view.
    """

    key: str
    kind: str
    message: str


class EarningsViewResponse(BaseModel):
    account_key: str
    date: str
    source: str
    total: MetricSummaryResponse
    accounts: list[MetricSummaryResponse] = Field(default_factory=list)
    included_count: int = Field(..., ge=0)
    failures: list[FetchFailureResponse] = Field(default_factory=list)
    data_age_days: int = 0
    note: str | None = None


class DomainViewResponse(BaseModel):
    account_key: str
    date: str
    source: str
    domain_filter: str | None = None
    total_domains: int = Field(..., ge=0)
    domains: list[MetricSummaryResponse] = Field(default_factory=list)
    summary: MetricSummaryResponse
    included_count: int = Field(..., ge=0)
    failures: list[FetchFailureResponse] = Field(default_factory=list)


class AccountResponse(BaseModel):
    account_key: str
    account_id: str
    display_name: str
    description: str = ""
    status: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class AccountListResponse(BaseModel):
    """
    Account registry plus the selection hints the dashboard needs.
    """

    accounts: list[AccountResponse]
    active_count: int = Field(..., ge=0)
    default_account_key: str | None = None
    all_accounts_key: str


class AccountActionResponse(BaseModel):
    success: bool
    message: str | None = None
    oauth_url: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
