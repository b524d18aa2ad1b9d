"""
tests/conftest.py

Shared fakes for dashboard tests. No network access happens in any test.
"""

from __future__ import annotations

from typing import Any

import pytest

from app.connectors.base import BackendRequestError
from app.domain.adsense import (
    Account,
    AccountActionResult,
    AccountEarnings,
    DateFilterParams,
    DomainBreakdown,
    MultiAccountSummary,
)
from app.domain.metrics import MetricRecord
from app.services.dashboard_service import DashboardService


def make_record(
    identifier: str,
    *,
    earnings_micros: int = 0,
    clicks: int = 0,
    impressions: int = 0,
    page_views: int = 0,
) -> MetricRecord:
    return MetricRecord(
        identifier=identifier,
        earnings_micros=earnings_micros,
        clicks=clicks,
        impressions=impressions,
        page_views=page_views,
    )


def make_account(key: str, status: str = "active") -> Account:
    return Account(
        account_key=key,
        account_id=f"pub-{key}",
        display_name=key.title(),
        status=status,
    )


class FakeBackendClient:
    """
    In-memory stand-in for AdSenseBackendClient.

    Keys listed in ``failing`` raise BackendRequestError from every
    per-account endpoint.
    """

    def __init__(
        self,
        *,
        accounts: list[Account],
        earnings: dict[str, MetricRecord] | None = None,
        domains: dict[str, list[MetricRecord]] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.accounts = accounts
        self.earnings = earnings or {}
        self.domains = domains or {}
        self.failing = failing or set()
        self.calls: list[tuple[str, Any]] = []
        self.retry_flags: list[bool] = []

    def _check(self, key: str) -> None:
        if key in self.failing:
            raise BackendRequestError(f"adsense_backend: account {key} unavailable.", status_code=503)

    def list_accounts(self) -> list[Account]:
        self.calls.append(("list_accounts", None))
        return list(self.accounts)

    def get_account_earnings(
        self,
        account_key: str,
        date_params: DateFilterParams,
        *,
        retry: bool = True,
    ) -> AccountEarnings:
        self.calls.append(("earnings", account_key))
        self.retry_flags.append(retry)
        self._check(account_key)
        if account_key not in self.earnings:
            raise BackendRequestError(f"Unknown account {account_key}.", status_code=404)
        return AccountEarnings(
            account_key=account_key,
            account_id=f"pub-{account_key}",
            date="2026-10-16",
            record=self.earnings[account_key],
            data_age_days=1,
        )

    def get_domain_earnings(
        self,
        account_key: str,
        date_params: DateFilterParams,
        domain_filter: str | None = None,
        *,
        retry: bool = True,
    ) -> DomainBreakdown:
        self.calls.append(("domains", account_key))
        self.retry_flags.append(retry)
        self._check(account_key)
        domains = self.domains.get(account_key, [])
        if domain_filter:
            domains = [record for record in domains if domain_filter in record.identifier]
        return DomainBreakdown(
            account_key=account_key,
            account_id=f"pub-{account_key}",
            date="2026-10-16",
            domains=domains,
            summary=MetricRecord(
                identifier=account_key,
                earnings_micros=sum(record.earnings_micros for record in domains),
                clicks=sum(record.clicks for record in domains),
                impressions=sum(record.impressions for record in domains),
                page_views=sum(record.page_views for record in domains),
            ),
            domain_filter=domain_filter,
        )

    def get_summary(self, date_params: DateFilterParams, *, identifier: str = "all") -> MultiAccountSummary:
        self.calls.append(("summary", None))
        records = [self.earnings[key] for key in self.earnings]
        return MultiAccountSummary(
            date="2026-10-16",
            total_accounts=len(records),
            total=MetricRecord(
                identifier=identifier,
                earnings_micros=sum(record.earnings_micros for record in records),
                clicks=sum(record.clicks for record in records),
                impressions=sum(record.impressions for record in records),
                page_views=sum(record.page_views for record in records),
            ),
            accounts=records,
        )

    def upload_account(self, **form: Any) -> AccountActionResult:
        self.calls.append(("upload", form))
        return AccountActionResult(
            success=True,
            message="Account uploaded",
            oauth_url="https://accounts.example.com/o/oauth2/auth",
        )

    def connect_account(self, account_key: str) -> AccountActionResult:
        self.calls.append(("connect", account_key))
        return AccountActionResult(success=True, oauth_url=f"https://auth.example.com/{account_key}")

    def validate_account(self, account_key: str) -> AccountActionResult:
        self.calls.append(("validate", account_key))
        self._check(account_key)
        return AccountActionResult(success=True, message="Credentials valid")

    def delete_account(self, account_key: str) -> AccountActionResult:
        self.calls.append(("delete", account_key))
        return AccountActionResult(success=True, message=f"Account {account_key} deleted")


@pytest.fixture()
def fake_client() -> FakeBackendClient:
    """Three active accounts and one inactive; ``beta`` always fails."""
    return FakeBackendClient(
        accounts=[
            make_account("alpha"),
            make_account("beta"),
            make_account("gamma"),
            make_account("dormant", status="inactive"),
        ],
        earnings={
            "alpha": make_record(
                "alpha", earnings_micros=12_000_000, clicks=1_500, impressions=100_000, page_views=40_000
            ),
            "beta": make_record(
                "beta", earnings_micros=99_000_000, clicks=900, impressions=9_000, page_views=3_000
            ),
            "gamma": make_record(
                "gamma", earnings_micros=3_000_000, clicks=250, impressions=50_000, page_views=20_000
            ),
            "dormant": make_record("dormant", earnings_micros=1_000_000, clicks=1, impressions=10),
        },
        domains={
            "alpha": [
                make_record("a.com", earnings_micros=1_000_000, clicks=10, impressions=1_000, page_views=400),
                make_record("b.com", earnings_micros=500_000, clicks=5, impressions=800, page_views=300),
            ],
            "beta": [make_record("a.com", clicks=99, impressions=99)],
            "gamma": [
                make_record("a.com", earnings_micros=2_000_000, clicks=30, impressions=2_000, page_views=900),
                make_record("c.com", earnings_micros=250_000, clicks=2, impressions=100, page_views=50),
            ],
        },
        failing={"beta"},
    )


@pytest.fixture()
def dashboard_service(fake_client: FakeBackendClient) -> DashboardService:
    return DashboardService(
        client=fake_client,  # type: ignore[arg-type]
        fetch_timeout_seconds=5.0,
    )
