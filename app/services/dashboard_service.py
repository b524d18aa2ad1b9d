"""
app/services/dashboard_service.py

Orchestration service for dashboard earnings and domain views.

Single-account views are a direct backend fetch. The virtual "all accounts"
selection fans out one fetch per active account, tolerates per-account
failure and merges the successes with the aggregation service.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache
from typing import BinaryIO

from app.config import get_backend_api_settings, get_dashboard_settings
from app.connectors.adsense_backend import AdSenseBackendClient
from app.domain.adsense import (
    Account,
    AccountActionResult,
    AccountEarnings,
    DateFilterParams,
    DomainBreakdown,
)
from app.domain.metrics import AggregationResult, FetchFailure, MetricSummary
from app.services.aggregation_service import (
    aggregate_accounts,
    aggregate_domains,
    summarize,
    sum_records,
)
from app.services.fan_out import fan_out_with_partial_tolerance

logger = logging.getLogger(__name__)


class ViewSource:
    ACCOUNT = "account"
    CLIENT_AGGREGATE = "client_aggregate"
    BACKEND_SUMMARY = "backend_summary"


@dataclass(frozen=True)
class EarningsView:
    """
    Earnings for one account or the combined "all accounts" selection.
    """

    account_key: str
    date: str
    source: str
    result: AggregationResult
    failures: list[FetchFailure] = field(default_factory=list)
    data_age_days: int = 0
    note: str | None = None


@dataclass(frozen=True)
class DomainView:
    """
    Per-domain breakdown for one account or grouped across all accounts.
    """

    account_key: str
    date: str
    source: str
    domains: list[MetricSummary]
    totals: MetricSummary
    included_count: int
    domain_filter: str | None = None
    failures: list[FetchFailure] = field(default_factory=list)


def active_account_keys(accounts: list[Account]) -> list[str]:
    return [account.account_key for account in accounts if account.is_active]


def default_account(accounts: list[Account]) -> Account | None:
    """Return the first active account, if any."""
    return next((account for account in accounts if account.is_active), None)


class DashboardService:
    """
    Coordinates backend fetches and multi-account aggregation.

    The backend client is synchronous; each call runs in a worker thread so
    per-account requests overlap on the event loop. A timed-out fetch does not
    stop its thread, so with ``fan_out_retry=False`` fan-out calls make a
    single attempt and the thread finishes within one request timeout.
    """

    def __init__(
        self,
        *,
        client: AdSenseBackendClient,
        fetch_timeout_seconds: float,
        all_accounts_key: str = "all",
        fan_out_retry: bool = True,
    ) -> None:
        self._client = client
        self._fetch_timeout_seconds = fetch_timeout_seconds
        self._fan_out_retry = fan_out_retry
        self.all_accounts_key = all_accounts_key

    def is_all_accounts(self, account_key: str) -> bool:
        return account_key == self.all_accounts_key

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def list_accounts(self) -> list[Account]:
        return await asyncio.to_thread(self._client.list_accounts)

    async def get_account(self, account_key: str) -> Account:
        return await asyncio.to_thread(self._client.get_account, account_key)

    async def upload_account(
        self,
        *,
        account_key: str,
        display_name: str,
        filename: str,
        content: bytes | BinaryIO,
        account_id: str | None = None,
        description: str | None = None,
        website_url: str | None = None,
        category: str | None = None,
    ) -> AccountActionResult:
        return await asyncio.to_thread(
            lambda: self._client.upload_account(
                account_key=account_key,
                display_name=display_name,
                filename=filename,
                content=content,
                account_id=account_id,
                description=description,
                website_url=website_url,
                category=category,
            )
        )

    async def connect_account(self, account_key: str) -> AccountActionResult:
        return await asyncio.to_thread(self._client.connect_account, account_key)

    async def validate_account(self, account_key: str) -> AccountActionResult:
        return await asyncio.to_thread(self._client.validate_account, account_key)

    async def delete_account(self, account_key: str) -> AccountActionResult:
        return await asyncio.to_thread(self._client.delete_account, account_key)

    # ------------------------------------------------------------------
    # Earnings
    # ------------------------------------------------------------------

    async def load_earnings(
        self,
        account_key: str,
        date_params: DateFilterParams,
    ) -> EarningsView:
        """
        Load earnings for one account or, for the "all" key, every active one.
        """

        date_params.validate()
        if self.is_all_accounts(account_key):
            return await self.load_all_accounts_earnings(date_params)

        earnings = await asyncio.to_thread(
            self._client.get_account_earnings, account_key, date_params
        )
        return EarningsView(
            account_key=account_key,
            date=earnings.date,
            source=ViewSource.ACCOUNT,
            result=aggregate_accounts([earnings.record], identifier=account_key),
            data_age_days=earnings.data_age_days,
            note=earnings.note,
        )

    async def load_all_accounts_earnings(self, date_params: DateFilterParams) -> EarningsView:
        """
        Fan out per-account earnings fetches and merge the successes.
        """

        date_params.validate()
        accounts = await self.list_accounts()
        keys = active_account_keys(accounts)

        async def fetch(key: str) -> AccountEarnings:
            return await asyncio.to_thread(
                self._client.get_account_earnings,
                key,
                date_params,
                retry=self._fan_out_retry,
            )

        fanned = await fan_out_with_partial_tolerance(
            keys,
            fetch,
            timeout_seconds=self._fetch_timeout_seconds,
        )
        result = aggregate_accounts(
            [earnings.record for earnings in fanned.successes],
            identifier=self.all_accounts_key,
        )
        logger.info(
            "Combined earnings accounts=%d included=%d failed=%d",
            len(keys),
            result.included_count,
            len(fanned.failures),
        )
        return EarningsView(
            account_key=self.all_accounts_key,
            date=fanned.successes[0].date if fanned.successes else date.today().isoformat(),
            source=ViewSource.CLIENT_AGGREGATE,
            result=result,
            failures=fanned.failures,
            data_age_days=max((e.data_age_days for e in fanned.successes), default=0),
            note=f"Combined data from {result.included_count} of {len(keys)} accounts",
        )

    async def load_backend_summary(self, date_params: DateFilterParams) -> EarningsView:
        """
        Load the backend's pre-aggregated totals as an earnings view.

        Ratios are recomputed from the reported totals so they follow the
        same formulas as the client-side aggregate.
        """

        date_params.validate()
        summary = await asyncio.to_thread(
            lambda: self._client.get_summary(date_params, identifier=self.all_accounts_key)
        )
        breakdown = aggregate_accounts(summary.accounts).breakdown
        return EarningsView(
            account_key=self.all_accounts_key,
            date=summary.date,
            source=ViewSource.BACKEND_SUMMARY,
            result=AggregationResult(
                total=summarize(summary.total),
                breakdown=breakdown,
                included_count=summary.total_accounts,
            ),
            note=f"Combined data from {summary.total_accounts} accounts",
        )

    # ------------------------------------------------------------------
    # Domains
    # ------------------------------------------------------------------

    async def load_domains(
        self,
        account_key: str,
        date_params: DateFilterParams,
        domain_filter: str | None = None,
    ) -> DomainView:
        """
        Load the domain breakdown for one account or grouped across all.
        """

        date_params.validate()
        if self.is_all_accounts(account_key):
            return await self.load_all_accounts_domains(date_params, domain_filter)

        breakdown = await asyncio.to_thread(
            self._client.get_domain_earnings, account_key, date_params, domain_filter
        )
        return DomainView(
            account_key=account_key,
            date=breakdown.date,
            source=ViewSource.ACCOUNT,
            domains=aggregate_domains([breakdown.domains]),
            totals=summarize(breakdown.summary),
            included_count=1,
            domain_filter=domain_filter,
        )

    async def load_all_accounts_domains(
        self,
        date_params: DateFilterParams,
        domain_filter: str | None = None,
    ) -> DomainView:
        """
        Fan out per-account domain fetches and group domains by name.
        """

        date_params.validate()
        accounts = await self.list_accounts()
        keys = active_account_keys(accounts)

        async def fetch(key: str) -> DomainBreakdown:
            return await asyncio.to_thread(
                self._client.get_domain_earnings,
                key,
                date_params,
                domain_filter,
                retry=self._fan_out_retry,
            )

        fanned = await fan_out_with_partial_tolerance(
            keys,
            fetch,
            timeout_seconds=self._fetch_timeout_seconds,
        )
        breakdowns = fanned.successes
        totals = sum_records(
            (breakdown.summary for breakdown in breakdowns),
            identifier=self.all_accounts_key,
        )
        domains = aggregate_domains([breakdown.domains for breakdown in breakdowns])
        logger.info(
            "Combined domains accounts=%d included=%d failed=%d domains=%d",
            len(keys),
            len(breakdowns),
            len(fanned.failures),
            len(domains),
        )
        return DomainView(
            account_key=self.all_accounts_key,
            date=breakdowns[0].date if breakdowns else date.today().isoformat(),
            source=ViewSource.CLIENT_AGGREGATE,
            domains=domains,
            totals=summarize(totals),
            included_count=len(breakdowns),
            domain_filter=domain_filter,
            failures=fanned.failures,
        )


@lru_cache(maxsize=1)
def get_dashboard_service() -> DashboardService:
    """
    Build and cache the dashboard service.
    """

    backend_settings = get_backend_api_settings()
    dashboard_settings = get_dashboard_settings()
    fan_out_retry = backend_settings.retry_budget_seconds <= dashboard_settings.fetch_timeout_seconds
    if not fan_out_retry:
        logger.info(
            "Fan-out retries disabled retry_budget=%.1fs fetch_timeout=%.1fs",
            backend_settings.retry_budget_seconds,
            dashboard_settings.fetch_timeout_seconds,
        )
    return DashboardService(
        client=AdSenseBackendClient(http_settings=backend_settings),
        fetch_timeout_seconds=dashboard_settings.fetch_timeout_seconds,
        all_accounts_key=dashboard_settings.all_accounts_key,
        fan_out_retry=fan_out_retry,
    )
