"""
tests/test_dashboard_service.py

Tests for DashboardService against an in-memory backend.

Coverage
--------
- Single-account earnings and domain views
- "All accounts" fan-out: inactive accounts skipped, failures reported,
  totals built from successful accounts only
- Domain grouping across accounts
- Date validation before any backend call
- Backend summary with recomputed ratios
- Default account selection
- A malformed account payload excluded as a per-account failure
- Retry policy for fan-out calls
"""

from __future__ import annotations

import asyncio
from datetime import date
from unittest.mock import MagicMock

import pytest

from app.config import BackendAPISettings
from app.connectors.adsense_backend import AdSenseBackendClient
from app.connectors.base import BackendRequestError
from app.domain.adsense import DateFilterParams, DateRangeValidationError
from app.domain.metrics import FetchFailureKind
from app.services.dashboard_service import (
    DashboardService,
    ViewSource,
    active_account_keys,
    default_account,
)
from conftest import FakeBackendClient, make_account


TODAY = DateFilterParams(date_filter="today")


class TestAllAccountsEarnings:
    def test_combines_active_accounts_and_reports_failures(
        self,
        dashboard_service: DashboardService,
        fake_client: FakeBackendClient,
    ) -> None:
        view = asyncio.run(dashboard_service.load_earnings("all", TODAY))

        assert view.source == ViewSource.CLIENT_AGGREGATE
        assert view.account_key == "all"
        assert [failure.key for failure in view.failures] == ["beta"]
        assert view.failures[0].kind == FetchFailureKind.REQUEST
        assert list(view.result.breakdown) == ["alpha", "gamma"]
        assert view.result.included_count == 2
        assert view.note == "Combined data from 2 of 3 accounts"
        assert ("earnings", "dormant") not in fake_client.calls

        total = view.result.total
        assert total.record.earnings_micros == 15_000_000
        assert total.record.clicks == 1_750
        assert total.record.impressions == 150_000
        assert total.ratios.ctr == pytest.approx(1_750 / 150_000 * 100)
        assert total.ratios.rpm == pytest.approx(15.0 * 1000 / 60_000)

    def test_all_failing_accounts_give_zero_totals(self, fake_client: FakeBackendClient) -> None:
        fake_client.failing = {"alpha", "beta", "gamma"}
        service = DashboardService(client=fake_client, fetch_timeout_seconds=1.0)  # type: ignore[arg-type]

        view = asyncio.run(service.load_earnings("all", TODAY))

        assert view.result.included_count == 0
        assert view.result.total.record.clicks == 0
        assert view.result.total.ratios.ctr == 0.0
        assert [failure.key for failure in view.failures] == ["alpha", "beta", "gamma"]
        assert view.date == date.today().isoformat()

    def test_custom_all_accounts_key(self, fake_client: FakeBackendClient) -> None:
        service = DashboardService(
            client=fake_client,  # type: ignore[arg-type]
            fetch_timeout_seconds=1.0,
            all_accounts_key="__combined__",
        )

        view = asyncio.run(service.load_earnings("__combined__", TODAY))

        assert view.result.total.record.identifier == "__combined__"
        assert view.source == ViewSource.CLIENT_AGGREGATE


class TestSingleAccountEarnings:
    def test_single_account_view(self, dashboard_service: DashboardService) -> None:
        view = asyncio.run(dashboard_service.load_earnings("alpha", TODAY))

        assert view.source == ViewSource.ACCOUNT
        assert view.failures == []
        assert view.data_age_days == 1
        assert view.result.total.record.identifier == "alpha"
        assert view.result.total.ratios.ctr == pytest.approx(1.5)

    def test_single_account_failure_propagates(self, dashboard_service: DashboardService) -> None:
        with pytest.raises(BackendRequestError):
            asyncio.run(dashboard_service.load_earnings("beta", TODAY))

    def test_incomplete_range_rejected_before_any_call(
        self,
        dashboard_service: DashboardService,
        fake_client: FakeBackendClient,
    ) -> None:
        params = DateFilterParams(date_filter="range", end_date=date(2026, 10, 10))

        with pytest.raises(DateRangeValidationError):
            asyncio.run(dashboard_service.load_earnings("all", params))
        with pytest.raises(DateRangeValidationError):
            asyncio.run(dashboard_service.load_domains("alpha", params))
        assert fake_client.calls == []


class TestBackendSummary:
    def test_summary_ratios_are_recomputed(self, dashboard_service: DashboardService) -> None:
        view = asyncio.run(dashboard_service.load_backend_summary(TODAY))

        assert view.source == ViewSource.BACKEND_SUMMARY
        assert view.result.included_count == 4
        total = view.result.total
        assert total.record.impressions == 159_010
        assert total.ratios.ctr == pytest.approx(2_651 / 159_010 * 100)
        assert list(view.result.breakdown) == ["alpha", "beta", "gamma", "dormant"]


class TestDomains:
    def test_domains_grouped_across_accounts(self, dashboard_service: DashboardService) -> None:
        view = asyncio.run(dashboard_service.load_domains("all", TODAY))

        assert view.source == ViewSource.CLIENT_AGGREGATE
        assert [summary.record.identifier for summary in view.domains] == ["a.com", "b.com", "c.com"]
        a_com = view.domains[0]
        assert a_com.record.impressions == 3_000
        assert a_com.record.clicks == 40
        assert a_com.ratios.ctr == pytest.approx(40 / 3_000 * 100)
        assert view.included_count == 2
        assert [failure.key for failure in view.failures] == ["beta"]
        assert view.totals.record.impressions == 3_900
        assert view.totals.record.earnings_micros == 3_750_000

    def test_domain_filter_passed_through(self, dashboard_service: DashboardService) -> None:
        view = asyncio.run(dashboard_service.load_domains("alpha", TODAY, "b.com"))

        assert view.source == ViewSource.ACCOUNT
        assert view.domain_filter == "b.com"
        assert [summary.record.identifier for summary in view.domains] == ["b.com"]
        assert view.totals.record.clicks == 5
        assert view.included_count == 1


class TestAccounts:
    def test_active_keys_and_default(self) -> None:
        accounts = [
            make_account("old", status="inactive"),
            make_account("alpha"),
            make_account("broken", status="error"),
            make_account("gamma"),
        ]

        assert active_account_keys(accounts) == ["alpha", "gamma"]
        default = default_account(accounts)
        assert default is not None
        assert default.account_key == "alpha"

    def test_no_active_account_has_no_default(self) -> None:
        assert default_account([make_account("old", status="inactive")]) is None
        assert default_account([]) is None

    def test_account_actions_delegate_to_client(
        self,
        dashboard_service: DashboardService,
        fake_client: FakeBackendClient,
    ) -> None:
        connect = asyncio.run(dashboard_service.connect_account("alpha"))
        deleted = asyncio.run(dashboard_service.delete_account("alpha"))

        assert connect.oauth_url == "https://auth.example.com/alpha"
        assert deleted.message == "Account alpha deleted"
        assert fake_client.calls == [("connect", "alpha"), ("delete", "alpha")]


# ---------------------------------------------------------------------------
# Real client over a mocked HTTP session
# ---------------------------------------------------------------------------


def _session_for(routes: dict[str, object]) -> MagicMock:
    def respond(*, method: str, url: str, **kwargs: object) -> MagicMock:
        response = MagicMock()
        response.status_code = 200
        response.raise_for_status.return_value = None
        response.json.return_value = routes[url.removeprefix("http://backend.test/api")]
        return response

    session = MagicMock()
    session.request.side_effect = respond
    return session


class TestMalformedAccountPayload:
    def test_negative_count_excludes_only_that_account(self) -> None:
        session = _session_for(
            {
                "/accounts": [
                    {"account_key": "a", "status": "active"},
                    {"account_key": "b", "status": "active"},
                ],
                "/today-earnings/a": {"date": "2026-10-16", "clicks": 10, "impressions": 1_000},
                "/today-earnings/b": {"date": "2026-10-16", "clicks": -3, "impressions": 500},
            }
        )
        client = AdSenseBackendClient(
            http_settings=BackendAPISettings(base_url="http://backend.test/api"),
            session=session,
        )
        service = DashboardService(client=client, fetch_timeout_seconds=5.0)

        view = asyncio.run(service.load_earnings("all", TODAY))

        assert [failure.key for failure in view.failures] == ["b"]
        assert view.failures[0].kind == FetchFailureKind.PAYLOAD
        assert "negative" in view.failures[0].message
        assert view.result.total.record.clicks == 10
        assert view.result.total.record.impressions == 1_000
        assert view.result.included_count == 1


class TestFanOutRetry:
    def test_fan_out_calls_use_configured_retry_flag(self, fake_client: FakeBackendClient) -> None:
        service = DashboardService(
            client=fake_client,  # type: ignore[arg-type]
            fetch_timeout_seconds=1.0,
            fan_out_retry=False,
        )

        asyncio.run(service.load_earnings("all", TODAY))
        asyncio.run(service.load_domains("all", TODAY))

        assert fake_client.retry_flags == [False] * 6

    def test_single_account_calls_keep_client_retries(self, fake_client: FakeBackendClient) -> None:
        service = DashboardService(
            client=fake_client,  # type: ignore[arg-type]
            fetch_timeout_seconds=1.0,
            fan_out_retry=False,
        )

        asyncio.run(service.load_earnings("alpha", TODAY))

        assert fake_client.retry_flags == [True]
