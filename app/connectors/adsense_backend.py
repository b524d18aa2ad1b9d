"""
app/connectors/adsense_backend.py

Client for the AdSense reporting backend.

Each method maps to one backend endpoint and returns the payload type that
endpoint produces. Date filters are validated before any request is sent.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO
from urllib.parse import quote

from app.connectors.base import BackendPayloadError, BaseBackendClient
from app.domain.adsense import (
    Account,
    AccountActionResult,
    AccountEarnings,
    DateFilterParams,
    DomainBreakdown,
    MultiAccountSummary,
)
from app.domain.metrics import MICROS_PER_UNIT, MetricRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------


def _require_mapping(payload: Any, context: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise BackendPayloadError(f"Expected an object for {context}, got {type(payload).__name__}.")
    return payload


def _to_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise BackendPayloadError(f"Field '{field_name}' must be numeric.")
    try:
        if isinstance(value, float):
            return round(value)
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise BackendPayloadError(f"Field '{field_name}' must be numeric, got {value!r}.") from exc


def _to_count(value: Any, field_name: str) -> int:
    count = _to_int(value, field_name)
    if count < 0:
        raise BackendPayloadError(f"Field '{field_name}' must not be negative, got {count}.")
    return count


def _earnings_micros(payload: dict[str, Any], prefix: str = "") -> int:
    """
    Read earnings in micros, deriving them from the unit amount if needed.
    """

    micros_key = f"{prefix}earnings_micros"
    if payload.get(micros_key) is not None:
        return _to_int(payload[micros_key], micros_key)
    unit_key = f"{prefix}earnings_idr"
    if payload.get(unit_key) is not None:
        try:
            return round(float(payload[unit_key]) * MICROS_PER_UNIT)
        except (TypeError, ValueError, OverflowError) as exc:
            raise BackendPayloadError(f"Field '{unit_key}' must be numeric.") from exc
    return 0


def _parse_record(payload: dict[str, Any], identifier: str, prefix: str = "") -> MetricRecord:
    return MetricRecord(
        identifier=identifier,
        earnings_micros=_earnings_micros(payload, prefix),
        clicks=_to_count(payload.get(f"{prefix}clicks", 0), f"{prefix}clicks"),
        impressions=_to_count(payload.get(f"{prefix}impressions", 0), f"{prefix}impressions"),
        page_views=_to_count(payload.get(f"{prefix}page_views", 0), f"{prefix}page_views"),
    )


def parse_account(payload: Any) -> Account:
    data = _require_mapping(payload, "account")
    try:
        account_key = str(data["account_key"])
    except KeyError as exc:
        raise BackendPayloadError("Account payload is missing 'account_key'.") from exc
    metadata = data.get("metadata") or {}
    return Account(
        account_key=account_key,
        account_id=str(data.get("account_id", "")),
        display_name=str(data.get("display_name") or account_key),
        status=str(data.get("status", "")),
        description=str(data.get("description") or ""),
        metadata=dict(metadata) if isinstance(metadata, dict) else {},
    )


def parse_account_earnings(payload: Any, account_key: str) -> AccountEarnings:
    data = _require_mapping(payload, "earnings")
    return AccountEarnings(
        account_key=str(data.get("account_key") or account_key),
        account_id=str(data.get("account_id", "")),
        date=str(data.get("date", "")),
        record=_parse_record(data, identifier=account_key),
        data_age_days=_to_int(data.get("data_age_days", 0), "data_age_days"),
        note=data.get("note"),
    )


def parse_domain_breakdown(payload: Any, account_key: str) -> DomainBreakdown:
    data = _require_mapping(payload, "domain breakdown")
    raw_domains = data.get("domains")
    if not isinstance(raw_domains, list):
        raise BackendPayloadError("Domain breakdown payload is missing a 'domains' list.")

    domains: list[MetricRecord] = []
    for index, raw_domain in enumerate(raw_domains):
        domain = _require_mapping(raw_domain, f"domains[{index}]")
        name = domain.get("domain")
        if not isinstance(name, str):
            raise BackendPayloadError(f"domains[{index}] is missing a domain name.")
        domains.append(_parse_record(domain, identifier=name))

    raw_summary = data.get("summary")
    if raw_summary is None:
        summary = MetricRecord(
            identifier=account_key,
            earnings_micros=sum(domain.earnings_micros for domain in domains),
            clicks=sum(domain.clicks for domain in domains),
            impressions=sum(domain.impressions for domain in domains),
            page_views=sum(domain.page_views for domain in domains),
        )
    else:
        summary = _parse_record(
            _require_mapping(raw_summary, "summary"),
            identifier=account_key,
            prefix="total_",
        )

    return DomainBreakdown(
        account_key=str(data.get("account_key") or account_key),
        account_id=str(data.get("account_id", "")),
        date=str(data.get("date", "")),
        domains=domains,
        summary=summary,
        domain_filter=data.get("domain_filter") or None,
    )


def parse_multi_account_summary(payload: Any, identifier: str) -> MultiAccountSummary:
    data = _require_mapping(payload, "summary")
    accounts = []
    for index, raw_account in enumerate(data.get("accounts") or []):
        account = _require_mapping(raw_account, f"accounts[{index}]")
        key = str(account.get("account_key", f"account-{index}"))
        accounts.append(_parse_record(account, identifier=key))
    return MultiAccountSummary(
        date=str(data.get("date", "")),
        total_accounts=_to_int(data.get("total_accounts", len(accounts)), "total_accounts"),
        total=_parse_record(data, identifier=identifier, prefix="total_"),
        accounts=accounts,
    )


def parse_action_result(payload: Any) -> AccountActionResult:
    data = _require_mapping(payload, "account action")
    known = {"success", "message", "oauth_url"}
    return AccountActionResult(
        success=bool(data.get("success", True)),
        message=data.get("message"),
        oauth_url=data.get("oauth_url") or data.get("auth_url"),
        details={key: value for key, value in data.items() if key not in known},
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class AdSenseBackendClient(BaseBackendClient):
    """
    Typed access to the backend's account registry and earnings endpoints.
    """

    source = "adsense_backend"

    @staticmethod
    def _account_path(account_key: str, suffix: str = "") -> str:
        return f"/accounts/{quote(account_key, safe='')}{suffix}"

    # ------------------------------------------------------------------
    # Account registry
    # ------------------------------------------------------------------

    def list_accounts(self) -> list[Account]:
        payload = self._request_json(method="GET", path="/accounts")
        if not isinstance(payload, list):
            raise BackendPayloadError("Account list payload must be a list.")
        return [parse_account(item) for item in payload]

    def get_account(self, account_key: str) -> Account:
        return parse_account(self._request_json(method="GET", path=self._account_path(account_key)))

    # ------------------------------------------------------------------
    # Earnings
    # ------------------------------------------------------------------

    def get_account_earnings(
        self,
        account_key: str,
        date_params: DateFilterParams | None = None,
        *,
        retry: bool = True,
    ) -> AccountEarnings:
        """
        Fetch one account's earnings for the selected period.

        Raises
        ------
        DateRangeValidationError
            Before any request, when the range filter is incomplete.
        """

        date_params = date_params or DateFilterParams()
        date_params.validate()
        payload = self._request_json(
            method="GET",
            path=f"/today-earnings/{quote(account_key, safe='')}",
            params=date_params.to_query_params(),
            retry=retry,
        )
        return parse_account_earnings(payload, account_key)

    def get_domain_earnings(
        self,
        account_key: str,
        date_params: DateFilterParams | None = None,
        domain_filter: str | None = None,
        *,
        retry: bool = True,
    ) -> DomainBreakdown:
        """
        Fetch one account's per-domain breakdown for the selected period.
        """

        date_params = date_params or DateFilterParams()
        date_params.validate()
        params: dict[str, str] = {}
        if domain_filter:
            params["domain"] = domain_filter
        params.update(date_params.to_query_params())
        payload = self._request_json(
            method="GET",
            path=f"/domain-earnings/{quote(account_key, safe='')}",
            params=params,
            retry=retry,
        )
        return parse_domain_breakdown(payload, account_key)

    def get_summary(
        self,
        date_params: DateFilterParams | None = None,
        *,
        identifier: str = "all",
    ) -> MultiAccountSummary:
        """
        Fetch the backend's own totals across all active accounts.
        """

        date_params = date_params or DateFilterParams()
        date_params.validate()
        payload = self._request_json(
            method="GET",
            path="/summary",
            params=date_params.to_query_params(),
        )
        return parse_multi_account_summary(payload, identifier)

    # ------------------------------------------------------------------
    # Account management
    # ------------------------------------------------------------------

    def upload_account(
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
        """
        Upload OAuth client credentials to register a new account.
        """

        form = {
            "account_key": account_key,
            "display_name": display_name,
            "account_id": account_id,
            "description": description,
            "website_url": website_url,
            "category": category,
        }
        data = {key: value for key, value in form.items() if value}
        payload = self._request_json(
            method="POST",
            path="/accounts/upload",
            data=data,
            files={"file": (filename, content, "application/json")},
            retry=False,
        )
        result = parse_action_result(payload)
        logger.info("Account upload account_key=%s success=%s", account_key, result.success)
        return result

    def connect_account(self, account_key: str) -> AccountActionResult:
        """Initiate the OAuth flow for an account."""
        payload = self._request_json(method="GET", path=self._account_path(account_key, "/connect"))
        return parse_action_result(payload)

    def validate_account(self, account_key: str) -> AccountActionResult:
        payload = self._request_json(method="GET", path=self._account_path(account_key, "/validate"))
        return parse_action_result(payload)

    def delete_account(self, account_key: str) -> AccountActionResult:
        payload = self._request_json(
            method="DELETE",
            path=self._account_path(account_key),
            params={"confirm": "true"},
            retry=False,
        )
        result = parse_action_result(payload)
        logger.info("Account delete account_key=%s success=%s", account_key, result.success)
        return result
