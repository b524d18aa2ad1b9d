"""
app/api/routers/dashboard_router.py

Dashboard earnings, domain and account-management endpoints.

Combined "all accounts" views never fail because one account is broken;
excluded accounts are listed in ``failures`` alongside the totals.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Query, UploadFile, status

from app.api.dependencies import get_credentials_upload, get_date_filter_params
from app.connectors.base import BackendRequestError
from app.domain.adsense import AccountActionResult, DateFilterParams
from app.domain.metrics import FetchFailure, MetricSummary
from app.schemas.dashboard import (
    AccountActionResponse,
    AccountListResponse,
    AccountResponse,
    DomainViewResponse,
    EarningsViewResponse,
    FetchFailureResponse,
    MetricSummaryResponse,
)
from app.services.aggregation_service import AggregationInputError, classify_ctr
from app.services.dashboard_service import (
    DashboardService,
    DomainView,
    EarningsView,
    default_account,
    get_dashboard_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


# ---------------------------------------------------------------------------
# Response mapping
# ---------------------------------------------------------------------------


def _metric_response(summary: MetricSummary) -> MetricSummaryResponse:
    record = summary.record
    ratios = summary.ratios
    return MetricSummaryResponse(
        identifier=record.identifier,
        earnings_micros=record.earnings_micros,
        earnings=record.earnings,
        clicks=record.clicks,
        impressions=record.impressions,
        page_views=record.page_views,
        ctr=ratios.ctr,
        cpm=ratios.cpm,
        rpm=ratios.rpm,
        page_ctr=ratios.page_ctr,
        cpc=ratios.cpc,
        earnings_per_page=ratios.earnings_per_page,
        impressions_per_page=ratios.impressions_per_page,
        ctr_category=classify_ctr(ratios.ctr),
    )


def _failure_responses(failures: list[FetchFailure]) -> list[FetchFailureResponse]:
    return [
        FetchFailureResponse(key=failure.key, kind=failure.kind, message=failure.message)
        for failure in failures
    ]


def _earnings_response(view: EarningsView) -> EarningsViewResponse:
    return EarningsViewResponse(
        account_key=view.account_key,
        date=view.date,
        source=view.source,
        total=_metric_response(view.result.total),
        accounts=[_metric_response(summary) for summary in view.result.breakdown.values()],
        included_count=view.result.included_count,
        failures=_failure_responses(view.failures),
        data_age_days=view.data_age_days,
        note=view.note,
    )


def _domain_response(view: DomainView) -> DomainViewResponse:
    return DomainViewResponse(
        account_key=view.account_key,
        date=view.date,
        source=view.source,
        domain_filter=view.domain_filter,
        total_domains=len(view.domains),
        domains=[_metric_response(summary) for summary in view.domains],
        summary=_metric_response(view.totals),
        included_count=view.included_count,
        failures=_failure_responses(view.failures),
    )


def _action_response(result: AccountActionResult) -> AccountActionResponse:
    return AccountActionResponse(
        success=result.success,
        message=result.message,
        oauth_url=result.oauth_url,
        details=result.details,
    )


def _backend_http_error(exc: BackendRequestError) -> HTTPException:
    logger.warning("Backend call failed status=%s error=%s", exc.status_code, exc)
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@router.get("/accounts", response_model=AccountListResponse)
async def list_accounts(
    service: DashboardService = Depends(get_dashboard_service),
) -> AccountListResponse:
    try:
        accounts = await service.list_accounts()
    except BackendRequestError as exc:
        raise _backend_http_error(exc) from exc

    selected = default_account(accounts)
    return AccountListResponse(
        accounts=[
            AccountResponse(
                account_key=account.account_key,
                account_id=account.account_id,
                display_name=account.display_name,
                description=account.description,
                status=account.status,
                metadata=account.metadata,
            )
            for account in accounts
        ],
        active_count=sum(1 for account in accounts if account.is_active),
        default_account_key=selected.account_key if selected is not None else None,
        all_accounts_key=service.all_accounts_key,
    )


@router.post(
    "/accounts/upload",
    response_model=AccountActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_account(
    account_key: str = Form(...),
    display_name: str = Form(...),
    account_id: str | None = Form(default=None),
    description: str | None = Form(default=None),
    website_url: str | None = Form(default=None),
    category: str | None = Form(default=None),
    file: UploadFile = Depends(get_credentials_upload),
    service: DashboardService = Depends(get_dashboard_service),
) -> AccountActionResponse:
    """
    Register a new account by uploading its OAuth client credentials.
    """

    if service.is_all_accounts(account_key.strip()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Account key '{account_key}' is reserved.",
        )
    content = await file.read()
    try:
        result = await service.upload_account(
            account_key=account_key.strip(),
            display_name=display_name.strip(),
            filename=file.filename or "credentials.json",
            content=content,
            account_id=account_id,
            description=description,
            website_url=website_url,
            category=category,
        )
    except BackendRequestError as exc:
        raise _backend_http_error(exc) from exc
    finally:
        await file.close()
    return _action_response(result)


@router.get("/accounts/{account_key}/connect", response_model=AccountActionResponse)
async def connect_account(
    account_key: str,
    service: DashboardService = Depends(get_dashboard_service),
) -> AccountActionResponse:
    try:
        return _action_response(await service.connect_account(account_key))
    except BackendRequestError as exc:
        raise _backend_http_error(exc) from exc


@router.get("/accounts/{account_key}/validate", response_model=AccountActionResponse)
async def validate_account(
    account_key: str,
    service: DashboardService = Depends(get_dashboard_service),
) -> AccountActionResponse:
    try:
        return _action_response(await service.validate_account(account_key))
    except BackendRequestError as exc:
        raise _backend_http_error(exc) from exc


@router.delete("/accounts/{account_key}", response_model=AccountActionResponse)
async def delete_account(
    account_key: str,
    service: DashboardService = Depends(get_dashboard_service),
) -> AccountActionResponse:
    try:
        return _action_response(await service.delete_account(account_key))
    except BackendRequestError as exc:
        raise _backend_http_error(exc) from exc


# ---------------------------------------------------------------------------
# Earnings and domains
# ---------------------------------------------------------------------------


@router.get("/earnings", response_model=EarningsViewResponse)
async def get_earnings(
    account: str = Query(..., description="Account key, or the all-accounts key"),
    date_params: DateFilterParams = Depends(get_date_filter_params),
    service: DashboardService = Depends(get_dashboard_service),
) -> EarningsViewResponse:
    """
    Earnings for one account, or combined client-side across all active accounts.
    """

    try:
        view = await service.load_earnings(account, date_params)
    except AggregationInputError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BackendRequestError as exc:
        raise _backend_http_error(exc) from exc
    return _earnings_response(view)


@router.get("/summary", response_model=EarningsViewResponse)
async def get_summary(
    date_params: DateFilterParams = Depends(get_date_filter_params),
    service: DashboardService = Depends(get_dashboard_service),
) -> EarningsViewResponse:
    """
    Totals pre-aggregated by the backend across all active accounts.
    """

    try:
        view = await service.load_backend_summary(date_params)
    except AggregationInputError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BackendRequestError as exc:
        raise _backend_http_error(exc) from exc
    return _earnings_response(view)


@router.get("/domains", response_model=DomainViewResponse)
async def get_domains(
    account: str = Query(..., description="Account key, or the all-accounts key"),
    domain: str | None = Query(default=None, description="Optional domain substring filter"),
    date_params: DateFilterParams = Depends(get_date_filter_params),
    service: DashboardService = Depends(get_dashboard_service),
) -> DomainViewResponse:
    """
    Domain breakdown for one account, or grouped by domain across all accounts.
    """

    try:
        view = await service.load_domains(account, date_params, domain or None)
    except AggregationInputError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BackendRequestError as exc:
        raise _backend_http_error(exc) from exc
    return _domain_response(view)
