"""
app/services/dashboard_session.py

Per-viewer dashboard controller.

Holds the current account selection and filters and refreshes the earnings
and domain views. Every refresh runs under a new request generation, so a
slow response for an old selection is discarded instead of overwriting the
newer one.
"""

from __future__ import annotations

import logging

from app.connectors.base import BackendRequestError
from app.domain.adsense import Account, DateFilterParams
from app.services.dashboard_service import (
    DashboardService,
    DomainView,
    EarningsView,
    default_account,
)
from app.services.request_generation import ViewState

logger = logging.getLogger(__name__)


class DashboardSession:
    def __init__(self, service: DashboardService) -> None:
        self._service = service
        self.accounts: list[Account] = []
        self.selected_account: str | None = None
        self.date_params = DateFilterParams()
        self.domain_filter: str | None = None
        self.earnings = ViewState[EarningsView]("earnings")
        self.domains = ViewState[DomainView]("domains")

    @property
    def active_account_count(self) -> int:
        return sum(1 for account in self.accounts if account.is_active)

    async def load_accounts(self) -> list[Account]:
        """
        Load the account registry and select the first active account.
        """

        self.accounts = await self._service.list_accounts()
        if self.selected_account is None:
            account = default_account(self.accounts)
            self.selected_account = account.account_key if account is not None else None
        return self.accounts

    def select_account(self, account_key: str) -> None:
        self.selected_account = account_key

    def select_all_accounts(self) -> None:
        self.selected_account = self._service.all_accounts_key

    def set_date_filter(self, date_params: DateFilterParams) -> None:
        self.date_params = date_params

    def set_domain_filter(self, domain_filter: str | None) -> None:
        self.domain_filter = domain_filter or None

    async def refresh_earnings(self) -> bool:
        """
        Reload the earnings view for the current selection.

        Returns ``True`` when the result was published and ``False`` when it
        was superseded by a later refresh or the backend call failed.

        Raises
        ------
        DateRangeValidationError
            When the current date filter is incomplete; no request is made.
        """

        token = self.earnings.begin()
        if self.selected_account is None:
            return False
        try:
            view = await self._service.load_earnings(self.selected_account, self.date_params)
        except BackendRequestError as exc:
            logger.error(
                "Earnings refresh failed account=%s error=%s",
                self.selected_account,
                exc,
            )
            self.earnings.clear(token)
            return False
        return self.earnings.publish(token, view)

    async def refresh_domains(self) -> bool:
        """
        Reload the domain view for the current selection and domain filter.
        """

        token = self.domains.begin()
        if self.selected_account is None:
            return False
        try:
            view = await self._service.load_domains(
                self.selected_account,
                self.date_params,
                self.domain_filter,
            )
        except BackendRequestError as exc:
            logger.error(
                "Domain refresh failed account=%s error=%s",
                self.selected_account,
                exc,
            )
            self.domains.clear(token)
            return False
        return self.domains.publish(token, view)
