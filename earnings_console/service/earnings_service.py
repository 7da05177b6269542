import csv
import io
from datetime import date
from typing import Optional

from fastapi import status

from earnings_console.config.config import Config
from earnings_console.data import watermark_repository
from earnings_console.exception.application_error import ApplicationError
from earnings_console.model.earning import Earning, EarningsPage, Pagination, Summary
from earnings_console.model.earnings_view import (
    EarningRow,
    EarningsView,
    PayoutSetup,
    SummaryView,
    WithdrawalRow,
    WithdrawalsView,
)
from earnings_console.service.currency import format_currency
from earnings_console.service.earnings_cache import EarningsCache
from earnings_console.service.earnings_summary import (
    IntegrityFault,
    check_earning_integrity,
    compute_display_summary,
    reconcile_summary,
)
from earnings_console.service.marketplace_client import MarketplaceApiClient
from earnings_console.service.status_presentation import (
    status_badge_or_fault,
    withdrawal_badge,
    withdrawal_status_badge,
)
from earnings_console.utils.logger import log

MAX_PAGE_SIZE = 100


class EarningsService:
    def __init__(
        self,
        client: MarketplaceApiClient,
        cache: Optional[EarningsCache] = None,
        watermarks=watermark_repository,
        currency_code: str = Config.CURRENCY_CODE,
    ):
        self.client = client
        self.cache = cache
        self.watermarks = watermarks
        self.currency_code = currency_code

    def fetch_earnings_page(
        self,
        vendor_id: str,
        page: int = 1,
        limit: int = 10,
        status_filter: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> EarningsPage:
        self._validate_query(page, limit, start_date, end_date)
        params = {
            "page": page,
            "limit": limit,
            "status": status_filter,
            "startDate": start_date.isoformat() if start_date else None,
            "endDate": end_date.isoformat() if end_date else None,
        }
        if self.cache is not None:
            cached = self.cache.get_page(vendor_id, params)
            if cached is not None:
                log.debug(f"Serving cached earnings page {page} for vendor {vendor_id}")
                return cached

        earnings_page = self.client.get_earnings(
            page=page,
            limit=limit,
            status_filter=status_filter,
            start_date=start_date,
            end_date=end_date,
        )
        if self.cache is not None:
            self.cache.set_page(vendor_id, params, earnings_page)
        return earnings_page

    def get_earnings_view(
        self,
        vendor_id: str,
        page: int = 1,
        limit: int = 10,
        status_filter: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> EarningsView:
        """
        Build the vendor earnings view for one page of earnings.

        Rows with data-integrity faults are flagged and still rendered; the
        server summary is shown as reported and cross-checked against the rows.
        """
        earnings_page = self.fetch_earnings_page(
            vendor_id, page, limit, status_filter, start_date, end_date
        )
        earnings = earnings_page.earnings

        previously_moved = self.watermarks.get_moved_earning_ids(
            vendor_id, [earning.id for earning in earnings]
        )
        rows = [self._build_row(earning, earning.id in previously_moved) for earning in earnings]
        self.watermarks.mark_moved_to_withdrawal(
            vendor_id,
            [earning.id for earning in earnings if earning.movedToWithdrawal and earning.id not in previously_moved],
        )

        # Server totals cover every earning, so they are only comparable with an
        # unfiltered listing that fits on one page.
        pagination = earnings_page.pagination
        complete = (
            pagination is not None
            and status_filter is None
            and start_date is None
            and end_date is None
            and pagination.page == 1
            and len(earnings) >= pagination.total
        )
        warnings = reconcile_summary(earnings_page.summary, earnings, complete)

        return EarningsView(
            rows=rows,
            summary=self._build_summary_view(earnings_page.summary),
            computedSummary=compute_display_summary(earnings),
            warnings=warnings,
            pagination=pagination or Pagination(page=page, limit=limit, total=len(earnings)),
            currency=self.currency_code,
            pollIntervalSeconds=Config.EARNINGS_POLL_INTERVAL,
            hasIntegrityFaults=any(row.faults for row in rows),
        )

    def get_withdrawals_view(
        self,
        page: int = 1,
        limit: int = 20,
        status_filter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> WithdrawalsView:
        self._validate_query(page, limit)
        withdrawals_page = self.client.get_withdrawals(
            page=page, limit=limit, status_filter=status_filter
        )
        withdrawals = withdrawals_page.withdrawals
        if search:
            needle = search.lower()
            withdrawals = [w for w in withdrawals if w.transferId and needle in w.transferId.lower()]

        rows = [
            WithdrawalRow(
                id=withdrawal.id,
                amount=withdrawal.amount,
                amountDisplay=format_currency(withdrawal.amount, self.currency_code),
                statusBadge=withdrawal_status_badge(withdrawal.status),
                transferId=withdrawal.transferId,
                estimatedArrival=withdrawal.estimatedArrival,
                processedAt=withdrawal.processedAt,
                createdAt=withdrawal.createdAt,
            )
            for withdrawal in withdrawals
        ]
        return WithdrawalsView(
            rows=rows,
            summary=withdrawals_page.summary,
            totalWithdrawnDisplay=format_currency(
                withdrawals_page.summary.totalWithdrawn, self.currency_code
            ),
            pagination=withdrawals_page.pagination,
            currency=self.currency_code,
        )

    def export_statement(
        self,
        vendor_id: str,
        status_filter: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> str:
        """Render the vendor's earnings as a CSV statement."""
        view = self.get_earnings_view(
            vendor_id,
            page=1,
            limit=MAX_PAGE_SIZE,
            status_filter=status_filter,
            start_date=start_date,
            end_date=end_date,
        )
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(
            ["Earning ID", "Order", "Created", "Status", "Gross", "Commission", "Net", "Withdrawal", "Flags"]
        )
        for row in view.rows:
            writer.writerow(
                [
                    row.id,
                    row.orderNumber or "",
                    row.createdAt.isoformat() if row.createdAt else "",
                    row.statusBadge.label,
                    f"{row.amount:.2f}",
                    f"{row.commission:.2f}",
                    f"{row.netAmount:.2f}",
                    row.withdrawalBadge.label,
                    ";".join(row.faults),
                ]
            )
        writer.writerow([])
        writer.writerow(["Total Earnings", view.summary.totalEarningsDisplay])
        writer.writerow(["Total Commission", view.summary.totalCommissionDisplay])
        writer.writerow(["Total Net", view.summary.totalNetAmountDisplay])
        writer.writerow(["Available for Withdrawal", view.summary.withdrawalBalanceDisplay])
        if view.pagination.pages > 1:
            log.warning(
                f"Statement for vendor {vendor_id} truncated to {MAX_PAGE_SIZE} of {view.pagination.total} earnings"
            )
        return buffer.getvalue()

    def get_withdrawal_balance(self, vendor_id: str):
        return self.fetch_earnings_page(vendor_id, page=1, limit=1).summary.withdrawalBalance

    def get_payout_setup(self, vendor_id: str) -> PayoutSetup:
        profile = self.cache.get_profile(vendor_id) if self.cache is not None else None
        if profile is None:
            profile = self.client.get_vendor_profile()
            if self.cache is not None:
                self.cache.set_profile(vendor_id, profile)

        # No connected Stripe account means payout onboarding is incomplete.
        requires_onboarding = not profile.get("stripeAccountId")
        return PayoutSetup(
            stripeAccountId=profile.get("stripeAccountId"),
            stripeAccountStatus=profile.get("stripeAccountStatus"),
            requiresOnboarding=requires_onboarding,
            onboardingPath=Config.ONBOARDING_REDIRECT_PATH if requires_onboarding else None,
        )

    def _build_row(self, earning: Earning, previously_moved: bool) -> EarningRow:
        faults = check_earning_integrity(earning)
        moved = earning.movedToWithdrawal
        if previously_moved and not moved:
            log.warning(f"Earning {earning.id} reported movedToWithdrawal=false after being moved")
            faults.append(IntegrityFault.WITHDRAWAL_FLAG_REGRESSED.value)
            moved = True

        return EarningRow(
            id=earning.id,
            orderNumber=earning.order.orderNumber if earning.order else None,
            amount=earning.amount,
            commission=earning.commission,
            netAmount=earning.netAmount,
            amountDisplay=format_currency(earning.amount, self.currency_code),
            commissionDisplay=format_currency(earning.commission, self.currency_code),
            netAmountDisplay=format_currency(earning.netAmount, self.currency_code),
            statusBadge=status_badge_or_fault(earning.status),
            withdrawalBadge=withdrawal_badge(moved),
            movedToWithdrawal=moved,
            paidAt=earning.paidAt,
            createdAt=earning.createdAt,
            faults=faults,
        )

    def _build_summary_view(self, summary: Summary) -> SummaryView:
        displays = {
            f"{name}Display": format_currency(getattr(summary, name), self.currency_code)
            for name in Summary.model_fields
        }
        return SummaryView(
            **summary.model_dump(),
            **displays,
            canRequestWithdrawal=summary.withdrawalBalance > 0,
        )

    def _validate_query(
        self,
        page: int,
        limit: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> None:
        if page < 1 or not 1 <= limit <= MAX_PAGE_SIZE:
            raise ApplicationError(
                status_code=status.HTTP_400_BAD_REQUEST,
                error_code="EARNINGS_001",
                payload={
                    "error": "Invalid Pagination",
                    "message": f"Page must be at least 1 and limit between 1 and {MAX_PAGE_SIZE}",
                },
            )
        if (start_date is None) != (end_date is None):
            raise ApplicationError(
                status_code=status.HTTP_400_BAD_REQUEST,
                error_code="EARNINGS_002",
                payload={
                    "error": "Invalid Date Range",
                    "message": "Both start date and end date are required to filter by date",
                },
            )
        if start_date and end_date and start_date > end_date:
            raise ApplicationError(
                status_code=status.HTTP_400_BAD_REQUEST,
                error_code="EARNINGS_003",
                payload={
                    "error": "Invalid Date Range",
                    "message": "Start date must be before or equal to end date",
                },
            )
