import asyncio
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from earnings_console.exception.application_error import ApplicationError
from earnings_console.model.earnings_view import EarningsView, PayoutSetup, WithdrawalsView
from earnings_console.service.earnings_service import EarningsService
from earnings_console.service.withdrawal_service import WithdrawalService
from earnings_console.utils.dependency import (
    VendorPrincipal,
    get_earnings_service,
    get_withdrawal_service,
    verify_token,
)
from earnings_console.utils.logger import log

router = APIRouter()


@router.get(
    "/earnings",
    response_model=EarningsView,
    tags=["Earnings"],
    summary="Get the vendor earnings view",
    description="""
Returns one page of the vendor's earnings with display-ready badges and
amounts, the marketplace summary, totals recomputed from the listed rows and
any inconsistencies between the two.

- **Authentication:** Requires a vendor bearer token.
- Rows failing data-integrity checks are returned with `faults` set rather
  than dropped.
- `pollIntervalSeconds` is the interval at which the view should be refreshed.
""",
)
async def get_earnings(
    page: int = Query(1, description="Page number, starting at 1"),
    limit: int = Query(10, description="Page size, at most 100"),
    status_filter: Optional[str] = Query(None, alias="status", description="Earning status filter"),
    start_date: Optional[date] = Query(None, alias="startDate", description="Start date in YYYY-MM-DD format"),
    end_date: Optional[date] = Query(None, alias="endDate", description="End date in YYYY-MM-DD format"),
    principal: VendorPrincipal = Depends(verify_token),
    earnings_service: EarningsService = Depends(get_earnings_service),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
) -> EarningsView:
    try:
        view = await asyncio.to_thread(
            earnings_service.get_earnings_view,
            principal.vendor_id,
            page,
            limit,
            status_filter,
            start_date,
            end_date,
        )
        # A refresh must not silently move the bound an open withdrawal dialog validates against.
        await asyncio.to_thread(
            withdrawal_service.rebound, principal.vendor_id, view.summary.withdrawalBalance
        )
        return view
    except HTTPException:
        raise
    except ApplicationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        log.error(f"Unexpected error in get_earnings endpoint: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred while fetching earnings",
            },
        )


@router.get(
    "/earnings/statement",
    tags=["Earnings"],
    summary="Export an earnings statement as CSV",
    response_class=Response,
)
async def export_statement(
    status_filter: Optional[str] = Query(None, alias="status"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    principal: VendorPrincipal = Depends(verify_token),
    earnings_service: EarningsService = Depends(get_earnings_service),
):
    try:
        statement = await asyncio.to_thread(
            earnings_service.export_statement,
            principal.vendor_id,
            status_filter,
            start_date,
            end_date,
        )
        return Response(
            content=statement,
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="earnings-statement.csv"'},
        )
    except HTTPException:
        raise
    except ApplicationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        log.error(f"Unexpected error in export_statement endpoint: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred while exporting the statement",
            },
        )


@router.get(
    "/withdrawals",
    response_model=WithdrawalsView,
    tags=["Withdrawals"],
    summary="Get the vendor withdrawal history",
)
async def get_withdrawals(
    page: int = Query(1),
    limit: int = Query(20),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Filter by transfer id"),
    principal: VendorPrincipal = Depends(verify_token),
    earnings_service: EarningsService = Depends(get_earnings_service),
) -> WithdrawalsView:
    try:
        return await asyncio.to_thread(
            earnings_service.get_withdrawals_view, page, limit, status_filter, search
        )
    except HTTPException:
        raise
    except ApplicationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        log.error(f"Unexpected error in get_withdrawals endpoint for vendor {principal.vendor_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred while fetching withdrawals",
            },
        )


@router.get(
    "/earnings/payout-setup",
    response_model=PayoutSetup,
    tags=["Earnings"],
    summary="Check whether the vendor can receive payouts",
)
async def get_payout_setup(
    principal: VendorPrincipal = Depends(verify_token),
    earnings_service: EarningsService = Depends(get_earnings_service),
) -> PayoutSetup:
    try:
        return await asyncio.to_thread(earnings_service.get_payout_setup, principal.vendor_id)
    except HTTPException:
        raise
    except ApplicationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        log.error(f"Unexpected error in get_payout_setup endpoint: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred while checking payout setup",
            },
        )
