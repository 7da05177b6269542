import asyncio

from fastapi import APIRouter, Depends, HTTPException, status

from earnings_console.exception.application_error import ApplicationError
from earnings_console.model.withdrawal import AmountInput, SubmitInput, WithdrawalDialogResponse
from earnings_console.service.withdrawal_service import WithdrawalService
from earnings_console.utils.dependency import VendorPrincipal, get_withdrawal_service, verify_token
from earnings_console.utils.logger import log

router = APIRouter(prefix="/withdrawal/dialog", tags=["Withdrawal"])


def _internal_error(action: str, e: Exception) -> HTTPException:
    log.error(f"Unexpected error while trying to {action}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "Internal Server Error",
            "message": f"An unexpected error occurred while trying to {action}",
        },
    )


@router.get("", response_model=WithdrawalDialogResponse)
async def get_dialog(
    principal: VendorPrincipal = Depends(verify_token),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
):
    """Current state of the vendor's withdrawal dialog (IDLE when none is open)."""
    try:
        dialog = await asyncio.to_thread(withdrawal_service.get_dialog, principal.vendor_id)
        return withdrawal_service.to_response(dialog)
    except ApplicationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        raise _internal_error("load the withdrawal dialog", e)


@router.post("", response_model=WithdrawalDialogResponse, status_code=status.HTTP_201_CREATED)
async def open_dialog(
    principal: VendorPrincipal = Depends(verify_token),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
):
    """Open the withdrawal dialog. Requires a positive withdrawal balance."""
    try:
        dialog = await asyncio.to_thread(withdrawal_service.open_dialog, principal.vendor_id)
        return withdrawal_service.to_response(dialog)
    except ApplicationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        raise _internal_error("open the withdrawal dialog", e)


@router.put("/amount", response_model=WithdrawalDialogResponse)
async def enter_amount(
    body: AmountInput,
    principal: VendorPrincipal = Depends(verify_token),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
):
    """Validate the amount typed into the dialog; errors are reported on the dialog."""
    try:
        dialog = await asyncio.to_thread(
            withdrawal_service.enter_amount, principal.vendor_id, body.amount
        )
        return withdrawal_service.to_response(dialog)
    except ApplicationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        raise _internal_error("validate the withdrawal amount", e)


@router.post("/submit", response_model=WithdrawalDialogResponse)
async def submit(
    body: SubmitInput,
    principal: VendorPrincipal = Depends(verify_token),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
):
    """
    Submit the validated withdrawal to the marketplace.

    A submit while another is in flight returns the SUBMITTING dialog without
    sending a second request.
    """
    try:
        dialog = await asyncio.to_thread(
            withdrawal_service.submit, principal.vendor_id, body.dialogId
        )
        return withdrawal_service.to_response(dialog)
    except ApplicationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        raise _internal_error("submit the withdrawal", e)


@router.delete("", response_model=WithdrawalDialogResponse)
async def dismiss(
    principal: VendorPrincipal = Depends(verify_token),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
):
    try:
        dialog = await asyncio.to_thread(withdrawal_service.dismiss, principal.vendor_id)
        return withdrawal_service.to_response(dialog)
    except ApplicationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        raise _internal_error("dismiss the withdrawal dialog", e)
