from decimal import Decimal
from typing import Optional
from uuid import uuid4

from fastapi import status
from redis import RedisError

from earnings_console.config.config import Config
from earnings_console.data import withdrawal_repository
from earnings_console.exception.application_error import ApplicationError
from earnings_console.model.withdrawal import (
    DialogState,
    Redirect,
    WithdrawalDialog,
    WithdrawalDialogResponse,
)
from earnings_console.service.currency import format_currency
from earnings_console.service.dialog_store import DialogStore
from earnings_console.service.earnings_cache import EarningsCache
from earnings_console.service.earnings_service import EarningsService
from earnings_console.service.marketplace_client import MarketplaceApiClient
from earnings_console.service.withdrawal_validator import validate_withdrawal_amount
from earnings_console.utils.logger import log

# States in which the entered amount can still be edited.
EDITABLE_STATES = (DialogState.OPEN, DialogState.VALIDATING)


class WithdrawalService:
    """
    Drives a vendor's withdrawal dialog:
    IDLE -> OPEN -> VALIDATING -> SUBMITTING -> SUCCEEDED | FAILED.

    Dialog state lives in Redis so every worker sees the same dialog, and a
    per-vendor lock allows a single submission in flight at a time.
    """

    def __init__(
        self,
        client: MarketplaceApiClient,
        earnings_service: EarningsService,
        store: Optional[DialogStore] = None,
        cache: Optional[EarningsCache] = None,
        attempts=withdrawal_repository,
    ):
        self.client = client
        self.earnings_service = earnings_service
        self.store = store or DialogStore()
        self.cache = cache
        self.attempts = attempts

    def get_dialog(self, vendor_id: str) -> WithdrawalDialog:
        return self.store.get(vendor_id) or WithdrawalDialog(vendorId=vendor_id)

    def open_dialog(self, vendor_id: str) -> WithdrawalDialog:
        current = self.store.get(vendor_id)
        if current is not None and current.state == DialogState.SUBMITTING:
            return current

        balance = self.earnings_service.get_withdrawal_balance(vendor_id)
        if balance <= 0:
            raise ApplicationError(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                error_code="WITHDRAWAL_004",
                payload={
                    "error": "No Withdrawable Balance",
                    "message": "You have no funds available for withdrawal yet",
                },
            )

        dialog = WithdrawalDialog(
            dialogId=str(uuid4()),
            vendorId=vendor_id,
            state=DialogState.OPEN,
            withdrawalBalance=balance,
        )
        self.store.save(dialog)
        log.info(f"Opened withdrawal dialog {dialog.dialogId} for vendor {vendor_id}")
        return dialog

    def enter_amount(self, vendor_id: str, raw_amount) -> WithdrawalDialog:
        dialog = self._require_dialog(vendor_id)
        if dialog.state not in EDITABLE_STATES:
            raise self._wrong_state(dialog)

        dialog.state = DialogState.VALIDATING
        self._apply_amount(dialog, raw_amount)
        self.store.save(dialog)
        return dialog

    def rebound(self, vendor_id: str, withdrawal_balance: Decimal) -> Optional[WithdrawalDialog]:
        """
        Apply a refreshed withdrawal balance to an open dialog and re-check the
        amount already entered against it.
        """
        dialog = self.store.get(vendor_id)
        if dialog is None or dialog.state not in EDITABLE_STATES:
            return dialog
        if dialog.withdrawalBalance == withdrawal_balance:
            return dialog

        log.info(
            f"Withdrawal balance for vendor {vendor_id} changed from "
            f"{dialog.withdrawalBalance} to {withdrawal_balance} while dialog open"
        )
        read = dialog.model_copy()
        dialog.withdrawalBalance = withdrawal_balance
        if dialog.amount is not None:
            self._apply_amount(dialog, dialog.amount)

        # A submit or dismiss may have landed since the read; never overwrite it with the stale copy.
        current = self.store.get(vendor_id)
        if current != read:
            log.info(f"Withdrawal dialog for vendor {vendor_id} changed during balance refresh, not saving")
            return current
        self.store.save(dialog)
        return dialog

    def submit(self, vendor_id: str, dialog_id: str) -> WithdrawalDialog:
        dialog = self._require_dialog(vendor_id)
        if dialog.dialogId != dialog_id:
            raise ApplicationError(
                status_code=status.HTTP_409_CONFLICT,
                error_code="WITHDRAWAL_006",
                payload={
                    "error": "Stale Withdrawal Dialog",
                    "message": "This withdrawal dialog was closed, please start again",
                },
            )
        if dialog.state == DialogState.SUBMITTING:
            log.info(f"Ignoring duplicate submit for dialog {dialog_id}, already in flight")
            return dialog
        if dialog.state != DialogState.VALIDATING or dialog.amount is None:
            raise self._wrong_state(dialog)

        lock_token = str(uuid4())
        if not self.store.acquire_lock(vendor_id, lock_token):
            log.info(f"Withdrawal already in flight for vendor {vendor_id}, ignoring submit")
            dialog.state = DialogState.SUBMITTING
            return dialog

        try:
            return self._submit_locked(dialog)
        finally:
            self.store.release_lock(vendor_id, lock_token)

    def dismiss(self, vendor_id: str) -> WithdrawalDialog:
        dialog = self.store.get(vendor_id)
        if dialog is not None:
            log.info(f"Dismissed withdrawal dialog {dialog.dialogId} in state {dialog.state.value}")
        self.store.clear(vendor_id)
        return WithdrawalDialog(vendorId=vendor_id)

    def to_response(self, dialog: WithdrawalDialog) -> WithdrawalDialogResponse:
        currency = self.earnings_service.currency_code
        return WithdrawalDialogResponse(
            **dialog.model_dump(),
            canSubmit=can_submit(dialog),
            withdrawalBalanceDisplay=format_currency(dialog.withdrawalBalance, currency),
            amountDisplay=format_currency(dialog.amount, currency) if dialog.amount is not None else None,
        )

    def _submit_locked(self, dialog: WithdrawalDialog) -> WithdrawalDialog:
        vendor_id = dialog.vendorId
        amount = str(dialog.amount)
        if self._is_timed_out_retry(dialog.idempotencyKey, amount):
            # Same withdrawal as the attempt that timed out, so the marketplace can deduplicate it.
            log.info(f"Retrying timed out withdrawal {dialog.idempotencyKey} for vendor {vendor_id}")
            self.attempts.update_attempt(dialog.idempotencyKey, "SUBMITTING")
        else:
            dialog.idempotencyKey = str(uuid4())
            self.attempts.record_attempt(vendor_id, dialog.idempotencyKey, dialog.dialogId, amount)

        dialog.state = DialogState.SUBMITTING
        dialog.error = None
        dialog.errorCode = None
        dialog.checkStatusBeforeRetry = False
        self.store.save(dialog)

        try:
            result = self.client.withdraw(dialog.amount, dialog.idempotencyKey)
        except ApplicationError as e:
            self._apply_failure(dialog, e)
            return self._write_if_current(dialog)
        except Exception:
            dialog.state = DialogState.OPEN
            dialog.error = "Withdrawal failed, please try again"
            self._mark_attempt(dialog.idempotencyKey, "FAILED", error="unexpected error")
            dialog.idempotencyKey = None
            self._write_if_current(dialog)
            raise

        # Invalidate before reporting success so the next render shows the new balance.
        if self.cache is not None:
            try:
                self.cache.invalidate(vendor_id)
            except RedisError as e:
                log.error(f"Failed to invalidate cached earnings for vendor {vendor_id}: {e}", exc_info=True)
        self._mark_attempt(
            dialog.idempotencyKey,
            "SUCCEEDED",
            transfer_id=result.transferId,
            remaining_balance=str(result.remainingBalance),
        )

        expected = dialog.withdrawalBalance - dialog.amount
        if result.remainingBalance != expected:
            log.warning(
                f"Marketplace reported remaining balance {result.remainingBalance}, "
                f"expected {expected} for vendor {vendor_id}"
            )
        log.info(f"Withdrawal {dialog.idempotencyKey} of {dialog.amount} succeeded for vendor {vendor_id}")

        dialog.state = DialogState.SUCCEEDED
        dialog.result = result
        # Server value is authoritative
        dialog.withdrawalBalance = result.remainingBalance
        return self._write_if_current(dialog)

    def _is_timed_out_retry(self, idempotency_key: Optional[str], amount: str) -> bool:
        if idempotency_key is None:
            return False
        attempt = self.attempts.find_attempt(idempotency_key)
        return attempt is not None and attempt["status"] == "TIMED_OUT" and attempt["amount"] == amount

    def _mark_attempt(self, idempotency_key: str, attempt_status: str, **fields) -> None:
        # The withdrawal outcome is already known here; a lost audit write must not strand the dialog.
        try:
            self.attempts.update_attempt(idempotency_key, attempt_status, **fields)
        except ApplicationError as e:
            log.error(f"Could not mark withdrawal attempt {idempotency_key} as {attempt_status}: {e}")

    def _apply_failure(self, dialog: WithdrawalDialog, error: ApplicationError) -> None:
        message = error.payload.get("message", "Withdrawal failed, please try again")
        dialog.error = message
        dialog.errorCode = error.error_code

        if error.error_code == "MARKETPLACE_504":
            # The key is kept so a retry of the same amount reuses it.
            log.error(f"Withdrawal {dialog.idempotencyKey} timed out for vendor {dialog.vendorId}")
            self._mark_attempt(dialog.idempotencyKey, "TIMED_OUT")
            dialog.state = DialogState.OPEN
            dialog.checkStatusBeforeRetry = True
        elif error.payload.get("requiresOnboarding"):
            log.info(f"Vendor {dialog.vendorId} must complete payment onboarding before withdrawing")
            self._mark_attempt(dialog.idempotencyKey, "FAILED", error=message, requires_onboarding=True)
            dialog.idempotencyKey = None
            dialog.state = DialogState.FAILED
            dialog.redirect = Redirect(
                path=Config.ONBOARDING_REDIRECT_PATH,
                delayMs=Config.ONBOARDING_REDIRECT_DELAY_MS,
            )
        else:
            log.error(f"Withdrawal {dialog.idempotencyKey} failed for vendor {dialog.vendorId}: {message}")
            self._mark_attempt(dialog.idempotencyKey, "FAILED", error=message)
            dialog.idempotencyKey = None
            # Back to the amount entry so the vendor can retry
            dialog.state = DialogState.OPEN

    def _write_if_current(self, dialog: WithdrawalDialog) -> WithdrawalDialog:
        # The vendor may have dismissed or reopened the dialog while the request was in flight.
        current = self.store.get(dialog.vendorId)
        if current is None or current.dialogId != dialog.dialogId:
            log.info(f"Discarding result for withdrawal dialog {dialog.dialogId}, no longer open")
            return dialog
        self.store.save(dialog)
        return dialog

    def _apply_amount(self, dialog: WithdrawalDialog, raw_amount) -> None:
        try:
            dialog.amount = validate_withdrawal_amount(raw_amount, dialog.withdrawalBalance)
            dialog.state = DialogState.VALIDATING
            dialog.error = None
            dialog.errorCode = None
        except ApplicationError as e:
            dialog.amount = None
            dialog.state = DialogState.OPEN
            dialog.error = e.payload.get("message")
            dialog.errorCode = e.error_code

    def _require_dialog(self, vendor_id: str) -> WithdrawalDialog:
        dialog = self.store.get(vendor_id)
        if dialog is None:
            raise ApplicationError(
                status_code=status.HTTP_409_CONFLICT,
                error_code="WITHDRAWAL_006",
                payload={
                    "error": "No Withdrawal Dialog",
                    "message": "Open the withdrawal dialog before entering an amount",
                },
            )
        return dialog

    @staticmethod
    def _wrong_state(dialog: WithdrawalDialog) -> ApplicationError:
        if dialog.state == DialogState.SUBMITTING:
            return ApplicationError(
                status_code=status.HTTP_409_CONFLICT,
                error_code="WITHDRAWAL_005",
                payload={
                    "error": "Withdrawal In Progress",
                    "message": "A withdrawal is already being processed",
                },
            )
        return ApplicationError(
            status_code=status.HTTP_409_CONFLICT,
            error_code="WITHDRAWAL_006",
            payload={
                "error": "Invalid Withdrawal State",
                "message": f"Cannot do that while the withdrawal dialog is {dialog.state.value.lower()}",
            },
        )


def can_submit(dialog: WithdrawalDialog) -> bool:
    return dialog.state == DialogState.VALIDATING and dialog.amount is not None
