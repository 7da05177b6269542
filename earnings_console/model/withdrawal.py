from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel

from earnings_console.model.earning import Money, Pagination


class WithdrawalStatus(str, Enum):
    COMPLETED = "COMPLETED"
    PROCESSING = "PROCESSING"
    FAILED = "FAILED"


class DialogState(str, Enum):
    IDLE = "IDLE"
    OPEN = "OPEN"
    VALIDATING = "VALIDATING"
    SUBMITTING = "SUBMITTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class AmountInput(BaseModel):
    # Raw user input; validation happens in the withdrawal validator so bad input
    # is reported on the dialog instead of as a request schema error.
    amount: Union[str, int, float, None] = None


class SubmitInput(BaseModel):
    dialogId: str


class WithdrawalResult(BaseModel):
    amount: Money
    remainingBalance: Money
    status: str
    transferId: Optional[str] = None
    estimatedArrival: Optional[str] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "amount": 50.0,
                "remainingBalance": 35.0,
                "status": "PROCESSING",
                "transferId": "tr_1Nv0",
                "estimatedArrival": "2-3 business days",
            }
        }


class Redirect(BaseModel):
    path: str
    delayMs: int


class WithdrawalDialog(BaseModel):
    """Server-side state of a vendor's withdrawal dialog."""

    dialogId: Optional[str] = None
    vendorId: str
    state: DialogState = DialogState.IDLE
    withdrawalBalance: Money = Decimal("0")
    amount: Optional[Money] = None
    error: Optional[str] = None
    errorCode: Optional[str] = None
    result: Optional[WithdrawalResult] = None
    redirect: Optional[Redirect] = None
    checkStatusBeforeRetry: bool = False
    idempotencyKey: Optional[str] = None


class WithdrawalDialogResponse(WithdrawalDialog):
    canSubmit: bool = False
    withdrawalBalanceDisplay: str = ""
    amountDisplay: Optional[str] = None


class Withdrawal(BaseModel):
    id: str
    amount: Money
    status: str
    transferId: Optional[str] = None
    estimatedArrival: Optional[str] = None
    processedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class WithdrawalsSummary(BaseModel):
    totalWithdrawn: Money = Decimal("0")
    pendingWithdrawals: int = 0
    completedWithdrawals: int = 0
    totalTransactions: int = 0


class WithdrawalsPage(BaseModel):
    withdrawals: List[Withdrawal] = []
    pagination: Pagination = Pagination()
    summary: WithdrawalsSummary = WithdrawalsSummary()
