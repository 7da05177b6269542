from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from earnings_console.model.earning import Money, Pagination, Summary
from earnings_console.model.withdrawal import WithdrawalsSummary


class StatusBadge(BaseModel):
    label: str
    color: str
    icon: str
    tone: str
    fault: bool = False


class ComputedSummary(BaseModel):
    """Totals recomputed from the earnings that were actually fetched."""

    totalEarnings: Money = Decimal("0")
    totalCommission: Money = Decimal("0")
    totalNetAmount: Money = Decimal("0")
    pendingEarnings: Money = Decimal("0")
    count: int = 0


class SummaryWarning(BaseModel):
    code: str
    message: str
    expected: Optional[Money] = None
    actual: Optional[Money] = None


class EarningRow(BaseModel):
    id: str
    orderNumber: Optional[str] = None
    amount: Money
    commission: Money
    netAmount: Money
    amountDisplay: str
    commissionDisplay: str
    netAmountDisplay: str
    statusBadge: StatusBadge
    withdrawalBadge: StatusBadge
    movedToWithdrawal: bool
    paidAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    faults: List[str] = []


class SummaryView(Summary):
    totalEarningsDisplay: str = ""
    totalCommissionDisplay: str = ""
    totalNetAmountDisplay: str = ""
    pendingEarningsDisplay: str = ""
    withdrawalBalanceDisplay: str = ""
    availableForWithdrawalDisplay: str = ""
    canRequestWithdrawal: bool = False


class EarningsView(BaseModel):
    rows: List[EarningRow]
    summary: SummaryView
    computedSummary: ComputedSummary
    warnings: List[SummaryWarning] = []
    pagination: Pagination
    currency: str
    pollIntervalSeconds: int
    hasIntegrityFaults: bool = False


class WithdrawalRow(BaseModel):
    id: str
    amount: Money
    amountDisplay: str
    statusBadge: StatusBadge
    transferId: Optional[str] = None
    estimatedArrival: Optional[str] = None
    processedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class WithdrawalsView(BaseModel):
    rows: List[WithdrawalRow]
    summary: WithdrawalsSummary
    totalWithdrawnDisplay: str
    pagination: Pagination
    currency: str


class PayoutSetup(BaseModel):
    """Whether the vendor can receive payouts, from the vendor profile."""

    stripeAccountId: Optional[str] = None
    stripeAccountStatus: Optional[str] = None
    requiresOnboarding: bool
    onboardingPath: Optional[str] = None
