from decimal import Decimal
from enum import Enum
from typing import Iterable, List

from earnings_console.model.earning import Earning, EarningStatus, Summary
from earnings_console.model.earnings_view import ComputedSummary, SummaryWarning
from earnings_console.service.currency import MINOR_UNIT
from earnings_console.service.status_presentation import UnknownStatusError, parse_status
from earnings_console.utils.logger import log


class IntegrityFault(str, Enum):
    COMMISSION_EXCEEDS_AMOUNT = "COMMISSION_EXCEEDS_AMOUNT"
    NEGATIVE_AMOUNT = "NEGATIVE_AMOUNT"
    NEGATIVE_COMMISSION = "NEGATIVE_COMMISSION"
    NET_AMOUNT_MISMATCH = "NET_AMOUNT_MISMATCH"
    PAID_AT_WITHOUT_PAID_STATUS = "PAID_AT_WITHOUT_PAID_STATUS"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"
    WITHDRAWAL_FLAG_REGRESSED = "WITHDRAWAL_FLAG_REGRESSED"


class SummaryWarningCode(str, Enum):
    NET_TOTAL_MISMATCH = "NET_TOTAL_MISMATCH"
    NEGATIVE_WITHDRAWAL_BALANCE = "NEGATIVE_WITHDRAWAL_BALANCE"
    WITHDRAWAL_BALANCE_EXCEEDS_NET = "WITHDRAWAL_BALANCE_EXCEEDS_NET"
    TOTAL_EARNINGS_MISMATCH = "TOTAL_EARNINGS_MISMATCH"
    TOTAL_COMMISSION_MISMATCH = "TOTAL_COMMISSION_MISMATCH"
    TOTAL_NET_AMOUNT_MISMATCH = "TOTAL_NET_AMOUNT_MISMATCH"


def _within_minor_unit(a: Decimal, b: Decimal) -> bool:
    return abs(a - b) <= MINOR_UNIT


def check_earning_integrity(earning: Earning) -> List[str]:
    """
    Return the data-integrity faults of a single earning row.

    Values are never clamped; a faulty row is flagged and rendered as reported.
    """
    faults = []
    if earning.amount < 0:
        faults.append(IntegrityFault.NEGATIVE_AMOUNT.value)
    if earning.commission < 0:
        faults.append(IntegrityFault.NEGATIVE_COMMISSION.value)
    if earning.commission > earning.amount:
        faults.append(IntegrityFault.COMMISSION_EXCEEDS_AMOUNT.value)
    if not _within_minor_unit(earning.netAmount, earning.amount - earning.commission):
        faults.append(IntegrityFault.NET_AMOUNT_MISMATCH.value)

    try:
        status = parse_status(earning.status)
    except UnknownStatusError:
        faults.append(IntegrityFault.UNKNOWN_STATUS.value)
    else:
        if earning.paidAt is not None and status != EarningStatus.PAID:
            faults.append(IntegrityFault.PAID_AT_WITHOUT_PAID_STATUS.value)

    if faults:
        log.warning(f"Earning {earning.id} failed integrity checks: {', '.join(faults)}")
    return faults


def compute_display_summary(earnings: Iterable[Earning]) -> ComputedSummary:
    """
    Recompute totals from a list of earnings.

    The withdrawal balance is not derived here: the holding period that makes
    an earning withdrawable is enforced by the marketplace API only.
    """
    total_earnings = Decimal("0")
    total_commission = Decimal("0")
    total_net = Decimal("0")
    pending = Decimal("0")
    count = 0
    for earning in earnings:
        total_earnings += earning.amount
        total_commission += earning.commission
        total_net += earning.netAmount
        if not earning.movedToWithdrawal:
            pending += earning.netAmount
        count += 1

    return ComputedSummary(
        totalEarnings=total_earnings,
        totalCommission=total_commission,
        totalNetAmount=total_net,
        pendingEarnings=pending,
        count=count,
    )


def reconcile_summary(
    summary: Summary, earnings: List[Earning], complete: bool
) -> List[SummaryWarning]:
    """
    Cross-check the server summary, and against the fetched rows when they
    make up the vendor's full earnings set.
    """
    warnings = []

    derived_net = summary.totalEarnings - summary.totalCommission
    if not _within_minor_unit(summary.totalNetAmount, derived_net):
        warnings.append(
            SummaryWarning(
                code=SummaryWarningCode.NET_TOTAL_MISMATCH.value,
                message="Total net amount does not equal total earnings minus total commission",
                expected=derived_net,
                actual=summary.totalNetAmount,
            )
        )

    if summary.withdrawalBalance < 0:
        warnings.append(
            SummaryWarning(
                code=SummaryWarningCode.NEGATIVE_WITHDRAWAL_BALANCE.value,
                message="Withdrawal balance is negative",
                expected=Decimal("0"),
                actual=summary.withdrawalBalance,
            )
        )
    elif summary.withdrawalBalance > summary.totalNetAmount:
        warnings.append(
            SummaryWarning(
                code=SummaryWarningCode.WITHDRAWAL_BALANCE_EXCEEDS_NET.value,
                message="Withdrawal balance exceeds total net earnings",
                expected=summary.totalNetAmount,
                actual=summary.withdrawalBalance,
            )
        )

    if complete:
        computed = compute_display_summary(earnings)
        checks = [
            (SummaryWarningCode.TOTAL_EARNINGS_MISMATCH, "Total earnings",
             computed.totalEarnings, summary.totalEarnings),
            (SummaryWarningCode.TOTAL_COMMISSION_MISMATCH, "Total commission",
             computed.totalCommission, summary.totalCommission),
            (SummaryWarningCode.TOTAL_NET_AMOUNT_MISMATCH, "Total net amount",
             computed.totalNetAmount, summary.totalNetAmount),
        ]
        for code, label, expected, actual in checks:
            if not _within_minor_unit(expected, actual):
                warnings.append(
                    SummaryWarning(
                        code=code.value,
                        message=f"{label} reported by the marketplace does not match the listed earnings",
                        expected=expected,
                        actual=actual,
                    )
                )

    for warning in warnings:
        log.warning(f"Summary inconsistency {warning.code}: expected {warning.expected}, got {warning.actual}")
    return warnings
