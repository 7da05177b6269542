from enum import Enum
from typing import Dict, Type

from earnings_console.model.earning import EarningStatus
from earnings_console.model.earnings_view import StatusBadge
from earnings_console.model.withdrawal import WithdrawalStatus
from earnings_console.utils.logger import log


class UnknownStatusError(ValueError):
    """Raised when the marketplace API reports a status this service does not know."""

    def __init__(self, raw_status, kind: str = "earning"):
        super().__init__(f"Unrecognised {kind} status: {raw_status!r}")
        self.raw_status = raw_status
        self.kind = kind


EARNING_STATUS_BADGES: Dict[EarningStatus, StatusBadge] = {
    EarningStatus.PAID: StatusBadge(
        label="Paid", color="bg-green-100 text-green-800", icon="check-circle", tone="success"
    ),
    EarningStatus.PENDING: StatusBadge(
        label="Pending", color="bg-yellow-100 text-yellow-800", icon="clock", tone="warning"
    ),
    EarningStatus.PROCESSING: StatusBadge(
        label="Processing", color="bg-blue-100 text-blue-800", icon="clock", tone="info"
    ),
    EarningStatus.FAILED: StatusBadge(
        label="Failed", color="bg-red-100 text-red-800", icon="x-circle", tone="danger"
    ),
}

WITHDRAWAL_STATUS_BADGES: Dict[WithdrawalStatus, StatusBadge] = {
    WithdrawalStatus.COMPLETED: StatusBadge(
        label="Completed", color="bg-green-100 text-green-800", icon="check-circle", tone="success"
    ),
    WithdrawalStatus.PROCESSING: StatusBadge(
        label="Processing", color="bg-yellow-100 text-yellow-800", icon="clock", tone="warning"
    ),
    WithdrawalStatus.FAILED: StatusBadge(
        label="Failed", color="bg-red-100 text-red-800", icon="x-circle", tone="danger"
    ),
}

AVAILABLE_BADGE = StatusBadge(
    label="Available", color="bg-green-100 text-green-800", icon="wallet", tone="success"
)
HOLDING_BADGE = StatusBadge(
    label="Pending", color="bg-yellow-100 text-yellow-800", icon="clock", tone="warning"
)

FAULT_COLOR = "bg-gray-100 text-gray-800 ring-1 ring-red-500"


def _assert_exhaustive(enum_cls: Type[Enum], mapping: Dict) -> None:
    missing = [member.value for member in enum_cls if member not in mapping]
    if missing:
        raise RuntimeError(f"{enum_cls.__name__} has no badge for: {', '.join(missing)}")


_assert_exhaustive(EarningStatus, EARNING_STATUS_BADGES)
_assert_exhaustive(WithdrawalStatus, WITHDRAWAL_STATUS_BADGES)


def parse_status(raw_status) -> EarningStatus:
    if isinstance(raw_status, str):
        try:
            return EarningStatus(raw_status.strip().upper())
        except ValueError:
            pass
    raise UnknownStatusError(raw_status)


def map_status(raw_status) -> StatusBadge:
    """Badge for an earning status. Unknown values raise UnknownStatusError."""
    return EARNING_STATUS_BADGES[parse_status(raw_status)]


def fault_badge(raw_status) -> StatusBadge:
    label = str(raw_status) if raw_status not in (None, "") else "Unknown"
    return StatusBadge(label=label, color=FAULT_COLOR, icon="alert-triangle", tone="fault", fault=True)


def status_badge_or_fault(raw_status) -> StatusBadge:
    try:
        return map_status(raw_status)
    except UnknownStatusError as e:
        log.warning(f"Schema drift from marketplace API: {e}")
        return fault_badge(raw_status)


def withdrawal_badge(moved_to_withdrawal: bool) -> StatusBadge:
    return AVAILABLE_BADGE if moved_to_withdrawal else HOLDING_BADGE


def withdrawal_status_badge(raw_status) -> StatusBadge:
    if isinstance(raw_status, str):
        try:
            return WITHDRAWAL_STATUS_BADGES[WithdrawalStatus(raw_status.strip().upper())]
        except ValueError:
            pass
    log.warning(f"Schema drift from marketplace API: {UnknownStatusError(raw_status, 'withdrawal')}")
    return fault_badge(raw_status)
