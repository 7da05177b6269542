"""
In-memory stand-ins for Redis, MongoDB repositories and the marketplace API.
"""

import fnmatch
import threading
from decimal import Decimal
from typing import Any, Dict, List

from earnings_console.model.earning import Earning, EarningsPage, Pagination, Summary


class FakeRedis:
    """The subset of redis.StrictRedis used by the cache and the dialog store."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, int] = {}
        self._lock = threading.Lock()

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None, nx=False):
        with self._lock:
            if nx and key in self.data:
                return None
            self.data[key] = value
            if ex is not None:
                self.expiry[key] = ex
            return True

    def delete(self, *keys):
        removed = 0
        with self._lock:
            for key in keys:
                if self.data.pop(key, None) is not None:
                    removed += 1
        return removed

    def scan_iter(self, match="*"):
        return [key for key in list(self.data) if fnmatch.fnmatchcase(key, match)]


class FakeAttempts:
    def __init__(self):
        self.attempts: Dict[str, Dict[str, Any]] = {}

    def record_attempt(self, vendor_id, idempotency_key, dialog_id, amount):
        self.attempts[idempotency_key] = {
            "vendor_id": vendor_id,
            "dialog_id": dialog_id,
            "amount": amount,
            "status": "SUBMITTING",
        }

    def update_attempt(self, idempotency_key, attempt_status, **fields):
        self.attempts[idempotency_key].update(status=attempt_status, **fields)

    def find_attempt(self, idempotency_key):
        return self.attempts.get(idempotency_key)


class FakeWatermarks:
    def __init__(self):
        self.moved: Dict[str, set] = {}

    def get_moved_earning_ids(self, vendor_id, earning_ids):
        return self.moved.get(vendor_id, set()) & set(earning_ids)

    def mark_moved_to_withdrawal(self, vendor_id, earning_ids):
        self.moved.setdefault(vendor_id, set()).update(earning_ids)


def make_earning(**overrides) -> Earning:
    data = {
        "id": "ern_1",
        "amount": 100,
        "commission": 15,
        "netAmount": 85,
        "status": "PAID",
        "paidAt": "2024-02-01T10:00:00Z",
        "movedToWithdrawal": True,
        "movedToWithdrawalAt": "2024-02-03T10:00:00Z",
        "createdAt": "2024-01-30T10:00:00Z",
        "order": {"id": "ord_1", "orderNumber": "AFG-1001", "totalAmount": 100},
    }
    data.update(overrides)
    return Earning.model_validate(data)


def make_page(earnings: List[Earning], summary: Dict[str, Any] = None, total: int = None) -> EarningsPage:
    if summary is None:
        summary = {
            "totalEarnings": sum((e.amount for e in earnings), Decimal("0")),
            "totalCommission": sum((e.commission for e in earnings), Decimal("0")),
            "totalNetAmount": sum((e.netAmount for e in earnings), Decimal("0")),
            "withdrawalBalance": sum(
                (e.netAmount for e in earnings if e.movedToWithdrawal), Decimal("0")
            ),
        }
    total = len(earnings) if total is None else total
    return EarningsPage(
        earnings=earnings,
        pagination=Pagination(page=1, limit=10, total=total, pages=max(1, -(-total // 10))),
        summary=Summary.model_validate(summary),
    )
