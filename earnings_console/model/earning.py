from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, model_validator


def _to_decimal(value):
    # Floats go through str() so binary noise (0.1 + 0.2) never reaches arithmetic.
    if isinstance(value, float):
        return Decimal(str(value))
    return value


Money = Annotated[Decimal, BeforeValidator(_to_decimal)]


class EarningStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    FAILED = "FAILED"


class OrderRef(BaseModel):
    id: str
    orderNumber: Optional[str] = None
    totalAmount: Optional[Money] = None
    status: Optional[str] = None
    createdAt: Optional[datetime] = None


class Earning(BaseModel):
    """One row per completed order attributed to a vendor."""

    id: str
    amount: Money
    commission: Money
    netAmount: Money
    # Kept as the raw wire string; the presentation mapper decides whether it is known.
    status: str
    paidAt: Optional[datetime] = None
    movedToWithdrawal: bool = False
    movedToWithdrawalAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    order: Optional[OrderRef] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "ern_01",
                "amount": 100.0,
                "commission": 15.0,
                "netAmount": 85.0,
                "status": "PAID",
                "paidAt": "2024-02-01T10:00:00Z",
                "movedToWithdrawal": True,
                "movedToWithdrawalAt": "2024-02-03T10:00:00Z",
                "createdAt": "2024-01-30T10:00:00Z",
                "order": {"id": "ord_01", "orderNumber": "AFG-1001", "totalAmount": 100.0},
            }
        }


class Summary(BaseModel):
    """Aggregate over all of a vendor's earnings, computed by the marketplace API."""

    totalEarnings: Money = Decimal("0")
    totalCommission: Money = Decimal("0")
    totalNetAmount: Money = Decimal("0")
    pendingEarnings: Money = Decimal("0")
    withdrawalBalance: Money = Decimal("0")
    availableForWithdrawal: Money = Decimal("0")

    @model_validator(mode="before")
    @classmethod
    def drop_null_totals(cls, data):
        # The API reports an empty aggregate as null rather than 0.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Pagination(BaseModel):
    page: int = 1
    limit: int = 10
    total: int = 0
    pages: int = 1


class EarningsPage(BaseModel):
    earnings: List[Earning] = []
    # None when the marketplace omits pagination; the listing size is then unknown
    pagination: Optional[Pagination] = None
    summary: Summary = Summary()
