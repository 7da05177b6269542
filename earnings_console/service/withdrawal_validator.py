from decimal import Decimal, InvalidOperation

from fastapi import status

from earnings_console.exception.application_error import ApplicationError
from earnings_console.service.currency import MINOR_UNIT, format_currency, to_money


def _invalid(error_code: str, title: str, message: str) -> ApplicationError:
    return ApplicationError(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        error_code=error_code,
        payload={"error": title, "message": message},
    )


def parse_amount(raw) -> Decimal:
    if raw is None or isinstance(raw, bool):
        raise _invalid("WITHDRAWAL_001", "Invalid Amount", "Please enter a valid amount")
    try:
        amount = to_money(raw.strip() if isinstance(raw, str) else raw)
    except (InvalidOperation, TypeError, ValueError):
        raise _invalid("WITHDRAWAL_001", "Invalid Amount", "Please enter a valid amount") from None
    if not amount.is_finite():
        raise _invalid("WITHDRAWAL_001", "Invalid Amount", "Please enter a valid amount")
    return amount


def validate_withdrawal_amount(raw, withdrawal_balance: Decimal) -> Decimal:
    """
    Validate a requested withdrawal amount against the available balance.

    Accepts ``0 < amount <= withdrawal_balance`` with at most two decimal
    places (trailing zeros beyond that are fine: ``10.500`` is ``10.50``).
    Raises ApplicationError with a WITHDRAWAL_00x code otherwise; nothing that
    fails here is ever sent to the marketplace API.
    """
    if withdrawal_balance <= 0:
        raise _invalid(
            "WITHDRAWAL_004",
            "No Withdrawable Balance",
            "You have no funds available for withdrawal yet",
        )

    amount = parse_amount(raw)
    if amount <= 0:
        raise _invalid("WITHDRAWAL_001", "Invalid Amount", "Amount must be greater than zero")
    if amount.normalize().as_tuple().exponent < -2:
        raise _invalid(
            "WITHDRAWAL_003",
            "Invalid Amount",
            "Amount cannot have more than 2 decimal places",
        )
    if amount > withdrawal_balance:
        raise _invalid(
            "WITHDRAWAL_002",
            "Insufficient Balance",
            f"Amount exceeds your available balance of {format_currency(withdrawal_balance)}",
        )
    return amount.quantize(MINOR_UNIT)
