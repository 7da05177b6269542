from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import status

from earnings_console.config.mongodb import withdrawal_attempts_collection
from earnings_console.exception.application_error import ApplicationError
from earnings_console.utils.logger import log


def handle_db_error(operation: str, error: Exception):
    log.error(f"Error {operation}: {str(error)}")
    raise ApplicationError(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code="DB_ERROR",
        payload={
            "error": "Database Error",
            "message": f"Error {operation}",
        },
    )


def record_attempt(vendor_id: str, idempotency_key: str, dialog_id: str, amount: str) -> None:
    """Store a withdrawal attempt before it is sent to the marketplace API."""
    try:
        withdrawal_attempts_collection.insert_one(
            {
                "_id": idempotency_key,
                "vendor_id": vendor_id,
                "dialog_id": dialog_id,
                "amount": amount,
                "status": "SUBMITTING",
                "created_at": datetime.now(timezone.utc),
                "updated_at": None,
            }
        )
        log.info(f"Recorded withdrawal attempt {idempotency_key} for vendor {vendor_id}")
    except Exception as e:
        handle_db_error(f"recording withdrawal attempt {idempotency_key}", e)


def update_attempt(idempotency_key: str, attempt_status: str, **fields: Any) -> None:
    try:
        withdrawal_attempts_collection.update_one(
            {"_id": idempotency_key},
            {
                "$set": {
                    "status": attempt_status,
                    "updated_at": datetime.now(timezone.utc),
                    **fields,
                }
            },
        )
    except Exception as e:
        handle_db_error(f"updating withdrawal attempt {idempotency_key}", e)


def find_attempt(idempotency_key: str) -> Optional[Dict[str, Any]]:
    try:
        return withdrawal_attempts_collection.find_one({"_id": idempotency_key})
    except Exception as e:
        handle_db_error(f"retrieving withdrawal attempt {idempotency_key}", e)
