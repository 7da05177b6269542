from datetime import datetime, timezone
from typing import Iterable, Set

from pymongo import UpdateOne

from earnings_console.config.mongodb import earning_watermarks_collection
from earnings_console.data.withdrawal_repository import handle_db_error


def get_moved_earning_ids(vendor_id: str, earning_ids: Iterable[str]) -> Set[str]:
    """Ids among ``earning_ids`` previously seen with movedToWithdrawal set."""
    ids = list(earning_ids)
    if not ids:
        return set()
    try:
        cursor = earning_watermarks_collection.find(
            {"vendor_id": vendor_id, "earning_id": {"$in": ids}},
            {"earning_id": 1},
        )
        return {doc["earning_id"] for doc in cursor}
    except Exception as e:
        handle_db_error(f"retrieving withdrawal watermarks for vendor {vendor_id}", e)


def mark_moved_to_withdrawal(vendor_id: str, earning_ids: Iterable[str]) -> None:
    # Insert-only: a watermark, once written, is never cleared.
    now = datetime.now(timezone.utc)
    operations = [
        UpdateOne(
            {"vendor_id": vendor_id, "earning_id": earning_id},
            {"$setOnInsert": {"first_seen_at": now}},
            upsert=True,
        )
        for earning_id in earning_ids
    ]
    if not operations:
        return
    try:
        earning_watermarks_collection.bulk_write(operations, ordered=False)
    except Exception as e:
        handle_db_error(f"saving withdrawal watermarks for vendor {vendor_id}", e)
