"""
Unit tests for the MongoDB repositories, with the collections mocked out.
"""

from unittest.mock import patch

import pytest
from pymongo import UpdateOne

from earnings_console.data import watermark_repository, withdrawal_repository
from earnings_console.exception.application_error import ApplicationError


@patch("earnings_console.data.withdrawal_repository.withdrawal_attempts_collection")
def test_record_attempt_uses_idempotency_key_as_id(collection):
    withdrawal_repository.record_attempt("vendor-1", "key-1", "dialog-1", "50.00")

    document = collection.insert_one.call_args.args[0]
    assert document["_id"] == "key-1"
    assert document["vendor_id"] == "vendor-1"
    assert document["amount"] == "50.00"
    assert document["status"] == "SUBMITTING"


@patch("earnings_console.data.withdrawal_repository.withdrawal_attempts_collection")
def test_update_attempt_sets_status_and_fields(collection):
    withdrawal_repository.update_attempt("key-1", "SUCCEEDED", transfer_id="tr_1")

    query, update = collection.update_one.call_args.args
    assert query == {"_id": "key-1"}
    assert update["$set"]["status"] == "SUCCEEDED"
    assert update["$set"]["transfer_id"] == "tr_1"
    assert update["$set"]["updated_at"] is not None


@patch("earnings_console.data.withdrawal_repository.withdrawal_attempts_collection")
def test_database_errors_become_application_errors(collection):
    collection.insert_one.side_effect = RuntimeError("connection refused")

    with pytest.raises(ApplicationError) as excinfo:
        withdrawal_repository.record_attempt("vendor-1", "key-1", "dialog-1", "50.00")
    assert excinfo.value.error_code == "DB_ERROR"
    assert excinfo.value.status_code == 500


@patch("earnings_console.data.watermark_repository.earning_watermarks_collection")
def test_get_moved_earning_ids(collection):
    collection.find.return_value = [{"earning_id": "e1"}]

    assert watermark_repository.get_moved_earning_ids("vendor-1", ["e1", "e2"]) == {"e1"}
    query = collection.find.call_args.args[0]
    assert query == {"vendor_id": "vendor-1", "earning_id": {"$in": ["e1", "e2"]}}


@patch("earnings_console.data.watermark_repository.earning_watermarks_collection")
def test_get_moved_earning_ids_skips_empty_lookup(collection):
    assert watermark_repository.get_moved_earning_ids("vendor-1", []) == set()
    collection.find.assert_not_called()


@patch("earnings_console.data.watermark_repository.earning_watermarks_collection")
def test_mark_moved_is_insert_only(collection):
    watermark_repository.mark_moved_to_withdrawal("vendor-1", ["e1", "e2"])

    operations = collection.bulk_write.call_args.args[0]
    assert len(operations) == 2
    assert all(isinstance(op, UpdateOne) for op in operations)
    assert all("$setOnInsert" in repr(op) for op in operations)


@patch("earnings_console.data.watermark_repository.earning_watermarks_collection")
def test_mark_moved_with_nothing_to_mark(collection):
    watermark_repository.mark_moved_to_withdrawal("vendor-1", [])
    collection.bulk_write.assert_not_called()


@patch("earnings_console.data.withdrawal_repository.withdrawal_attempts_collection")
def test_find_attempt_by_idempotency_key(collection):
    collection.find_one.return_value = {"_id": "key-1", "status": "TIMED_OUT", "amount": "50.00"}

    attempt = withdrawal_repository.find_attempt("key-1")

    assert attempt["status"] == "TIMED_OUT"
    collection.find_one.assert_called_once_with({"_id": "key-1"})
