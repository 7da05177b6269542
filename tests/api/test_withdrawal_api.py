"""
API tests for the withdrawal dialog endpoints.
"""

from decimal import Decimal

from earnings_console.exception.application_error import ApplicationError
from earnings_console.model.withdrawal import WithdrawalResult
from tests.helpers import make_earning, make_page


def _open(api_client, marketplace, balance=85):
    marketplace.get_earnings.return_value = make_page(
        [make_earning()],
        summary={"totalEarnings": 100, "totalCommission": 15, "totalNetAmount": 85, "withdrawalBalance": balance},
    )
    return api_client.post("/withdrawal/dialog")


def test_dialog_is_idle_before_opening(api_client):
    response = api_client.get("/withdrawal/dialog")

    assert response.status_code == 200
    assert response.json()["state"] == "IDLE"
    assert response.json()["canSubmit"] is False


def test_open_dialog(api_client, marketplace):
    response = _open(api_client, marketplace)

    assert response.status_code == 201
    body = response.json()
    assert body["state"] == "OPEN"
    assert body["dialogId"]
    assert body["withdrawalBalanceDisplay"] == "£85.00"


def test_open_dialog_without_balance(api_client, marketplace):
    response = _open(api_client, marketplace, balance=0)

    assert response.status_code == 422
    assert response.json()["detail"]["error_code"] == "WITHDRAWAL_004"


def test_happy_path_submission(api_client, marketplace):
    dialog_id = _open(api_client, marketplace).json()["dialogId"]
    entered = api_client.put("/withdrawal/dialog/amount", json={"amount": "50"})
    assert entered.json()["state"] == "VALIDATING"
    assert entered.json()["canSubmit"] is True
    assert entered.json()["amountDisplay"] == "£50.00"

    marketplace.withdraw.return_value = WithdrawalResult(
        amount=Decimal("50"), remainingBalance=Decimal("35"), status="PROCESSING", transferId="tr_1"
    )
    response = api_client.post("/withdrawal/dialog/submit", json={"dialogId": dialog_id})

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "SUCCEEDED"
    assert body["result"]["transferId"] == "tr_1"
    assert body["withdrawalBalanceDisplay"] == "£35.00"
    assert body["idempotencyKey"] == marketplace.withdraw.call_args.args[1]


def test_invalid_amount_is_reported_on_dialog(api_client, marketplace):
    _open(api_client, marketplace)

    response = api_client.put("/withdrawal/dialog/amount", json={"amount": "12.345"})

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "OPEN"
    assert body["errorCode"] == "WITHDRAWAL_003"
    assert body["canSubmit"] is False


def test_amount_over_balance_is_rejected_locally(api_client, marketplace):
    dialog_id = _open(api_client, marketplace).json()["dialogId"]

    entered = api_client.put("/withdrawal/dialog/amount", json={"amount": 85.01})
    assert entered.json()["errorCode"] == "WITHDRAWAL_002"

    response = api_client.post("/withdrawal/dialog/submit", json={"dialogId": dialog_id})
    assert response.status_code == 409
    marketplace.withdraw.assert_not_called()


def test_onboarding_rejection_returns_redirect(api_client, marketplace):
    dialog_id = _open(api_client, marketplace).json()["dialogId"]
    api_client.put("/withdrawal/dialog/amount", json={"amount": "50"})
    marketplace.withdraw.side_effect = ApplicationError(
        status_code=400,
        error_code="MARKETPLACE_400",
        payload={
            "error": "Request Rejected",
            "message": "Please complete payment setup",
            "requiresOnboarding": True,
        },
    )

    response = api_client.post("/withdrawal/dialog/submit", json={"dialogId": dialog_id})

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "FAILED"
    assert body["error"] == "Please complete payment setup"
    assert body["redirect"] == {"path": "/vendor/profile", "delayMs": 2000}


def test_submit_without_dialog_is_conflict(api_client):
    response = api_client.post("/withdrawal/dialog/submit", json={"dialogId": "missing"})

    assert response.status_code == 409
    assert response.json()["detail"]["error_code"] == "WITHDRAWAL_006"


def test_missing_amount_is_reported_on_dialog(api_client, marketplace):
    _open(api_client, marketplace)

    response = api_client.put("/withdrawal/dialog/amount", json={})

    assert response.status_code == 200
    assert response.json()["errorCode"] == "WITHDRAWAL_001"


def test_dismiss(api_client, marketplace):
    _open(api_client, marketplace)

    response = api_client.delete("/withdrawal/dialog")

    assert response.status_code == 200
    assert response.json()["state"] == "IDLE"
    assert api_client.get("/withdrawal/dialog").json()["state"] == "IDLE"
