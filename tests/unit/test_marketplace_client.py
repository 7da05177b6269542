"""
Unit tests for MarketplaceApiClient error mapping and request construction.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from earnings_console.exception.application_error import ApplicationError
from earnings_console.service.marketplace_client import MarketplaceApiClient

REQUEST = "earnings_console.service.marketplace_client.requests.request"


def _response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = str(body)
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def client():
    return MarketplaceApiClient(
        token_provider=lambda: "vendor-token", base_url="http://marketplace.test/api/v1/", timeout=30
    )


EARNINGS_BODY = {
    "success": True,
    "data": {
        "earnings": [
            {
                "id": "ern_1",
                "amount": 100,
                "commission": 15,
                "netAmount": 85,
                "status": "PAID",
                "movedToWithdrawal": True,
                "createdAt": "2024-01-30T10:00:00Z",
                "order": {"id": "ord_1", "orderNumber": "AFG-1001", "totalAmount": 100},
            }
        ],
        "pagination": {"page": 1, "limit": 10, "total": 1, "pages": 1},
        "summary": {"totalEarnings": 100, "totalCommission": 15, "totalNetAmount": 85, "withdrawalBalance": 85},
    },
}


def test_get_earnings_sends_token_and_filters(client):
    with patch(REQUEST, return_value=_response(200, EARNINGS_BODY)) as request:
        page = client.get_earnings(
            page=2, limit=5, status_filter="PAID",
            start_date=date(2024, 1, 1), end_date=date(2024, 1, 31),
        )

    args, kwargs = request.call_args
    assert args == ("GET", "http://marketplace.test/api/v1/vendors/earnings")
    assert kwargs["params"] == {
        "page": 2, "limit": 5, "status": "PAID", "startDate": "2024-01-01", "endDate": "2024-01-31",
    }
    assert kwargs["headers"]["Authorization"] == "Bearer vendor-token"
    assert kwargs["timeout"] == 30
    assert page.earnings[0].netAmount == Decimal("85")
    assert page.summary.withdrawalBalance == Decimal("85")


def test_null_summary_totals_default_to_zero(client):
    body = {"success": True, "data": {"earnings": [], "summary": {"totalEarnings": None}}}
    with patch(REQUEST, return_value=_response(200, body)):
        page = client.get_earnings()
    assert page.summary.totalEarnings == Decimal("0")


def test_no_token_means_no_authorization_header():
    anonymous = MarketplaceApiClient(token_provider=lambda: None, base_url="http://marketplace.test")
    with patch(REQUEST, return_value=_response(200, EARNINGS_BODY)) as request:
        anonymous.get_earnings()
    assert "Authorization" not in request.call_args.kwargs["headers"]


def test_withdraw_sends_amount_and_idempotency_key(client):
    body = {"success": True, "data": {"amount": 50, "remainingBalance": 35, "status": "PROCESSING", "transferId": "tr_1"}}
    with patch(REQUEST, return_value=_response(200, body)) as request:
        result = client.withdraw(Decimal("50.00"), "key-1")

    args, kwargs = request.call_args
    assert args == ("POST", "http://marketplace.test/api/v1/vendors/withdraw")
    assert kwargs["json"] == {"amount": 50.0}
    assert kwargs["headers"]["Idempotency-Key"] == "key-1"
    assert result.remainingBalance == Decimal("35")
    assert result.transferId == "tr_1"


def test_onboarding_rejection_is_surfaced(client):
    body = {
        "success": False,
        "message": "Please complete your Stripe onboarding first",
        "requiresOnboarding": True,
        "stripeAccountId": "acct_1",
    }
    with patch(REQUEST, return_value=_response(400, body)):
        with pytest.raises(ApplicationError) as excinfo:
            client.withdraw(Decimal("10"), "key-2")

    error = excinfo.value
    assert error.error_code == "MARKETPLACE_400"
    assert error.status_code == 400
    assert error.payload["message"] == "Please complete your Stripe onboarding first"
    assert error.payload["requiresOnboarding"] is True
    assert error.payload["stripeAccountId"] == "acct_1"


def test_success_false_with_200_is_a_business_error(client):
    body = {"success": False, "message": "Insufficient balance"}
    with patch(REQUEST, return_value=_response(200, body)):
        with pytest.raises(ApplicationError) as excinfo:
            client.withdraw(Decimal("10"), "key-3")
    assert excinfo.value.payload == {
        "error": "Request Rejected",
        "message": "Insufficient balance",
        "requiresOnboarding": False,
    }


@pytest.mark.parametrize(
    "side_effect, error_code, status_code",
    [
        (requests.Timeout(), "MARKETPLACE_504", 504),
        (requests.ConnectionError(), "MARKETPLACE_503", 503),
        (requests.TooManyRedirects(), "MARKETPLACE_502", 502),
    ],
)
def test_transport_errors(client, side_effect, error_code, status_code):
    with patch(REQUEST, side_effect=side_effect):
        with pytest.raises(ApplicationError) as excinfo:
            client.get_earnings()
    assert excinfo.value.error_code == error_code
    assert excinfo.value.status_code == status_code


def test_timeout_message_asks_to_check_status(client):
    with patch(REQUEST, side_effect=requests.Timeout()):
        with pytest.raises(ApplicationError) as excinfo:
            client.withdraw(Decimal("10"), "key-4")
    assert "check your withdrawal history" in excinfo.value.payload["message"]


def test_server_error_maps_to_bad_gateway(client):
    with patch(REQUEST, return_value=_response(500, {"success": False, "message": "boom"})):
        with pytest.raises(ApplicationError) as excinfo:
            client.get_earnings()
    assert excinfo.value.error_code == "MARKETPLACE_502"


def test_unauthorized(client):
    with patch(REQUEST, return_value=_response(401, None)):
        with pytest.raises(ApplicationError) as excinfo:
            client.get_vendor_profile()
    assert excinfo.value.error_code == "MARKETPLACE_401"
    assert excinfo.value.status_code == 401


def test_malformed_payload_is_bad_gateway(client):
    body = {"success": True, "data": {"earnings": [{"id": "x"}]}}
    with patch(REQUEST, return_value=_response(200, body)):
        with pytest.raises(ApplicationError) as excinfo:
            client.get_earnings()
    assert excinfo.value.error_code == "MARKETPLACE_502"
