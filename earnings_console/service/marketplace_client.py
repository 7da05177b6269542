import requests
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from fastapi import status
from pydantic import ValidationError

from earnings_console.config.config import Config
from earnings_console.exception.application_error import ApplicationError
from earnings_console.model.earning import EarningsPage
from earnings_console.model.withdrawal import WithdrawalResult, WithdrawalsPage
from earnings_console.utils.logger import log

TIMED_OUT_MESSAGE = (
    "The request timed out. Your withdrawal may still be processing, "
    "check your withdrawal history before retrying."
)


class MarketplaceApiClient:
    """
    Client for the marketplace REST API.

    The bearer token comes from ``token_provider`` on every call; nothing is
    read from ambient state.
    """

    def __init__(
        self,
        token_provider: Callable[[], Optional[str]],
        base_url: str = Config.MARKETPLACE_API_BASE_URL,
        timeout: int = Config.MARKETPLACE_API_TIMEOUT,
    ):
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def get_earnings(
        self,
        page: int = 1,
        limit: int = 10,
        status_filter: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> EarningsPage:
        params = {"page": page, "limit": limit}
        if status_filter:
            params["status"] = status_filter
        if start_date and end_date:
            params["startDate"] = start_date.strftime("%Y-%m-%d")
            params["endDate"] = end_date.strftime("%Y-%m-%d")

        log.info(f"Fetching vendor earnings page {page} (limit {limit})")
        data = self._request("GET", "/vendors/earnings", params=params)
        return self._parse(EarningsPage, data, "earnings")

    def withdraw(self, amount: Decimal, idempotency_key: str) -> WithdrawalResult:
        """
        Request a payout of ``amount`` to the vendor's payment processor account.

        ``idempotency_key`` is sent as the ``Idempotency-Key`` header so a retry
        after a timeout can be deduplicated by the marketplace API.
        """
        log.info(f"Submitting withdrawal of {amount} (idempotency key {idempotency_key})")
        data = self._request(
            "POST",
            "/vendors/withdraw",
            json={"amount": float(amount)},
            headers={"Idempotency-Key": idempotency_key},
        )
        return self._parse(WithdrawalResult, data, "withdrawal")

    def get_withdrawals(
        self, page: int = 1, limit: int = 20, status_filter: Optional[str] = None
    ) -> WithdrawalsPage:
        params = {"page": page, "limit": limit}
        if status_filter:
            params["status"] = status_filter
        data = self._request("GET", "/vendors/withdrawals", params=params)
        return self._parse(WithdrawalsPage, data, "withdrawals")

    def get_vendor_profile(self) -> Dict[str, Any]:
        return self._request("GET", "/vendors/profile")

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    def _parse(self, model, data, what: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            log.error(f"Unexpected {what} payload from marketplace API: {e}")
            raise ApplicationError(
                status_code=status.HTTP_502_BAD_GATEWAY,
                error_code="MARKETPLACE_502",
                payload={
                    "error": "Invalid Marketplace Response",
                    "message": f"The marketplace API returned malformed {what} data",
                },
            ) from e

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Make a request to the marketplace API and unwrap the ``data`` envelope."""
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(headers),
                timeout=self.timeout,
            )
        except requests.Timeout:
            log.error(f"Timeout while calling marketplace API {method} {path}")
            raise ApplicationError(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                error_code="MARKETPLACE_504",
                payload={"error": "Gateway Timeout", "message": TIMED_OUT_MESSAGE},
            ) from None
        except requests.ConnectionError:
            log.error(f"Connection error while calling marketplace API {method} {path}")
            raise ApplicationError(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                error_code="MARKETPLACE_503",
                payload={
                    "error": "Service Unavailable",
                    "message": "The marketplace is currently unavailable, please try again",
                },
            ) from None
        except requests.RequestException as e:
            log.error(f"Request exception while calling marketplace API {method} {path}: {str(e)}")
            raise ApplicationError(
                status_code=status.HTTP_502_BAD_GATEWAY,
                error_code="MARKETPLACE_502",
                payload={
                    "error": "Request Error",
                    "message": "Failed to communicate with the marketplace, please try again",
                },
            ) from None

        body = self._json_body(response)

        if response.status_code == 401:
            raise ApplicationError(
                status_code=status.HTTP_401_UNAUTHORIZED,
                error_code="MARKETPLACE_401",
                payload={
                    "error": "Session Expired",
                    "message": "Session expired. Please login again.",
                },
            )
        elif response.status_code >= 500:
            log.error(f"Marketplace API error: {response.status_code} - {response.text}")
            raise ApplicationError(
                status_code=status.HTTP_502_BAD_GATEWAY,
                error_code="MARKETPLACE_502",
                payload={
                    "error": "Marketplace Error",
                    "message": f"The marketplace failed to handle the request (Status: {response.status_code}), please try again",
                },
            )
        elif response.status_code >= 400 or body.get("success") is False:
            # Business errors are surfaced verbatim
            raise self._rejection(response.status_code, body)

        return body.get("data", body)

    @staticmethod
    def _json_body(response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {"data": body}

    @staticmethod
    def _rejection(status_code: int, body: Dict[str, Any]) -> ApplicationError:
        payload = {
            "error": "Request Rejected",
            "message": body.get("message") or f"The marketplace rejected the request (Status: {status_code})",
            "requiresOnboarding": bool(body.get("requiresOnboarding", False)),
        }
        if body.get("stripeAccountId"):
            payload["stripeAccountId"] = body["stripeAccountId"]
        return ApplicationError(
            status_code=status_code if 400 <= status_code < 500 else status.HTTP_400_BAD_REQUEST,
            error_code="MARKETPLACE_404" if status_code == 404 else "MARKETPLACE_400",
            payload=payload,
        )
