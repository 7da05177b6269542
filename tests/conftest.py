"""
Pytest configuration and shared fixtures.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from earnings_console import create_app
from earnings_console.service.dialog_store import DialogStore
from earnings_console.service.earnings_cache import EarningsCache
from earnings_console.service.earnings_service import EarningsService
from earnings_console.service.marketplace_client import MarketplaceApiClient
from earnings_console.service.withdrawal_service import WithdrawalService
from earnings_console.utils.dependency import (
    VendorPrincipal,
    get_earnings_service,
    get_withdrawal_service,
    verify_token,
)
from tests.helpers import FakeAttempts, FakeRedis, FakeWatermarks

app = create_app()

VENDOR_ID = "vendor-1"


@pytest.fixture
def marketplace():
    return MagicMock(spec=MarketplaceApiClient)


@pytest.fixture
def api_client(marketplace):
    """TestClient wired to in-memory Redis/Mongo stand-ins and a mocked marketplace API."""
    redis_client = FakeRedis()
    cache = EarningsCache(redis_client, ttl=120)
    earnings_service = EarningsService(marketplace, cache=cache, watermarks=FakeWatermarks())
    withdrawal_service = WithdrawalService(
        marketplace,
        earnings_service,
        store=DialogStore(redis_client, ttl=600, lock_ttl=60),
        cache=cache,
        attempts=FakeAttempts(),
    )

    app.dependency_overrides[verify_token] = lambda: VendorPrincipal(vendor_id=VENDOR_ID, token="test-token")
    app.dependency_overrides[get_earnings_service] = lambda: earnings_service
    app.dependency_overrides[get_withdrawal_service] = lambda: withdrawal_service
    yield TestClient(app)
    app.dependency_overrides.clear()
