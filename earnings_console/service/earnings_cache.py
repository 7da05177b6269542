import json
from typing import Any, Dict, Optional

from earnings_console.config.config import Config
from earnings_console.model.earning import EarningsPage
from earnings_console.utils.logger import log
from earnings_console.utils.redis import get_redis_client, vendor_key


class EarningsCache:
    """Short-lived Redis cache of marketplace responses, one poll interval long."""

    def __init__(self, redis_client=None, ttl: int = Config.EARNINGS_POLL_INTERVAL):
        self.redis_client = redis_client or get_redis_client()
        self.ttl = ttl

    @staticmethod
    def page_key(vendor_id: str, params: Dict[str, Any]) -> str:
        parts = [f"{name}={params[name]}" for name in sorted(params) if params[name] is not None]
        return vendor_key("earnings", vendor_id, *parts)

    def get_page(self, vendor_id: str, params: Dict[str, Any]) -> Optional[EarningsPage]:
        cached = self.redis_client.get(self.page_key(vendor_id, params))
        if cached is None:
            return None
        return EarningsPage.model_validate_json(cached)

    def set_page(self, vendor_id: str, params: Dict[str, Any], page: EarningsPage) -> None:
        self.redis_client.set(
            self.page_key(vendor_id, params), page.model_dump_json(), ex=self.ttl
        )

    def get_profile(self, vendor_id: str) -> Optional[Dict[str, Any]]:
        cached = self.redis_client.get(vendor_key("profile", vendor_id))
        return json.loads(cached) if cached is not None else None

    def set_profile(self, vendor_id: str, profile: Dict[str, Any]) -> None:
        self.redis_client.set(vendor_key("profile", vendor_id), json.dumps(profile), ex=self.ttl)

    def invalidate(self, vendor_id: str) -> int:
        """Drop every cached earnings page and the vendor profile."""
        keys = list(self.redis_client.scan_iter(match=vendor_key("earnings", vendor_id, "*")))
        keys.append(vendor_key("profile", vendor_id))
        removed = self.redis_client.delete(*keys)
        log.info(f"Invalidated {removed} cached entries for vendor {vendor_id}")
        return removed
