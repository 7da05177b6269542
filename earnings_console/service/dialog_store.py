from typing import Optional

from earnings_console.config.config import Config
from earnings_console.model.withdrawal import WithdrawalDialog
from earnings_console.utils.redis import get_redis_client, vendor_key


class DialogStore:
    """Withdrawal dialog state and the per-vendor submission lock, kept in Redis."""

    def __init__(
        self,
        redis_client=None,
        ttl: int = Config.DIALOG_TTL,
        lock_ttl: int = Config.WITHDRAWAL_LOCK_TTL,
    ):
        self.redis_client = redis_client or get_redis_client()
        self.ttl = ttl
        self.lock_ttl = lock_ttl

    def get(self, vendor_id: str) -> Optional[WithdrawalDialog]:
        raw = self.redis_client.get(vendor_key("withdrawal:dialog", vendor_id))
        if raw is None:
            return None
        return WithdrawalDialog.model_validate_json(raw)

    def save(self, dialog: WithdrawalDialog) -> None:
        self.redis_client.set(
            vendor_key("withdrawal:dialog", dialog.vendorId),
            dialog.model_dump_json(),
            ex=self.ttl,
        )

    def clear(self, vendor_id: str) -> None:
        self.redis_client.delete(vendor_key("withdrawal:dialog", vendor_id))

    def acquire_lock(self, vendor_id: str, token: str) -> bool:
        # The TTL bounds how long a crashed worker can block the vendor.
        return bool(
            self.redis_client.set(
                vendor_key("withdrawal:lock", vendor_id), token, nx=True, ex=self.lock_ttl
            )
        )

    def release_lock(self, vendor_id: str, token: str) -> None:
        key = vendor_key("withdrawal:lock", vendor_id)
        if self.redis_client.get(key) == token:
            self.redis_client.delete(key)
