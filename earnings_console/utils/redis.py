import redis
from earnings_console.config.config import Config

redis_client = redis.StrictRedis(
    host=Config.REDIS_URI,
    port=Config.REDIS_PORT,
    password=Config.REDIS_PASSWORD,
    decode_responses=True,
)


def get_redis_client():
    return redis_client


def vendor_key(namespace: str, vendor_id: str, *parts) -> str:
    """Build a namespaced per-vendor key, e.g. ``earnings:v1:page=1``."""
    key = f"{namespace}:{vendor_id}"
    if parts:
        key += ":" + ":".join(str(part) for part in parts)
    return key
