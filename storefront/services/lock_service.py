# storefront/services/lock_service.py
import uuid
from contextlib import contextmanager
from typing import Iterator

import redis

from storefront.domain.errors import ConflictError
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, ORDER_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nie da sie wcisnac miedzy GET a DEL


class LockService:
    """
    -blokada zmiany statusu zamowienia (jeden admin na raz)
    -zwalnianie locka tylko przez wlasciciela tokena
    -TTL zeby lock po padnietym procesie sam wygasl
    """

    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _order_key(order_id: int) -> str:
        return f"order:{order_id}:lock"

    @redis_retry()
    def acquire_order_lock(self, order_id: int, token: str, ttl: int) -> bool:
        key = self._order_key(order_id)
        logger.info(f"Acquire lock {key}")
        #SET order:1:lock "<token>" NX EX 30
        return bool(
            self.redis.set(
                name=key,
                value=token,
                nx=True,
                ex=ttl,
            )
        )

    @redis_retry()
    def release_order_lock(self, order_id: int, token: str) -> bool:
        key = self._order_key(order_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def order_lock(self, order_id: int, ttl: int = ORDER_LOCK_TTL_SECONDS) -> Iterator[str]:
        token = uuid.uuid4().hex
        if not self.acquire_order_lock(order_id, token, ttl):
            raise ConflictError(f"Order {order_id} is being updated by another request")
        try:
            yield token
        finally:
            self.release_order_lock(order_id, token)
