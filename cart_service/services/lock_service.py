# cart_service/services/lock_service.py
import uuid
from contextlib import contextmanager

import redis
from tenacity import RetryError, retry, retry_if_result, stop_after_delay, wait_fixed

from cart_service.domain.errors import StoreError
from cart_service.utils.retry import redis_retry
from cart_service.utils.settings import CART_LOCK_TTL_SECONDS, CART_LOCK_WAIT_SECONDS, REDIS_URL
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)

#compare-and-delete in one step, only the owner token may release
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


def line_lock_key(user_identity: str, product_identity: str) -> str:
    return f"cart:{user_identity}:{product_identity}:lock"


class LockService:
    """
    Redis lock per (user, product) cart line.
    -acquire: SET NX EX, the key expires by itself if the holder dies
    -release: lua compare-and-delete
    -hold_line_lock: waits up to wait_seconds for the lock
    """

    def __init__(
        self,
        url: str | None = None,
        client: redis.Redis | None = None,
        ttl: int | None = None,
        wait_seconds: float | None = None,
    ):
        if client is None:
            client = redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.redis = client
        self.ttl = ttl or CART_LOCK_TTL_SECONDS
        self.wait_seconds = wait_seconds if wait_seconds is not None else CART_LOCK_WAIT_SECONDS

    @redis_retry()
    def acquire_line_lock(self, user_identity: str, product_identity: str, token: str) -> bool:
        key = line_lock_key(user_identity, product_identity)
        logger.debug(f"Acquire lock {key}")
        return bool(self.redis.set(name=key, value=token, nx=True, ex=self.ttl))

    @redis_retry()
    def release_line_lock(self, user_identity: str, product_identity: str, token: str) -> bool:
        key = line_lock_key(user_identity, product_identity)
        logger.debug(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    def _wait_for_lock(self, user_identity: str, product_identity: str, token: str) -> bool:
        waiter = retry(
            stop=stop_after_delay(self.wait_seconds),
            wait=wait_fixed(0.05),
            retry=retry_if_result(lambda acquired: not acquired),
        )(self.acquire_line_lock)
        try:
            return waiter(user_identity, product_identity, token)
        except RetryError:
            return False

    def close(self) -> None:
        self.redis.close()

    @contextmanager
    def hold_line_lock(self, user_identity: str, product_identity: str):
        token = uuid.uuid4().hex
        logger.info(f"Waiting for lock {line_lock_key(user_identity, product_identity)}")
        try:
            acquired = self._wait_for_lock(user_identity, product_identity, token)
        except redis.RedisError as e:
            raise StoreError(f"Lock store error: {e}") from e

        if not acquired:
            raise StoreError(
                f"Timed out waiting for cart line lock {line_lock_key(user_identity, product_identity)}"
            )

        try:
            yield
        finally:
            try:
                self.release_line_lock(user_identity, product_identity, token)
            except redis.RedisError as e:
                #the key still expires after ttl
                logger.warning(f"Failed to release lock for {product_identity}: {e}")
