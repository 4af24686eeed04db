import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List
from uuid import uuid4

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.exceptions import TicketLockTimeoutError, TicketLockUnavailableError
from app.services.identity import normalize_identifier

logger = logging.getLogger(__name__)

# only the holder's token may free a key
RELEASE_LOCK_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class TicketLock:
    """
    Per-ticket Redis locks that serialize the read-scan-write of update
    batches across webhook deliveries.
    """

    RETRY_INTERVAL_SECONDS = 0.1

    def __init__(self, redis: Redis, ttl_seconds: int = 30, wait_seconds: float = 10.0):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.wait_seconds = wait_seconds

    @staticmethod
    def lock_key(ticket_id: str) -> str:
        return f"lock:ticket:{ticket_id}"

    async def acquire(self, ticket_id: str, token: str) -> bool:
        deadline = time.monotonic() + self.wait_seconds
        key = self.lock_key(ticket_id)
        while True:
            # nx=True means set only if the key does not exist
            if await self.redis.set(key, token, ex=self.ttl_seconds, nx=True):
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self.RETRY_INTERVAL_SECONDS)

    async def release(self, ticket_id: str, token: str) -> None:
        await self.redis.eval(RELEASE_LOCK_SCRIPT, 1, self.lock_key(ticket_id), token)

    @asynccontextmanager
    async def hold(self, ticket_ids: Iterable[str]) -> AsyncIterator[None]:
        # sorted so two batches sharing tickets cannot deadlock
        keys = sorted({normalize_identifier(ticket_id) for ticket_id in ticket_ids} - {""})
        token = uuid4().hex
        held: List[str] = []
        try:
            for ticket_id in keys:
                try:
                    acquired = await self.acquire(ticket_id, token)
                except RedisError as e:
                    logger.error(f"Redis error locking ticket {ticket_id}: {e}", exc_info=True)
                    raise TicketLockUnavailableError(str(e), ticket_id=ticket_id) from e
                if not acquired:
                    logger.warning(f"Timed out waiting for lock on ticket {ticket_id}")
                    raise TicketLockTimeoutError(ticket_id)
                held.append(ticket_id)
            yield
        finally:
            for ticket_id in reversed(held):
                try:
                    await self.release(ticket_id, token)
                except RedisError as e:
                    # the key still expires after ttl_seconds
                    logger.error(f"Redis error releasing lock on ticket {ticket_id}: {e}", exc_info=True)
