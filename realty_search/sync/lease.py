"""
Sync Run Lease
Mutual exclusion around a full sync run, with expiry.
"""

import logging
import time
import uuid
from typing import Callable, Dict, Optional, Tuple

from redis.exceptions import RedisError

from ..errors import UpstreamError

logger = logging.getLogger(__name__)

# Delete the key only if we still own it
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RunLease:
    """Exclusive, expiring run ownership."""

    def acquire(self, name: str, owner: str, ttl_seconds: int) -> bool:
        raise NotImplementedError

    def release(self, name: str, owner: str) -> bool:
        raise NotImplementedError


class InMemoryRunLease(RunLease):
    """Process-local lease (tests and single-process deployments)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._owners: Dict[str, Tuple[str, float]] = {}

    def acquire(self, name: str, owner: str, ttl_seconds: int) -> bool:
        now = self.clock()
        held = self._owners.get(name)
        if held is not None and held[1] > now and held[0] != owner:
            return False
        self._owners[name] = (owner, now + ttl_seconds)
        return True

    def release(self, name: str, owner: str) -> bool:
        held = self._owners.get(name)
        if held is None or held[0] != owner:
            return False
        del self._owners[name]
        return True

    def owner(self, name: str) -> Optional[str]:
        held = self._owners.get(name)
        if held is None or held[1] <= self.clock():
            return None
        return held[0]


class RedisRunLease(RunLease):
    """
    Lease stored as a Redis key with expiry.

    Acquire is SET NX EX; release is a compare-and-delete script so an
    expired owner cannot drop a lease taken over by another run.
    """

    def __init__(self, redis_client, prefix: str = "realty_search:lease:"):
        self.redis = redis_client
        self.prefix = prefix
        self._release = redis_client.register_script(_RELEASE_SCRIPT)

    def _key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def acquire(self, name: str, owner: str, ttl_seconds: int) -> bool:
        try:
            acquired = self.redis.set(self._key(name), owner, nx=True, ex=int(ttl_seconds))
        except RedisError as e:
            raise UpstreamError(f"Lease acquire failed: {e}", service="redis") from e
        return bool(acquired)

    def release(self, name: str, owner: str) -> bool:
        try:
            return bool(self._release(keys=[self._key(name)], args=[owner]))
        except RedisError as e:
            raise UpstreamError(f"Lease release failed: {e}", service="redis") from e


def new_owner_id() -> str:
    return uuid.uuid4().hex
