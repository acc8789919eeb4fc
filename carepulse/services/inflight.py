import logging
import uuid
from typing import Dict, Optional

import redis

from ..core.config import settings

logger = logging.getLogger(__name__)

# Deletes the key only while it still holds the caller's token
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

# Keys held by this process when no Redis is configured, mapped to their token
_local_keys: Dict[str, str] = {}


class InFlightGuard:
    """Marks a submission as in flight so a repeat submit can be rejected.

    With Redis the marker is shared between workers and expires on its own
    after `ttl` seconds; without it the marker lives in this process. Each
    acquire stores a fresh token, and release only removes a marker that
    still carries it, so a lock that expired and was taken by another
    request is left alone.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, ttl: Optional[int] = None,
                 prefix: str = "submission"):
        self.redis_client = redis_client
        self.ttl = ttl or settings.SUBMISSION_LOCK_SECONDS
        self.prefix = prefix
        self._tokens: Dict[str, str] = {}

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def acquire(self, key: str) -> bool:
        full_key = self._key(key)
        token = uuid.uuid4().hex
        if self.redis_client is not None:
            try:
                acquired = bool(self.redis_client.set(full_key, token, nx=True, ex=self.ttl))
            except redis.RedisError as e:
                logger.warning(f"Redis unavailable for submission lock {full_key}, using local lock: {e}")
            else:
                if acquired:
                    self._tokens[full_key] = token
                return acquired
        if full_key in _local_keys:
            return False
        _local_keys[full_key] = token
        self._tokens[full_key] = token
        return True

    def release(self, key: str) -> None:
        full_key = self._key(key)
        token = self._tokens.pop(full_key, None)
        if token is None:
            return
        if self.redis_client is not None:
            try:
                released = self.redis_client.eval(RELEASE_SCRIPT, 1, full_key, token)
                if not released:
                    logger.warning(f"Submission lock {full_key} expired before release")
            except redis.RedisError as e:
                logger.warning(f"Failed to release submission lock {full_key}: {e}")
        if _local_keys.get(full_key) == token:
            del _local_keys[full_key]
