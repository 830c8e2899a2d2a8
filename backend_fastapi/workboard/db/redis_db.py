from contextlib import contextmanager, ExitStack
from typing import Iterable, Iterator, Optional
import logging

import redis
from redis.exceptions import LockError

logger = logging.getLogger(__name__)


class ScopeLockTimeout(Exception):
    """Raised when a position lock could not be acquired in time."""

    def __init__(self, key: str):
        super().__init__(f"Timed out waiting for lock {key}")
        self.key = key


class RedisStore:
    """Redis-backed access-token registry and position-lock provider.

    Owned by the application lifespan; pass the instance to whatever needs it.
    """

    def __init__(self, client: redis.Redis, lock_timeout: float = 10.0, lock_wait: float = 5.0):
        self.client = client
        self.lock_timeout = lock_timeout
        self.lock_wait = lock_wait

    @classmethod
    def from_settings(cls, host: str, port: int, db: int, password: Optional[str] = None, **kwargs) -> "RedisStore":
        client = redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            decode_responses=True # Important for string operations
        )
        try:
            client.ping() # Verify connection
            logger.info("Successfully connected to Redis.")
        except redis.exceptions.ConnectionError as e:
            logger.error(f"Could not connect to Redis: {e}")
            raise
        return cls(client, **kwargs)

    def close(self) -> None:
        try:
            self.client.close()
            logger.info("Successfully disconnected from Redis.")
        except Exception as e:
            logger.error(f"Error disconnecting from Redis: {e}")

    # Token related functions
    def store_token_jti(self, jti: str, user_id: str, expires_in_seconds: int) -> None:
        # Key jti:{jti} -> user_id, plus a per-user set for "logout all devices"
        self.client.setex(f"jti:{jti}", expires_in_seconds, user_id)
        self.client.sadd(f"user_jtis:{user_id}", f"jti:{jti}")
        self.client.expire(f"user_jtis:{user_id}", expires_in_seconds)

    def is_token_jti_valid(self, jti: str) -> bool:
        return self.client.exists(f"jti:{jti}") == 1

    def revoke_token_jti(self, jti: str, user_id: str) -> None:
        self.client.delete(f"jti:{jti}")
        self.client.srem(f"user_jtis:{user_id}", f"jti:{jti}")

    def revoke_all_user_tokens(self, user_id: str) -> None:
        jti_keys = self.client.smembers(f"user_jtis:{user_id}")
        if jti_keys:
            pipe = self.client.pipeline()
            pipe.delete(*jti_keys)
            pipe.delete(f"user_jtis:{user_id}")
            pipe.execute()
        logger.info(f"Revoked all tokens for user {user_id}. Keys affected: {len(jti_keys)}")

    # Position locks
    @contextmanager
    def scope_locks(self, keys: Iterable[str]) -> Iterator[None]:
        """Hold one redis lock per key for the duration of the block.

        Keys are deduplicated and taken in sorted order so two writers that
        touch the same pair of scopes cannot deadlock.
        """
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                lock = self.client.lock(f"position-lock:{key}", timeout=self.lock_timeout, blocking_timeout=self.lock_wait)
                if not lock.acquire():
                    logger.warning(f"Could not acquire position lock {key} within {self.lock_wait}s")
                    raise ScopeLockTimeout(key)
                stack.callback(self._release, lock, key)
            yield

    def _release(self, lock, key: str) -> None:
        try:
            lock.release()
        except LockError:
            # Expired before release; the work finished anyway.
            logger.warning(f"Position lock {key} expired before release")
