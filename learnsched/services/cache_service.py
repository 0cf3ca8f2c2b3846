# learnsched/services/cache_service.py
"""
Cache Service for the scheduling core

Caches booking list pages only. Conflict checks never read from the cache.
Values are JSON; Redis is used when reachable, otherwise an in-process
dictionary with expiry stands in so a missing Redis never fails a request.
"""

from datetime import datetime, timedelta
import fnmatch
import json
import logging
import threading
from typing import Any, Callable, Dict, Optional, TypeVar

import redis
from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from ..core.config import settings
from .base import BaseService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitBreaker:
    """
    Stops calling Redis after repeated failures.

    Closed -> open after ``failure_threshold`` consecutive errors; open ->
    half-open once ``recovery_timeout`` seconds have passed.
    """

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._failure_count = 0
        self._opened_at: Optional[datetime] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        with self._lock:
            if self._opened_at is None:
                return False
            if (datetime.now() - self._opened_at).total_seconds() >= self.recovery_timeout:
                # half-open: let the next call through
                self._opened_at = None
                self._failure_count = self.failure_threshold - 1
                return False
            return True

    def call(self, func: Callable[[], T]) -> Optional[T]:
        if self.is_open:
            logger.warning(f"Circuit breaker is OPEN, skipping {func.__name__}")
            return None
        try:
            result = func()
        except RedisError:
            with self._lock:
                self._failure_count += 1
                if self._failure_count >= self.failure_threshold:
                    self._opened_at = datetime.now()
                    logger.warning(
                        f"Circuit breaker opened after {self._failure_count} failures"
                    )
            raise
        with self._lock:
            self._failure_count = 0
        return result


class CacheKeyBuilder:
    """Builds cache keys for booking list pages."""

    @staticmethod
    def booking_list(
        tenant_id: str, page: int, limit: int, student_id: Optional[str] = None
    ) -> str:
        key = f"bookings:{tenant_id}:{page}:{limit}"
        return f"{key}:student:{student_id}" if student_id else key

    @staticmethod
    def booking_list_pattern(tenant_id: str) -> str:
        return f"bookings:{tenant_id}:*"


class CacheService(BaseService):
    """
    JSON cache backed by Redis with an in-memory fallback.

    Errors are logged and reported as misses; callers always fall back to
    the database.
    """

    def __init__(
        self,
        db: Session,
        redis_client: Optional[Redis] = None,
        *,
        connect: bool = True,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.circuit_breaker = CircuitBreaker()
        self.key_builder = CacheKeyBuilder()

        self._memory_cache: Dict[str, Any] = {}
        self._memory_expiry: Dict[str, datetime] = {}
        self._memory_lock = threading.Lock()

        self.redis: Optional[Redis] = redis_client
        if self.redis is None and connect:
            self._setup_redis_connection()

    def _setup_redis_connection(self) -> None:
        """Setup Redis connection with fallback to in-memory cache."""
        try:
            client = redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            client.ping()
            self.redis = client
            logger.info("Connected to Redis")
        except (RedisError, ConnectionError) as e:
            logger.warning(f"Redis not available: {e}. Using in-memory fallback.")
            self.redis = None

    @property
    def backend(self) -> str:
        return "redis" if self.redis is not None else "memory"

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None on miss/expiry/error."""
        redis_client = self.redis
        if redis_client is None:
            return self._memory_get(key)

        def _get_from_redis() -> Optional[Any]:
            value = redis_client.get(key)
            return json.loads(value) if value is not None else None

        try:
            return self.circuit_breaker.call(_get_from_redis)
        except (RedisError, ValueError) as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store ``value`` for ``ttl`` seconds. A non-positive ttl disables caching."""
        if ttl <= 0:
            return False
        serialized = json.dumps(value, default=str)
        redis_client = self.redis
        if redis_client is None:
            with self._memory_lock:
                self._memory_cache[key] = json.loads(serialized)
                self._memory_expiry[key] = datetime.now() + timedelta(seconds=ttl)
            return True

        def _set_in_redis() -> bool:
            redis_client.setex(key, ttl, serialized)
            return True

        try:
            return bool(self.circuit_breaker.call(_set_in_redis))
        except RedisError as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        redis_client = self.redis
        if redis_client is None:
            with self._memory_lock:
                self._memory_expiry.pop(key, None)
                return self._memory_cache.pop(key, None) is not None
        try:
            return bool(self.circuit_breaker.call(lambda: redis_client.delete(key)))
        except RedisError as e:
            logger.error(f"Cache delete error for key {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob ``pattern``; returns the number removed."""
        redis_client = self.redis
        if redis_client is None:
            with self._memory_lock:
                keys = [k for k in self._memory_cache if fnmatch.fnmatchcase(k, pattern)]
                for k in keys:
                    self._memory_cache.pop(k, None)
                    self._memory_expiry.pop(k, None)
            return len(keys)

        def _delete_from_redis() -> int:
            count = 0
            for key in redis_client.scan_iter(match=pattern):
                if redis_client.delete(key):
                    count += 1
            return count

        try:
            count = self.circuit_breaker.call(_delete_from_redis) or 0
        except RedisError as e:
            logger.error(f"Cache delete pattern error: {e}")
            return 0
        logger.debug(f"Deleted {count} keys matching pattern: {pattern}")
        return count

    def _memory_get(self, key: str) -> Optional[Any]:
        with self._memory_lock:
            if key not in self._memory_cache:
                return None
            expires_at = self._memory_expiry.get(key)
            if expires_at is not None and datetime.now() >= expires_at:
                self._memory_cache.pop(key, None)
                self._memory_expiry.pop(key, None)
                return None
            return self._memory_cache[key]
