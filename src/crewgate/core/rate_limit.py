"""Rate limiting.

Two layers:
1. Quotas on privileged actions (``FixedWindowRateLimiter``): a fixed-window
   counter per (action kind, subject). The check is also the increment, and
   denied attempts still count. Redis holds the counters when configured (one
   atomic Lua script per check); otherwise, or when Redis fails, an in-process
   store guarded by an ``asyncio.Lock`` is used.
2. Per-IP throttling of the public token endpoints via slowapi (``limiter``).
"""

import asyncio
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from uuid import UUID

from redis.asyncio import Redis
from redis.commands.core import AsyncScript
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from src.crewgate.core.config import Settings, get_settings
from src.crewgate.core.logging import get_logger
from src.crewgate.core.redis import get_redis

logger = get_logger(__name__)


class ActionKind(str, Enum):
    """Actions guarded by a quota."""

    INVITE = "invite"  # per issuing actor
    RESEND = "resend"  # per invitation
    MEMBER_CHANGE = "member_change"  # per acting admin


@dataclass(frozen=True)
class RateLimitPolicy:
    limit: int
    window_seconds: int

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single quota check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime  # naive UTC, like model timestamps
    retry_after_seconds: int


def policies_from_settings(settings: Settings) -> dict[ActionKind, RateLimitPolicy]:
    return {
        ActionKind.INVITE: RateLimitPolicy(
            settings.invite_rate_limit, settings.invite_rate_window_seconds
        ),
        ActionKind.RESEND: RateLimitPolicy(
            settings.resend_rate_limit, settings.resend_rate_window_seconds
        ),
        ActionKind.MEMBER_CHANGE: RateLimitPolicy(
            settings.member_change_rate_limit, settings.member_change_rate_window_seconds
        ),
    }


# Open a new window when none exists or now >= reset_at, then increment.
# Runs atomically on the Redis server. Times are epoch milliseconds.
_FIXED_WINDOW_SCRIPT = """
local key = KEYS[1]
local window_ms = tonumber(ARGV[1])
local now_ms = tonumber(ARGV[2])

local window = redis.call('HMGET', key, 'count', 'reset_at')
local count = tonumber(window[1])
local reset_at = tonumber(window[2])

if count == nil or reset_at == nil or now_ms >= reset_at then
    count = 0
    reset_at = now_ms + window_ms
end

count = count + 1
redis.call('HSET', key, 'count', count, 'reset_at', reset_at)
redis.call('PEXPIRE', key, reset_at - now_ms)
return {count, reset_at}
"""

# Expired in-process windows are pruned once the store grows past this size
_PRUNE_THRESHOLD = 1024


def _to_datetime(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000, UTC).replace(tzinfo=None)


class FixedWindowRateLimiter:
    """Fixed-window quota counter keyed by action kind and subject."""

    def __init__(
        self,
        policies: Mapping[ActionKind, RateLimitPolicy],
        *,
        clock: Callable[[], float] = time.time,
        key_prefix: str = "crewgate:ratelimit",
        use_redis: bool = True,
    ):
        self._policies = MappingProxyType(dict(policies))
        self._clock = clock
        self._key_prefix = key_prefix
        self._use_redis = use_redis
        self._windows: dict[str, tuple[int, int]] = {}  # key -> (count, reset_at_ms)
        self._lock = asyncio.Lock()
        self._script: AsyncScript | None = None

    def policy(self, action_kind: ActionKind | str) -> RateLimitPolicy:
        """Get the policy for an action kind.

        Raises:
            ValueError: If the action kind has no policy.
        """
        try:
            return self._policies[ActionKind(action_kind)]
        except (ValueError, KeyError) as e:
            raise ValueError(f"No rate limit policy for action kind {action_kind!r}") from e

    async def check(self, subject: UUID | str, action_kind: ActionKind | str) -> RateLimitResult:
        """Count one attempt against the quota and report whether it is allowed."""
        policy = self.policy(action_kind)
        kind = ActionKind(action_kind)
        key = f"{self._key_prefix}:{kind.value}:{subject}"
        now_ms = int(self._clock() * 1000)

        count, reset_at_ms = await self._increment(key, policy, now_ms)

        allowed = count <= policy.limit
        retry_after = 0 if allowed else max(1, math.ceil((reset_at_ms - now_ms) / 1000))
        if not allowed:
            logger.info(
                "Rate limit exceeded",
                action_kind=kind.value,
                subject=str(subject),
                retry_after=retry_after,
            )
        return RateLimitResult(
            allowed=allowed,
            limit=policy.limit,
            remaining=max(0, policy.limit - count),
            reset_at=_to_datetime(reset_at_ms),
            retry_after_seconds=retry_after,
        )

    async def _increment(self, key: str, policy: RateLimitPolicy, now_ms: int) -> tuple[int, int]:
        redis = await get_redis() if self._use_redis else None
        if redis is not None:
            try:
                return await self._increment_redis(redis, key, policy, now_ms)
            except Exception as e:
                logger.warning(
                    "Redis rate limit check failed, falling back to in-memory",
                    error=str(e),
                    key=key,
                )
        return await self._increment_in_memory(key, policy, now_ms)

    async def _increment_redis(
        self, redis: Redis, key: str, policy: RateLimitPolicy, now_ms: int
    ) -> tuple[int, int]:
        # EVALSHA, reloading the script on NOSCRIPT (restart, failover, SCRIPT FLUSH)
        if self._script is None:
            self._script = redis.register_script(_FIXED_WINDOW_SCRIPT)
        count, reset_at = await self._script(
            keys=[key],
            args=[str(policy.window_ms), str(now_ms)],
            client=redis,
        )
        return int(count), int(reset_at)

    async def _increment_in_memory(
        self, key: str, policy: RateLimitPolicy, now_ms: int
    ) -> tuple[int, int]:
        async with self._lock:
            if len(self._windows) >= _PRUNE_THRESHOLD:
                self._prune(now_ms)

            window = self._windows.get(key)
            if window is None or now_ms >= window[1]:
                count, reset_at = 0, now_ms + policy.window_ms
            else:
                count, reset_at = window

            count += 1
            self._windows[key] = (count, reset_at)
            return count, reset_at

    def _prune(self, now_ms: int) -> None:
        expired = [key for key, (_, reset_at) in self._windows.items() if now_ms >= reset_at]
        for key in expired:
            del self._windows[key]

    def reset(self) -> None:
        """Drop in-process windows and the registered script."""
        self._windows.clear()
        self._script = None


@lru_cache
def get_rate_limiter() -> FixedWindowRateLimiter:
    """Process-wide quota limiter configured from settings."""
    settings = get_settings()
    return FixedWindowRateLimiter(
        policies_from_settings(settings),
        key_prefix=settings.rate_limit_key_prefix,
    )


def get_rate_limit_key(request: Request) -> str:
    """Key public endpoint throttling on the client IP only.

    Never include user-controlled headers here; rotating them would create
    unlimited buckets.
    """
    return get_remote_address(request) or "unknown"


def create_limiter() -> Limiter:
    """Create the per-IP limiter for public endpoints.

    Disabled in the testing environment.
    """
    settings = get_settings()

    if settings.app_env == "testing":
        logger.info("Public endpoint limiter disabled (testing environment)")
        return Limiter(key_func=get_rate_limit_key, enabled=False)

    if settings.redis_url:
        logger.info("Public endpoint limiter using Redis backend")
        return Limiter(key_func=get_rate_limit_key, storage_uri=settings.redis_url)

    logger.info("Public endpoint limiter using in-memory backend (not distributed)")
    return Limiter(key_func=get_rate_limit_key)


# Reads settings at import time; reconfiguration requires a restart.
limiter = create_limiter()
