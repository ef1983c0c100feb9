"""
Rate limiting - fixed-window counters per (policy, client key).

Counters live in an injected CounterStore whose hit() does the window reset,
the increment and the snapshot under one lock, so two concurrent requests can
never both be admitted on the same final count. A rejected request keeps its
increment: retrying while limited does not buy more budget.
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Protocol, Union

from ku_connect.core.errors import TooManyRequests
from ku_connect.middleware.context import RequestContext

logger = logging.getLogger("ku_connect.pipeline.rate_limit")

DEFAULT_MESSAGE = "Too many requests from this IP, please try again later."


def client_ip_key(ctx: RequestContext) -> str:
    return ctx.client_ip


def user_or_ip_key(prefix: str) -> Callable[[RequestContext], str]:
    """Key by authenticated user id, falling back to the client ip."""
    def extract(ctx: RequestContext) -> str:
        if ctx.identity is not None:
            return f"{prefix}_{ctx.identity.id}"
        return ctx.client_ip
    return extract


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    window_ms: int
    max_requests: int
    key_extractor: Callable[[RequestContext], str] = client_ip_key
    message: str = DEFAULT_MESSAGE


@dataclass
class RateLimitCounter:
    key: str
    window_start: int
    count: int
    window_ms: int = 0

    @property
    def expires_at(self) -> int:
        return self.window_start + self.window_ms


@dataclass(frozen=True)
class RateLimitDecision:
    policy: str
    limit: int
    count: int
    reset_after_ms: int

    @property
    def allowed(self) -> bool:
        return self.count <= self.limit

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    def headers(self) -> Dict[str, str]:
        reset_seconds = str(max(0, math.ceil(self.reset_after_ms / 1000)))
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": reset_seconds,
        }
        if not self.allowed:
            headers["Retry-After"] = reset_seconds
        return headers


class CounterStore(Protocol):
    def hit(self, key: str, window_ms: int, now_ms: int) -> RateLimitCounter:
        """Reset if expired, increment, and return a snapshot - atomically."""
        ...


class InMemoryCounterStore:
    """
    Single-process counter table. Safe across threads and the event loop.

    Expired counters are swept from inside hit(), at most once per window, so
    the table holds only keys seen within the last window.
    """

    def __init__(self):
        self._counters: Dict[str, RateLimitCounter] = {}
        self._lock = threading.Lock()
        self._next_sweep_ms: Optional[int] = None

    def _sweep(self, now_ms: int) -> int:
        expired = [k for k, c in self._counters.items() if now_ms > c.expires_at]
        for key in expired:
            del self._counters[key]
        return len(expired)

    def hit(self, key: str, window_ms: int, now_ms: int) -> RateLimitCounter:
        with self._lock:
            if self._next_sweep_ms is not None and now_ms >= self._next_sweep_ms:
                removed = self._sweep(now_ms)
                if removed:
                    logger.debug("Swept %d expired rate limit counter(s)", removed)
                self._next_sweep_ms = None
            # the shortest window seen decides when the next sweep is due
            deadline = now_ms + window_ms
            if self._next_sweep_ms is None or deadline < self._next_sweep_ms:
                self._next_sweep_ms = deadline
            counter = self._counters.get(key)
            if counter is None or now_ms > counter.window_start + window_ms:
                counter = RateLimitCounter(key=key, window_start=now_ms, count=0, window_ms=window_ms)
                self._counters[key] = counter
            counter.count += 1
            return RateLimitCounter(counter.key, counter.window_start, counter.count, counter.window_ms)

    def get(self, key: str) -> Optional[RateLimitCounter]:
        with self._lock:
            counter = self._counters.get(key)
            if counter is None:
                return None
            return RateLimitCounter(counter.key, counter.window_start, counter.count, counter.window_ms)

    def prune(self, now_ms: int) -> int:
        """Drop counters whose window has passed. Returns how many were removed."""
        with self._lock:
            return self._sweep(now_ms)

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()

    def __len__(self) -> int:
        return len(self._counters)


class RateLimiter:
    def __init__(self, store: CounterStore, clock, policies: Optional[Iterable[RateLimitPolicy]] = None,
                 enabled: bool = True):
        self.store = store
        self.clock = clock
        self.enabled = enabled
        self.policies: Dict[str, RateLimitPolicy] = {p.name: p for p in (policies or [])}

    def resolve_policy(self, policy: Union[str, RateLimitPolicy]) -> RateLimitPolicy:
        if isinstance(policy, RateLimitPolicy):
            return policy
        try:
            return self.policies[policy]
        except KeyError:
            raise KeyError(f"Unknown rate limit policy '{policy}'") from None

    def check(self, ctx: RequestContext, policy: Union[str, RateLimitPolicy]) -> Optional[RateLimitDecision]:
        """Consume one unit of budget; raise TooManyRequests past the limit."""
        if not self.enabled:
            return None

        policy = self.resolve_policy(policy)
        key = f"{policy.name}:{policy.key_extractor(ctx)}"
        now = self.clock.now_ms()
        counter = self.store.hit(key, policy.window_ms, now)

        decision = RateLimitDecision(
            policy=policy.name,
            limit=policy.max_requests,
            count=counter.count,
            reset_after_ms=counter.window_start + policy.window_ms - now,
        )
        if not decision.allowed:
            logger.info("Rate limit '%s' exceeded for %s (%d/%d)", policy.name, key, counter.count,
                        policy.max_requests)
            raise TooManyRequests(policy.message, headers=decision.headers())
        return decision
