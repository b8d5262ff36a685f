"""Fixed-window rate limiting for the AI-backed endpoints.

Each client gets ``max_requests`` per window. The window opens on the
client's first request and resets once ``reset_at`` has passed; it does not
slide. Records live in a ``RateLimitStore`` so a shared store can replace the
in-process map when the service runs on more than one instance.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Protocol

from starlette.requests import Request

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

# Checked in order; the first populated header wins
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


@dataclass
class RateLimitRecord:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int


class RateLimitStore(Protocol):
    """Storage for per-identifier window records."""

    def get(self, identifier: str) -> Optional[RateLimitRecord]: ...

    def set(self, identifier: str, record: RateLimitRecord) -> None: ...

    def delete(self, identifier: str) -> None: ...

    def items(self) -> Iterator[tuple[str, RateLimitRecord]]: ...


class InMemoryRateLimitStore:
    """Process-local store. Only valid for a single-instance deployment."""

    def __init__(self):
        self._records: dict[str, RateLimitRecord] = {}

    def get(self, identifier: str) -> Optional[RateLimitRecord]:
        return self._records.get(identifier)

    def set(self, identifier: str, record: RateLimitRecord) -> None:
        self._records[identifier] = record

    def delete(self, identifier: str) -> None:
        self._records.pop(identifier, None)

    def items(self) -> Iterator[tuple[str, RateLimitRecord]]:
        # Snapshot so callers may delete while iterating
        return iter(list(self._records.items()))

    def __len__(self) -> int:
        return len(self._records)


class FixedWindowRateLimiter:
    """Allows ``max_requests`` per identifier per ``window_seconds``."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60.0,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.clock = clock
        self.name = name

    def check_and_increment(self, identifier: str) -> RateLimitResult:
        now = self.clock()
        record = self.store.get(identifier)

        if record is None or now >= record.reset_at:
            self.store.set(identifier, RateLimitRecord(count=1, reset_at=now + self.window_seconds))
            return RateLimitResult(True, self.max_requests - 1, self.max_requests)

        if record.count >= self.max_requests:
            return RateLimitResult(False, 0, self.max_requests)

        record.count += 1
        self.store.set(identifier, record)
        return RateLimitResult(True, self.max_requests - record.count, self.max_requests)

    def sweep(self) -> int:
        """Delete records whose window has expired. Returns how many were removed."""
        now = self.clock()
        expired = [identifier for identifier, record in self.store.items() if now >= record.reset_at]
        for identifier in expired:
            self.store.delete(identifier)
        return len(expired)

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep forever; cancelled on shutdown."""
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.sweep()
            if removed:
                logger.debug("Swept %d expired %s rate-limit records", removed, self.name)


def client_identifier(request: Request) -> str:
    """Identify the caller by the first proxy header that carries an address.

    Requests that reach us without any proxy header all share the
    ``"unknown"`` bucket.
    """
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            first = value.split(",")[0].strip()
            if first:
                return first
    return UNKNOWN_CLIENT
