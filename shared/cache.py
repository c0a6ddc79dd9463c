"""
Short-lived response cache for idempotent RPC reads.

Entries expire `ttl` seconds after insertion. Expired entries are treated as
misses and evicted lazily on the next lookup for the same key; there is no
other eviction, entries are expected to self-expire within a session.
"""
import hashlib
import json
import time
from typing import Any, Callable

CACHE_TTL = 15  # seconds


def make_key(method: str, url: str, body: Any = None) -> str:
    """Deterministic key for a request: method + url + canonical JSON body."""
    canonical = json.dumps(body or {}, sort_keys=True, separators=(",", ":"), default=str)
    raw = f"{method.upper()} {url}:{canonical}"
    return hashlib.sha256(raw.encode()).hexdigest()


class ResponseCache:
    def __init__(self, ttl: float = CACHE_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        # {key: (payload, inserted_at)}
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        payload, inserted_at = entry
        if (self._clock() - inserted_at) < self.ttl:
            return payload
        del self._entries[key]
        return None

    def put(self, key: str, payload: Any) -> None:
        self._entries[key] = (payload, self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
