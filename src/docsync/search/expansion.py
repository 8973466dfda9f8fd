"""Query expansion with a process-wide TTL cache."""

import re
import threading
import time
from typing import Any, Callable, Hashable, Optional

MAX_EXPANSIONS = 3
DEFAULT_TTL_SECONDS = 60 * 60

# Code vocabulary: a query mentioning a key is also run with each synonym.
CODE_SYNONYMS: dict[str, tuple[str, ...]] = {
    "function": ("method", "fn", "func"),
    "class": ("type", "interface", "struct"),
    "get": ("fetch", "retrieve", "read", "load"),
    "set": ("update", "write", "save", "store"),
    "delete": ("remove", "destroy", "drop"),
    "create": ("new", "add", "insert", "make"),
    "user": ("account", "member", "profile"),
    "auth": ("authentication", "login", "signin"),
    "error": ("exception", "failure", "issue"),
    "config": ("configuration", "settings", "options"),
}

MISS = object()


class TTLCache:
    """Bounded in-memory cache whose entries expire after a time-to-live.

    Safe for concurrent use; set() replaces an existing entry atomically.
    When full, the entry closest to expiry is evicted.
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Any:
        """Return the cached value, or MISS if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISS
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return MISS
            return value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._evict(now)
            self._entries[key] = (now + ttl, value)

    def _evict(self, now: float) -> None:
        expired = [k for k, (exp, _) in self._entries.items() if exp <= now]
        for k in expired:
            del self._entries[k]
        if len(self._entries) >= self.max_size:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_expansion_cache = TTLCache()


def code_expansions(query: str) -> list[str]:
    """Rewrite ``query`` with code synonyms for each vocabulary key it mentions."""
    lowered = query.lower()
    expansions: list[str] = []
    for key, synonyms in CODE_SYNONYMS.items():
        if key in lowered:
            pattern = re.compile(re.escape(key), re.IGNORECASE)
            expansions.extend(pattern.sub(synonym, query) for synonym in synonyms)
    return expansions[:MAX_EXPANSIONS]


def expand_query(query: str) -> list[str]:
    """Return the query followed by up to MAX_EXPANSIONS distinct rewrites."""
    cached = _expansion_cache.get(query)
    if cached is not MISS:
        return list(cached)

    expanded = list(dict.fromkeys([query, *code_expansions(query)]))
    _expansion_cache.set(query, tuple(expanded))
    return expanded


def clear_expansion_cache() -> None:
    _expansion_cache.clear()
