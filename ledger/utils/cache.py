"""
TTL cache with an injected clock

Используется для цен акций: get(key) -> value | None, put(key, value, now).
"""
import time
from typing import Any, Callable, Dict, Optional, Tuple


class TTLCache:
    """
    Простой кэш со временем жизни записей

    Args:
        ttl_seconds: время жизни записи
        clock: источник времени в секундах (по умолчанию time.monotonic)

    Example:
        >>> cache = TTLCache(ttl_seconds=900)
        >>> cache.put("VOO", Decimal("512.30"))
        >>> cache.get("VOO")
        Decimal('512.30')
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[Any, Tuple[Any, float]] = {}

    def get(self, key: Any) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self.clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def put(self, key: Any, value: Any, now: Optional[float] = None) -> None:
        self._entries[key] = (value, self.clock() if now is None else now)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
