import time

DEFAULT_TTL = 10 * 60


class ResponseCache:
    """key -> (value, expires_at), expired entries dropped when read."""

    def __init__(self, ttl: float = DEFAULT_TTL, clock=time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._items = {}

    def get(self, key):
        entry = self._items.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() > expires_at:
            # another reader may have dropped it already
            self._items.pop(key, None)
            return None
        return value

    def set(self, key, value, ttl: float = None):
        self._items[key] = (value, self.clock() + (self.ttl if ttl is None else ttl))

    def __len__(self):
        return len(self._items)

    def clear(self):
        self._items.clear()
