import threading
from typing import Any, Callable, Dict

from trellis_di.domain import ISharedInstanceCache


class SharedInstanceCache(ISharedInstanceCache):
    """Stores shared instances for a single container.

    First access to a shared identifier builds under a re-entrant lock, so two threads
    never construct the same shared instance twice. Nested resolution from the
    building thread re-enters the lock.

    Attributes:
        _instances: Cached instances keyed by normalized identifier.
        _lock: Guards the check-then-build-then-store sequence.
    """

    def __init__(self) -> None:
        """Initialize the cache empty."""
        self._instances: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def contains(self, key: str) -> bool:
        return key in self._instances

    def get(self, key: str) -> Any:
        return self._instances[key]

    def set(self, key: str, instance: Any) -> None:
        with self._lock:
            self._instances[key] = instance

    def discard(self, key: str) -> None:
        with self._lock:
            self._instances.pop(key, None)

    def get_or_create(self, key: str, factory: Callable[[], Any]) -> Any:
        """Return the cached instance or build and store a new one.

        A factory that raises leaves the cache untouched for the key.

        Args:
            key: Normalized identifier.
            factory: Builds the instance when none is cached.

        Returns:
            The cached instance.

        Example:
            >>> cache = SharedInstanceCache()
            >>> first = cache.get_or_create("app.Config", Config)
            >>> cache.get_or_create("app.Config", Config) is first
            True
        """
        if key in self._instances:
            return self._instances[key]

        with self._lock:
            # Another thread may have stored it while we waited.
            if key not in self._instances:
                self._instances[key] = factory()
            return self._instances[key]

    def clear(self) -> None:
        """Drop every cached instance.

        Useful for testing or resetting container state.
        """
        with self._lock:
            self._instances.clear()
