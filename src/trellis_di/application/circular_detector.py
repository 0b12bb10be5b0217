"""Application layer - Circular dependency detection."""

import threading
from typing import List

from trellis_di.domain import CircularDependencyError


class CircularDependencyDetector:
    """Detects circular dependencies during resolution.

    Uses thread-local storage to track the identifiers currently being resolved.
    When an identifier appears twice in the stack, a circular dependency is detected.

    Attributes:
        _local: Thread-local storage for resolution stacks.
    """

    def __init__(self) -> None:
        """Initialize the circular dependency detector with thread-local storage."""
        self._local = threading.local()

    def _get_stack(self) -> List[str]:
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    def push(self, key: str) -> None:
        """Add an identifier to the resolution stack.

        Args:
            key: The normalized identifier being resolved.

        Raises:
            CircularDependencyError: If the identifier is already in the stack.

        Example:
            >>> detector = CircularDependencyDetector()
            >>> detector.push("app.ServiceA")
            >>> detector.push("app.ServiceB")
            >>> detector.push("app.ServiceA")  # Raises CircularDependencyError
        """
        stack = self._get_stack()

        if key in stack:
            cycle = stack[stack.index(key) :] + [key]
            raise CircularDependencyError(cycle)

        stack.append(key)

    def pop(self) -> None:
        """Remove the last identifier from the resolution stack."""
        stack = self._get_stack()
        if stack:
            stack.pop()

    def depth(self) -> int:
        """Number of identifiers currently being resolved on this thread."""
        return len(self._get_stack())

    def clear(self) -> None:
        """Clear the resolution stack of the current thread."""
        if hasattr(self._local, "stack"):
            self._local.stack.clear()
