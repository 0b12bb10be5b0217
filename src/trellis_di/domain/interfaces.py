from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Type

from trellis_di.domain.models import Arguments, EffectiveRule, Identifier, ParameterInfo, Rule


class IContainer(ABC):
    """Abstract interface for container resolution operations.

    Anything implementing this interface can be walked by a Reference path.
    """

    @abstractmethod
    def get(self, identifier: Identifier) -> Any:
        """Resolve and return the value for an identifier.

        Args:
            identifier: A class or a string identifier.
        """

    @abstractmethod
    def get_args(self, identifier: Identifier, args: Arguments = None) -> Any:
        """Resolve an identifier, passing caller arguments to construction.

        Args:
            identifier: A class or a string identifier.
            args: Positional values, or a mapping of positions and names to values.
        """

    @abstractmethod
    def has(self, identifier: Identifier) -> bool:
        """Whether the identifier can be resolved by this container."""

    @abstractmethod
    def has_rule(self, identifier: Identifier) -> bool:
        """Whether a rule was configured for the identifier."""

    @abstractmethod
    def has_instance(self, identifier: Identifier) -> bool:
        """Whether a shared instance is cached for the identifier."""

    @abstractmethod
    def set_instance(self, identifier: Identifier, instance: Any) -> "IContainer":
        """Seed the shared cache with an instance.

        Args:
            identifier: Identifier to store the instance under.
            instance: The value returned by later resolutions.
        """

    @abstractmethod
    def call(self, target: Any, args: Arguments = None) -> Any:
        """Invoke a callable with auto-wired arguments and return its result.

        Args:
            target: A function, bound method or (object, method name) pair.
            args: Caller arguments that take priority over auto-wiring.
        """

    @abstractmethod
    def rule(self, identifier: Identifier) -> Rule:
        """Return the mutable rule for an identifier, creating it if absent."""


class ITypeIntrospector(ABC):
    """Abstract interface for the host reflection capability used by the container."""

    @abstractmethod
    def find_class(self, identifier: Identifier) -> Optional[Type[Any]]:
        """Find the class an identifier names, or None when it names no known type.

        Args:
            identifier: A class or a dotted class name, matched case-insensitively.
        """

    @property
    @abstractmethod
    def generation(self) -> int:
        """Counter that changes whenever a new class becomes known to the introspector."""

    @abstractmethod
    def canonical_name(self, cls: Type[Any]) -> str:
        """Return the dotted name identifying a class."""

    @abstractmethod
    def parameters_of(self, target: Callable[..., Any]) -> List[ParameterInfo]:
        """Return the ordered parameter list of a class constructor or a callable.

        Args:
            target: A class (its constructor is inspected) or any callable.
        """

    @abstractmethod
    def interfaces_of(self, cls: Type[Any]) -> List[Type[Any]]:
        """Return the interfaces and base classes of a class, least specific first."""


class IRuleResolver(ABC):
    """Abstract interface for merging applicable rules into one effective rule."""

    @abstractmethod
    def resolve_effective(
        self,
        key: str,
        cls: Optional[Type[Any]],
        rules: Dict[str, Rule],
        default_shared: bool,
    ) -> EffectiveRule:
        """Merge the default, interface and exact rules for an identifier.

        Args:
            key: Normalized identifier.
            cls: Class the identifier names, if any.
            rules: Rule table keyed by normalized identifier.
            default_shared: Container-wide sharing default.
        """


class ISharedInstanceCache(ABC):
    """Abstract interface for storing shared instances."""

    @abstractmethod
    def contains(self, key: str) -> bool:
        """Whether an instance is cached under the key."""

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the instance cached under the key."""

    @abstractmethod
    def set(self, key: str, instance: Any) -> None:
        """Store an instance under the key, replacing any previous one."""

    @abstractmethod
    def discard(self, key: str) -> None:
        """Remove the instance cached under the key, if any."""

    @abstractmethod
    def get_or_create(self, key: str, factory: Callable[[], Any]) -> Any:
        """Return the cached instance or build, store and return a new one."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every cached instance."""
