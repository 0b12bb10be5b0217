from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from trellis_di.domain.enums import ArgumentKind, ParameterKind
from trellis_di.domain.exceptions import RuleConfigurationError, TypeMismatchError

if TYPE_CHECKING:
    from trellis_di.domain.interfaces import IContainer

Identifier = Union[str, Type[Any]]
ArgumentKey = Union[int, str]
Arguments = Optional[Union[Sequence[Any], Mapping[ArgumentKey, Any]]]

DEFAULT_RULE = "*"


def normalize_arguments(args: Arguments) -> Dict[ArgumentKey, Any]:
    """Convert an argument list into a position/name keyed dictionary.

    Sequences become positional entries keyed by index. Mappings may mix integer
    keys (positions) and string keys (parameter names).

    Args:
        args: Sequence, mapping or None.

    Returns:
        New dictionary keyed by position or parameter name.

    Raises:
        TypeMismatchError: If args is not a sequence or mapping, or a key is neither int nor str.
    """
    if args is None:
        return {}
    if isinstance(args, Mapping):
        normalized: Dict[ArgumentKey, Any] = {}
        for key, value in args.items():
            if isinstance(key, bool) or not isinstance(key, (int, str)):
                raise TypeMismatchError(f"Argument keys must be positions or names, got {key!r}")
            normalized[key] = value
        return normalized
    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        raise TypeMismatchError(f"Arguments must be a sequence or mapping, got {type(args).__name__}")
    return dict(enumerate(args))


def argument_kind(value: Any) -> ArgumentKind:
    """Tag an argument value as literal, reference or callback."""
    if isinstance(value, Reference):
        return ArgumentKind.REFERENCE
    if isinstance(value, Callback):
        return ArgumentKind.CALLBACK
    return ArgumentKind.LITERAL


class Reference(BaseModel):
    """Deferred lookup of a value from a container, possibly through nested containers.

    A single-element path is looked up on the container doing the resolution. Longer
    paths look up the first key, then look up each following key on the previous value,
    which must itself be a container.

    Attributes:
        path: Keys to walk, outermost first.

    Example:
        >>> parent.set_instance("config", child)
        >>> child.set_instance("dsn", "sqlite://")
        >>> Reference(["config", "dsn"]).resolve(parent)
        'sqlite://'
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Tuple[Union[str, Type[Any]], ...] = Field(..., min_length=1, description="Lookup keys, outermost first.")

    def __init__(self, path: Union[Identifier, Sequence[Identifier]], **data: Any) -> None:
        if isinstance(path, (str, type)):
            path = (path,)
        super().__init__(path=tuple(path), **data)

    def resolve(self, container: "IContainer") -> Any:
        """Walk the path against the current state of the container.

        Args:
            container: The container the reference is resolved against.

        Returns:
            The value at the end of the path.

        Raises:
            NotFoundError: If a key is unknown to the container it is looked up in.
            TypeMismatchError: If an intermediate value is not a container.
        """
        from trellis_di.domain.interfaces import IContainer

        value: Any = container
        for depth, key in enumerate(self.path):
            if not isinstance(value, IContainer):
                raise self._not_a_container(depth, value)
            value = value.get(key)
        return value

    def _not_a_container(self, depth: int, value: Any) -> TypeMismatchError:
        segment = self.path[depth - 1] if depth else "<root>"
        return TypeMismatchError(
            f"Reference segment {segment!r} resolved to {type(value).__name__}, which is not a container"
        )


class DefaultReference(Reference):
    """Reference that yields a default value when its path cannot be resolved.

    At each step the key is checked with ``has()``. The first key the container cannot
    resolve ends the walk and the default is returned instead. Walking into a value that
    is not a container still raises TypeMismatchError.

    Attributes:
        default: Value returned when the path cannot be resolved.

    Example:
        >>> DefaultReference("cache_ttl", default=60).resolve(container)
        60
    """

    default: Any = Field(default=None, description="Fallback value.")

    def resolve(self, container: "IContainer") -> Any:
        from trellis_di.domain.interfaces import IContainer

        value: Any = container
        for depth, key in enumerate(self.path):
            if not isinstance(value, IContainer):
                raise self._not_a_container(depth, value)
            if not value.has(key):
                return self.default
            value = value.get(key)
        return value


class Callback(BaseModel):
    """Wraps a callable so that it is invoked lazily to produce an argument value.

    Every use site calls the wrapped function again; results are never memoized.

    Attributes:
        fn: Zero-argument callable producing the value.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    fn: Callable[[], Any] = Field(..., description="Callable invoked to produce the value.")

    def __init__(self, fn: Callable[[], Any], **data: Any) -> None:
        super().__init__(fn=fn, **data)

    def invoke(self) -> Any:
        return self.fn()


class MethodCall(BaseModel):
    """A method invoked on a freshly built instance.

    Attributes:
        method: Name of the method to call.
        args: Arguments keyed by position or parameter name.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    method: str = Field(..., min_length=1, description="Method name on the built instance.")
    args: Dict[ArgumentKey, Any] = Field(default_factory=dict, description="Method arguments.")


class ParameterInfo(BaseModel):
    """Describes one parameter of a constructor, factory or method.

    Attributes:
        name: Parameter name.
        declared_type: Type hint, if any.
        has_default: Whether the parameter declares a default value.
        default: The default value when has_default is True.
        kind: How the parameter receives its value.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    declared_type: Optional[Any] = None
    has_default: bool = False
    default: Any = None
    kind: ParameterKind = ParameterKind.POSITIONAL


class Rule(BaseModel):
    """Configuration describing how to build instances of one identifier.

    Rules are mutated while the container is being configured. Every mutator returns
    the rule so that calls can be chained.

    Attributes:
        identifier: The identifier this rule was created for.
        target_class: Class to instantiate instead of the identifier itself.
        factory: Callable producing instances instead of a class constructor.
        shared: True/False, or None to inherit from interface, default and container settings.
        inherit: Whether interface and default rules apply to this rule.
        constructor_args: Arguments keyed by position or parameter name.
        calls: Methods invoked after construction, in order.
        aliases: Identifiers redirected to this rule.
        alias_of: Identifier this rule redirects to.

    Example:
        >>> container.rule(Database).set_class(PostgresDatabase).set_shared(True)
        >>> container.rule(Mailer).set_constructor_args({"host": "smtp"}).add_call("connect")
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    identifier: str = Field(..., description="Identifier the rule was created for.")
    target_class: Optional[Union[str, Type[Any]]] = Field(default=None, description="Class override.")
    factory: Optional[Callable[..., Any]] = Field(default=None, description="Factory override.")
    shared: Optional[bool] = Field(default=None, description="Sharing flag, None inherits.")
    inherit: bool = Field(default=True, description="Whether interface and default rules apply.")
    constructor_args: Dict[ArgumentKey, Any] = Field(default_factory=dict, description="Constructor arguments.")
    calls: List[MethodCall] = Field(default_factory=list, description="Post-construction calls.")
    aliases: List[Union[str, Type[Any]]] = Field(default_factory=list, description="Redirected identifiers.")
    alias_of: Optional[Union[str, Type[Any]]] = Field(default=None, description="Redirect target.")

    def _ensure_not_alias(self, what: str) -> None:
        if self.alias_of is not None:
            raise RuleConfigurationError(f"Rule {self.identifier} is an alias of {self.alias_of!r} and cannot set {what}")

    def defines_construction(self) -> bool:
        """Whether the rule carries any class, factory, argument or call configuration."""
        return bool(self.target_class or self.factory or self.constructor_args or self.calls)

    def set_class(self, identifier: Identifier) -> "Rule":
        self._ensure_not_alias("a class")
        self.target_class = identifier
        return self

    def set_factory(self, factory: Callable[..., Any]) -> "Rule":
        """Build instances by calling factory with bound arguments."""
        self._ensure_not_alias("a factory")
        self.factory = factory
        return self

    def set_shared(self, shared: bool) -> "Rule":
        self.shared = shared
        return self

    def set_inherit(self, inherit: bool) -> "Rule":
        self.inherit = inherit
        return self

    def set_constructor_args(self, args: Arguments) -> "Rule":
        """Replace the constructor arguments wholesale.

        Args:
            args: A sequence of positional values, or a mapping of positions and names to values.
        """
        self._ensure_not_alias("constructor arguments")
        self.constructor_args = normalize_arguments(args)
        return self

    def add_call(self, method: str, args: Arguments = None) -> "Rule":
        self._ensure_not_alias("calls")
        self.calls.append(MethodCall(method=method, args=normalize_arguments(args)))
        return self

    def clear_calls(self) -> "Rule":
        self.calls.clear()
        return self

    def set_alias_of(self, identifier: Identifier) -> "Rule":
        """Turn this rule into a pure redirect to another identifier.

        Raises:
            RuleConfigurationError: If the rule already defines how to build instances.
        """
        if self.defines_construction():
            raise RuleConfigurationError(f"Rule {self.identifier} defines construction and cannot become an alias")
        self.alias_of = identifier
        return self

    def add_alias(self, identifier: Identifier) -> "Rule":
        if identifier not in self.aliases:
            self.aliases.append(identifier)
        return self

    def remove_alias(self, identifier: Identifier) -> "Rule":
        if identifier in self.aliases:
            self.aliases.remove(identifier)
        return self


class EffectiveRule(BaseModel):
    """Read-only result of merging the rules that apply to one identifier.

    Attributes:
        key: Normalized identifier the rule was computed for.
        target_class: Class identifier to instantiate.
        factory: Factory used instead of the class constructor, if any.
        shared: Whether built instances are cached.
        constructor_args: Arguments keyed by position or parameter name.
        calls: Post-construction calls, least specific rule first.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    target_class: Optional[Union[str, Type[Any]]] = None
    factory: Optional[Callable[..., Any]] = None
    shared: bool = False
    constructor_args: Dict[ArgumentKey, Any] = Field(default_factory=dict)
    calls: Tuple[MethodCall, ...] = ()
