import inspect
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from trellis_di.application.argument_binder import ArgumentBinder
from trellis_di.application.circular_detector import CircularDependencyDetector
from trellis_di.application.introspection import InspectTypeIntrospector
from trellis_di.application.rule_resolver import RuleResolver
from trellis_di.application.shared_cache import SharedInstanceCache
from trellis_di.domain import (
    DEFAULT_RULE,
    ArgumentKey,
    Arguments,
    CircularDependencyError,
    EffectiveRule,
    IContainer,
    Identifier,
    IRuleResolver,
    ISharedInstanceCache,
    ITypeIntrospector,
    MethodCall,
    NotFoundError,
    Rule,
    TypeMismatchError,
    normalize_arguments,
)

logger = logging.getLogger(__name__)


class Container(IContainer):
    """Rule-based dependency injection container.

    Builds instances from classes or string identifiers, wiring constructor parameters
    from caller arguments, rule arguments, auto-wired dependencies and defaults.
    Rules configure class overrides, factories, sharing, constructor arguments,
    post-construction calls and aliases.

    Attributes:
        _rules: Rule table keyed by normalized identifier.
        _shared: Sharing default for identifiers whose rules do not decide.
        _introspector: Host reflection capability.
        _rule_resolver: Merges applicable rules into an effective rule.
        _binder: Chooses values for constructor and method parameters.
        _cache: Shared instances of this container.
        _circular_detector: Component detecting circular dependencies.
        _alias_state: Alias lists and introspector generation the alias index was built from.
        _alias_index_cache: Normalized alias to owning rule key.

    Example:
        >>> container = Container()
        >>> container.rule(Database).set_shared(True).set_constructor_args({"dsn": "sqlite://"})
        >>> container.rule(Repository).add_call("warm_up")
        >>> repository = container.get(Repository)
    """

    def __init__(self, shared: bool = False, introspector: Optional[ITypeIntrospector] = None) -> None:
        """Initialize the container with an empty rule table and cache.

        Args:
            shared: Whether identifiers are shared unless a rule says otherwise.
            introspector: Reflection capability, InspectTypeIntrospector by default.
        """
        self._rules: Dict[str, Rule] = {}
        self._shared = shared
        self._introspector: ITypeIntrospector = introspector or InspectTypeIntrospector()
        self._rule_resolver: IRuleResolver = RuleResolver(self._introspector)
        self._binder = ArgumentBinder()
        self._cache: ISharedInstanceCache = SharedInstanceCache()
        self._circular_detector = CircularDependencyDetector()
        self._alias_state: Optional[Tuple[Any, ...]] = None
        self._alias_index_cache: Dict[str, str] = {}

    def normalize(self, identifier: Identifier) -> str:
        """Return the rule table key of an identifier.

        Identifiers naming a known class fold to its lower-cased dotted name. Any other
        string is kept as given, so labels stay case-sensitive.

        Raises:
            TypeMismatchError: If the identifier is neither a class nor a string.
        """
        if identifier == DEFAULT_RULE:
            return DEFAULT_RULE
        cls = self._introspector.find_class(identifier)
        if cls is not None:
            return self._introspector.canonical_name(cls).casefold()
        if isinstance(identifier, str):
            return identifier
        raise TypeMismatchError(f"Identifiers must be classes or strings, got {identifier!r}")

    def _canonical_key(self, key: str) -> str:
        """Follow alias redirects from a normalized identifier to the rule that builds it."""
        chain = [key]
        while True:
            rule = self._rules.get(key)
            if rule is not None and rule.alias_of is not None:
                target: Optional[str] = self.normalize(rule.alias_of)
            elif rule is not None and rule.defines_construction():
                return key
            else:
                target = self._alias_owner(key)
                if target is None:
                    return key
            if target in chain:
                raise CircularDependencyError(chain + [target])
            chain.append(target)
            key = target

    def _alias_owner(self, key: str) -> Optional[str]:
        return self._alias_index().get(key)

    def _alias_index(self) -> Dict[str, str]:
        """Map normalized aliases to the key of the rule listing them.

        The index is rebuilt only when an alias list changes or a new class becomes known.
        """
        state = (
            self._introspector.generation,
            tuple((owner, tuple(rule.aliases)) for owner, rule in self._rules.items() if rule.aliases),
        )
        if state != self._alias_state:
            index: Dict[str, str] = {}
            for owner, aliases in state[1]:
                for alias in aliases:
                    alias_key = self.normalize(alias)
                    if alias_key != owner:
                        index.setdefault(alias_key, owner)
            self._alias_state = state
            self._alias_index_cache = index
        return self._alias_index_cache

    def rule(self, identifier: Identifier) -> Rule:
        """Return the mutable rule for an identifier, creating it if absent.

        Args:
            identifier: A class or string identifier, or ``"*"`` for the default rule.

        Returns:
            The rule, ready for chained configuration.
        """
        key = self.normalize(identifier)
        if key not in self._rules:
            logger.debug("Creating rule for %s", key)
            self._rules[key] = Rule(identifier=key)
        return self._rules[key]

    def default_rule(self) -> Rule:
        """Return the rule applied to every identifier that inherits."""
        return self.rule(DEFAULT_RULE)

    def set_shared(self, shared: bool) -> "Container":
        """Set the sharing default used when rules do not decide.

        Returns:
            The container, for chaining.
        """
        self._shared = shared
        return self

    def is_shared(self) -> bool:
        return self._shared

    @property
    def introspector(self) -> ITypeIntrospector:
        return self._introspector

    def get(self, identifier: Identifier) -> Any:
        """Resolve an identifier without caller arguments.

        Args:
            identifier: A class or string identifier.

        Returns:
            The shared instance, or a newly built one.

        Raises:
            NotFoundError: If nothing can be built for the identifier.
            MissingArgumentError: If a required parameter has no value.
            TypeMismatchError: If a reference walks into a non-container.
            CircularDependencyError: If resolution loops back on itself.

        Example:
            >>> service = container.get(UserService)
            >>> config = container.get("config")
        """
        return self.get_args(identifier, None)

    def get_args(self, identifier: Identifier, args: Arguments = None) -> Any:
        """Resolve an identifier, passing caller arguments to construction.

        Caller arguments win over rule arguments, auto-wiring and defaults. They are
        ignored when a shared instance is already cached.

        Args:
            identifier: A class or string identifier.
            args: Positional values, or a mapping of positions and names to values.

        Returns:
            The shared instance, or a newly built one.

        Example:
            >>> db = container.get_args(Database, ["postgres://prod"])
            >>> db = container.get_args(Database, {"dsn": "postgres://prod"})
        """
        key = self._canonical_key(self.normalize(identifier))

        if self._cache.contains(key):
            logger.debug("Returning shared instance of %s", key)
            return self._cache.get(key)

        self._circular_detector.push(key)
        logger.debug("Resolving %s at depth %d", key, self._circular_detector.depth())
        try:
            effective = self._effective_rule(key)
            if effective.shared:
                return self._cache.get_or_create(key, lambda: self._build(effective, args))
            return self._build(effective, args)
        finally:
            self._circular_detector.pop()

    def _effective_rule(self, key: str) -> EffectiveRule:
        cls = self._introspector.find_class(key)
        return self._rule_resolver.resolve_effective(key, cls, self._rules, self._shared)

    def _build(self, effective: EffectiveRule, args: Arguments) -> Any:
        caller_args = normalize_arguments(args)

        if effective.factory is not None:
            logger.debug("Building %s with factory %r", effective.key, effective.factory)
            instance = self._invoke(
                effective.factory, self._describe(effective.factory), caller_args, effective.constructor_args
            )
        else:
            cls = self._target_class(effective)
            logger.debug("Building %s as %s", effective.key, cls.__qualname__)
            instance = self._invoke(cls, self._introspector.canonical_name(cls), caller_args, effective.constructor_args)

        for call in effective.calls:
            self._run_call(instance, call)
        return instance

    def _target_class(self, effective: EffectiveRule) -> type:
        if effective.target_class is None:
            raise NotFoundError(effective.key, "no rule, instance or class is registered for it")
        cls = self._introspector.find_class(effective.target_class)
        if cls is None:
            raise NotFoundError(effective.key, f"class {effective.target_class!r} was not found")
        if inspect.isabstract(cls):
            raise NotFoundError(effective.key, f"{cls.__qualname__} is abstract")
        return cls

    def _run_call(self, instance: Any, call: MethodCall) -> None:
        method = getattr(instance, call.method, None)
        if method is None or not callable(method):
            raise TypeMismatchError(f"{type(instance).__qualname__} has no method {call.method!r}")
        logger.debug("Calling %s.%s", type(instance).__qualname__, call.method)
        self._invoke(method, f"{type(instance).__qualname__}.{call.method}", {}, call.args)

    def _invoke(
        self,
        target: Callable[..., Any],
        owner: str,
        caller_args: Dict[ArgumentKey, Any],
        rule_args: Dict[ArgumentKey, Any],
    ) -> Any:
        parameters = self._introspector.parameters_of(target)
        positional, keywords = self._binder.bind(owner, parameters, caller_args, rule_args, self)
        return target(*positional, **keywords)

    @staticmethod
    def _describe(target: Any) -> str:
        return getattr(target, "__qualname__", None) or repr(target)

    def call(self, target: Any, args: Arguments = None) -> Any:
        """Invoke a callable with auto-wired arguments and return its result.

        Args:
            target: A function, bound method, callable object, or an (object, method name) pair.
            args: Caller arguments, which win over auto-wiring and defaults.

        Returns:
            Whatever the callable returns.

        Raises:
            TypeMismatchError: If the target is not callable.
            MissingArgumentError: If a required parameter has no value.

        Example:
            >>> container.call(lambda db: db.migrate(), {"db": Reference(Database)})
            >>> container.call((repository, "set_db"))
        """
        if isinstance(target, tuple) and len(target) == 2 and isinstance(target[1], str):
            owner, method_name = target
            function = getattr(owner, method_name, None)
            if function is None or not callable(function):
                raise TypeMismatchError(f"{owner!r} has no method {method_name!r}")
        elif callable(target):
            function = target
        else:
            raise TypeMismatchError(f"Cannot call {target!r}")

        return self._invoke(function, self._describe(function), normalize_arguments(args), {})

    def set_instance(self, identifier: Identifier, instance: Any) -> "Container":
        """Seed the shared cache with an instance, bypassing construction.

        The identifier is marked shared, whatever its rule said before.

        Args:
            identifier: Identifier to store the instance under.
            instance: The value later resolutions return.

        Returns:
            The container, for chaining.

        Example:
            >>> container.set_instance("config", Container().set_instance("dsn", "sqlite://"))
        """
        key = self._canonical_key(self.normalize(identifier))
        self.rule(key).set_shared(True)
        self._cache.set(key, instance)
        logger.debug("Stored shared instance of %s", key)
        return self

    def has(self, identifier: Identifier) -> bool:
        """Whether the identifier has an instance, a buildable rule or a concrete class."""
        key = self._canonical_key(self.normalize(identifier))
        if self._cache.contains(key):
            return True
        rule = self._rules.get(key)
        if rule is not None and (rule.factory is not None or rule.target_class is not None):
            return True
        cls = self._introspector.find_class(key)
        return cls is not None and not inspect.isabstract(cls)

    def has_rule(self, identifier: Identifier) -> bool:
        return self.normalize(identifier) in self._rules

    def has_instance(self, identifier: Identifier) -> bool:
        return self._cache.contains(self._canonical_key(self.normalize(identifier)))

    def get_rules_copy(self) -> Dict[str, Rule]:
        """Get a copy of the rule table.

        Rules are copied so that changing them does not affect this container.
        Argument values themselves are shared.
        """
        return {
            key: rule.model_copy(
                update={
                    "constructor_args": dict(rule.constructor_args),
                    "calls": list(rule.calls),
                    "aliases": list(rule.aliases),
                }
            )
            for key, rule in self._rules.items()
        }

    def set_rules(self, rules: Dict[str, Rule]) -> None:
        """Replace the rule table, for example with a copy from another container."""
        self._rules = rules

    def clear(self) -> None:
        """Clear all rules and shared instances.

        Useful for testing or resetting the container state.
        """
        self._rules.clear()
        self._cache.clear()
        self._circular_detector.clear()
