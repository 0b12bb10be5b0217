"""Application layer - Host type introspection."""

import importlib
import inspect
import logging
import sys
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Set, Type, get_type_hints

from trellis_di.domain import Identifier, ITypeIntrospector, ParameterInfo, ParameterKind

logger = logging.getLogger(__name__)

_KIND_MAP = {
    inspect.Parameter.POSITIONAL_ONLY: ParameterKind.POSITIONAL,
    inspect.Parameter.POSITIONAL_OR_KEYWORD: ParameterKind.POSITIONAL,
    inspect.Parameter.KEYWORD_ONLY: ParameterKind.KEYWORD_ONLY,
    inspect.Parameter.VAR_POSITIONAL: ParameterKind.VAR_POSITIONAL,
    inspect.Parameter.VAR_KEYWORD: ParameterKind.VAR_KEYWORD,
}

# Bases that never carry rules of their own.
_IGNORED_BASE_MODULES = frozenset({"builtins", "typing", "abc"})

# Used for classes whose constructor signature cannot be inspected: every argument is passed through.
_PASS_THROUGH = [
    ParameterInfo(name="args", kind=ParameterKind.VAR_POSITIONAL),
    ParameterInfo(name="kwargs", kind=ParameterKind.VAR_KEYWORD),
]


class InspectTypeIntrospector(ITypeIntrospector):
    """Introspects classes and callables using the inspect module and type hints.

    Classes are identified by their dotted name ``"<module>.<qualname>"``. Lookup by
    name is case-insensitive: registered classes are indexed by their folded name,
    and other names are searched in loaded modules (importing the module if needed).
    Dotted names that name no class are remembered and not searched again. Names
    without a dot are labels and never name a class.

    Attributes:
        _known: Classes already seen, keyed by folded canonical name.
        _missing: Folded dotted names known to name no class.
        _generation: Bumped whenever a new class is registered.
    """

    def __init__(self) -> None:
        """Initialize the introspector with an empty class index."""
        self._known: Dict[str, Type[Any]] = {}
        self._missing: Set[str] = set()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def canonical_name(self, cls: Type[Any]) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"

    def register(self, cls: Type[Any]) -> Type[Any]:
        """Index a class so that its name resolves even if it is not importable.

        Args:
            cls: The class to index.

        Returns:
            The class itself.
        """
        key = self.canonical_name(cls).casefold()
        if self._known.get(key) is not cls:
            self._known[key] = cls
            self._missing.discard(key)
            self._generation += 1
        return cls

    def find_class(self, identifier: Identifier) -> Optional[Type[Any]]:
        """Find the class an identifier names.

        Args:
            identifier: A class, or a dotted name such as ``"app.db.Database"``.

        Returns:
            The class, or None when the identifier is a plain label.

        Example:
            >>> introspector.find_class("collections.ordereddict")
            <class 'collections.OrderedDict'>
        """
        if isinstance(identifier, type):
            return self.register(identifier)
        if not isinstance(identifier, str) or "." not in identifier:
            return None

        folded = identifier.casefold()
        known = self._known.get(folded)
        if known is not None:
            return known
        if folded in self._missing:
            return None

        cls = self._lookup_dotted(identifier)
        if cls is None:
            self._missing.add(folded)
            return None
        return self.register(cls)

    def _lookup_dotted(self, name: str) -> Optional[Type[Any]]:
        parts = name.split(".")
        if any(not part for part in parts):
            return None

        # Try the longest module path first so that nested classes resolve too.
        for split in range(len(parts) - 1, 0, -1):
            module = self._find_module(".".join(parts[:split]))
            if module is None:
                continue
            target: Any = module
            for attribute in parts[split:]:
                target = self._get_attribute(target, attribute)
                if target is None:
                    break
            if isinstance(target, type):
                return target
        return None

    def _find_module(self, module_path: str) -> Optional[ModuleType]:
        module = sys.modules.get(module_path)
        if module is not None:
            return module

        folded = module_path.casefold()
        for name, candidate in list(sys.modules.items()):
            if candidate is not None and name.casefold() == folded:
                return candidate

        try:
            return importlib.import_module(module_path)
        except ImportError:
            return None

    @staticmethod
    def _get_attribute(owner: Any, name: str) -> Any:
        value = getattr(owner, name, None)
        if value is not None:
            return value
        namespace = getattr(owner, "__dict__", None)
        if namespace is None:
            return None
        folded = name.casefold()
        for attribute, candidate in list(namespace.items()):
            if attribute.casefold() == folded:
                return candidate
        return None

    def parameters_of(self, target: Callable[..., Any]) -> List[ParameterInfo]:
        """Return the parameters of a class constructor or callable.

        Args:
            target: A class, function, bound method or callable object.

        Returns:
            Parameters in declared order, without ``self``.

        Example:
            >>> class Mailer:
            ...     def __init__(self, host: str, port: int = 25): ...
            >>> [p.name for p in introspector.parameters_of(Mailer)]
            ['host', 'port']
        """
        if isinstance(target, type):
            if target.__init__ is object.__init__ and target.__new__ is object.__new__:
                return []
            try:
                signature = inspect.signature(target)
            except (TypeError, ValueError) as e:
                logger.debug("No signature for %r, passing arguments through: %s", target, e)
                return list(_PASS_THROUGH)
            constructor = target.__init__ if target.__init__ is not object.__init__ else target.__new__
            type_hints = self._type_hints(constructor)
        else:
            signature = inspect.signature(target)
            type_hints = self._type_hints(target)

        parameters = []
        for name, param in signature.parameters.items():
            has_default = param.default is not inspect.Parameter.empty
            parameters.append(
                ParameterInfo(
                    name=name,
                    declared_type=type_hints.get(name),
                    has_default=has_default,
                    default=param.default if has_default else None,
                    kind=_KIND_MAP[param.kind],
                )
            )
        return parameters

    @staticmethod
    def _type_hints(function: Callable[..., Any]) -> Dict[str, Any]:
        try:
            return get_type_hints(function)
        except (AttributeError, NameError, TypeError) as e:
            # Unresolvable forward references: fall back to the annotations that are real types.
            logger.debug("Could not evaluate type hints of %r: %s", function, e)
            annotations = getattr(function, "__annotations__", {})
            return {name: hint for name, hint in annotations.items() if isinstance(hint, type)}

    def interfaces_of(self, cls: Type[Any]) -> List[Type[Any]]:
        return [
            base
            for base in reversed(cls.__mro__[1:])
            if base.__module__ not in _IGNORED_BASE_MODULES
        ]
