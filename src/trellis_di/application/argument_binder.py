import types
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union, get_args, get_origin

from trellis_di.domain import (
    ArgumentKey,
    ArgumentKind,
    IContainer,
    MissingArgumentError,
    ParameterInfo,
    ParameterKind,
    argument_kind,
)

_MISSING = object()

# Modules whose classes are values, not services.
_VALUE_TYPE_MODULES = frozenset(
    {"builtins", "datetime", "decimal", "fractions", "ipaddress", "pathlib", "uuid", "re", "collections"}
)


class ArgumentBinder:
    """Chooses a value for every parameter of a constructor, factory or method.

    Each parameter takes the first value found in this order:

    1. caller argument by name,
    2. caller argument by position,
    3. rule argument by name, then by position,
    4. auto-wiring of the declared type through the container,
    5. the declared default.

    A parameter that declares a default is only auto-wired when the container has a
    rule or a shared instance for its type.

    References and callbacks are resolved once a value has been chosen.
    """

    def bind(
        self,
        owner: str,
        parameters: List[ParameterInfo],
        caller_args: Dict[ArgumentKey, Any],
        rule_args: Dict[ArgumentKey, Any],
        container: IContainer,
    ) -> Tuple[List[Any], Dict[str, Any]]:
        """Build the positional and keyword arguments for a call.

        Args:
            owner: Name of the class or callable, used in error messages.
            parameters: Parameters in declared order.
            caller_args: Arguments passed to get_args or call.
            rule_args: Constructor arguments from the rule, or method call arguments.
            container: Container used for auto-wiring and references.

        Returns:
            Positional values and keyword values.

        Raises:
            MissingArgumentError: If a required parameter has no value.
        """
        positional: List[Any] = []
        keywords: Dict[str, Any] = {}
        names = {param.name for param in parameters}

        for index, param in enumerate(parameters):
            if param.kind == ParameterKind.VAR_POSITIONAL:
                source = caller_args if self._extra_positions(caller_args, index) else rule_args
                for position in self._extra_positions(source, index):
                    positional.append(self.resolve_value(source[position], container))
                continue

            if param.kind == ParameterKind.VAR_KEYWORD:
                for source in (caller_args, rule_args):
                    for name, value in source.items():
                        if isinstance(name, str) and name not in names and name not in keywords:
                            keywords[name] = self.resolve_value(value, container)
                continue

            value = self._select(index, param, caller_args, rule_args, container)
            if value is _MISSING:
                raise MissingArgumentError(owner, param.name)
            if param.kind == ParameterKind.KEYWORD_ONLY:
                keywords[param.name] = value
            else:
                positional.append(value)

        return positional, keywords

    def _select(
        self,
        index: int,
        param: ParameterInfo,
        caller_args: Dict[ArgumentKey, Any],
        rule_args: Dict[ArgumentKey, Any],
        container: IContainer,
    ) -> Any:
        by_position = param.kind == ParameterKind.POSITIONAL
        for source in (caller_args, rule_args):
            if param.name in source:
                return self.resolve_value(source[param.name], container)
            if by_position and index in source:
                return self.resolve_value(source[index], container)

        autowire_type = self.autowire_type(param.declared_type)
        if autowire_type is not None and self._can_autowire(autowire_type, param, container):
            return container.get(autowire_type)

        if param.has_default:
            return param.default
        return _MISSING

    @staticmethod
    def _can_autowire(autowire_type: type, param: ParameterInfo, container: IContainer) -> bool:
        if not container.has(autowire_type):
            return False
        if not param.has_default:
            return True
        # A declared default is only replaced by something the container was told about.
        return container.has_rule(autowire_type) or container.has_instance(autowire_type)

    @staticmethod
    def _extra_positions(source: Dict[ArgumentKey, Any], start: int) -> List[int]:
        return sorted(key for key in source if isinstance(key, int) and key >= start)

    @staticmethod
    def resolve_value(value: Any, container: IContainer) -> Any:
        """Resolve a chosen value according to its tag."""
        kind = argument_kind(value)
        if kind == ArgumentKind.REFERENCE:
            return value.resolve(container)
        if kind == ArgumentKind.CALLBACK:
            return value.invoke()
        return value

    @staticmethod
    def autowire_type(declared_type: Any) -> Optional[type]:
        """Return the class a declared type auto-wires to, if any.

        ``Optional[X]`` wires to ``X``. Builtin types such as ``str``, enums and value types
        such as ``datetime.timedelta``, ``decimal.Decimal`` or ``pathlib.Path`` never auto-wire.
        """
        if declared_type is None:
            return None
        if get_origin(declared_type) in (Union, types.UnionType):
            members = [arg for arg in get_args(declared_type) if arg is not type(None)]
            if len(members) != 1:
                return None
            declared_type = members[0]
        if not isinstance(declared_type, type) or issubclass(declared_type, Enum):
            return None
        if declared_type.__module__.split(".")[0] in _VALUE_TYPE_MODULES:
            return None
        return declared_type
