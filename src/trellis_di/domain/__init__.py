"""
Domain layer - Core models of the container.

This layer contains rules, references, callbacks and the errors raised while
resolving them. It has no dependencies on other layers.
"""

from .enums import ArgumentKind, ParameterKind
from .exceptions import (
    CircularDependencyError,
    ContainerException,
    MissingArgumentError,
    NotFoundError,
    RuleConfigurationError,
    TypeMismatchError,
)
from .interfaces import IContainer, IRuleResolver, ISharedInstanceCache, ITypeIntrospector
from .models import (
    DEFAULT_RULE,
    ArgumentKey,
    Arguments,
    Callback,
    DefaultReference,
    EffectiveRule,
    Identifier,
    MethodCall,
    ParameterInfo,
    Reference,
    Rule,
    argument_kind,
    normalize_arguments,
)

__all__ = [
    # Enums
    "ArgumentKind",
    "ParameterKind",
    # Exceptions
    "ContainerException",
    "NotFoundError",
    "MissingArgumentError",
    "TypeMismatchError",
    "CircularDependencyError",
    "RuleConfigurationError",
    # Interfaces
    "IContainer",
    "IRuleResolver",
    "ISharedInstanceCache",
    "ITypeIntrospector",
    # Models
    "DEFAULT_RULE",
    "ArgumentKey",
    "Arguments",
    "Callback",
    "DefaultReference",
    "EffectiveRule",
    "Identifier",
    "MethodCall",
    "ParameterInfo",
    "Reference",
    "Rule",
    "argument_kind",
    "normalize_arguments",
]
