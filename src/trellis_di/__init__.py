"""
trellis-di: Rule-based dependency injection container with auto-wiring.

Public API exports for the trellis-di package.
"""

# Application exports
from trellis_di.application.container import Container

# Domain exports
from trellis_di.domain.exceptions import (
    CircularDependencyError,
    ContainerException,
    MissingArgumentError,
    NotFoundError,
    RuleConfigurationError,
    TypeMismatchError,
)
from trellis_di.domain.models import Callback, DefaultReference, Reference, Rule

__version__ = "0.1.0"

__all__ = [
    # Container
    "Container",
    # Argument values
    "Callback",
    "DefaultReference",
    "Reference",
    # Rules
    "Rule",
    # Exceptions
    "ContainerException",
    "NotFoundError",
    "MissingArgumentError",
    "TypeMismatchError",
    "CircularDependencyError",
    "RuleConfigurationError",
]
