"""
Application layer - Resolution engine.

This layer contains the container and the components it orchestrates.
It depends only on the Domain layer.
"""

from .argument_binder import ArgumentBinder
from .circular_detector import CircularDependencyDetector
from .container import Container
from .introspection import InspectTypeIntrospector
from .rule_resolver import RuleResolver
from .shared_cache import SharedInstanceCache

__all__ = [
    "Container",
    "ArgumentBinder",
    "CircularDependencyDetector",
    "InspectTypeIntrospector",
    "RuleResolver",
    "SharedInstanceCache",
]
