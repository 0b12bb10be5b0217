from typing import List, Optional


class ContainerException(Exception):
    """Base exception for container-related errors."""


class NotFoundError(ContainerException):
    """Raised when an identifier cannot be resolved to anything buildable.

    This occurs when:
    - No rule, shared instance or known type exists for the identifier.
    - The target class of a rule cannot be found.
    - The target class is abstract and no rule redirects it.

    Attributes:
        identifier: The identifier that could not be resolved.
        reason: Optional reason for the failure.
    """

    def __init__(self, identifier: str, reason: Optional[str] = None) -> None:
        self.identifier = identifier
        self.reason = reason
        message = f"Cannot resolve identifier: {identifier}"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class MissingArgumentError(ContainerException):
    """Raised when a required parameter has no value from any source.

    Attributes:
        identifier: The class or callable being bound.
        parameter: Name of the parameter that could not be filled.
    """

    def __init__(self, identifier: str, parameter: str) -> None:
        self.identifier = identifier
        self.parameter = parameter
        super().__init__(f"Missing argument '{parameter}' for {identifier}")


class TypeMismatchError(ContainerException):
    """Raised when a value does not have the shape resolution requires.

    This occurs when:
    - A reference path segment resolves to something that is not a container.
    - A call target is neither a callable nor an (object, method name) pair.
    """


class CircularDependencyError(ContainerException):
    """Raised when a circular dependency is detected.

    Attributes:
        dependency_chain: Identifiers involved in the cycle, first one repeated last.
    """

    def __init__(self, dependency_chain: List[str]) -> None:
        self.dependency_chain = dependency_chain
        message = f"Circular dependency detected: {' -> '.join(dependency_chain)}"
        super().__init__(message)


class RuleConfigurationError(ContainerException):
    """Raised for contradictory rule definitions.

    This occurs when:
    - An alias rule is given a class, factory, constructor arguments or calls.
    - A rule that already defines how to build is turned into an alias.
    """
