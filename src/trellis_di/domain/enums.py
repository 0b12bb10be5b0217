from enum import Enum


class ArgumentKind(str, Enum):
    """Tags the kinds of values an argument slot can hold.

    Attributes:
        LITERAL: Passed through as-is.
        REFERENCE: Looked up from a container at resolution time.
        CALLBACK: Invoked at resolution time, once per use site.
    """

    LITERAL = "literal"
    REFERENCE = "reference"
    CALLBACK = "callback"

    def __str__(self) -> str:
        return self.value


class ParameterKind(str, Enum):
    """How a parameter receives its value in the final call."""

    POSITIONAL = "positional"
    KEYWORD_ONLY = "keyword_only"
    VAR_POSITIONAL = "var_positional"
    VAR_KEYWORD = "var_keyword"

    def __str__(self) -> str:
        return self.value
