"""Error types for the nominal connection checker.

Load-time errors (raised while building a hierarchy) abort initialisation.
Check-time errors abort the current check and reach the host wrapped in a
ConnectionCheckError.
"""

from __future__ import annotations

from dataclasses import dataclass


class CheckerError(Exception):
    """Base class for all errors raised by the checker."""


@dataclass(eq=False)
class TypeSyntaxError(CheckerError, ValueError):
    """A type expression could not be parsed."""

    text: str
    detail: str = ""

    def __str__(self) -> str:
        msg = f"Malformed type expression {self.text!r}"
        if self.detail:
            msg += f": {self.detail}"
        return msg


@dataclass(eq=False)
class UndefinedTypeError(CheckerError):
    """A type name is referenced but never declared in the hierarchy."""

    type_name: str
    referenced_by: str | None = None

    def __str__(self) -> str:
        if self.referenced_by is not None:
            return (
                f"The type {self.referenced_by} says it fulfills the type "
                f"{self.type_name}, but that type is not defined"
            )
        return f"The type {self.type_name} is not defined in the hierarchy"


@dataclass(eq=False)
class VarianceError(CheckerError):
    """A parameter declares a variance string we do not recognise."""

    variance: str

    def __str__(self) -> str:
        return (
            f'The variance "{self.variance}" is not a valid variance. '
            'Valid variances are: "co", "contra", and "inv".'
        )


@dataclass(eq=False)
class ArityError(CheckerError):
    """The number of arguments does not match the declared parameters."""

    type_name: str
    expected: int
    actual: int

    def __str__(self) -> str:
        return (
            f"The number of parameters to {self.type_name} did not match the "
            "expected number of parameters (as defined in the type hierarchy). "
            f"Expected: {self.expected}, Actual: {self.actual}"
        )


@dataclass(eq=False)
class CycleError(CheckerError):
    """The super-type graph contains a cycle."""

    type_names: tuple[str, ...]

    def __str__(self) -> str:
        names = ", ".join(self.type_names)
        return f"The type hierarchy contains a cycle through: {names}"


@dataclass(eq=False)
class GenericBindingError(CheckerError):
    """A programmatic binding targets something other than a ground type."""

    generic: str
    target: str

    def __str__(self) -> str:
        return (
            f"Cannot bind {self.generic!r} to {self.target!r}: generic types can "
            "only be bound to types which contain no generic parameters"
        )


class NotInitializedError(CheckerError):
    """The checker was used before a hierarchy was loaded."""

    def __str__(self) -> str:
        return "The connection checker has not been initialized."


@dataclass(eq=False)
class ConnectionCheckError(CheckerError):
    """Wraps any fault raised while answering a host query.

    Attributes:
        message: Description of the query that failed.
        wrapped: The originating exception.

    """

    message: str
    wrapped: BaseException | None = None

    def __str__(self) -> str:
        if self.wrapped is None:
            return self.message
        return f"{self.message} Error: {self.wrapped}"
