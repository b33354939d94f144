"""Type expressions.

A type expression is either a bare name or a name applied to an ordered list
of argument expressions:

    expr := name | name "(" expr ("," expr)* ")"

Single-character names are generic type variables; longer names refer to
concrete types declared in a hierarchy. Square brackets are accepted in place
of parentheses on input, but output always uses the parenthesised form.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from lark import Lark, Transformer
from lark.exceptions import UnexpectedInput

from nominalcheck.errors import TypeSyntaxError

if TYPE_CHECKING:
    from collections.abc import Iterator

STANDARD_GENERIC_NAME = "*"


@dataclass(frozen=True)
class TypeExpr:
    """A (possibly parameterised) type.

    Examples:
        dog              -> TypeExpr("dog")
        list(dog)        -> TypeExpr("list", (TypeExpr("dog"),))
        dict(k, v)       -> TypeExpr("dict", (TypeExpr("k"), TypeExpr("v")))

    """

    name: str
    args: tuple[TypeExpr, ...] = ()

    def __str__(self) -> str:
        return type_to_str(self)

    @property
    def is_generic(self) -> bool:
        """True if the outermost name is a type variable."""
        return is_generic(self.name)


STANDARD_GENERIC = TypeExpr(STANDARD_GENERIC_NAME)
"""Stands in for a generic that no binding could be found for."""


def is_generic(name: str) -> bool:
    """Return True if name denotes a type variable."""
    return len(name) == 1


def is_concrete(name: str) -> bool:
    """Return True if name denotes a declared type."""
    return len(name) > 1


def iter_names(expr: TypeExpr) -> Iterator[str]:
    """Yield every name in expr, outermost first."""
    stack = [expr]
    while stack:
        current = stack.pop()
        yield current.name
        stack.extend(reversed(current.args))


def contains_generic(expr: TypeExpr, generic: str) -> bool:
    """Return True if the given type variable appears anywhere in expr."""
    return any(name == generic for name in iter_names(expr))


def contains_any_generic(expr: TypeExpr) -> bool:
    """Return True if any type variable appears anywhere in expr."""
    return any(is_generic(name) for name in iter_names(expr))


def is_ground(expr: TypeExpr) -> bool:
    """Return True if expr contains no type variables."""
    return not contains_any_generic(expr)


def substitute(expr: TypeExpr, mapping: dict[str, TypeExpr]) -> TypeExpr:
    """Replace names found in mapping with their mapped expressions.

    A replaced name keeps none of its own arguments; mapping keys are expected
    to be bare parameter names.
    """
    if expr.name in mapping:
        return mapping[expr.name]
    if not expr.args:
        return expr
    return TypeExpr(expr.name, tuple(substitute(arg, mapping) for arg in expr.args))


def type_to_str(expr: TypeExpr) -> str:
    """Render expr in canonical form, e.g. ``dict(dog, list(cat))``."""
    match expr:
        case TypeExpr(name=name, args=()):
            return name
        case TypeExpr(name=name, args=args):
            return f"{name}({', '.join(type_to_str(a) for a in args)})"


# =============================================================================
# Parsing
# =============================================================================

_GRAMMAR = r"""
    ?start: expr

    expr: NAME
        | NAME "(" expr ("," expr)* ")"
        | NAME "[" expr ("," expr)* "]"

    NAME: /[^\s()\[\],]+/

    %import common.WS
    %ignore WS
"""


class _ExprBuilder(Transformer):
    """Turns the parse tree into TypeExpr values."""

    def expr(self, children: list) -> TypeExpr:
        name, *args = children
        return TypeExpr(str(name).lower(), tuple(args))


_PARSER = Lark(_GRAMMAR, parser="lalr", lexer="basic", transformer=_ExprBuilder())


@lru_cache(maxsize=1024)
def parse_type(text: str) -> TypeExpr:
    """Parse a type expression, lower-casing every name.

    Args:
        text: Source text such as ``"Dict(K, List[V])"``.

    Returns:
        The parsed expression.

    Raises:
        TypeSyntaxError: If the text is empty or not a well-formed expression.

    """
    if not text.strip():
        raise TypeSyntaxError(text, "empty type expression")
    try:
        return _PARSER.parse(text)
    except UnexpectedInput as e:
        raise TypeSyntaxError(text, next(iter(str(e).splitlines()), "")) from e
