"""Loading hierarchy declarations.

A hierarchy declaration maps type names to what each type declares:

    {
        "Animal": {},
        "Dog": {"fulfills": ["Animal"]},
        "List": {
            "params": [{"name": "T", "variance": "co"}],
            "fulfills": ["Iterable[T]"],
        },
    }

Names are case-insensitive. The same structure can be read from JSON.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, NotRequired, TypeAlias, TypedDict

from nominalcheck.errors import ArityError, TypeSyntaxError, UndefinedTypeError
from nominalcheck.expr import TypeExpr, is_generic, iter_names, parse_type
from nominalcheck.hierarchy.core import TypeHierarchy
from nominalcheck.hierarchy.defs import TypeDef, Variance

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


class ParamDecl(TypedDict):
    """One declared type parameter."""

    name: str
    variance: str


class TypeDecl(TypedDict):
    """What a single type declares."""

    params: NotRequired[list[ParamDecl]]
    fulfills: NotRequired[list[str]]


HierarchyDecl: TypeAlias = "Mapping[str, TypeDecl]"


def build_types(hierarchy_def: HierarchyDecl) -> dict[str, TypeDef]:
    """Create a TypeDef for every declared type, in declaration order.

    Raises:
        VarianceError: If a parameter's variance is not recognised.
        TypeSyntaxError: If a fulfills entry cannot be parsed, or a type or
            parameter name has the wrong length.

    """
    types: dict[str, TypeDef] = {}
    for type_name, info in hierarchy_def.items():
        name = type_name.lower()
        if is_generic(name):
            raise TypeSyntaxError(type_name, "type names need at least two characters")
        type_def = TypeDef(name)
        for param in info.get("params") or []:
            if not is_generic(param["name"]):
                detail = f"parameter names of {name} must be a single character"
                raise TypeSyntaxError(param["name"], detail)
            type_def.add_param(param["name"], Variance.parse(param["variance"]))
        for super_text in info.get("fulfills") or []:
            type_def.add_super(parse_type(super_text))
        types[name] = type_def
    return types


def validate_supers(types: Mapping[str, TypeDef]) -> None:
    """Check every name and argument count used in fulfills entries.

    Raises:
        UndefinedTypeError: If a fulfills entry names an undeclared type.
        ArityError: If a fulfills entry passes the wrong number of arguments.

    """
    for type_def in types.values():
        for super_name, args in type_def.supers.items():
            _validate_declared(TypeExpr(super_name, args), types, type_def.name)


def _validate_declared(
    expr: TypeExpr,
    types: Mapping[str, TypeDef],
    declared_by: str,
) -> None:
    for name in iter_names(expr):
        if not is_generic(name) and name not in types:
            raise UndefinedTypeError(name, referenced_by=declared_by)
    stack = [expr]
    while stack:
        current = stack.pop()
        stack.extend(current.args)
        if is_generic(current.name):
            continue
        expected = len(types[current.name].params)
        if len(current.args) != expected:
            raise ArityError(current.name, expected, len(current.args))


def load_hierarchy(hierarchy_def: HierarchyDecl) -> TypeHierarchy:
    """Build and preprocess a hierarchy from its declaration.

    Args:
        hierarchy_def: Mapping of type names to their declarations.

    Returns:
        A ready-to-query TypeHierarchy.

    Raises:
        UndefinedTypeError: A fulfills entry names an undeclared type.
        VarianceError: A parameter's variance is not recognised.
        ArityError: A fulfills entry passes the wrong number of arguments.
        CycleError: The declared super-types form a cycle.

    """
    types = build_types(hierarchy_def)
    validate_supers(types)
    hierarchy = TypeHierarchy(types)
    logger.debug("Loaded type hierarchy with %d types", len(types))
    return hierarchy


def load_hierarchy_json(text: str) -> TypeHierarchy:
    """Build a hierarchy from a JSON document.

    Raises:
        ValueError: If the document is not a JSON object.

    """
    data: Any = json.loads(text)
    if not isinstance(data, dict):
        msg = "Expected a JSON object mapping type names to declarations"
        raise ValueError(msg)
    return load_hierarchy(data)


def read_hierarchy(path: str | Path) -> TypeHierarchy:
    """Build a hierarchy from a JSON file."""
    return load_hierarchy_json(Path(path).read_text(encoding="utf-8"))
