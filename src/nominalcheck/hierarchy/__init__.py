"""Declared type hierarchies.

Example usage:
    from nominalcheck.expr import parse_type
    from nominalcheck.hierarchy import load_hierarchy

    hierarchy = load_hierarchy({
        "Animal": {},
        "Dog": {"fulfills": ["Animal"]},
        "List": {"params": [{"name": "T", "variance": "co"}]},
    })
    hierarchy.type_fulfills(parse_type("List(Dog)"), parse_type("List(Animal)"))
"""

from nominalcheck.hierarchy.core import TypeHierarchy
from nominalcheck.hierarchy.defs import ParamDef, TypeDef, Variance
from nominalcheck.hierarchy.loader import (
    HierarchyDecl,
    ParamDecl,
    TypeDecl,
    load_hierarchy,
    load_hierarchy_json,
    read_hierarchy,
)

__all__ = [
    "HierarchyDecl",
    "ParamDecl",
    "ParamDef",
    "TypeDecl",
    "TypeDef",
    "TypeHierarchy",
    "Variance",
    "load_hierarchy",
    "load_hierarchy_json",
    "read_hierarchy",
]
