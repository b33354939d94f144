"""nominalcheck - nominal, parametric, variance-aware connection checking.

Declare a type hierarchy, then ask whether two typed slots may be connected
and which explicit types a generic resolves to on a node.

Example usage:
    from nominalcheck import NominalConnectionChecker, Workspace

    checker = NominalConnectionChecker({
        "Animal": {},
        "Dog": {"fulfills": ["Animal"]},
        "List": {"params": [{"name": "T", "variance": "co"}]},
    })
    workspace = Workspace(checker)
    dogs = workspace.new_block("dogs", output="List[Dog]")
    walk = workspace.new_block("walk", inputs={"pack": "List[Animal]"})
    walk.inputs["pack"].connect(dogs.output)
"""

from nominalcheck.bindings import BindingTable, TypeResolver
from nominalcheck.checker import NominalConnectionChecker
from nominalcheck.errors import (
    ArityError,
    CheckerError,
    ConnectionCheckError,
    CycleError,
    GenericBindingError,
    NotInitializedError,
    TypeSyntaxError,
    UndefinedTypeError,
    VarianceError,
)
from nominalcheck.expr import (
    STANDARD_GENERIC,
    TypeExpr,
    is_concrete,
    is_generic,
    is_ground,
    parse_type,
    type_to_str,
)
from nominalcheck.graph import Node, Slot, SlotKind
from nominalcheck.hierarchy import (
    TypeHierarchy,
    Variance,
    load_hierarchy,
    load_hierarchy_json,
    read_hierarchy,
)
from nominalcheck.workspace import Block, Connection, Workspace

__all__ = [
    "STANDARD_GENERIC",
    "ArityError",
    "BindingTable",
    "Block",
    "CheckerError",
    "Connection",
    "ConnectionCheckError",
    "CycleError",
    "GenericBindingError",
    "Node",
    "NominalConnectionChecker",
    "NotInitializedError",
    "Slot",
    "SlotKind",
    "TypeExpr",
    "TypeHierarchy",
    "TypeResolver",
    "TypeSyntaxError",
    "UndefinedTypeError",
    "Variance",
    "VarianceError",
    "Workspace",
    "is_concrete",
    "is_generic",
    "is_ground",
    "load_hierarchy",
    "load_hierarchy_json",
    "parse_type",
    "read_hierarchy",
    "type_to_str",
]
