"""The nominal connection checker.

NominalConnectionChecker is what a host talks to. It owns the loaded type
hierarchy and the external bindings, and decides whether two slots may be
connected: the child must provide a type the parent accepts, and making the
connection must leave every connection further up the parent chain well
typed.

Example usage:
    checker = NominalConnectionChecker({
        "Animal": {},
        "Dog": {"fulfills": ["Animal"]},
        "Cat": {"fulfills": ["Animal"]},
    })
    if checker.check(dog_output, animal_input):
        ...

Every fault raised while answering a query reaches the host as a
ConnectionCheckError naming the slots and nodes involved.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nominalcheck.bindings import BindingTable, TypeResolver
from nominalcheck.errors import (
    ConnectionCheckError,
    GenericBindingError,
    NotInitializedError,
)
from nominalcheck.expr import STANDARD_GENERIC, is_generic, is_ground, parse_type
from nominalcheck.graph import get_check, input_name, upward_slot
from nominalcheck.hierarchy import load_hierarchy

if TYPE_CHECKING:
    from nominalcheck.expr import TypeExpr
    from nominalcheck.graph import Node, Slot
    from nominalcheck.hierarchy import HierarchyDecl, TypeHierarchy

logger = logging.getLogger(__name__)


class NominalConnectionChecker:
    """Checks connections between slots against a nominal type hierarchy.

    Args:
        hierarchy_def: If given, the hierarchy to load straight away.
            Otherwise call init before checking anything.

    """

    def __init__(self, hierarchy_def: HierarchyDecl | None = None) -> None:
        self._hierarchy: TypeHierarchy | None = None
        self._bindings = BindingTable()
        if hierarchy_def is not None:
            self.init(hierarchy_def)

    def init(self, hierarchy_def: HierarchyDecl) -> None:
        """Load (or reload) the type hierarchy.

        External bindings made against a previous hierarchy are dropped.

        Raises:
            UndefinedTypeError: A fulfills entry names an undeclared type.
            VarianceError: A parameter's variance is not recognised.
            ArityError: A fulfills entry passes the wrong number of arguments.
            CycleError: The declared super-types form a cycle.

        """
        self._hierarchy = load_hierarchy(hierarchy_def)
        self._bindings.clear()

    @property
    def hierarchy(self) -> TypeHierarchy:
        """The loaded hierarchy.

        Raises:
            NotInitializedError: If init has not been called.

        """
        if self._hierarchy is None:
            raise NotInitializedError
        return self._hierarchy

    @property
    def resolver(self) -> TypeResolver:
        return TypeResolver(self.hierarchy, self._bindings)

    # =========================================================================
    # Checking
    # =========================================================================

    def check(self, a: Slot, b: Slot) -> bool:
        """Return True if a and b may be connected.

        The slots may be given in either order; the superior one is treated
        as the parent.

        Raises:
            ConnectionCheckError: If anything goes wrong while checking, e.g.
                a slot names a type the hierarchy does not define.

        """
        parent, child = (a, b) if a.is_superior else (b, a)
        try:
            resolver = self.resolver
            child_types = resolver.explicit_versions_of(
                child.node,
                parse_type(get_check(child)),
            )
            ok = self._check_chain(resolver, child_types, parent)
        except Exception as e:
            msg = (
                f"Checking the compatibility of the {input_name(a)} and "
                f"{input_name(b)} connections on nodes {a.node.id!r} and "
                f"{b.node.id!r} threw an error."
            )
            logger.debug("%s %s", msg, e)
            raise ConnectionCheckError(msg, e) from e
        if not ok:
            logger.debug(
                "Rejected connection between node %r (%s) and node %r (%s)",
                parent.node.id,
                input_name(parent),
                child.node.id,
                input_name(child),
            )
        return ok

    def _check_chain(
        self,
        resolver: TypeResolver,
        child_types: list[TypeExpr],
        parent: Slot,
    ) -> bool:
        """Check child_types against parent, then walk up the parent chain.

        Each step assumes the connection below it has been made and checks
        that the parent node's output still finds a type, and that the type
        is still accepted by whatever that output is connected to.
        """
        while True:
            parent_node = parent.node
            parent_type = resolver.dereference_external_bindings(
                parent_node,
                parse_type(get_check(parent)),
            )
            if not any(
                self.hierarchy.type_fulfills(t, parent_type) for t in child_types
            ):
                return False

            output = upward_slot(parent_node)
            if output is None:
                return True

            output_types = resolver.explicit_versions_of(
                parent_node,
                parse_type(get_check(output)),
                check_outputs=False,
                simulated={parent: child_types},
            )
            if output.peer is None:
                return bool(output_types)
            child_types, parent = output_types, output.peer

    # =========================================================================
    # Bindings
    # =========================================================================

    def bind_type(self, node: Node, generic: str, explicit: str) -> None:
        """Bind generic to an explicit type in the context of node.

        Every connection on the node is then remade, so connections the new
        binding makes ill typed are dropped by the host's own check.

        Args:
            node: The node the binding applies to.
            generic: A single-character type variable, e.g. ``"T"``.
            explicit: A type expression without generics, e.g. ``"List[Dog]"``.

        Raises:
            GenericBindingError: If generic is not a type variable or explicit
                contains generics.
            TypeSyntaxError: If explicit cannot be parsed.
            UndefinedTypeError: If explicit names an undeclared type.
            ArityError: If explicit passes the wrong number of arguments.
            ConnectionCheckError: If remaking a connection fails. Every other
                connection is still remade first.

        """
        generic = generic.lower()
        target = parse_type(explicit)
        if not is_generic(generic) or not is_ground(target):
            raise GenericBindingError(generic, explicit)
        self.hierarchy.validate(target)
        self._bindings.bind(node.id, generic, target)

        connected = [(slot, slot.peer) for slot in node.slots if slot.peer is not None]
        for slot, _ in connected:
            slot.disconnect()
        errors: list[ConnectionCheckError] = []
        for slot, peer in connected:
            try:
                slot.connect(peer)
            except ConnectionCheckError as e:
                errors.append(e)
        if errors:
            raise errors[0]

    def unbind_type(self, node: Node, generic: str) -> bool:
        """Remove the binding of generic on node.

        Returns:
            True if a binding existed.

        """
        return self._bindings.unbind(node.id, generic.lower())

    def forget_node(self, node: Node) -> None:
        """Drop every binding held for node, e.g. when it is deleted."""
        if self._bindings.forget(node.id):
            logger.debug("Forgot bindings of node %r", node.id)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_explicit_types(self, node: Node, generic: str) -> list[str]:
        """Return the explicit types generic resolves to on node.

        Returns:
            The types in canonical form, e.g. ``["dict(dog, *)"]``. Empty if
            generic is unbound or its bindings cannot be unified.

        Raises:
            ConnectionCheckError: If resolving the types fails.

        """
        try:
            types = self.resolver.bound_types_of(node, generic.lower())
        except Exception as e:
            msg = (
                f"Trying to find the explicit types of {generic} on node "
                f"{node.id!r} threw an error."
            )
            raise ConnectionCheckError(msg, e) from e
        if not types or types[0] == STANDARD_GENERIC:
            return []
        return [str(t) for t in types]

    def get_explicit_types_of_connection(self, slot: Slot) -> list[str]:
        """Return the explicit types of the expression declared on slot.

        Unbound generics are rendered as ``*``.

        Raises:
            ConnectionCheckError: If resolving the types fails.

        """
        try:
            types = self.resolver.explicit_versions_of(
                slot.node,
                parse_type(get_check(slot)),
            )
        except Exception as e:
            msg = (
                f"Trying to find the explicit types of the {input_name(slot)} "
                f"connection on node {slot.node.id!r} threw an error."
            )
            raise ConnectionCheckError(msg, e) from e
        return [str(t) for t in types]
