"""Resolving generics to explicit types in the context of a node.

A generic on a node is bound in one of two ways:

- externally, by the host calling bind_type; such bindings are stored in a
  BindingTable and always win;
- structurally, by whatever is connected to the node's slots. These bindings
  are never stored; TypeResolver recomputes them by walking the slot graph
  outwards from the node.

A simulated mapping of slots to peer types lets a caller ask "what would the
types be if this connection existed", which is how look-ahead checks work.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeAlias

from nominalcheck.expr import (
    STANDARD_GENERIC,
    TypeExpr,
    contains_generic,
    parse_type,
)
from nominalcheck.graph import UPWARD_KINDS, get_check
from nominalcheck.utils import combine, unique

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping

    from nominalcheck.graph import Node, Slot
    from nominalcheck.hierarchy import TypeHierarchy

logger = logging.getLogger(__name__)

Simulated: TypeAlias = "Mapping[Slot, list[TypeExpr]]"
"""Maps a slot to the types its (possibly hypothetical) peer provides."""


class BindingTable:
    """External bindings of generics, keyed by stable node identity."""

    def __init__(self) -> None:
        self._bindings: dict[Hashable, dict[str, TypeExpr]] = {}

    def bind(self, node_id: Hashable, generic: str, expr: TypeExpr) -> None:
        self._bindings.setdefault(node_id, {})[generic] = expr
        logger.debug("Bound %s to %s on node %r", generic, expr, node_id)

    def unbind(self, node_id: Hashable, generic: str) -> bool:
        """Remove a binding, returning whether one existed."""
        bound = self._bindings.get(node_id)
        if bound is None or generic not in bound:
            return False
        del bound[generic]
        if not bound:
            del self._bindings[node_id]
        logger.debug("Unbound %s on node %r", generic, node_id)
        return True

    def get(self, node_id: Hashable, generic: str) -> TypeExpr | None:
        return self._bindings.get(node_id, {}).get(generic)

    def forget(self, node_id: Hashable) -> bool:
        """Drop every binding of a node, returning whether it had any."""
        return self._bindings.pop(node_id, None) is not None

    def clear(self) -> None:
        self._bindings.clear()


class TypeResolver:
    """Computes the explicit types of expressions declared on nodes."""

    def __init__(self, hierarchy: TypeHierarchy, bindings: BindingTable) -> None:
        self.hierarchy = hierarchy
        self.bindings = bindings

    def explicit_versions_of(
        self,
        node: Node,
        expr: TypeExpr,
        skip_slot: Slot | None = None,
        *,
        check_outputs: bool = True,
        simulated: Simulated | None = None,
    ) -> list[TypeExpr]:
        """Return expr with its generics replaced by every valid binding.

        Args:
            node: The node giving context to the generics in expr.
            expr: The expression to resolve, e.g. ``dict(k, v)``.
            skip_slot: A slot to ignore while looking for bindings.
            check_outputs: Whether to look through the node's output and
                previous slots.
            simulated: Peer types to assume for the given slots.

        Returns:
            One expression per combination of bindings. Generics with no
            binding become ``*``. Empty if some generic has bindings that
            cannot be unified.

        """
        if expr.is_generic:
            return self.bound_types_of(
                node,
                expr.name,
                skip_slot,
                check_outputs=check_outputs,
                simulated=simulated,
            )
        if not expr.args:
            return [expr]
        columns = [
            self.explicit_versions_of(
                node,
                arg,
                skip_slot,
                check_outputs=check_outputs,
                simulated=simulated,
            )
            for arg in expr.args
        ]
        return [TypeExpr(expr.name, combo) for combo in combine(columns)]

    def bound_types_of(
        self,
        node: Node,
        generic: str,
        skip_slot: Slot | None = None,
        *,
        check_outputs: bool = True,
        simulated: Simulated | None = None,
    ) -> list[TypeExpr]:
        """Return the types generic is bound to on node.

        Returns:
            ``[bound]`` for an external binding; otherwise the nearest common
            parents of what every contributing slot provides.
            ``[STANDARD_GENERIC]`` if no slot contributes, and an empty list
            if some slot's contribution cannot be unified.

        """
        external = self.bindings.get(node.id, generic)
        if external is not None:
            return [external]

        contributions: list[list[TypeExpr]] = []
        for slot in node.slots:
            if slot is skip_slot:
                continue
            if slot.kind in UPWARD_KINDS and not check_outputs:
                continue
            if slot.peer is None and (simulated is None or slot not in simulated):
                continue
            per_peer_type = self.connection_types(
                slot,
                generic,
                check_outputs=check_outputs,
                simulated=simulated,
            )
            if per_peer_type:
                contributions.append([t for types in per_peer_type for t in types])

        if not contributions:
            return [STANDARD_GENERIC]
        if any(not types for types in contributions):
            return []

        acc = contributions[0]
        for types in contributions[1:]:
            acc = [
                parent
                for a in acc
                for t in types
                for parent in self.hierarchy.nearest_common_parents(a, t)
            ]
        return self.hierarchy.prune(unique(acc))

    def connection_types(
        self,
        slot: Slot,
        generic: str,
        *,
        check_outputs: bool = True,
        simulated: Simulated | None = None,
    ) -> list[list[TypeExpr]]:
        """Return what the peer of slot provides for generic.

        Returns:
            One list per type of the peer: the nearest common parents of every
            expression sitting where generic sits in the slot's declared type,
            or ``[STANDARD_GENERIC]`` if those are all generic. Empty if the
            slot's type does not mention generic.

        """
        declared = parse_type(get_check(slot))
        if not contains_generic(declared, generic):
            return []

        if simulated is not None and slot in simulated:
            peer_types = simulated[slot]
        else:
            peer = slot.peer
            if peer is None:
                return []
            peer_types = self.explicit_versions_of(
                peer.node,
                parse_type(get_check(peer)),
                peer,
                check_outputs=check_outputs,
            )

        if declared.name == generic:
            return [peer_types]

        if slot.is_superior:
            match_in = self.hierarchy.matching_types_in_descendant
        else:
            match_in = self.hierarchy.matching_types_in_ancestor
        result: list[list[TypeExpr]] = []
        for peer_type in peer_types:
            matches = match_in(generic, declared, peer_type)
            if all(m.is_generic for m in matches):
                result.append([STANDARD_GENERIC])
            else:
                result.append(self.hierarchy.nearest_common_parents(*matches))
        return result

    def dereference_external_bindings(self, node: Node, expr: TypeExpr) -> TypeExpr:
        """Replace externally bound generics in expr with their bound types.

        Structurally bound generics are left in place.
        """
        if expr.is_generic:
            return self.bindings.get(node.id, expr.name) or expr
        if not expr.args:
            return expr
        return TypeExpr(
            expr.name,
            tuple(self.dereference_external_bindings(node, a) for a in expr.args),
        )
