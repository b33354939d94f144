"""The slot graph the checker reads from its host.

The checker never owns nodes or slots. It reads them through the two
protocols below, so any host whose objects expose these attributes can be
checked: a visual block editor, a dataflow graph or the in-memory Workspace
shipped with this package.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from nominalcheck.errors import TypeSyntaxError

if TYPE_CHECKING:
    from collections.abc import Hashable, Sequence


class SlotKind(StrEnum):
    """Where a slot sits on its node."""

    OUTPUT = "output"
    PREVIOUS = "previous"
    NEXT = "next"
    INPUT = "input"


UPWARD_KINDS = (SlotKind.OUTPUT, SlotKind.PREVIOUS)
"""Slot kinds that face a node's parent."""


class Slot(Protocol):
    """A polarised attachment point on a node.

    Attributes:
        check: The declared type expression text. A sequence is accepted and
            its first entry used.
        peer: The slot this one is connected to, if any.
        is_superior: True if this is the parent side of a connection.
        node: The node the slot belongs to.
        kind: Where the slot sits on its node.
        input_name: The input's name for input slots, otherwise None.

    """

    @property
    def check(self) -> str | Sequence[str] | None: ...

    @property
    def peer(self) -> Slot | None: ...

    @property
    def is_superior(self) -> bool: ...

    @property
    def node(self) -> Node: ...

    @property
    def kind(self) -> SlotKind: ...

    @property
    def input_name(self) -> str | None: ...

    def connect(self, other: Slot) -> bool: ...

    def disconnect(self) -> None: ...


class Node(Protocol):
    """A node owning slots.

    Attributes:
        id: A stable, hashable identity.
        slots: Output, previous, every input in order, then next. Kinds the
            node does not have are simply absent.

    """

    @property
    def id(self) -> Hashable: ...

    @property
    def slots(self) -> Sequence[Slot]: ...


def get_check(slot: Slot) -> str:
    """Return the type expression text declared on slot.

    Raises:
        TypeSyntaxError: If the slot declares no type.

    """
    check = slot.check
    if check is not None and not isinstance(check, str):
        check = next(iter(check), None)
    if not check:
        raise TypeSyntaxError("", f"the {input_name(slot)} connection has no type")
    return check


def input_name(slot: Slot) -> str:
    """Name a slot for error messages: its input name, or its kind."""
    if slot.kind is SlotKind.INPUT and slot.input_name:
        return slot.input_name
    return str(slot.kind)


def upward_slot(node: Node) -> Slot | None:
    """Return the node's output or previous slot, whichever exists first."""
    return next((s for s in node.slots if s.kind in UPWARD_KINDS), None)
