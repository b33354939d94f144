"""An in-memory host graph.

Workspace is the smallest host the checker can serve: blocks with typed
connections that consult the checker before they link up. It is what the
test suite drives, and a reference for wiring the checker into a real editor.

Example usage:
    checker = NominalConnectionChecker(hierarchy_def)
    workspace = Workspace(checker)
    dog = workspace.new_block("dog", output="Dog")
    feed = workspace.new_block("feed", inputs={"animal": "Animal"})
    feed.inputs["animal"].connect(dog.output)   # True
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from nominalcheck.graph import SlotKind, upward_slot

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterator, Mapping

    from nominalcheck.checker import NominalConnectionChecker

logger = logging.getLogger(__name__)

_PAIRS = {
    SlotKind.OUTPUT: SlotKind.INPUT,
    SlotKind.INPUT: SlotKind.OUTPUT,
    SlotKind.PREVIOUS: SlotKind.NEXT,
    SlotKind.NEXT: SlotKind.PREVIOUS,
}


@dataclass(eq=False)
class Connection:
    """A typed attachment point on a block."""

    node: Block
    kind: SlotKind
    check: str
    input_name: str | None = None
    peer: Connection | None = field(default=None, repr=False)

    @property
    def is_superior(self) -> bool:
        return self.kind in (SlotKind.INPUT, SlotKind.NEXT)

    def connect(self, other: Connection) -> bool:
        """Connect to other if the checker allows it.

        Returns:
            True if the connection was made (or already existed).

        Raises:
            ValueError: If the two kinds cannot pair up, either connection is
                already connected elsewhere, or the child block would become
                its own ancestor.
            ConnectionCheckError: If the checker fails while checking.

        """
        if self.peer is other:
            return True
        if _PAIRS[self.kind] is not other.kind:
            msg = f"Cannot connect a {self.kind} connection to a {other.kind} one"
            raise ValueError(msg)
        if self.peer is not None or other.peer is not None:
            msg = "Disconnect a connection before connecting it elsewhere"
            raise ValueError(msg)
        parent, child = (self, other) if self.is_superior else (other, self)
        if _is_ancestor(child.node, parent.node):
            msg = f"Cannot connect block {child.node.id!r} below itself"
            raise ValueError(msg)
        if not self.node.workspace.checker.check(self, other):
            return False
        self.peer = other
        other.peer = self
        logger.debug("Connected %r to %r", self.node.id, other.node.id)
        return True

    def disconnect(self) -> None:
        """Unlink from the peer, if any."""
        peer = self.peer
        if peer is None:
            return
        peer.peer = None
        self.peer = None
        logger.debug("Disconnected %r from %r", self.node.id, peer.node.id)


def _is_ancestor(candidate: Block, block: Block) -> bool:
    """Return True if candidate is block or sits above it."""
    node: Block | None = block
    while node is not None:
        if node is candidate:
            return True
        up = upward_slot(node)
        node = None if up is None or up.peer is None else up.peer.node
    return False


class Block:
    """A node with at most one upward connection, inputs and a next connection.

    Args:
        workspace: The workspace the block lives in.
        block_id: A stable identity, unique within the workspace.
        output: Type of the value output connection.
        previous: Type of the previous-statement connection.
        inputs: Input names mapped to their types, in display order.
        next: Type of the next-statement connection.

    """

    def __init__(
        self,
        workspace: Workspace,
        block_id: Hashable,
        *,
        output: str | None = None,
        previous: str | None = None,
        inputs: Mapping[str, str] | None = None,
        next: str | None = None,  # noqa: A002
    ) -> None:
        if output is not None and previous is not None:
            msg = "A block cannot have both an output and a previous connection"
            raise ValueError(msg)
        self.workspace = workspace
        self._id = block_id
        self.output = (
            None if output is None else Connection(self, SlotKind.OUTPUT, output)
        )
        self.previous = (
            None if previous is None else Connection(self, SlotKind.PREVIOUS, previous)
        )
        self.inputs = {
            name: Connection(self, SlotKind.INPUT, check, input_name=name)
            for name, check in (inputs or {}).items()
        }
        self.next = None if next is None else Connection(self, SlotKind.NEXT, next)

    def __repr__(self) -> str:
        return f"Block({self._id!r})"

    @property
    def id(self) -> Hashable:
        return self._id

    @property
    def slots(self) -> list[Connection]:
        """Output, previous, inputs in order, then next."""
        slots = [c for c in (self.output, self.previous) if c is not None]
        slots.extend(self.inputs.values())
        if self.next is not None:
            slots.append(self.next)
        return slots

    def disconnect_all(self) -> None:
        for slot in self.slots:
            slot.disconnect()


class Workspace:
    """A collection of blocks checked by one checker."""

    def __init__(self, checker: NominalConnectionChecker) -> None:
        self.checker = checker
        self._blocks: dict[Hashable, Block] = {}

    def __iter__(self) -> Iterator[Block]:
        return iter(self._blocks.values())

    def __len__(self) -> int:
        return len(self._blocks)

    def new_block(
        self,
        block_id: Hashable,
        *,
        output: str | None = None,
        previous: str | None = None,
        inputs: Mapping[str, str] | None = None,
        next: str | None = None,  # noqa: A002
    ) -> Block:
        """Create a block and add it to the workspace.

        Raises:
            ValueError: If block_id is already taken.

        """
        if block_id in self._blocks:
            msg = f"A block with id {block_id!r} already exists"
            raise ValueError(msg)
        block = Block(
            self,
            block_id,
            output=output,
            previous=previous,
            inputs=inputs,
            next=next,
        )
        self._blocks[block_id] = block
        return block

    def get_block(self, block_id: Hashable) -> Block:
        return self._blocks[block_id]

    def delete_block(self, block: Block) -> None:
        """Disconnect a block, remove it and drop its bindings."""
        block.disconnect_all()
        del self._blocks[block.id]
        self.checker.forget_node(block)
