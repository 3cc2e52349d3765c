"""Hierarchy flattening: parent-linked records to an ordered row list.

Rows are emitted depth-first in pre-order, starting from roots (records whose
parent is absent or not in the input). A node's children follow it only when
the node is expanded; collapsed subtrees are omitted entirely.
"""

from __future__ import annotations

from collections.abc import Collection, Iterator, Sequence
from dataclasses import dataclass, field

from ..debug_trace import get_logger, log_perf
from ..models.record import Record
from ..models.view import ViewRow

log = get_logger("hierarchy")


@dataclass(eq=False)
class RecordNode:
    """A record with its children (intermediate build structure).

    has_children follows the parent_id references, so it stays set even when a
    cycle member is detached from this node's children.
    """

    record: Record
    children: list[RecordNode] = field(default_factory=list)
    has_children: bool = False

    def iter_preorder(
        self, expanded: Collection[str], depth: int = 0
    ) -> Iterator[tuple[RecordNode, int]]:
        """Iterate in pre-order, descending only into expanded nodes."""
        yield self, depth
        if self.record.id in expanded:
            for child in self.children:
                yield from child.iter_preorder(expanded, depth + 1)


def build_forest(records: Sequence[Record]) -> list[RecordNode]:
    """Link records into trees, keeping input order among siblings.

    Records caught in a parent cycle have no reachable root; the first one met
    in input order is promoted to a root so nothing disappears.
    """
    nodes: dict[str, RecordNode] = {}
    unique: list[Record] = []
    for record in records:
        if record.id in nodes:
            log.warning("duplicate record id %r; keeping the first", record.id)
            continue
        nodes[record.id] = RecordNode(record)
        unique.append(record)
    records = unique
    roots: list[RecordNode] = []

    for record in records:
        node = nodes[record.id]
        parent = nodes.get(record.parent_id) if record.parent_id is not None else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)
            parent.has_children = True

    reachable: set[str] = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        reachable.add(node.record.id)
        stack.extend(node.children)

    for record in records:
        if record.id in reachable:
            continue
        log.warning("record %r is part of a parent cycle; showing it as a root", record.id)
        node = nodes[record.id]
        # Detach from the cycle so the walk below terminates
        for other in nodes.values():
            if node in other.children:
                other.children.remove(node)
        roots.append(node)
        stack = [node]
        while stack:
            current = stack.pop()
            reachable.add(current.record.id)
            stack.extend(current.children)

    return roots


@log_perf
def flatten_hierarchy(records: Sequence[Record], expanded_row_ids: Collection[str]) -> list[ViewRow]:
    """Flatten records into display rows.

    Args:
        records: Filtered (and optionally sorted) records
        expanded_row_ids: Ids whose children should be shown

    Returns:
        Rows in display order with depth, has_children and is_expanded set
    """
    expanded = set(expanded_row_ids)
    rows: list[ViewRow] = []
    for root in build_forest(records):
        for node, depth in root.iter_preorder(expanded):
            rows.append(
                ViewRow(
                    row_id=node.record.id,
                    record=node.record,
                    depth=depth,
                    has_children=node.has_children,
                    is_expanded=node.record.id in expanded,
                )
            )
    return rows


def toggle_expand(expanded_row_ids: Sequence[str], row_id: str) -> tuple[str, ...]:
    """Flip membership of row_id; toggling twice restores the original set."""
    if row_id in expanded_row_ids:
        return tuple(r for r in expanded_row_ids if r != row_id)
    return (*expanded_row_ids, row_id)
