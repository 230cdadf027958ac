from __future__ import annotations

from typing import Dict, Iterator, List, Sequence, Tuple

from .errors import DuplicateFieldError
from .model import FieldNode


def _scopes(nodes: Sequence[FieldNode]) -> Iterator[Sequence[FieldNode]]:
    """Yield the root scope and then every node's child list, depth-first."""

    pending: List[Sequence[FieldNode]] = [nodes]
    while pending:
        scope = pending.pop()
        yield scope
        for node in reversed(scope):
            if node.children:
                pending.append(node.children)


def _named(scope: Sequence[FieldNode]) -> Iterator[FieldNode]:
    for node in scope:
        if node.is_marker or not node.identifier:
            continue
        yield node


class UniquenessGuard:
    """Identifiers must be unique among siblings; unrelated scopes may reuse a name."""

    def check(self, nodes: Sequence[FieldNode]) -> None:
        for scope in _scopes(nodes):
            seen: Dict[str, FieldNode] = {}
            for node in _named(scope):
                first = seen.get(node.identifier)
                if first is not None:
                    raise DuplicateFieldError(
                        node.identifier,
                        first_row=first.source.row_index,
                        section=node.source.sheet_name,
                        row=node.source.row_index,
                        field_name=node.raw_name,
                    )
                seen[node.identifier] = node


def find_duplicates(nodes: Sequence[FieldNode]) -> List[Tuple[str, List[FieldNode]]]:
    """Every scope-local duplicate identifier with all colliding nodes, without raising."""

    report: List[Tuple[str, List[FieldNode]]] = []
    for scope in _scopes(nodes):
        by_name: Dict[str, List[FieldNode]] = {}
        for node in _named(scope):
            by_name.setdefault(node.identifier, []).append(node)
        report.extend((name, group) for name, group in by_name.items() if len(group) > 1)
    return report
