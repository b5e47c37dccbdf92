"""Forest view over generation nodes linked by parent pointers."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator

from code_canvas.errors import GenerationNotFoundError
from code_canvas.types import GenerationKind, GenerationNode


class LineageTree:
    """Id index plus children index over a set of nodes.

    Nodes whose parent is absent from the set (a null parent, or a parent
    living in another thread) are treated as roots of this view.
    """

    def __init__(self, nodes: Iterable[GenerationNode]) -> None:
        self._nodes: dict[str, GenerationNode] = {}
        self._children: dict[str, list[str]] = defaultdict(list)
        for node in sorted(nodes, key=lambda n: n.created_at):
            self._nodes[node.id] = node
        for node in self._nodes.values():
            if node.parent_id is not None:
                self._children[node.parent_id].append(node.id)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def get(self, node_id: str) -> GenerationNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise GenerationNotFoundError(f"Generation not found: {node_id}") from None

    def roots(self) -> list[GenerationNode]:
        return [
            n for n in self._nodes.values() if n.parent_id is None or n.parent_id not in self._nodes
        ]

    def children(self, node_id: str) -> list[GenerationNode]:
        return [self._nodes[child] for child in self._children.get(node_id, [])]

    def ancestry(self, node_id: str) -> list[GenerationNode]:
        """Path from the view's root down to ``node_id`` (inclusive)."""
        chain = [self.get(node_id)]
        while chain[-1].parent_id in self._nodes:
            chain.append(self._nodes[chain[-1].parent_id])  # type: ignore[index]
        return list(reversed(chain))

    def descendants(self, node_id: str) -> Iterator[GenerationNode]:
        """Depth-first walk below ``node_id`` (exclusive)."""
        stack = list(reversed(self._children.get(node_id, [])))
        while stack:
            current = self._nodes[stack.pop()]
            yield current
            stack.extend(reversed(self._children.get(current.id, [])))

    def finals(self) -> list[GenerationNode]:
        return [n for n in self._nodes.values() if n.kind == GenerationKind.FINAL]

    def latest_final(self) -> GenerationNode | None:
        finals = self.finals()
        return finals[-1] if finals else None
