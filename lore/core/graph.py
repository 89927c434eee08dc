"""
Graph traversal over a loaded snapshot.

The engine indexes the snapshot once (node id -> integer slot) and keeps
adjacency lists per slot, so neighbor lookup never rescans the edge list.
It never mutates the snapshot.

Neighbor views used by the traversals:

- directed:   out-edges, then in-edges flagged bidirectional (bfs, dfs)
- undirected: out-edges, then in-edges, first occurrence wins
              (shortest_path, related, clusters, path_with_edges)
"""

import logging
from collections import deque
from dataclasses import dataclass

from .constants import MAX_WALK_DEPTH
from .exceptions import InvalidInputError, NodeNotFoundError
from .types import Edge, GraphSnapshot, Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraversalStep:
    node: str
    depth: int


@dataclass(frozen=True)
class RelatedNode:
    node: Node
    hops: int


@dataclass(frozen=True)
class Degree:
    in_degree: int
    out_degree: int

    @property
    def total(self) -> int:
        return self.in_degree + self.out_degree

    def to_dict(self) -> dict:
        return {"in": self.in_degree, "out": self.out_degree, "total": self.total}


@dataclass(frozen=True)
class Hub:
    node: Node
    degree: int


@dataclass(frozen=True)
class PathStep:
    from_ref: str
    to: str
    relation: str
    weight: float


@dataclass(frozen=True)
class PathWithEdges:
    nodes: list[str]
    steps: list[PathStep]

    @property
    def found(self) -> bool:
        return bool(self.nodes)


@dataclass(frozen=True)
class EdgeHop:
    """One edge discovered during an annotated walk."""
    depth: int
    edge: Edge
    from_node: Node
    to_node: Node

    def render(self) -> str:
        indent = "  " * (self.depth - 1)
        return (
            f"{indent}[{self.from_node.type}] {self.from_node.name} → "
            f"{self.edge.relation} → [{self.to_node.type}] {self.to_node.name}"
        )


def _bound(value, name: str) -> int | None:
    """Normalize a depth/hop bound. None is unbounded; negatives clamp to 0."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}", field=name, value=value)
    return max(0, value)


class GraphEngine:
    """Structural queries over one graph snapshot."""

    def __init__(self, snapshot: GraphSnapshot):
        self.snapshot = snapshot
        self._ids: list[str] = list(snapshot.nodes)
        self._slot: dict[str, int] = {node_id: i for i, node_id in enumerate(self._ids)}

        # Per-slot adjacency: (neighbor slot, edge index), in edge-list order
        self._out: list[list[tuple[int, int]]] = [[] for _ in self._ids]
        self._in: list[list[tuple[int, int]]] = [[] for _ in self._ids]
        for index, edge in enumerate(snapshot.edges):
            src = self._slot[edge.from_ref]
            dst = self._slot[edge.to]
            self._out[src].append((dst, index))
            self._in[dst].append((src, index))

        logger.debug(f"Indexed graph: {len(self._ids)} nodes, {len(snapshot.edges)} edges")

    # ========================================================================
    # Internals
    # ========================================================================

    def _require(self, node_id: str) -> int:
        slot = self._slot.get(node_id)
        if slot is None:
            raise NodeNotFoundError(node_id)
        return slot

    def _directed_neighbors(self, slot: int) -> list[int]:
        neighbors = [dst for dst, _ in self._out[slot]]
        neighbors.extend(
            src for src, index in self._in[slot]
            if self.snapshot.edges[index].bidirectional
        )
        return neighbors

    def _undirected_neighbors(self, slot: int) -> list[int]:
        seen = set()
        neighbors = []
        for other, _ in self._out[slot] + self._in[slot]:
            if other not in seen:
                seen.add(other)
                neighbors.append(other)
        return neighbors

    def _bfs_slots(self, start: int, max_depth: int | None, neighbors) -> list[tuple[int, int]]:
        visited = {start}
        order = []
        queue = deque([(start, 0)])
        while queue:
            slot, depth = queue.popleft()
            order.append((slot, depth))
            if max_depth is not None and depth >= max_depth:
                continue
            for nxt in neighbors(slot):
                if nxt not in visited:
                    visited.add(nxt)
                    queue.append((nxt, depth + 1))
        return order

    def _path_slots(self, src: int, dst: int) -> list[int]:
        if src == dst:
            return [src]
        parent = {src: None}
        queue = deque([src])
        while queue:
            slot = queue.popleft()
            for nxt in self._undirected_neighbors(slot):
                if nxt in parent:
                    continue
                parent[nxt] = slot
                if nxt == dst:
                    path = [dst]
                    while parent[path[-1]] is not None:
                        path.append(parent[path[-1]])
                    return path[::-1]
                queue.append(nxt)
        return []

    # ========================================================================
    # Public API - Traversal
    # ========================================================================

    def bfs(self, start: str, max_depth: int | None = 10) -> list[TraversalStep]:
        """
        Breadth-first walk from start.

        Follows out-edges and bidirectional in-edges. Steps come out in
        first-visit order with non-decreasing depth.
        """
        bound = _bound(max_depth, "max_depth")
        slot = self._require(start)
        return [
            TraversalStep(self._ids[s], d)
            for s, d in self._bfs_slots(slot, bound, self._directed_neighbors)
        ]

    def dfs(self, start: str, max_depth: int | None = 10) -> list[TraversalStep]:
        """
        Pre-order depth-first walk from start over the same neighbor view as bfs.

        One visited set is shared across all branches, so a node reachable
        from two branches appears once, under the branch that reached it first.
        """
        bound = _bound(max_depth, "max_depth")
        slot = self._require(start)

        visited = {slot}
        order = [TraversalStep(start, 0)]
        stack = [(slot, 0, iter(self._directed_neighbors(slot)))]
        while stack:
            current, depth, pending = stack[-1]
            if bound is not None and depth >= bound:
                stack.pop()
                continue
            for nxt in pending:
                if nxt not in visited:
                    visited.add(nxt)
                    order.append(TraversalStep(self._ids[nxt], depth + 1))
                    stack.append((nxt, depth + 1, iter(self._directed_neighbors(nxt))))
                    break
            else:
                stack.pop()
        return order

    def shortest_path(self, from_ref: str, to_ref: str) -> list[str]:
        """
        Fewest-edges path, treating every edge as undirected.

        Returns [from_ref] when both ends are the same node and [] when no
        path exists.
        """
        src = self._require(from_ref)
        dst = self._require(to_ref)
        return [self._ids[s] for s in self._path_slots(src, dst)]

    def related(self, node_id: str, max_hops: int | None = 2) -> list[RelatedNode]:
        """Nodes within max_hops over the undirected view, nearest first, start excluded."""
        bound = _bound(max_hops, "max_hops")
        slot = self._require(node_id)
        found = [
            RelatedNode(self.snapshot.nodes[self._ids[s]], d)
            for s, d in self._bfs_slots(slot, bound, self._undirected_neighbors)
            if s != slot
        ]
        return sorted(found, key=lambda r: r.hops)

    def path_with_edges(self, from_ref: str, to_ref: str) -> PathWithEdges:
        """Shortest path plus the relation and weight linking each consecutive pair."""
        path = self.shortest_path(from_ref, to_ref)
        steps = []
        for a, b in zip(path, path[1:]):
            edge = self._edge_between(self._slot[a], self._slot[b])
            steps.append(PathStep(from_ref=a, to=b, relation=edge.relation, weight=edge.weight))
        return PathWithEdges(nodes=path, steps=steps)

    def _edge_between(self, a: int, b: int) -> Edge:
        candidates = [index for dst, index in self._out[a] if dst == b]
        candidates += [index for src, index in self._in[a] if src == b]
        return self.snapshot.edges[min(candidates)]

    # ========================================================================
    # Public API - Structure
    # ========================================================================

    def clusters(self) -> list[list[str]]:
        """
        Connected components over the undirected view.

        Every node lands in exactly one cluster; nodes without edges form
        singleton clusters.
        """
        seen: set[int] = set()
        result = []
        for slot in range(len(self._ids)):
            if slot in seen:
                continue
            component = self._bfs_slots(slot, None, self._undirected_neighbors)
            seen.update(s for s, _ in component)
            result.append([self._ids[s] for s, _ in component])
        return result

    def orphans(self) -> list[Node]:
        """Nodes that are neither endpoint of any edge."""
        return [
            self.snapshot.nodes[node_id]
            for slot, node_id in enumerate(self._ids)
            if not self._out[slot] and not self._in[slot]
        ]

    def degree(self, node_id: str) -> Degree:
        slot = self._require(node_id)
        return Degree(in_degree=len(self._in[slot]), out_degree=len(self._out[slot]))

    def hubs(self, limit: int = 10) -> list[Hub]:
        """Most connected nodes by total degree; ties broken by node id."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise InvalidInputError(f"limit must be a non-negative integer, got {limit!r}", field="limit", value=limit)
        ranked = sorted(
            range(len(self._ids)),
            key=lambda s: (-(len(self._in[s]) + len(self._out[s])), self._ids[s]),
        )
        return [
            Hub(self.snapshot.nodes[self._ids[s]], len(self._in[s]) + len(self._out[s]))
            for s in ranked[:limit]
        ]

    # ========================================================================
    # Public API - Graph-enhanced recall
    # ========================================================================

    def resolve(self, ref: str) -> str | None:
        """Node id for ref: exact id first, then case-insensitive name containment."""
        if not ref:
            return None
        if ref in self._slot:
            return ref
        needle = ref.lower()
        for node_id in self._ids:
            if needle in self.snapshot.nodes[node_id].name.lower():
                return node_id
        return None

    def find_by_type_and_name(self, node_type: str, name: str) -> Node | None:
        """First node of node_type whose name equals name, ignoring case."""
        wanted = name.lower()
        for node in self.snapshot.nodes.values():
            if node.type == node_type and node.name.lower() == wanted:
                return node
        return None

    def walk(self, ref: str, depth: int = 1) -> list[EdgeHop]:
        """
        Annotated BFS from a node id or name, recording each edge that
        discovers a new node. Outgoing edges are explored before incoming
        ones. Depth outside 1..3 yields nothing.
        """
        if isinstance(depth, bool) or not isinstance(depth, int):
            raise InvalidInputError(f"depth must be an integer, got {depth!r}", field="depth", value=depth)
        if depth < 1 or depth > MAX_WALK_DEPTH:
            return []
        start_id = self.resolve(ref)
        if start_id is None:
            return []

        nodes = self.snapshot.nodes
        start = self._slot[start_id]
        visited = {start}
        hops = []
        queue = deque([(start, 0)])
        while queue:
            slot, d = queue.popleft()
            if d >= depth:
                continue
            for nxt, index in self._out[slot] + self._in[slot]:
                if nxt in visited:
                    continue
                visited.add(nxt)
                queue.append((nxt, d + 1))
                edge = self.snapshot.edges[index]
                hops.append(EdgeHop(d + 1, edge, nodes[edge.from_ref], nodes[edge.to]))
        return hops
