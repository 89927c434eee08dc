"""Type definitions for the lore graph and item model."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .constants import (
    ACTIVE_STATUS,
    CONFIDENCE_PRIORS,
    ITEM_KINDS,
    NODE_TYPES,
    RELATIONS,
)
from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Node:
    """Node in the knowledge graph."""
    id: str
    type: str
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "payload": self.payload,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class Edge:
    """Edge in the knowledge graph. Corrections are new edges, never updates."""
    from_ref: str  # 'from' is reserved
    to: str
    relation: str
    weight: float = 1.0
    bidirectional: bool = False
    created_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "from": self.from_ref,
            "to": self.to,
            "relation": self.relation,
            "weight": self.weight,
            "bidirectional": self.bidirectional,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class GraphSnapshot:
    """
    One consistent view of the graph store.

    Nodes keep document order; edges keep list order. Every traversal
    tie-break that says "first" refers to these orders.
    """
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: tuple[Edge, ...] = ()

    @classmethod
    def build(cls, nodes: list[Node], edges: list[Edge], strict: bool = True) -> "GraphSnapshot":
        """Validate nodes and edges into a snapshot."""
        by_id: dict[str, Node] = {}
        for node in nodes:
            problem = None
            if node.type not in NODE_TYPES:
                problem = f"Invalid node type '{node.type}' for '{node.id}'. Valid types: {', '.join(NODE_TYPES)}"
            elif node.id in by_id:
                problem = f"Duplicate node id '{node.id}'"
            if problem:
                if strict:
                    raise InvalidInputError(problem, field="node", value=node.id)
                logger.warning(f"Skipping node: {problem}")
                continue
            by_id[node.id] = node

        kept: list[Edge] = []
        for edge in edges:
            problem = None
            if edge.relation not in RELATIONS:
                problem = f"Invalid edge type '{edge.relation}'. Valid types: {', '.join(RELATIONS)}"
            elif not 0.0 <= edge.weight <= 1.0:
                problem = f"Edge weight {edge.weight} outside [0, 1]"
            elif edge.from_ref not in by_id:
                problem = f"Source node '{edge.from_ref}' not found"
            elif edge.to not in by_id:
                problem = f"Target node '{edge.to}' not found"
            if problem:
                if strict:
                    raise InvalidInputError(problem, field="edge", value=f"{edge.from_ref}->{edge.to}")
                logger.warning(f"Skipping edge {edge.from_ref} -> {edge.to}: {problem}")
                continue
            kept.append(edge)

        return cls(nodes=by_id, edges=tuple(kept))

    @classmethod
    def from_document(cls, data: dict, strict: bool = True) -> "GraphSnapshot":
        """
        Build a snapshot from the JSON graph document shape:

            {"nodes": {id: {type, name, data, created_at, updated_at}},
             "edges": [{from, to, relation, weight, bidirectional, created_at}]}
        """
        nodes = []
        for node_id, raw in (data.get("nodes") or {}).items():
            nodes.append(Node(
                id=node_id,
                type=raw.get("type", ""),
                name=raw.get("name", node_id),
                payload=dict(raw.get("data") or {}),
                created_at=raw.get("created_at"),
                updated_at=raw.get("updated_at"),
            ))

        edges = []
        for raw in data.get("edges") or []:
            try:
                weight = float(raw.get("weight", 1.0))
            except (TypeError, ValueError):
                weight = -1.0  # rejected by build()
            edges.append(Edge(
                from_ref=raw.get("from", ""),
                to=raw.get("to", ""),
                relation=raw.get("relation", ""),
                weight=weight,
                bidirectional=bool(raw.get("bidirectional", False)),
                created_at=raw.get("created_at"),
            ))

        return cls.build(nodes, edges, strict=strict)


def parse_date(timestamp: str | None) -> date | None:
    """Date portion of an ISO-8601 timestamp, or None when absent or unparseable."""
    if not timestamp or not isinstance(timestamp, str):
        return None
    try:
        return date.fromisoformat(timestamp.strip().split("T")[0][:10])
    except ValueError:
        return None


def _clamp_confidence(value: Any, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    return min(1.0, max(0.0, confidence))


@dataclass(frozen=True)
class CandidateItem:
    """A stored memory record eligible for retrieval. Read-only to the core."""
    id: str
    kind: str
    text: str
    confidence: float
    timestamp: str | None = None
    title: str = ""
    detail: str = ""
    status: str = ACTIVE_STATUS
    outcome: str | None = None
    project: str | None = None
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE_STATUS

    @property
    def comparable_text(self) -> str:
        """Title and rationale/solution, the text the duplicate guard compares."""
        return f"{self.title} {self.detail}".strip()

    @classmethod
    def from_record(cls, kind: str, record: dict) -> "CandidateItem":
        """
        Normalize a raw store record. Confidence priors are applied here,
        once, so downstream scoring never re-derives defaults.
        """
        if kind not in ITEM_KINDS:
            raise InvalidInputError(
                f"Unknown item kind '{kind}'. Valid kinds: {', '.join(ITEM_KINDS)}",
                field="kind", value=kind,
            )

        confidence = _clamp_confidence(record.get("confidence"), CONFIDENCE_PRIORS[kind])
        status = record.get("status") or ACTIVE_STATUS
        extra: dict[str, str] = {}

        if kind == "decision":
            title = record.get("decision", "") or ""
            detail = record.get("rationale", "") or ""
            timestamp = record.get("timestamp")
            text = f"{title} {detail}"
        elif kind == "pattern":
            title = record.get("name", "") or ""
            problem = record.get("problem", "") or ""
            solution = record.get("solution", "") or ""
            context = record.get("context", "") or ""
            detail = solution
            extra = {"problem": problem, "solution": solution, "context": context}
            timestamp = record.get("timestamp") or record.get("created_at")
            text = f"{title} {context} {problem} {solution}"
        elif kind == "handoff":
            handoff = record.get("handoff") or {}
            title = record.get("id", "") or ""
            detail = record.get("message") or handoff.get("message", "") or ""
            timestamp = record.get("ended_at") or record.get("timestamp")
            text = detail
        else:
            title = record.get("title", "") or ""
            detail = record.get("text") or record.get("content", "") or ""
            timestamp = record.get("timestamp")
            text = f"{title} {detail}"

        return cls(
            id=str(record.get("id", "")),
            kind=kind,
            text=text.strip(),
            confidence=confidence,
            timestamp=timestamp,
            title=title,
            detail=detail,
            status=status,
            outcome=record.get("outcome"),
            project=record.get("project"),
            extra=extra,
        )


@dataclass(frozen=True)
class ScoredMatch:
    """A matched candidate with its rendered entry and integer score."""
    item: CandidateItem
    entry_text: str
    score: int
    source: str = ""
