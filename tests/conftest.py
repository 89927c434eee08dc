"""
Pytest configuration and fixtures for lore tests.
"""

import os
import sys
from datetime import date
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

# Add project root to path so the lore package imports without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

# -----------------------------------------------------------------------------
# Hypothesis Profiles
# -----------------------------------------------------------------------------
# Usage: HYPOTHESIS_PROFILE=fast pytest tests/
#
#   fast   - 10 examples, no shrinking
#   dev    - 50 examples (default)
#   ci     - 100 examples, all phases
# -----------------------------------------------------------------------------

settings.register_profile(
    "fast",
    max_examples=10,
    phases=[Phase.generate],
    verbosity=Verbosity.quiet,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=50,
    phases=[Phase.generate, Phase.target, Phase.shrink],
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.generate, Phase.target, Phase.shrink, Phase.explain],
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))

from lore.core import (
    ITEM_KINDS,
    CandidateItem,
    Edge,
    GraphSnapshot,
    LoreConfig,
    Node,
)


TODAY = date(2024, 3, 31)


class MemoryItemStore:
    """In-memory item store with the same latest-by-id semantics as the JSONL store."""

    def __init__(self):
        self.records: dict[str, list[dict]] = {kind: [] for kind in ITEM_KINDS}

    def add(self, kind: str, record: dict) -> "MemoryItemStore":
        self.records[kind].append(dict(record))
        return self

    def _latest(self, kind: str) -> dict[str, dict]:
        latest = {}
        for record in self.records[kind]:
            latest[record["id"]] = record
        return latest

    def list_active(self, kind: str) -> list[CandidateItem]:
        items = [CandidateItem.from_record(kind, r) for r in self._latest(kind).values()]
        return [item for item in items if item.is_active]

    def get_latest(self, kind: str, item_id: str) -> CandidateItem | None:
        record = self._latest(kind).get(item_id)
        return CandidateItem.from_record(kind, record) if record else None

    def append(self, kind: str, record: dict) -> CandidateItem:
        record = dict(record)
        record.setdefault("id", f"{kind}-{len(self.records[kind]) + 1}")
        self.add(kind, record)
        return CandidateItem.from_record(kind, record)


class StaticGraph:
    """Graph store that hands back a fixed snapshot."""

    def __init__(self, snapshot: GraphSnapshot):
        self.snapshot = snapshot

    def load_snapshot(self) -> GraphSnapshot:
        return self.snapshot


def make_snapshot(nodes, edges=()) -> GraphSnapshot:
    """
    Build a snapshot from short tuples.

    nodes: "id" (a concept named id) or (id, type, name)
    edges: (from, to) or (from, to, relation) or (from, to, relation, bidirectional)
    """
    built_nodes = []
    for shape in nodes:
        if isinstance(shape, str):
            built_nodes.append(Node(id=shape, type="concept", name=shape))
        else:
            node_id, node_type, name = shape[:3]
            payload = shape[3] if len(shape) > 3 else {}
            built_nodes.append(Node(id=node_id, type=node_type, name=name, payload=payload))

    built_edges = []
    for shape in edges:
        relation = shape[2] if len(shape) > 2 else "relates_to"
        bidirectional = shape[3] if len(shape) > 3 else False
        built_edges.append(Edge(from_ref=shape[0], to=shape[1], relation=relation, bidirectional=bidirectional))

    return GraphSnapshot.build(built_nodes, built_edges)


@pytest.fixture
def item_store():
    """Empty in-memory item store."""
    return MemoryItemStore()


@pytest.fixture
def config(tmp_path):
    """Config rooted in a temporary data directory."""
    return LoreConfig(data_dir=tmp_path / "lore")


@pytest.fixture
def chain_graph():
    """a -> b -> c, directed, not bidirectional."""
    return make_snapshot(["a", "b", "c"], [("a", "b"), ("b", "c")])
