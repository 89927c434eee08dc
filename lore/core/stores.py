"""Collaborator interfaces the core reads from."""

from typing import Protocol

from .types import CandidateItem, GraphSnapshot


class ItemStore(Protocol):
    """Append-only store of decisions, patterns, observations and handoffs."""

    def list_active(self, kind: str) -> list[CandidateItem]:
        """Latest record per id, restricted to status 'active', in first-seen order."""
        ...

    def get_latest(self, kind: str, item_id: str) -> CandidateItem | None:
        ...


class WritableItemStore(ItemStore, Protocol):

    def append(self, kind: str, record: dict) -> CandidateItem:
        ...


class GraphStore(Protocol):

    def load_snapshot(self) -> GraphSnapshot:
        ...
