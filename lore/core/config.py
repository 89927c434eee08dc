"""Configuration for lore retrieval and guard engines."""

import os
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    DUPLICATE_THRESHOLD,
    GRAPH_HOPS,
    INJECT_BUDGET,
    MAX_KEYWORDS,
    RETRIEVAL_MODES,
    SNAPSHOT_BUDGET,
    SOURCE_TIMEOUT_SECONDS,
)
from .exceptions import InvalidInputError

ITEM_FILES = {
    "decision": "decisions.jsonl",
    "pattern": "patterns.jsonl",
    "observation": "observations.jsonl",
    "handoff": "handoffs.jsonl",
}


@dataclass(frozen=True)
class LoreConfig:
    """Explicit engine configuration. Nothing in the core reads the environment."""
    data_dir: Path = Path.home() / ".lore"
    graph_path: Path | None = None
    workspace_root: Path | None = None
    fallback_project: str | None = None
    project_descriptor: str = ".lore-project"
    inject_budget: int = INJECT_BUDGET
    snapshot_budget: int = SNAPSHOT_BUDGET
    max_keywords: int = MAX_KEYWORDS
    duplicate_threshold: float = DUPLICATE_THRESHOLD
    source_timeout: float = SOURCE_TIMEOUT_SECONDS
    graph_hops: int = GRAPH_HOPS
    log_level: str = "INFO"

    def __post_init__(self):
        if self.inject_budget < 0 or self.snapshot_budget < 0:
            raise InvalidInputError("Budgets must be non-negative", field="budget")
        if not 0.0 < self.duplicate_threshold <= 1.0:
            raise InvalidInputError(
                f"Duplicate threshold {self.duplicate_threshold} outside (0, 1]",
                field="duplicate_threshold", value=self.duplicate_threshold,
            )
        if self.source_timeout <= 0:
            raise InvalidInputError("Source timeout must be positive", field="source_timeout")

    def graph_file(self) -> Path:
        return self.graph_path or self.data_dir / "graph" / "graph.json"

    def item_file(self, kind: str) -> Path:
        if kind not in ITEM_FILES:
            raise InvalidInputError(f"Unknown item kind '{kind}'", field="kind", value=kind)
        return self.data_dir / ITEM_FILES[kind]

    def budget_for(self, mode: str) -> int:
        if mode == "inject":
            return self.inject_budget
        if mode == "snapshot":
            return self.snapshot_budget
        raise InvalidInputError(
            f"Unknown retrieval mode '{mode}'. Valid modes: {', '.join(RETRIEVAL_MODES)}",
            field="mode", value=mode,
        )

    @classmethod
    def from_env(cls) -> "LoreConfig":
        """Create configuration from environment variables."""
        graph_path = os.getenv("LORE_GRAPH_PATH")
        workspace_root = os.getenv("LORE_WORKSPACE_ROOT")
        return cls(
            data_dir=Path(os.getenv("LORE_DIR", str(cls.data_dir))).expanduser(),
            graph_path=Path(graph_path).expanduser() if graph_path else None,
            workspace_root=Path(workspace_root).expanduser() if workspace_root else None,
            fallback_project=os.getenv("LORE_PROJECT") or None,
            project_descriptor=os.getenv("LORE_PROJECT_DESCRIPTOR", cls.project_descriptor),
            inject_budget=int(os.getenv("LORE_INJECT_BUDGET", str(INJECT_BUDGET))),
            snapshot_budget=int(os.getenv("LORE_SNAPSHOT_BUDGET", str(SNAPSHOT_BUDGET))),
            max_keywords=int(os.getenv("LORE_MAX_KEYWORDS", str(MAX_KEYWORDS))),
            duplicate_threshold=float(os.getenv("LORE_DUPLICATE_THRESHOLD", str(DUPLICATE_THRESHOLD))),
            source_timeout=float(os.getenv("LORE_SOURCE_TIMEOUT", str(SOURCE_TIMEOUT_SECONDS))),
            graph_hops=int(os.getenv("LORE_GRAPH_HOPS", str(GRAPH_HOPS))),
            log_level=os.getenv("LORE_LOG_LEVEL", "INFO").upper(),
        )
