"""Read-only graph store backed by a JSON graph document."""

import json
import logging
from pathlib import Path

from ..core import GraphSnapshot, SourceUnavailableError

logger = logging.getLogger(__name__)


class GraphFile:
    """Loads one consistent snapshot of the graph document per call."""

    def __init__(self, path: Path, strict: bool = False):
        self.path = path
        self.strict = strict

    def load_snapshot(self) -> GraphSnapshot:
        """
        Load the graph document. A missing file is an empty graph; an
        unreadable one raises SourceUnavailableError.
        """
        if not self.path.exists():
            logger.debug(f"No graph at {self.path}; using empty graph")
            return GraphSnapshot()

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load graph from {self.path}: {e}")
            raise SourceUnavailableError("graph", f"{self.path}: {e}") from e

        if not isinstance(data, dict):
            raise SourceUnavailableError("graph", f"{self.path}: expected a JSON object")

        snapshot = GraphSnapshot.from_document(data, strict=self.strict)
        logger.info(f"Loaded graph from {self.path}: {len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges")
        return snapshot
