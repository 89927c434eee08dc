"""Append-only item store backed by one JSONL file per kind."""

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

from ..core import ACTIVE_STATUS, CandidateItem, InvalidInputError, ItemNotFoundError, LoreConfig

logger = logging.getLogger(__name__)

ID_PREFIXES = {
    "decision": "dec",
    "pattern": "pat",
    "observation": "obs",
    "handoff": "session",
}


class JsonlItemStore:
    """
    Line-delimited records, one file per kind.

    Records are never rewritten: a correction is a new line with the same
    id, and the latest line for an id is its current value.
    """

    def __init__(self, config: LoreConfig):
        self.config = config

    def _path(self, kind: str) -> Path:
        return self.config.item_file(kind)

    def _records(self, kind: str) -> list[dict]:
        """Full-file snapshot of raw records, skipping unparseable lines."""
        path = self._path(kind)
        if not path.exists():
            return []

        records = []
        with open(path, "rb") as f:
            for line_no, raw in enumerate(f, 1):
                try:
                    line = raw.decode("utf-8").strip()
                    if not line:
                        continue
                    record = json.loads(line)
                except (UnicodeDecodeError, json.JSONDecodeError) as e:
                    logger.warning(f"Skipping malformed line {line_no} in {path}: {e}")
                    continue
                if isinstance(record, dict) and record.get("id"):
                    records.append(record)
        return records

    def _latest_by_id(self, kind: str) -> dict[str, dict]:
        latest: dict[str, dict] = {}
        for record in self._records(kind):
            latest[str(record["id"])] = record  # first-seen order, last value
        return latest

    # ========================================================================
    # Public API
    # ========================================================================

    def list_active(self, kind: str) -> list[CandidateItem]:
        items = [CandidateItem.from_record(kind, r) for r in self._latest_by_id(kind).values()]
        return [item for item in items if item.is_active]

    def get_latest(self, kind: str, item_id: str) -> CandidateItem | None:
        record = self._latest_by_id(kind).get(item_id)
        return CandidateItem.from_record(kind, record) if record else None

    def require(self, kind: str, item_id: str) -> CandidateItem:
        item = self.get_latest(kind, item_id)
        if item is None:
            raise ItemNotFoundError(kind, item_id)
        return item

    def append(self, kind: str, record: dict) -> CandidateItem:
        """
        Append one record as a single line. Fills in id, timestamp and
        status when absent. Returns the normalized item.
        """
        if kind not in ID_PREFIXES:
            raise InvalidInputError(f"Unknown item kind '{kind}'", field="kind", value=kind)

        record = dict(record)
        record.setdefault("id", f"{ID_PREFIXES[kind]}-{uuid.uuid4().hex[:8]}")
        record.setdefault("timestamp", datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"))
        record.setdefault("status", ACTIVE_STATUS)

        path = self._path(kind)
        path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(record, ensure_ascii=False) + "\n"

        with open(path, "a", encoding="utf-8") as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())

        logger.debug(f"Appended {kind} '{record['id']}' to {path}")
        return CandidateItem.from_record(kind, record)
