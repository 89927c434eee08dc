"""Rendering of retrieval entries and their character cost."""

from .constants import CONTEXT_FOOTER, CONTEXT_HEADER
from .types import CandidateItem


def _date_part(timestamp: str | None) -> str:
    return (timestamp or "").split("T")[0]


class EntryRenderer:
    """Renders candidates into the text blocks injected into a session."""

    @staticmethod
    def render(item: CandidateItem) -> str:
        """Render a single candidate. Every entry starts and ends with a newline."""
        if item.kind == "pattern":
            entry = f"\n[pattern] {item.title} (confidence: {item.confidence:g})"
            problem = item.extra.get("problem", "")
            if problem:
                entry += f"\n  Problem: {problem}"
            entry += f"\n  Solution: {item.extra.get('solution', item.detail)}\n"
            return entry

        if item.kind == "decision":
            entry = f"\n[decision] {item.id} ({_date_part(item.timestamp)})\n  {item.title}"
            if item.detail:
                entry += f" -- {item.detail}"
            return entry + "\n"

        if item.kind == "handoff":
            return f"\n[handoff] {item.id} ({_date_part(item.timestamp)})\n  {item.detail}\n"

        node_type = item.extra.get("node_type")
        if node_type:
            entry = f"\n[graph:{node_type}] {item.title}"
            via = " ".join(p for p in (item.extra.get("relation"), item.extra.get("anchor")) if p)
            if via:
                entry += f" ({via})"
            if item.detail:
                entry += f"\n  {item.detail}"
            return entry + "\n"

        entry = f"\n[observation] {item.id} ({_date_part(item.timestamp)})\n  {item.detail or item.title}"
        return entry + "\n"

    @staticmethod
    def cost(entry: str) -> int:
        """Character cost of an entry against the budget."""
        return len(entry)

    @staticmethod
    def frame(body: str, count: int) -> str:
        """Wrap selected entries with the context header and footer."""
        return f"{CONTEXT_HEADER.format(count=count)}\n{body}\n{CONTEXT_FOOTER}"
