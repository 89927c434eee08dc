"""
Budget-capped context retrieval.

A retrieval call resolves the project, extracts keywords from the prompt,
collects candidates from every source, keeps the ones that match, scores
them and packs the best into the character budget for the requested mode.

Each source is read under its own timeout. A source that raises or runs
past its timeout contributes nothing; the call never fails because of it.
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Callable

from .budget import BudgetSelector, Selection
from .config import LoreConfig
from .entries import EntryRenderer
from .exceptions import InvalidInputError, SourceUnavailableError
from .graph import GraphEngine
from .keywords import extract_keywords, matches
from .project import ProjectResolver
from .scorer import RelevanceScorer
from .stores import GraphStore, ItemStore
from .types import CandidateItem, ScoredMatch, parse_date

logger = logging.getLogger(__name__)


@dataclass
class ContextBundle:
    """Result of one retrieval call."""
    project: str | None
    mode: str
    budget: int
    keywords: list[str] = field(default_factory=list)
    selection: Selection | None = None
    candidate_count: int = 0
    match_count: int = 0
    unavailable_sources: list[str] = field(default_factory=list)

    @property
    def items_injected(self) -> int:
        return len(self.selection.selected) if self.selection else 0

    @property
    def chars_used(self) -> int:
        return self.selection.used_chars if self.selection else 0

    @property
    def injected(self) -> bool:
        return self.items_injected > 0

    @property
    def context(self) -> str:
        """Framed context text, or an empty string when nothing is injected."""
        if not self.injected:
            return ""
        return EntryRenderer.frame(self.selection.body, self.items_injected)

    @property
    def metadata(self) -> dict:
        return {
            "source": "lore",
            "mode": self.mode,
            "project": self.project,
            "items_injected": self.items_injected,
            "budget_used": self.chars_used,
            "budget_total": self.budget,
            "keywords": self.keywords,
            "candidates": self.candidate_count,
            "matched": self.match_count,
            "unavailable_sources": self.unavailable_sources,
        }

    def to_hook_output(self) -> dict | None:
        """Payload shaped for session hooks; None when there is nothing to inject."""
        if not self.injected:
            return None
        return {
            "hookSpecificOutput": {
                "additionalContext": self.context,
                "metadata": self.metadata,
            }
        }


class _SourceReader(threading.Thread):
    """Reads one source on a daemon thread so a hung source never blocks exit."""

    def __init__(self, source: str, reader: Callable[[str], list[CandidateItem]], project: str):
        super().__init__(name=f"lore-source-{source}", daemon=True)
        self.source = source
        self.reader = reader
        self.project = project
        self.items: list[CandidateItem] = []
        self.error: Exception | None = None

    def run(self):
        try:
            self.items = list(self.reader(self.project))
        except Exception as e:
            self.error = e


class RetrievalEngine:
    """Produces budget-capped, score-ordered context for a prompt."""

    def __init__(self, config: LoreConfig, items: ItemStore, graph: GraphStore | None = None,
                 today: date | None = None):
        self.config = config
        self.items = items
        self.graph = graph
        self.scorer = RelevanceScorer(today)
        self.renderer = EntryRenderer()
        self.selector = BudgetSelector(self.renderer)
        self.resolver = ProjectResolver(config)
        self._inflight: dict[str, _SourceReader] = {}
        self._lock = threading.Lock()

    # ========================================================================
    # Sources
    # ========================================================================

    def _patterns(self, project: str) -> list[CandidateItem]:
        return [p for p in self.items.list_active("pattern") if p.extra.get("solution")]

    def _decisions(self, project: str) -> list[CandidateItem]:
        return self.items.list_active("decision")

    def _handoff(self, project: str) -> list[CandidateItem]:
        handoffs = [h for h in self.items.list_active("handoff") if h.detail]
        if not handoffs:
            return []
        return [max(handoffs, key=lambda h: (parse_date(h.timestamp) or date.min, h.timestamp or ""))]

    def _graph(self, project: str) -> list[CandidateItem]:
        if self.graph is None or self.config.graph_hops <= 0:
            return []
        engine = GraphEngine(self.graph.load_snapshot())
        anchor = engine.find_by_type_and_name("project", project)
        anchor_id = anchor.id if anchor else engine.resolve(project)
        if anchor_id is None:
            return []

        anchor_name = engine.snapshot.nodes[anchor_id].name
        found = []
        for related in engine.related(anchor_id, self.config.graph_hops):
            node = related.node
            steps = engine.path_with_edges(anchor_id, node.id).steps
            summary = node.payload.get("summary") or node.payload.get("description") or ""
            item = CandidateItem.from_record("observation", {
                "id": node.id,
                "title": node.name,
                "text": summary,
                "confidence": node.payload.get("confidence"),
                "timestamp": node.updated_at or node.created_at,
            })
            found.append(replace(
                item,
                text=f"{item.text} {anchor_name}",
                extra={
                    "node_type": node.type,
                    "relation": steps[-1].relation if steps else "",
                    "anchor": anchor_name,
                },
            ))
        return found

    def _sources(self) -> list[tuple[str, Callable[[str], list[CandidateItem]]]]:
        return [
            ("patterns", self._patterns),
            ("decisions", self._decisions),
            ("handoff", self._handoff),
            ("graph", self._graph),
        ]

    def collect(self, project: str) -> tuple[list[tuple[str, CandidateItem]], list[str]]:
        """
        Read every source, each under its own timeout.

        A source whose previous reader has not finished is reported
        unavailable without starting another thread.

        Returns ([(source, item)] in source order, [unavailable source names]).
        """
        readers: list[tuple[str, _SourceReader | None]] = []
        with self._lock:
            for name, read in self._sources():
                previous = self._inflight.get(name)
                if previous is not None and previous.is_alive():
                    readers.append((name, None))
                    continue
                reader = _SourceReader(name, read, project)
                self._inflight[name] = reader
                reader.start()
                readers.append((name, reader))

        collected: list[tuple[str, CandidateItem]] = []
        unavailable: list[str] = []
        deadline = time.monotonic() + self.config.source_timeout

        for name, reader in readers:
            if reader is None:
                error = SourceUnavailableError(name, "previous read still running")
                logger.warning(str(error))
                unavailable.append(name)
                continue
            reader.join(max(0.0, deadline - time.monotonic()))
            if reader.is_alive():
                error = SourceUnavailableError(reader.source, f"no answer within {self.config.source_timeout}s")
            elif reader.error is not None:
                error = SourceUnavailableError(reader.source, str(reader.error))
            else:
                collected.extend((reader.source, item) for item in reader.items)
                continue
            logger.warning(str(error))
            unavailable.append(reader.source)

        return collected, unavailable

    # ========================================================================
    # Public API
    # ========================================================================

    def retrieve(self, prompt: str, cwd: Path | str | None = None, project: str | None = None,
                 mode: str = "inject", budget: int | None = None) -> ContextBundle:
        """Build the context bundle for a prompt. Never raises for source failures."""
        default_budget = self.config.budget_for(mode)
        if budget is None:
            budget = default_budget
        elif budget < 0:
            raise InvalidInputError(f"Budget must be non-negative, got {budget}", field="budget", value=budget)

        resolved = self.resolver.resolve(cwd, explicit=project)
        keywords = extract_keywords(prompt, limit=self.config.max_keywords)
        bundle = ContextBundle(project=resolved, mode=mode, budget=budget, keywords=keywords)

        if not resolved:
            logger.debug("No project resolved; nothing to inject")
            return bundle

        collected, bundle.unavailable_sources = self.collect(resolved)
        bundle.candidate_count = len(collected)

        seen_titles = {item.title.lower() for source, item in collected if source != "graph" and item.title}
        scored = []
        for source, item in collected:
            if source == "graph" and item.title.lower() in seen_titles:
                continue
            if not matches(f"{item.title} {item.text}", resolved, keywords):
                continue
            scored.append(ScoredMatch(
                item=item,
                entry_text=self.renderer.render(item),
                score=self.scorer.score(item),
                source=source,
            ))
        bundle.match_count = len(scored)

        if not scored:
            logger.debug(f"No matches for project '{resolved}' (keywords: {keywords})")
            return bundle

        bundle.selection = self.selector.select(scored, budget)
        logger.info(
            f"lore context for '{resolved}': {bundle.items_injected} items, "
            f"{bundle.chars_used}/{budget} chars"
        )
        return bundle
