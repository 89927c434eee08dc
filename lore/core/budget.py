"""Budget-capped selection of scored matches."""

import logging
from dataclasses import dataclass, field

from .entries import EntryRenderer
from .types import ScoredMatch

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """Matches chosen under a character budget."""
    selected: list[ScoredMatch] = field(default_factory=list)
    skipped: list[ScoredMatch] = field(default_factory=list)
    used_chars: int = 0
    budget: int = 0

    @property
    def body(self) -> str:
        return "".join(m.entry_text for m in self.selected)


class BudgetSelector:
    """Handles budget-capped selection (best-effort bin-pack by score)."""

    def __init__(self, estimator: EntryRenderer | None = None):
        self.estimator = estimator or EntryRenderer()

    @staticmethod
    def rank(matches: list[ScoredMatch]) -> list[ScoredMatch]:
        """Highest score first; sorted() is stable so discovery order breaks ties."""
        return sorted(matches, key=lambda m: -m.score)

    def select(self, matches: list[ScoredMatch], budget: int) -> Selection:
        """
        Walk matches by descending score, keeping each entry that still fits.

        An entry that would overflow is skipped whole and the scan continues,
        so smaller lower-ranked entries can still fill the remaining space.
        """
        selection = Selection(budget=budget)

        for match in self.rank(matches):
            cost = self.estimator.cost(match.entry_text)
            if selection.used_chars + cost > budget:
                selection.skipped.append(match)
                logger.debug(f"Skipped {match.item.kind} '{match.item.id}' ({cost} chars, {selection.used_chars}/{budget} used)")
                continue
            selection.selected.append(match)
            selection.used_chars += cost

        logger.debug(
            f"Selected {len(selection.selected)}/{len(matches)} entries, "
            f"{selection.used_chars}/{budget} chars"
        )
        return selection
