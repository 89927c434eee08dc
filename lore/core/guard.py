"""
Near-duplicate and contradiction checks for decision/pattern writes.

Both checks compare only against active entries, so retracted or
superseded history can never block a legitimate re-decision.
"""

import logging
import re
from dataclasses import dataclass, field

from .constants import (
    CONTRADICTION_AXIS_THRESHOLD,
    CONTRADICTION_MIN_SHARED_ENTITIES,
    DUPLICATE_THRESHOLD,
    NEGATION_WORDS,
    NON_FINAL_OUTCOMES,
    PREFIX_FOLD_MIN_LENGTH,
)
from .exceptions import DuplicateEntryError
from .keywords import tokenize
from .stores import WritableItemStore
from .types import CandidateItem

logger = logging.getLogger(__name__)

_FILE_PATH = re.compile(r"[\w.-]*/[\w./-]+|\b\w+\.(?:py|rs|ts|js|sh|md|json|ya?ml|toml|go|java|rb|txt|sql)\b")
_FUNCTION = re.compile(r"\b([A-Za-z_]\w*)\(\)")
_BACKTICKED = re.compile(r"`([^`]+)`")
_CAPITALIZED = re.compile(r"\b[A-Z][A-Za-z0-9]+\b")


def _prefix_related(x: str, y: str) -> bool:
    if len(x) < PREFIX_FOLD_MIN_LENGTH or len(y) < PREFIX_FOLD_MIN_LENGTH:
        return False
    return x.startswith(y) or y.startswith(x)


def _unpaired(a: set[str], b: set[str]) -> tuple[set[str], set[str]]:
    """
    Tokens of a and of b left over after matching.

    Exact matches pair first. The remaining tokens pair one-to-one when one
    is a prefix of the other, so "postgres" and "postgresql" count as the
    same word but "test" can absorb only one of "testing", "tests" and
    "tester". The prefix pairing is a maximum matching, which makes the
    number of pairs independent of argument order.
    """
    left = sorted(a - b)
    right = sorted(b - a)
    partner: dict[str, str] = {}

    def augment(token: str, seen: set[str]) -> bool:
        for candidate in right:
            if candidate in seen or not _prefix_related(token, candidate):
                continue
            seen.add(candidate)
            if candidate not in partner or augment(partner[candidate], seen):
                partner[candidate] = token
                return True
        return False

    for token in left:
        augment(token, set())
    return set(left) - set(partner.values()), set(right) - set(partner)


def jaccard(text_a: str, text_b: str) -> float:
    """Intersection over union of the two texts' case-normalized token sets."""
    a = set(tokenize(text_a))
    b = set(tokenize(text_b))
    a_only, _ = _unpaired(a, b)
    paired = len(a) - len(a_only)
    union = len(a) + len(b) - paired
    if not union:
        return 0.0
    return paired / union


def extract_entities(text: str) -> set[str]:
    """File paths, function names, backticked terms and capitalized terms, lower-cased."""
    entities = set(_FILE_PATH.findall(text))
    entities.update(_FUNCTION.findall(text))
    entities.update(_BACKTICKED.findall(text))
    words = text.split()
    # the first word is capitalized by sentence position, not because it names anything
    body = text[len(words[0]):] if words else ""
    entities.update(_CAPITALIZED.findall(body))
    return {e.lower() for e in entities}


@dataclass(frozen=True)
class SimilarEntry:
    entry_id: str
    similarity: float
    text: str

    def to_dict(self) -> dict:
        return {"id": self.entry_id, "similarity": round(self.similarity, 4), "text": self.text[:80]}


@dataclass(frozen=True)
class ContradictionWarning:
    entry_id: str
    reasons: tuple[str, ...]
    similarity: float
    shared_entities: tuple[str, ...]
    text: str

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "reasons": list(self.reasons),
            "similarity": round(self.similarity, 4),
            "shared_entities": list(self.shared_entities),
            "text": self.text[:80],
        }


@dataclass
class GuardReport:
    kind: str
    duplicates: list[SimilarEntry] = field(default_factory=list)
    contradictions: list[ContradictionWarning] = field(default_factory=list)
    forced: bool = False

    @property
    def blocked(self) -> bool:
        return bool(self.duplicates) and not self.forced

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "blocked": self.blocked,
            "forced": self.forced,
            "duplicates": [d.to_dict() for d in self.duplicates],
            "contradictions": [c.to_dict() for c in self.contradictions],
        }


class DuplicateGuard:
    """Gates writes against near-duplicate and conflicting active entries."""

    def __init__(self, threshold: float = DUPLICATE_THRESHOLD,
                 axis_threshold: float = CONTRADICTION_AXIS_THRESHOLD,
                 min_shared_entities: int = CONTRADICTION_MIN_SHARED_ENTITIES):
        self.threshold = threshold
        self.axis_threshold = axis_threshold
        self.min_shared_entities = min_shared_entities

    def check_duplicates(self, title: str, body: str, entries: list[CandidateItem]) -> list[SimilarEntry]:
        """Active entries at or above the similarity threshold, most similar first."""
        content = f"{title} {body}".strip()
        found = []
        for entry in entries:
            if not entry.is_active:
                continue
            similarity = jaccard(content, entry.comparable_text)
            if similarity >= self.threshold:
                found.append(SimilarEntry(entry.id, similarity, entry.comparable_text))
        return sorted(found, key=lambda s: -s.similarity)

    def check_contradictions(self, title: str, body: str, entries: list[CandidateItem],
                             outcome: str | None = None) -> list[ContradictionWarning]:
        """
        Advisory pass: active entries about the same thing that disagree.

        "Same thing" means the titles overlap at the axis threshold or the
        texts share enough named entities. Disagreement is a differing final
        outcome, opposite negation, or a different word in the same slot of
        the title.
        """
        content = f"{title} {body}".strip()
        entities = extract_entities(content)
        title_seq = tokenize(title)
        title_tokens = set(title_seq)
        warnings = []

        for entry in entries:
            if not entry.is_active:
                continue
            similarity = jaccard(content, entry.comparable_text)
            if similarity >= self.threshold:
                continue  # duplicates are reported by check_duplicates

            shared = tuple(sorted(entities & extract_entities(entry.comparable_text)))
            axis = jaccard(title, entry.title)
            if axis < self.axis_threshold and len(shared) < self.min_shared_entities:
                continue

            entry_seq = tokenize(entry.title)
            entry_tokens = set(entry_seq)
            reasons = []
            if self._outcomes_differ(outcome, entry.outcome):
                reasons.append("outcome")
            if bool(title_tokens & NEGATION_WORDS) != bool(entry_tokens & NEGATION_WORDS):
                reasons.append("polarity")
            if self._swapped_choice(title_seq, entry_seq):
                reasons.append("choice")
            if reasons:
                warnings.append(ContradictionWarning(
                    entry.id, tuple(reasons), similarity, shared, entry.comparable_text,
                ))

        return warnings

    @staticmethod
    def _swapped_choice(title_seq: list[str], entry_seq: list[str]) -> bool:
        """True when an unmatched word of each title sits in the same slot, as in "Use YAML" vs "Use JSON"."""
        title_only, entry_only = _unpaired(set(title_seq), set(entry_seq))
        return any(
            t in title_only and e in entry_only
            for t, e in zip(title_seq, entry_seq)
        )

    @staticmethod
    def _outcomes_differ(a: str | None, b: str | None) -> bool:
        a = (a or "").lower()
        b = (b or "").lower()
        if a in NON_FINAL_OUTCOMES or b in NON_FINAL_OUTCOMES:
            return False
        return a != b

    def gate(self, kind: str, title: str, body: str, entries: list[CandidateItem],
             force: bool = False, outcome: str | None = None) -> GuardReport:
        """
        Run both checks. Raises DuplicateEntryError when duplicates exist and
        force is not set; contradictions only ever warn.
        """
        report = GuardReport(
            kind=kind,
            duplicates=self.check_duplicates(title, body, entries),
            contradictions=self.check_contradictions(title, body, entries, outcome),
            forced=force,
        )

        for warning in report.contradictions:
            logger.warning(
                f"Possible contradiction with {kind} '{warning.entry_id}' "
                f"({', '.join(warning.reasons)}; {warning.similarity:.0%} similar)"
            )

        if report.blocked:
            raise DuplicateEntryError(kind, self.threshold, report.duplicates)
        if report.duplicates:
            logger.info(f"Writing {kind} despite {len(report.duplicates)} duplicate(s) (forced)")
        return report

    def guarded_append(self, store: WritableItemStore, kind: str, record: dict,
                       force: bool = False) -> tuple[CandidateItem, GuardReport]:
        """Read active entries, gate, then append, as one step."""
        candidate = CandidateItem.from_record(kind, record)
        report = self.gate(
            kind,
            candidate.title,
            candidate.detail,
            store.list_active(kind),
            force=force,
            outcome=candidate.outcome,
        )
        return store.append(kind, record), report
