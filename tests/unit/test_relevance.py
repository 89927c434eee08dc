"""
Unit tests for keyword extraction, scoring, entry rendering and budget selection.
"""

from datetime import date

import pytest

from lore.core import (
    BudgetSelector,
    CandidateItem,
    EntryRenderer,
    RelevanceScorer,
    ScoredMatch,
    extract_keywords,
    matches,
    round_half_up,
    tokenize,
)

TODAY = date(2024, 3, 31)


class TestKeywords:
    """Tests for tokenize, extract_keywords and matches."""

    def test_tokenize(self):
        assert tokenize("Use PostgreSQL, v2!") == ["use", "postgresql", "v2"]
        assert tokenize("") == []

    def test_drops_stop_words_and_short_tokens(self):
        keywords = extract_keywords("How should we fix the retry logic in the retry loop?")
        assert keywords == ["fix", "retry", "logic", "loop"]

    def test_keeps_input_order_and_limit(self):
        text = "alpha beta gamma delta epsilon zeta theta iota kappa lambda"
        assert extract_keywords(text) == ["alpha", "beta", "gamma", "delta", "epsilon", "zeta", "theta", "iota"]
        assert extract_keywords(text, limit=2) == ["alpha", "beta"]

    def test_repeated_words_do_not_use_up_the_limit(self):
        text = "retry retry retry retry retry retry retry retry backoff jitter"
        assert extract_keywords(text) == ["retry", "backoff", "jitter"]

    def test_minimum_length(self):
        assert extract_keywords("db io api") == ["api"]

    def test_matches_keyword_substring(self):
        assert matches("Retry with backoff", None, ["retry"])
        assert not matches("Retry with backoff", None, ["cache"])

    def test_matches_project_name(self):
        assert matches("notes about Lore storage", "lore", [])
        assert not matches("notes", None, [])


class TestScorer:
    """Tests for RelevanceScorer."""

    def test_unpinned_scorer_follows_the_calendar(self):
        assert RelevanceScorer().today == date.today()
        assert RelevanceScorer(today=TODAY).today == TODAY

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2

    def test_confidence_and_decay_combine(self):
        """0.8 confidence and 30 days of age score 40."""
        item = CandidateItem.from_record("pattern", {
            "id": "pat-1",
            "name": "Retry with backoff",
            "solution": "Exponential backoff",
            "confidence": 0.8,
            "timestamp": "2024-03-01T09:30:00Z",
        })
        scorer = RelevanceScorer(today=TODAY)
        assert scorer.confidence_factor(item.confidence) == 80
        assert scorer.decay_factor(item.timestamp) == 50
        assert scorer.score(item) == 40

    @pytest.mark.parametrize("timestamp,expected", [
        ("2024-03-31T00:00:00Z", 100),
        ("2024-03-01", 50),
        ("2024-01-31", 33),
        (None, 100),
        ("not a date", 100),
        ("2024-05-01", 100),  # future dates clamp to age zero
    ])
    def test_decay_factor(self, timestamp, expected):
        assert RelevanceScorer(today=TODAY).decay_factor(timestamp) == expected

    def test_time_of_day_ignored(self):
        scorer = RelevanceScorer(today=TODAY)
        assert scorer.days_old("2024-03-30T23:59:59Z") == 1
        assert scorer.days_old("2024-03-30T00:00:01Z") == 1

    def test_decision_without_timestamp(self):
        item = CandidateItem.from_record("decision", {"id": "dec-1", "decision": "Use JSONL"})
        assert RelevanceScorer(today=TODAY).score(item) == 70

    def test_identical_inputs_identical_scores(self):
        record = {"id": "dec-1", "decision": "x", "confidence": 0.9, "timestamp": "2024-02-10"}
        a = CandidateItem.from_record("decision", record)
        b = CandidateItem.from_record("decision", dict(record))
        scorer = RelevanceScorer(today=TODAY)
        assert scorer.score(a) == scorer.score(b)


class TestEntryRenderer:
    """Tests for EntryRenderer."""

    def test_pattern(self):
        item = CandidateItem.from_record("pattern", {
            "id": "pat-1", "name": "Retry with backoff", "problem": "Flaky API",
            "solution": "Exponential backoff", "confidence": 0.8,
        })
        assert EntryRenderer.render(item) == (
            "\n[pattern] Retry with backoff (confidence: 0.8)"
            "\n  Problem: Flaky API"
            "\n  Solution: Exponential backoff\n"
        )

    def test_pattern_without_problem(self):
        item = CandidateItem.from_record("pattern", {"id": "pat-1", "name": "Pin deps", "solution": "Use a lockfile"})
        assert "Problem" not in EntryRenderer.render(item)

    def test_decision(self):
        item = CandidateItem.from_record("decision", {
            "id": "dec-1", "decision": "Use JSONL", "rationale": "append only",
            "timestamp": "2024-03-01T10:00:00Z",
        })
        assert EntryRenderer.render(item) == "\n[decision] dec-1 (2024-03-01)\n  Use JSONL -- append only\n"

    def test_handoff(self):
        item = CandidateItem.from_record("handoff", {
            "id": "session-9", "message": "Finish the retry tests", "ended_at": "2024-03-30T18:00:00Z",
        })
        assert EntryRenderer.render(item) == "\n[handoff] session-9 (2024-03-30)\n  Finish the retry tests\n"

    def test_frame(self):
        framed = EntryRenderer.frame("\nbody\n", 2)
        assert framed.startswith("--- lore context (auto-injected, 2 items) ---\n")
        assert framed.endswith("\n--- end lore context ---")

    def test_cost_is_length(self):
        assert EntryRenderer.cost("\nabc\n") == 5


def _match(item_id, score, size):
    item = CandidateItem(id=item_id, kind="observation", text=item_id, confidence=0.5)
    return ScoredMatch(item=item, entry_text="x" * size, score=score)


class TestBudgetSelector:
    """Tests for BudgetSelector."""

    def test_skips_overflow_and_keeps_scanning(self):
        selection = BudgetSelector().select(
            [_match("a", 90, 60), _match("b", 80, 50), _match("c", 70, 30)],
            budget=100,
        )
        assert [m.item.id for m in selection.selected] == ["a", "c"]
        assert [m.item.id for m in selection.skipped] == ["b"]
        assert selection.used_chars == 90

    def test_highest_score_first(self):
        selection = BudgetSelector().select([_match("low", 10, 5), _match("high", 99, 5)], budget=100)
        assert [m.item.id for m in selection.selected] == ["high", "low"]

    def test_ties_keep_discovery_order(self):
        selection = BudgetSelector().select([_match("first", 50, 5), _match("second", 50, 5)], budget=100)
        assert [m.item.id for m in selection.selected] == ["first", "second"]

    def test_exact_fit(self):
        selection = BudgetSelector().select([_match("a", 50, 100)], budget=100)
        assert selection.used_chars == 100

    def test_zero_budget(self):
        selection = BudgetSelector().select([_match("a", 50, 1)], budget=0)
        assert selection.selected == []
        assert selection.body == ""

    def test_body_concatenates_selected(self):
        matches_ = [
            ScoredMatch(CandidateItem(id="a", kind="observation", text="", confidence=0.5), "\nA\n", 2),
            ScoredMatch(CandidateItem(id="b", kind="observation", text="", confidence=0.5), "\nB\n", 1),
        ]
        assert BudgetSelector().select(matches_, budget=100).body == "\nA\n\nB\n"
