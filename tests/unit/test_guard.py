"""
Unit tests for the duplicate and contradiction guard.
"""

import pytest

from conftest import MemoryItemStore
from lore.core import (
    CandidateItem,
    DuplicateEntryError,
    DuplicateGuard,
    ThresholdExceededError,
    extract_entities,
    jaccard,
)


def _decision(item_id, decision, rationale="", **extra):
    return CandidateItem.from_record("decision", {"id": item_id, "decision": decision, "rationale": rationale, **extra})


class TestSimilarity:
    """Tests for jaccard and extract_entities."""

    def test_identical_text(self):
        assert jaccard("Use JSONL for storage", "use jsonl for STORAGE") == 1.0

    def test_abbreviated_name_counts_as_same_word(self):
        assert jaccard("Use PostgreSQL for storage", "Use Postgres for storage") >= 0.70

    def test_disjoint(self):
        assert jaccard("alpha beta", "gamma delta") == 0.0

    def test_empty(self):
        assert jaccard("", "") == 0.0

    def test_short_tokens_are_not_folded(self):
        assert jaccard("go", "gone") == 0.0

    def test_prefix_pairs_are_one_to_one(self):
        assert jaccard("Use test", "Use testing tests tester") == 0.5
        assert jaccard("Use test", "Use testing tests tester") < 0.70

    def test_order_does_not_matter(self):
        forward = jaccard("Adopt postgres", "Adopt postgresql postgresqlx")
        assert forward == jaccard("Adopt postgresql postgresqlx", "Adopt postgres")
        assert forward == pytest.approx(2 / 3)

    def test_prefix_words_fold_even_across_languages(self):
        assert jaccard("Use Java for backend services", "Use JavaScript for backend services") == 1.0

    def test_extract_entities(self):
        entities = extract_entities("Refactor `retry_loop` in src/net/client.py and call backoff() from Scheduler")
        assert {"retry_loop", "src/net/client.py", "backoff", "scheduler"} <= entities
        assert "refactor" not in entities


class TestDuplicates:
    """Tests for check_duplicates and gate."""

    def test_self_similarity(self):
        entry = _decision("dec-1", "Use JSONL for storage", "append only")
        found = DuplicateGuard().check_duplicates("Use JSONL for storage", "append only", [entry])
        assert [(s.entry_id, s.similarity) for s in found] == [("dec-1", 1.0)]

    def test_near_duplicate_blocks_write(self):
        entry = _decision("dec-1", "Use PostgreSQL for storage")
        with pytest.raises(DuplicateEntryError) as exc_info:
            DuplicateGuard().gate("decision", "Use Postgres for storage", "", [entry])
        error = exc_info.value
        assert isinstance(error, ThresholdExceededError)
        assert error.entry_ids == ["dec-1"]
        assert error.threshold == 0.70
        assert "dec-1" in str(error)
        assert "force" in str(error)

    def test_force_writes_anyway(self):
        entry = _decision("dec-1", "Use PostgreSQL for storage")
        report = DuplicateGuard().gate("decision", "Use Postgres for storage", "", [entry], force=True)
        assert report.forced
        assert not report.blocked
        assert [d.entry_id for d in report.duplicates] == ["dec-1"]

    def test_retracted_entries_never_block(self):
        entry = _decision("dec-1", "Use PostgreSQL for storage", status="retracted")
        report = DuplicateGuard().gate("decision", "Use PostgreSQL for storage", "", [entry])
        assert report.duplicates == []

    def test_most_similar_first(self):
        entries = [
            _decision("dec-1", "Use JSONL files for session storage today"),
            _decision("dec-2", "Use JSONL files for session storage"),
        ]
        found = DuplicateGuard().check_duplicates("Use JSONL files for session storage", "", entries)
        assert [s.entry_id for s in found] == ["dec-2", "dec-1"]

    def test_custom_threshold(self):
        entry = _decision("dec-1", "Use JSONL for storage of notes")
        assert DuplicateGuard(threshold=0.5).check_duplicates("Use JSONL for storage", "", [entry])
        assert not DuplicateGuard(threshold=0.95).check_duplicates("Use JSONL for storage", "", [entry])


class TestContradictions:
    """Tests for check_contradictions."""

    def test_different_choice_on_same_axis(self):
        entry = _decision("dec-1", "Use YAML for the config storage format", "human readable")
        report = DuplicateGuard().gate("decision", "Use JSON for the config storage format", "faster parsing", [entry])
        assert report.duplicates == []
        assert [(c.entry_id, c.reasons) for c in report.contradictions] == [("dec-1", ("choice",))]

    def test_negation(self):
        entry = _decision("dec-1", "Use caching for API responses", "latency win")
        warnings = DuplicateGuard().check_contradictions(
            "Do not use caching for API responses", "stale data risk", [entry],
        )
        assert [c.reasons for c in warnings] == [("polarity",)]

    def test_differing_outcome(self):
        entry = _decision("dec-1", "Adopt Redis for session cache", "memory pressure caused evictions", outcome="failed")
        warnings = DuplicateGuard().check_contradictions(
            "Adopt Redis for session cache", "it worked well under load", [entry], outcome="succeeded",
        )
        assert [c.reasons for c in warnings] == [("outcome",)]

    def test_pending_outcome_is_not_a_conflict(self):
        entry = _decision("dec-1", "Adopt Redis for session cache", "memory pressure caused evictions", outcome="failed")
        warnings = DuplicateGuard().check_contradictions(
            "Adopt Redis for session cache", "it worked well under load", [entry], outcome="pending",
        )
        assert warnings == []

    def test_appended_words_are_not_a_choice(self):
        entry = _decision("dec-1", "Retry failed uploads quickly in production", "saves retries")
        warnings = DuplicateGuard().check_contradictions(
            "Retry failed uploads in production nightly", "off-peak traffic", [entry],
        )
        assert warnings == []

    def test_choice_needs_the_same_slot(self):
        entry = _decision("dec-1", "Cache sessions in Redis", "fast")
        warnings = DuplicateGuard().check_contradictions("Cache sessions in Memcached", "simple", [entry])
        assert [c.reasons for c in warnings] == [("choice",)]

    def test_unrelated_entries(self):
        entry = _decision("dec-1", "Pin dependencies with a lockfile")
        assert DuplicateGuard().check_contradictions("Use YAML for config", "", [entry]) == []

    def test_contradictions_never_block(self):
        entry = _decision("dec-1", "Use YAML for the config storage format", "human readable")
        report = DuplicateGuard().gate("decision", "Use JSON for the config storage format", "faster parsing", [entry])
        assert not report.blocked
        assert report.to_dict()["contradictions"][0]["reasons"] == ["choice"]


class TestGuardedAppend:
    """Tests for guarded_append."""

    def test_unique_entry_is_written(self):
        store = MemoryItemStore()
        item, report = DuplicateGuard().guarded_append(store, "decision", {"decision": "Use JSONL for storage"})
        assert item.title == "Use JSONL for storage"
        assert len(store.list_active("decision")) == 1
        assert report.duplicates == []

    def test_duplicate_is_not_written(self):
        store = MemoryItemStore().add("decision", {"id": "dec-1", "decision": "Use PostgreSQL for storage"})
        with pytest.raises(DuplicateEntryError):
            DuplicateGuard().guarded_append(store, "decision", {"decision": "Use Postgres for storage"})
        assert len(store.list_active("decision")) == 1

    def test_forced_duplicate_is_written(self):
        store = MemoryItemStore().add("decision", {"id": "dec-1", "decision": "Use PostgreSQL for storage"})
        item, report = DuplicateGuard().guarded_append(
            store, "decision", {"decision": "Use Postgres for storage"}, force=True,
        )
        assert report.forced
        assert len(store.list_active("decision")) == 2

    def test_patterns_compare_name_and_solution(self):
        store = MemoryItemStore().add("pattern", {
            "id": "pat-1", "name": "Retry with backoff", "solution": "Exponential backoff with jitter",
        })
        with pytest.raises(DuplicateEntryError):
            DuplicateGuard().guarded_append(store, "pattern", {
                "name": "Retry with backoff", "solution": "Exponential backoff with jitter",
            })
