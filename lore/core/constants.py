"""Constants for lore memory retrieval."""

# Graph vocabulary
NODE_TYPES = ("concept", "file", "decision", "lesson", "session", "project")
RELATIONS = ("relates_to", "implements", "learned_from", "affects", "depends_on", "related_to")

# Item kinds and their confidence priors
ITEM_KINDS = ("decision", "pattern", "observation", "handoff")
CONFIDENCE_PRIORS = {
    "pattern": 0.5,
    "decision": 0.7,
    "handoff": 0.9,
    "observation": 0.5,
}
ACTIVE_STATUS = "active"

# Keyword extraction
MAX_KEYWORDS = 8
MIN_KEYWORD_LENGTH = 3
STOP_WORDS = frozenset({
    "a", "the", "is", "to", "in", "for", "of", "on", "it", "do", "be", "has",
    "was", "are", "with", "that", "this", "from", "not", "but", "what", "why",
    "how", "can", "should", "would", "does", "i", "my", "we", "our", "you",
    "your",
})

# Scoring
DECAY_HALF_LIFE_DAYS = 30
MAX_SCORE = 100

# Budgets (characters)
INJECT_BUDGET = 1500
SNAPSHOT_BUDGET = 3000
RETRIEVAL_MODES = ("inject", "snapshot")

# Retrieval
SOURCE_TIMEOUT_SECONDS = 2.0
GRAPH_HOPS = 1
MAX_WALK_DEPTH = 3

# Duplicate / contradiction guard
DUPLICATE_THRESHOLD = 0.70
CONTRADICTION_AXIS_THRESHOLD = 0.5
CONTRADICTION_MIN_SHARED_ENTITIES = 2
PREFIX_FOLD_MIN_LENGTH = 4
NEGATION_WORDS = frozenset({"not", "never", "no", "avoid", "dont", "don", "stop", "without", "disable"})
NON_FINAL_OUTCOMES = frozenset({"", "pending", "unknown"})

# Rendering
CONTEXT_HEADER = "--- lore context (auto-injected, {count} items) ---"
CONTEXT_FOOTER = "--- end lore context ---"
