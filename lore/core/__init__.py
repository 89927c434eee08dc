"""Core lore components: graph engine, relevance/budget engine, write guard."""

from .types import Node, Edge, GraphSnapshot, CandidateItem, ScoredMatch, parse_date
from .constants import *
from .exceptions import *
from .config import LoreConfig
from .graph import GraphEngine, TraversalStep, RelatedNode, Degree, Hub, PathStep, PathWithEdges, EdgeHop
from .keywords import tokenize, extract_keywords, matches
from .scorer import RelevanceScorer, round_half_up
from .entries import EntryRenderer
from .budget import BudgetSelector, Selection
from .project import ProjectResolver
from .retrieval import RetrievalEngine, ContextBundle
from .guard import DuplicateGuard, GuardReport, SimilarEntry, ContradictionWarning, jaccard, extract_entities
from .stores import ItemStore, WritableItemStore, GraphStore

__all__ = [
    # Types
    "Node",
    "Edge",
    "GraphSnapshot",
    "CandidateItem",
    "ScoredMatch",
    "parse_date",
    # Constants
    "NODE_TYPES",
    "RELATIONS",
    "ITEM_KINDS",
    "CONFIDENCE_PRIORS",
    "STOP_WORDS",
    "MAX_KEYWORDS",
    "INJECT_BUDGET",
    "SNAPSHOT_BUDGET",
    "DUPLICATE_THRESHOLD",
    # Exceptions
    "LoreError",
    "NotFoundError",
    "NodeNotFoundError",
    "ItemNotFoundError",
    "InvalidInputError",
    "SourceUnavailableError",
    "ThresholdExceededError",
    "DuplicateEntryError",
    # Config
    "LoreConfig",
    # Graph
    "GraphEngine",
    "TraversalStep",
    "RelatedNode",
    "Degree",
    "Hub",
    "PathStep",
    "PathWithEdges",
    "EdgeHop",
    # Relevance & budget
    "tokenize",
    "extract_keywords",
    "matches",
    "RelevanceScorer",
    "round_half_up",
    "EntryRenderer",
    "BudgetSelector",
    "Selection",
    "ProjectResolver",
    "RetrievalEngine",
    "ContextBundle",
    # Guard
    "DuplicateGuard",
    "GuardReport",
    "SimilarEntry",
    "ContradictionWarning",
    "jaccard",
    "extract_entities",
    # Collaborator interfaces
    "ItemStore",
    "WritableItemStore",
    "GraphStore",
]
