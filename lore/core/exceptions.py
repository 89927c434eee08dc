"""Custom exceptions for lore operations."""


class LoreError(Exception):
    """Base exception for lore operations."""
    pass


class NotFoundError(LoreError):
    """Raised when a referenced entity does not exist."""
    pass


class NodeNotFoundError(NotFoundError):
    """Raised when a node is not found."""
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' not found in graph")


class ItemNotFoundError(NotFoundError):
    """Raised when an item is not found in the item store."""
    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"No {kind} with id '{item_id}'")


class InvalidInputError(LoreError):
    """Raised for out-of-range arguments or unknown vocabulary."""
    def __init__(self, message: str, field: str | None = None, value=None):
        self.field = field
        self.value = value
        super().__init__(message)


class SourceUnavailableError(LoreError):
    """Raised when a data source cannot be read. Always recovered by the caller."""
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Source '{source}' unavailable: {reason}")


class ThresholdExceededError(LoreError):
    """Raised when a guard threshold trips."""
    def __init__(self, message: str, threshold: float, entry_ids: list[str]):
        self.threshold = threshold
        self.entry_ids = entry_ids
        super().__init__(message)


class DuplicateEntryError(ThresholdExceededError):
    """Raised when a write is a near-duplicate of an active entry."""
    def __init__(self, kind: str, threshold: float, matches: list):
        self.kind = kind
        self.matches = matches
        entry_ids = [m.entry_id for m in matches]
        listed = ", ".join(f"{m.entry_id} ({m.similarity:.0%})" for m in matches)
        super().__init__(
            f"Possible duplicate {kind}: {listed} at threshold {threshold:.2f}. Use force to write anyway.",
            threshold,
            entry_ids,
        )
