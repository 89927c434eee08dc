"""File-backed collaborators for the lore core."""

from .graph_file import GraphFile
from .items import JsonlItemStore

__all__ = ["GraphFile", "JsonlItemStore"]
