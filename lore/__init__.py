"""Persistent memory retrieval for stateless agent sessions."""

__version__ = "0.3.0"
