"""Keyword extraction and substring matching for retrieval."""

import re

from .constants import MAX_KEYWORDS, MIN_KEYWORD_LENGTH, STOP_WORDS

_NON_ALNUM = re.compile(r"[^0-9a-z]+")


def tokenize(text: str) -> list[str]:
    """Lower-cased alphanumeric runs, in order."""
    return [t for t in _NON_ALNUM.split((text or "").lower()) if t]


def extract_keywords(text: str, limit: int = MAX_KEYWORDS,
                     min_length: int = MIN_KEYWORD_LENGTH) -> list[str]:
    """
    First `limit` meaningful tokens of text, in input order.

    Tokens shorter than min_length and stop words are dropped. Order is
    positional, not by frequency, so early-mentioned terms win.
    """
    keywords: list[str] = []
    for token in tokenize(text):
        if len(keywords) >= limit:
            break
        if len(token) < min_length or token in STOP_WORDS or token in keywords:
            continue
        keywords.append(token)
    return keywords


def matches(searchable: str, project: str | None, keywords: list[str]) -> bool:
    """Substring containment of the project name or any keyword."""
    haystack = (searchable or "").lower()
    if project and project.lower() in haystack:
        return True
    return any(kw in haystack for kw in keywords)
