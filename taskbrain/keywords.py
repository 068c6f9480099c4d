"""
Significant-keyword tokenizer used by conflict detection to compare
proposed changes against recorded decisions and wiki pages.

A significant keyword is a lowercase alphanumeric token of at least
MIN_KEYWORD_LENGTH characters that is not in STOP_WORDS.
"""

import re
from typing import FrozenSet, List

MIN_KEYWORD_LENGTH = 4

TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+")

STOP_WORDS: FrozenSet[str] = frozenset({
    "that", "this", "with", "from", "will", "have", "been", "were",
    "they", "them", "then", "than", "what", "when", "where", "which",
    "would", "could", "should", "shall", "about", "after", "before",
    "between", "into", "through", "during", "each", "also", "some",
    "other", "more", "there", "their", "these", "those", "being", "does",
    "done", "make", "made", "just", "only", "such", "like", "over",
    "under", "because",
})


def keyword_list(text: str) -> List[str]:
    """Significant keywords in first-seen order, without duplicates."""
    seen = set()
    keywords = []
    for token in TOKEN_SPLIT_RE.split(text.lower()):
        if len(token) < MIN_KEYWORD_LENGTH or token in STOP_WORDS:
            continue
        if token in seen:
            continue
        seen.add(token)
        keywords.append(token)
    return keywords


def significant_keywords(text: str) -> FrozenSet[str]:
    return frozenset(keyword_list(text))


def shared_keywords(left: str, right: str) -> List[str]:
    """Sorted intersection of the keyword sets of two texts."""
    return sorted(significant_keywords(left) & significant_keywords(right))
