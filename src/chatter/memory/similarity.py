"""Lexical similarity used for relation building and retrieval ranking."""

from .types import Memory

TAG_MATCH_BONUS = 0.1


def tokenize(text: str) -> set[str]:
    """Lower-cased whitespace-separated word set."""
    return {word.lower() for word in text.split()}


def similarity(a: str, b: str) -> float:
    """Jaccard index of the two word sets; 0.0 when both are empty."""
    words_a = tokenize(a)
    words_b = tokenize(b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def relevance(memory: Memory, query: str) -> float:
    """Content similarity plus a bonus for each tag mentioned in the query."""
    query_lower = query.lower()
    tag_matches = sum(1 for tag in memory.tags if tag.lower() in query_lower)
    return similarity(memory.content, query) + tag_matches * TAG_MATCH_BONUS
