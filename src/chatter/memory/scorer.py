"""Heuristic scoring, classification and tagging of message content."""

import re
from typing import Iterable

from .types import MemoryType


# Keywords that make a message worth remembering
IMPORTANCE_KEYWORDS = (
    "重要", "记住", "不要忘记", "关键", "必须", "一定要",
    "姓名", "生日", "喜欢", "不喜欢", "偏好", "习惯",
    "important", "remember", "don't forget", "key", "must",
    "name", "birthday", "like", "dislike", "prefer", "habit",
)

EMPHASIS_CHARS = "?？!！"

# Checked in order, first match wins
TYPE_RULES = (
    (MemoryType.PREFERENCE, re.compile(
        r"喜欢|不喜欢|偏好|习惯|\b(?:likes?|dislikes?|prefers?|favou?rite|habits?)\b",
        re.IGNORECASE,
    )),
    (MemoryType.SKILL, re.compile(
        r"会|能够|技能|能力|\b(?:can|able to|skills?|ability)\b",
        re.IGNORECASE,
    )),
    (MemoryType.FACT, re.compile(
        r"是|叫|名字|生日|年龄|\b(?:is|am|are|called|name|birthday|age)\b",
        re.IGNORECASE,
    )),
)

TAG_KEYWORDS = {
    "personal": ("姓名", "年龄", "生日", "职业", "name", "age", "birthday", "job"),
    "preference": ("喜欢", "不喜欢", "偏好", "习惯", "like", "dislike", "prefer", "habit"),
    "skill": ("会", "能够", "技能", "能力", "can", "able to", "skill", "ability"),
    "emotion": ("开心", "难过", "生气", "兴奋", "happy", "sad", "angry", "excited"),
    "plan": ("计划", "打算", "准备", "想要", "plan", "going to", "intend", "want to"),
}

_word_patterns: dict[str, re.Pattern] = {}


def contains_keyword(content: str, keyword: str) -> bool:
    """
    Check whether content mentions keyword.

    ASCII keywords match case-insensitively on word boundaries so that
    "like" does not fire inside "likely"; everything else is a plain
    substring check (CJK text has no word boundaries).
    """
    if not keyword.isascii():
        return keyword in content
    pattern = _word_patterns.get(keyword)
    if pattern is None:
        pattern = re.compile(r"\b" + re.escape(keyword) + r"\b", re.IGNORECASE)
        _word_patterns[keyword] = pattern
    return pattern.search(content) is not None


class MemoryScorer:
    """
    Pure heuristics applied to a message before it becomes a memory.

    All methods are deterministic and never touch storage.
    """

    def __init__(
        self,
        max_content_length: int = 200,
        keywords: Iterable[str] = IMPORTANCE_KEYWORDS,
    ):
        self.max_content_length = max_content_length
        self.keywords = tuple(keywords)

    def compute_importance(self, content: str) -> float:
        """
        Estimate how worth-retaining a message is.

        Base 0.5, plus a length factor capped at 0.3, plus 0.1 per
        importance keyword present, plus 0.05 per question or
        exclamation mark. Clamped to [0, 1].
        """
        importance = 0.5

        importance += min(len(content) / 100, 0.3)

        keyword_count = sum(1 for kw in self.keywords if contains_keyword(content, kw))
        importance += keyword_count * 0.1

        punctuation_count = sum(1 for ch in content if ch in EMPHASIS_CHARS)
        importance += punctuation_count * 0.05

        return max(0.0, min(1.0, importance))

    def classify(self, content: str) -> MemoryType:
        """Classify content; preference beats skill beats fact."""
        for memory_type, pattern in TYPE_RULES:
            if pattern.search(content):
                return memory_type
        return MemoryType.CONVERSATION

    def extract_tags(self, content: str) -> list[str]:
        """Return every category with at least one keyword in content."""
        return [
            tag for tag, keywords in TAG_KEYWORDS.items()
            if any(contains_keyword(content, kw) for kw in keywords)
        ]

    def extract_key_content(self, content: str) -> str:
        if len(content) <= self.max_content_length:
            return content
        return content[:self.max_content_length] + "..."
