"""
Shared text patterns and small lexical measures.

Every pattern here is compiled once at import time and never mutated, so
the stages that use them (scanner, evaluator, overlap manager, optimizer,
scorer) can run concurrently on independent documents.
"""

import re

# Markdown ATX headers: "## Title"
HEADER_PATTERN = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)
HEADER_LINE_PATTERN = re.compile(r"^#{1,6}\s+\S")

LIST_ITEM_PATTERN = re.compile(r"^[ \t]*(?:[-*+•]|\d+[.)])[ \t]+", re.MULTILINE)

BLANK_LINE_PATTERN = re.compile(r"\n\s*\n+")

SENTENCE_END_PATTERN = re.compile(r"[.!?]+(?:\s|$)")

CODE_FENCE = "```"

TABLE_START_MARKER = "<!-- TABLE_START -->"
TABLE_END_MARKER = "<!-- TABLE_END -->"

# "|---|:--:|" style separator rows
TABLE_SEPARATOR_PATTERN = re.compile(r"^\s*\|?\s*:?-{3,}|:-")

IMPORTANT_KEYWORD_PATTERN = re.compile(
    r"\b(?:important|key|summary|conclusion|note|warning|attention)\b"
    r"|중요|핵심|요약|결론|참고|주의|경고",
    re.IGNORECASE,
)

# Terminal characters of a complete sentence, optionally followed by a
# closing quote or bracket.
_COMPLETE_SENTENCE_PATTERN = re.compile(
    r"[.!?。！？][\"'\)\]»”’」』]*$"
)

_WORD_SPLIT_PATTERN = re.compile(r"\s+")


def is_table_marker(line: str) -> bool:
    stripped = line.strip()
    return stripped in (TABLE_START_MARKER, TABLE_END_MARKER)


def is_table_line(line: str) -> bool:
    """A table row has at least two pipes; explicit markers also count."""
    stripped = line.strip()
    if not stripped:
        return False
    return is_table_marker(stripped) or stripped.count("|") >= 2


def is_table_separator(line: str) -> bool:
    stripped = line.strip()
    return "|" in stripped and ("---" in stripped or ":-" in stripped)


def is_header_line(line: str) -> bool:
    return bool(HEADER_LINE_PATTERN.match(line.strip()))


def is_list_item(line: str) -> bool:
    return bool(LIST_ITEM_PATTERN.match(line))


def is_structural_line(line: str) -> bool:
    """Header, list item, table row or code fence."""
    stripped = line.strip()
    if not stripped:
        return False
    return (
        is_header_line(stripped)
        or is_list_item(line)
        or is_table_line(stripped)
        or stripped.startswith(CODE_FENCE)
    )


def count_table_rows(text: str) -> int:
    return sum(1 for line in text.split("\n") if line.strip().count("|") >= 2)


def is_table_text(text: str) -> bool:
    """True for text that is (or carries) a markdown table."""
    return TABLE_START_MARKER in text or count_table_rows(text) >= 3


def count_important_keywords(text: str) -> int:
    return len(IMPORTANT_KEYWORD_PATTERN.findall(text))


def has_important_keyword(text: str) -> bool:
    return bool(IMPORTANT_KEYWORD_PATTERN.search(text))


def is_complete_sentence(sentence: str) -> bool:
    return bool(_COMPLETE_SENTENCE_PATTERN.search(sentence.rstrip()))


def split_words(text: str) -> list[str]:
    return [w for w in _WORD_SPLIT_PATTERN.split(text) if w]


def content_words(text: str) -> list[str]:
    """Lowercased whitespace-separated words longer than three characters."""
    return [w for w in split_words(text.lower()) if len(w) > 3]


def unique_words(text: str) -> set[str]:
    return set(content_words(text))


def lexical_coherence(text: str) -> float:
    """Share of distinct content words that occur more than once."""
    words = content_words(text)
    if not words:
        return 0.0
    counts: dict[str, int] = {}
    for word in words:
        counts[word] = counts.get(word, 0) + 1
    repeated = sum(1 for count in counts.values() if count > 1)
    return repeated / len(counts)


def jaccard(a: set[str], b: set[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)
