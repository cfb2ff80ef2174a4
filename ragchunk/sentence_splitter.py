"""
Sentence Splitter for the Chunking Engine

Regex-based sentence boundary detection that reports exact character
offsets, so assemblers can cut verbatim slices of the source text instead
of re-joining normalised sentences.

Design:
- Split after sentence-ending punctuation followed by whitespace and a
  character that is not lowercase (CJK terminators need no whitespace)
- Protect abbreviations from the active language profile, multi-part
  abbreviations (e.g., z.B.), ordinals (3.) and paragraph references
- Blank lines always end a sentence; so do line breaks next to headers,
  list items, table rows and code fences
- No external NLP dependencies

Usage:
    from ragchunk.sentence_splitter import split_sentences, split_sentence_spans

    split_sentences("Dr. Smith arrived. He sat down.")
    # ["Dr. Smith arrived.", "He sat down."]
    split_sentence_spans("One. Two.")
    # [(0, 4), (5, 9)]
"""

import re
from typing import Optional

from .languages import ENGLISH, LanguageProfile
from .text_utils import is_structural_line

# Placeholder character used to protect dots from sentence splitting.
# Single character, so offsets in the protected text match the source.
_DOT_PLACEHOLDER = "\x00"

# Multi-part abbreviations: e.g., i.e., z.B., d.h., u.a.
_MULTI_ABBREV_PATTERN = re.compile(
    r"\b[a-zA-ZäöüÄÖÜ]\.(?:[a-zA-ZäöüÄÖÜ]\.)+",
    re.UNICODE,
)

# Paragraph references: "§ 5 Abs. 2", "§ 12 Nr. 3"
_PARAGRAPH_REF_PATTERN = re.compile(
    r"§\s*\d+\s+(?:Abs|Nr|Satz)\.\s*\d+",
    re.IGNORECASE,
)

# Ordinals at line start or after whitespace: "1. ", "23. "
_ORDINAL_PATTERN = re.compile(r"(?:^|(?<=\s))\d{1,3}\.(?=[ \t])", re.MULTILINE)

_BLANK_LINE_PATTERN = re.compile(r"\n[ \t]*\n")

_CJK_TERMINATORS = frozenset("。！？")


def _protect(match: re.Match) -> str:
    return match.group().replace(".", _DOT_PLACEHOLDER)


def _protect_dots(text: str, profile: LanguageProfile) -> str:
    """Replace dots that do not end a sentence with same-length placeholders."""
    # Order matters: multi-part abbreviations first (z.B. before "B.")
    text = _MULTI_ABBREV_PATTERN.sub(_protect, text)
    text = _PARAGRAPH_REF_PATTERN.sub(_protect, text)
    if profile.abbreviation_pattern is not None:
        text = profile.abbreviation_pattern.sub(_protect, text)
    text = _ORDINAL_PATTERN.sub(_protect, text)
    return text


def _terminator_cuts(protected: str, profile: LanguageProfile) -> set[int]:
    cuts: set[int] = set()
    length = len(protected)
    for match in profile.terminator_pattern.finditer(protected):
        end = match.end()
        if end >= length:
            continue
        if any(ch in _CJK_TERMINATORS for ch in match.group()):
            cuts.add(end)
            continue
        if not protected[end].isspace():
            continue
        rest = protected[end:].lstrip()
        if rest and not rest[0].islower():
            cuts.add(end)
    return cuts


def _line_cuts(text: str) -> set[int]:
    """Cut positions at blank lines and around structural lines."""
    cuts = {m.start() for m in _BLANK_LINE_PATTERN.finditer(text)}

    line_start = 0
    prev_structural = False
    for line in text.split("\n"):
        structural = is_structural_line(line)
        if line_start > 0 and (structural or prev_structural):
            cuts.add(line_start - 1)
        prev_structural = structural
        line_start += len(line) + 1
    return cuts


def split_sentence_spans(
    text: str, profile: Optional[LanguageProfile] = None
) -> list[tuple[int, int]]:
    """
    Split text into sentence spans.

    Args:
        text: Input text.
        profile: Language profile supplying abbreviations and terminators
            (English if omitted).

    Returns:
        List of (start, end) offsets into ``text``. Each span starts and
        ends on non-whitespace; spans are ordered and never overlap.
    """
    if not text or not text.strip():
        return []
    profile = profile or ENGLISH

    protected = _protect_dots(text, profile)
    cuts = sorted(_terminator_cuts(protected, profile) | _line_cuts(text))
    cuts.append(len(text))

    spans: list[tuple[int, int]] = []
    start = 0
    for cut in cuts:
        segment = text[start:cut]
        stripped = segment.strip()
        if stripped:
            seg_start = start + (len(segment) - len(segment.lstrip()))
            spans.append((seg_start, seg_start + len(stripped)))
        start = cut
    return spans


def split_sentences(
    text: str, profile: Optional[LanguageProfile] = None
) -> list[str]:
    """
    Split text into sentence strings.

    Args:
        text: Input text to split into sentences.
        profile: Language profile (English if omitted).

    Returns:
        List of sentence strings. Empty/whitespace input returns empty list.
        Each sentence is stripped of leading/trailing whitespace.
    """
    if not text or not text.strip():
        return []
    return [text[s:e] for s, e in split_sentence_spans(text, profile)]
