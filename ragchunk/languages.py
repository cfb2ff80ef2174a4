"""
Language Profiles

A language profile answers the few language-specific questions the engine
asks: where sentences end, which lines open a new section, which
abbreviations must not end a sentence, and which words carry no topic
signal. Profiles are immutable and shared freely between threads.

Built-in profiles: English (en), German (de), Korean (ko), Japanese (ja),
Chinese (zh). Unknown codes fall back to English.

Usage:
    from ragchunk.languages import default_provider

    profile = default_provider.resolve("auto", text)
    profile.ends_with_complete_sentence("It works.")   # True
    profile.is_section_marker("Kapitel 3 Ergebnisse")  # True for "de"
"""

import re
from typing import Iterable, Optional

from .logging_config import get_logger
from .text_utils import HEADER_LINE_PATTERN

logger = get_logger(__name__)

# Closing quotes/brackets that may trail a sentence terminator
_CLOSERS = "\"'\\)\\]}>»”’」』"

_LATIN_TERMINATORS = ".!?"
_CJK_TERMINATORS = ".!?。！？"


class LanguageProfile:
    """
    Sentence and section conventions of one language.

    Attributes:
        language_code: ISO 639-1 code
        language_name: English name of the language
        abbreviations: Lowercase abbreviations (without the dot)
        stop_words: Lowercase words ignored by keyword measures
        terminators: Characters that can end a sentence
    """

    def __init__(
        self,
        language_code: str,
        language_name: str,
        section_patterns: Iterable[str],
        abbreviations: Iterable[str] = (),
        stop_words: Iterable[str] = (),
        terminators: str = _LATIN_TERMINATORS,
    ):
        self.language_code = language_code
        self.language_name = language_name
        self.abbreviations = frozenset(a.lower() for a in abbreviations)
        self.stop_words = frozenset(w.lower() for w in stop_words)
        self.terminators = terminators
        self._section_patterns = tuple(
            re.compile(p) for p in section_patterns
        )
        escaped = re.escape(terminators)
        self.terminator_pattern = re.compile(f"[{escaped}]+[{_CLOSERS}]*")
        self._sentence_end_pattern = re.compile(f"[{escaped}]+[{_CLOSERS}]*$")
        self.abbreviation_pattern: Optional[re.Pattern] = None
        if self.abbreviations:
            alternatives = "|".join(
                re.escape(a) for a in sorted(self.abbreviations, key=len, reverse=True)
            )
            self.abbreviation_pattern = re.compile(
                r"(?<!\w)(?:" + alternatives + r")\.(?=\s)", re.IGNORECASE
            )

    def __repr__(self) -> str:
        return f"LanguageProfile({self.language_code!r})"

    def is_section_marker(self, line: str) -> bool:
        """True if ``line`` opens a new section (markdown or native marker)."""
        stripped = line.strip()
        if not stripped:
            return False
        if HEADER_LINE_PATTERN.match(stripped):
            return True
        return any(p.match(stripped) for p in self._section_patterns)

    def ends_with_complete_sentence(self, text: str) -> bool:
        """True if the last 50 characters end on a sentence terminator."""
        if not text or not text.strip():
            return False
        tail = text.rstrip()[-50:]
        return bool(self._sentence_end_pattern.search(tail))

    def is_stop_word(self, word: str) -> bool:
        return word.lower() in self.stop_words


# =============================================================================
# BUILT-IN PROFILES
# =============================================================================

_ENGLISH_STOP_WORDS = (
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "from", "as", "is", "was", "are", "were", "been", "being", "have",
    "has", "had", "do", "does", "did", "will", "would", "could", "should",
    "may", "might", "must", "can", "shall", "a", "an",
    # longer function words that survive the length filter
    "this", "that", "these", "those", "there", "their", "which", "when",
    "where", "what", "while", "also", "into", "than", "then", "them",
    "they", "about", "after", "before", "such", "some", "each",
)

ENGLISH = LanguageProfile(
    language_code="en",
    language_name="English",
    section_patterns=(
        r"^\d+(?:\.\d+)*\.?\s+[A-Z][^.!?]{0,80}$",
        r"^[A-Z]\.\s+[A-Z][^.!?]{0,80}$",
        r"^(?i:chapter|section|part)\s+[\dIVXLC]+\b",
    ),
    abbreviations=(
        "dr", "mr", "mrs", "ms", "prof", "sr", "jr", "st", "etc", "vs",
        "inc", "ltd", "co", "corp", "no", "fig", "approx", "dept", "est",
        "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept",
        "oct", "nov", "dec",
    ),
    stop_words=_ENGLISH_STOP_WORDS,
)

GERMAN = LanguageProfile(
    language_code="de",
    language_name="German",
    section_patterns=(
        r"^\d+(?:\.\d+)*\.?\s+[A-ZÄÖÜ][^.!?]{0,80}$",
        r"^(?i:kapitel|abschnitt|teil)\s+[\dIVXLC]+\b",
        r"^§\s*\d+",
        r"^(?i:anlage)\s+\d+",
    ),
    abbreviations=(
        "abs", "nr", "art", "lit", "bzw", "usw", "etc", "vgl", "ggf", "ca",
        "inkl", "evtl", "bzgl", "gem", "sog", "insb", "zzgl", "dr", "prof",
        "dipl", "ing", "hr", "fr", "bd", "s", "aufl", "std", "tel", "str",
        "jan", "feb", "mär", "apr", "jun", "jul", "aug", "sep", "okt",
        "nov", "dez",
    ),
    stop_words=(
        "der", "die", "das", "und", "oder", "aber", "in", "im", "an", "auf",
        "zu", "zum", "zur", "für", "von", "vom", "mit", "bei", "aus",
        "als", "ist", "war", "sind", "waren", "wird", "werden", "wurde",
        "hat", "haben", "ein", "eine", "einer", "eines", "einem", "einen",
        "dem", "den", "des", "nicht", "auch", "sich", "es", "dass", "diese",
        "dieser", "dieses", "wenn", "nach", "über", "unter", "sowie",
        "kann", "können", "muss", "müssen", "durch", "noch",
    ),
)

KOREAN = LanguageProfile(
    language_code="ko",
    language_name="Korean",
    section_patterns=(
        r"^제\s*\d+\s*[장절조]",
        r"^\d+(?:\.\d+)*\.?\s+\S[^.!?]{0,80}$",
    ),
    stop_words=(
        "그리고", "그러나", "하지만",
        "또는", "그리고는", "그런데",
        "따라서", "있는", "없는", "하는",
    ),
    terminators=_CJK_TERMINATORS,
)

JAPANESE = LanguageProfile(
    language_code="ja",
    language_name="Japanese",
    section_patterns=(
        r"^第\s*[0-9０-９一二三四五六七八九十百]+\s*[章節条]",
    ),
    stop_words=(
        "これ", "それ", "あれ", "この",
        "その", "ため", "こと", "もの",
        "です", "ます",
    ),
    terminators=_CJK_TERMINATORS,
)

CHINESE = LanguageProfile(
    language_code="zh",
    language_name="Chinese",
    section_patterns=(
        r"^第\s*[0-9一二三四五六七八九十百]+\s*[章节条]",
    ),
    stop_words=(
        "的", "了", "和", "是", "在", "我们",
        "这个", "那个", "以及", "因此",
    ),
    terminators=_CJK_TERMINATORS,
)

BUILTIN_PROFILES = (ENGLISH, GERMAN, KOREAN, JAPANESE, CHINESE)

# Common German function words used by the detector
_GERMAN_MARKERS = frozenset(
    ("der", "die", "das", "und", "ist", "nicht", "mit", "für", "ein",
     "eine", "auf", "den", "dem", "werden", "wird", "sich")
)


# =============================================================================
# PROVIDER
# =============================================================================


def _ratio(text: str, low: int, high: int) -> float:
    if not text:
        return 0.0
    return sum(1 for ch in text if low <= ord(ch) <= high) / len(text)


class LanguageProfileProvider:
    """Looks up profiles by code and detects a profile from text."""

    def __init__(self, profiles: Iterable[LanguageProfile] = BUILTIN_PROFILES):
        self._profiles = {p.language_code: p for p in profiles}

    @property
    def supported_languages(self) -> list[str]:
        return sorted(self._profiles)

    def get_profile(self, language_code: Optional[str]) -> LanguageProfile:
        """Profile for ``language_code`` ('en-US' → 'en'); English if unknown."""
        if not language_code:
            return ENGLISH
        code = language_code.strip().lower().replace("_", "-").split("-")[0]
        profile = self._profiles.get(code)
        if profile is None:
            logger.debug(f"No language profile for '{language_code}', using English")
            return ENGLISH
        return profile

    def detect_language(self, text: str) -> str:
        """Best-guess language code from script ratios of the first 1000 chars."""
        sample = "".join((text or "")[:1000].split())
        if not sample:
            return "en"

        hangul = _ratio(sample, 0xAC00, 0xD7A3) + _ratio(sample, 0x1100, 0x11FF)
        if hangul > 0.3:
            return "ko"
        kana = _ratio(sample, 0x3040, 0x30FF)
        if kana > 0.1:
            return "ja"
        if _ratio(sample, 0x4E00, 0x9FFF) > 0.3:
            return "zh"

        words = [w.strip(".,;:!?()\"'").lower() for w in (text or "")[:1000].split()]
        if words:
            german = sum(1 for w in words if w in _GERMAN_MARKERS)
            if german / len(words) > 0.08 and "de" in self._profiles:
                return "de"
        return "en"

    def detect_and_get_profile(self, text: str) -> LanguageProfile:
        return self.get_profile(self.detect_language(text))

    def resolve(self, language_code: Optional[str], text: str) -> LanguageProfile:
        """Profile for an options value; 'auto' (or empty) triggers detection."""
        if not language_code or language_code.lower() == "auto":
            return self.detect_and_get_profile(text)
        return self.get_profile(language_code)


default_provider = LanguageProfileProvider()
