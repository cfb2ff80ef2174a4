"""Tests for ragchunk.languages."""

from ragchunk.languages import (
    ENGLISH,
    GERMAN,
    KOREAN,
    LanguageProfileProvider,
    default_provider,
)


class TestGetProfile:
    def test_known_code(self):
        assert default_provider.get_profile("de") is GERMAN

    def test_region_suffix_is_ignored(self):
        assert default_provider.get_profile("en-US") is ENGLISH
        assert default_provider.get_profile("ko_KR") is KOREAN

    def test_unknown_code_falls_back_to_english(self):
        assert default_provider.get_profile("xx") is ENGLISH

    def test_empty_code_falls_back_to_english(self):
        assert default_provider.get_profile(None) is ENGLISH
        assert default_provider.get_profile("") is ENGLISH

    def test_supported_languages(self):
        assert default_provider.supported_languages == ["de", "en", "ja", "ko", "zh"]

    def test_custom_profile_set(self):
        provider = LanguageProfileProvider([GERMAN])
        assert provider.supported_languages == ["de"]
        assert provider.get_profile("en") is ENGLISH


class TestDetectLanguage:
    def test_english(self):
        assert default_provider.detect_language("The quick brown fox jumps over the lazy dog.") == "en"

    def test_german(self):
        text = "Die Prüfung ist nicht bestanden und wird mit der Note fünf bewertet."
        assert default_provider.detect_language(text) == "de"

    def test_korean(self):
        assert default_provider.detect_language("안녕하세요 반갑습니다 오늘은 날씨가 좋습니다") == "ko"

    def test_japanese(self):
        assert default_provider.detect_language("これはテストです。ひらがなとカタカナ。") == "ja"

    def test_chinese(self):
        assert default_provider.detect_language("这是一个测试文本我们正在检查语言") == "zh"

    def test_empty_text(self):
        assert default_provider.detect_language("") == "en"
        assert default_provider.detect_language("   \n ") == "en"


class TestResolve:
    def test_auto_detects(self):
        text = "Die Regelung gilt für das Studium und die Prüfung."
        assert default_provider.resolve("auto", text) is GERMAN

    def test_explicit_code_wins_over_detection(self):
        assert default_provider.resolve("de", "Plain English text.") is GERMAN

    def test_empty_code_detects(self):
        assert default_provider.resolve("", "Plain English text.") is ENGLISH


class TestLanguageProfile:
    def test_complete_sentence(self):
        assert ENGLISH.ends_with_complete_sentence("It works.")
        assert ENGLISH.ends_with_complete_sentence('He said "yes."')
        assert ENGLISH.ends_with_complete_sentence("Really?  \n")

    def test_incomplete_sentence(self):
        assert not ENGLISH.ends_with_complete_sentence("It works")
        assert not ENGLISH.ends_with_complete_sentence("")
        assert not ENGLISH.ends_with_complete_sentence("   ")

    def test_cjk_terminator(self):
        assert KOREAN.ends_with_complete_sentence("좋습니다。")
        assert not ENGLISH.ends_with_complete_sentence("좋습니다。")

    def test_markdown_header_is_section_marker(self):
        assert ENGLISH.is_section_marker("## Installation")
        assert GERMAN.is_section_marker("# Einleitung")

    def test_native_section_markers(self):
        assert ENGLISH.is_section_marker("Chapter 2 Results")
        assert ENGLISH.is_section_marker("1. Introduction")
        assert GERMAN.is_section_marker("Kapitel 3 Ergebnisse")
        assert GERMAN.is_section_marker("§ 5 Prüfungen")
        assert KOREAN.is_section_marker("제 1 장 총칙")

    def test_prose_is_not_section_marker(self):
        assert not ENGLISH.is_section_marker("This line is plain prose.")
        assert not ENGLISH.is_section_marker("   ")

    def test_stop_words(self):
        assert ENGLISH.is_stop_word("The")
        assert not ENGLISH.is_stop_word("scheduler")
        assert GERMAN.is_stop_word("und")
