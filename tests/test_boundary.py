"""Tests for ragchunk.boundary."""

from ragchunk.boundary import (
    INVALID_POSITION_REASON,
    BoundaryQualityEvaluator,
    continuity_bucket,
    header_bucket,
    list_bucket,
    paragraph_bucket,
    sentence_bucket,
    table_bucket,
)
from ragchunk.models import BoundaryType, ChunkingOptions

_REPEATED = ("alpha beta gamma delta " * 5).strip()


class TestBuckets:
    def test_sentence_bucket(self):
        assert [sentence_bucket(d) for d in (0, 3, 7, 15, 50)] == [1.0, 0.9, 0.7, 0.5, 0.3]

    def test_paragraph_bucket(self):
        assert [paragraph_bucket(d) for d in (0, 5, 20, 40, 80)] == [1.0, 0.8, 0.6, 0.4, 0.2]

    def test_structure_buckets(self):
        assert [header_bucket(d) for d in (0, 2, 10, 30)] == [1.0, 0.9, 0.7, 0.3]
        assert [list_bucket(d) for d in (0, 5, 20, 40)] == [0.9, 0.7, 0.5, 0.2]
        assert [table_bucket(d) for d in (0, 2, 10, 30)] == [0.95, 0.8, 0.6, 0.3]

    def test_continuity_bucket(self):
        assert [continuity_bucket(c) for c in (0.8, 0.6, 0.4, 0.2, 0.05)] == [0.3, 0.5, 0.7, 0.9, 1.0]


class TestEvaluate:
    def test_invalid_positions(self):
        evaluator = BoundaryQualityEvaluator()
        for text, position in (("Some text.", 0), ("Some text.", 10), ("", 3), ("   ", 1)):
            result = evaluator.evaluate(text, position)
            assert result.quality_score == 0.0
            assert result.reason == INVALID_POSITION_REASON

    def test_paragraph_break_is_excellent(self):
        text = "First paragraph ends here.\n\nSecond paragraph starts."
        result = BoundaryQualityEvaluator().evaluate(text, text.index("\n\n"))
        assert result.quality_score == 1.0
        assert result.boundary_type == BoundaryType.SENTENCE

    def test_header_boundary(self):
        text = "Some intro text here\n## Next Section\nBody"
        score, boundary_type = BoundaryQualityEvaluator().structural_score(text, text.index("##"))
        assert score == 1.0
        assert boundary_type == BoundaryType.HEADER

    def test_table_boundary(self):
        text = "Intro\n| a | b |\n| c | d |\nAfter"
        score, boundary_type = BoundaryQualityEvaluator().structural_score(text, text.index("| a"))
        assert score == 0.95
        assert boundary_type == BoundaryType.TABLE

    def test_no_structure(self):
        score, boundary_type = BoundaryQualityEvaluator().structural_score("plain words only", 5)
        assert (score, boundary_type) == (0.3, BoundaryType.NONE)

    def test_semantic_without_keywords(self):
        assert BoundaryQualityEvaluator().semantic_score("a b c d e f", 5) == 0.5

    def test_semantic_topic_change(self):
        text = "database indexes queries tables " * 3 + "weather forecast rain clouds " * 3
        position = len("database indexes queries tables " * 3)
        assert BoundaryQualityEvaluator().semantic_score(text, position) == 1.0


class TestImprove:
    def test_excellent_position_is_kept(self):
        text = "First paragraph ends here.\n\nSecond paragraph starts."
        position = text.index("\n\n")
        result = BoundaryQualityEvaluator().improve(text, position)
        assert result.improved_position == position
        assert result.improvement == 0.0
        assert "already excellent" in result.reason

    def test_moves_to_nearby_sentence_end(self):
        text = _REPEATED + ". " + _REPEATED + "."
        target = text.index(". ") + 2
        options = ChunkingOptions(max_chunk_size=400, min_chunk_size=50, overlap_size=50)
        result = BoundaryQualityEvaluator().improve(text, target - 40, options)

        assert result.original_quality_score == 0.3
        assert result.improved_position == target
        assert result.quality_score == 1.0
        assert result.boundary_type == BoundaryType.SENTENCE
        assert result.improvement > 0

    def test_invalid_position(self):
        result = BoundaryQualityEvaluator().improve("Some text.", 0)
        assert result.reason == INVALID_POSITION_REASON
