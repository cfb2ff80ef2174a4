"""Tests for ragchunk.chunker - integration tests."""

import json

import pytest

from ragchunk import (
    CancellationToken,
    ChunkingCancelledError,
    ChunkingOptions,
    ContentSection,
    DocumentChunker,
    DocumentContent,
    DocumentLoadError,
    UnknownStrategyError,
)
from ragchunk.boundary import BoundaryQualityEvaluator
from ragchunk.chunker import load_document
from ragchunk.finalizer import heading_path
from ragchunk.languages import ENGLISH
from ragchunk.overlap import AdaptiveOverlapManager
from ragchunk.strategies import ChunkingContext, RawChunk
from ragchunk.structure import SemanticUnitExtractor, StructuralScanner, build_sections

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_options(**overrides) -> ChunkingOptions:
    defaults = dict(max_chunk_size=300, min_chunk_size=50, overlap_size=60)
    defaults.update(overrides)
    return ChunkingOptions(**defaults)


def _non_space(text: str) -> str:
    return "".join(text.split())


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestBasicChunking:
    def test_single_short_text(self):
        """Three tiny sentences fit into one chunk."""
        options = ChunkingOptions(max_chunk_size=100, min_chunk_size=20, overlap_size=10)
        result = DocumentChunker(options).chunk_text("A. B. C.")

        assert result.total_chunks == 1
        assert result.chunks[0].content == "A. B. C."
        assert result.strategy == "smart"

    def test_empty_text(self, chunker):
        result = chunker.chunk_text("   \n  ")
        assert result.total_chunks == 0
        assert result.stats.total_chunks == 0

    def test_unknown_strategy_rejected_before_empty_check(self, chunker):
        with pytest.raises(UnknownStrategyError):
            chunker.chunk_text("", options=ChunkingOptions(strategy="fancy"))

    def test_ids_and_links(self, prose_text, small_options):
        result = DocumentChunker(small_options).chunk_text(prose_text, document_id="handbook")
        chunks = result.chunks

        assert len(chunks) > 1
        for i, chunk in enumerate(chunks):
            assert chunk.id == f"handbook_chunk_{i:04d}"
            assert chunk.index == i
            assert chunk.total_chunks == len(chunks)
        assert chunks[0].props["nav.previousChunkId"] is None
        assert chunks[0].props["nav.nextChunkId"] == chunks[1].id
        assert chunks[-1].props["nav.nextChunkId"] is None

        previous, following = result.get_neighbors(chunks[1].id)
        assert previous.id == chunks[0].id
        assert len(chunks) > 2
        assert following.id == chunks[2].id

    def test_scores_and_tokens(self, prose_text, small_options):
        for chunk in DocumentChunker(small_options).chunk_text(prose_text).chunks:
            assert chunk.tokens > 0
            assert 0.0 <= chunk.quality <= 1.0
            assert chunk.props["quality.overall"] == pytest.approx(chunk.quality, abs=1e-4)
            assert chunk.context_dependency == pytest.approx(
                1.0 - chunk.props["quality.contextIndependence"], abs=1e-4
            )

    def test_stats(self, prose_text, small_options):
        result = DocumentChunker(small_options).chunk_text(prose_text)
        sizes = [len(c.content) for c in result.chunks]
        assert result.stats.total_chunks == len(sizes)
        assert result.stats.total_characters == len(prose_text)
        assert result.stats.max_chunk_size == max(sizes)
        assert result.stats.min_chunk_size == min(sizes)

    def test_auto_strategy_resolution(self, prose_text, markdown_text, table_text, chunker):
        assert chunker.chunk_text(prose_text).strategy == "smart"
        assert chunker.chunk_text(markdown_text).strategy == "intelligent"
        assert chunker.chunk_text(table_text).strategy == "intelligent"

    def test_language_detection(self, chunker):
        text = "Die Prüfung wird von der Kommission bewertet und ist nicht öffentlich."
        assert chunker.chunk_text(text).language == "de"


class TestChunkGuarantees:
    @pytest.mark.parametrize("strategy", ["smart", "intelligent"])
    def test_size_ceiling(self, prose_text, strategy):
        options = _make_options(strategy=strategy)
        for chunk in DocumentChunker(options).chunk_text(prose_text).chunks:
            assert len(chunk.content) <= options.max_chunk_size or chunk.props.get("oversize")

    def test_table_document_ceiling_is_doubled(self, table_text):
        options = _make_options(max_chunk_size=200, min_chunk_size=50, overlap_size=40)
        for chunk in DocumentChunker(options).chunk_text(table_text).chunks:
            assert len(chunk.content) <= 400 or chunk.props.get("oversize")

    def test_overlap_is_suffix_of_previous_content(self, prose_text):
        chunks = DocumentChunker(_make_options(strategy="smart")).chunk_text(prose_text).chunks
        assert any(c.overlap_length for c in chunks[1:])
        for previous, chunk in zip(chunks, chunks[1:]):
            overlap = chunk.content[:chunk.overlap_length]
            assert previous.content.endswith(overlap)
            assert chunk.content == (overlap + "\n" + chunk.body if overlap else chunk.body)

    def test_deterministic(self, markdown_text, small_options):
        first = DocumentChunker(small_options).chunk_text(markdown_text)
        second = DocumentChunker(small_options).chunk_text(markdown_text)
        assert [(c.id, c.content, c.props) for c in first.chunks] == [
            (c.id, c.content, c.props) for c in second.chunks
        ]

    def test_round_trip_smart(self, prose_text):
        options = _make_options(strategy="smart", deduplicate_overlaps=False)
        chunks = DocumentChunker(options).chunk_text(prose_text).chunks
        assert _non_space("".join(c.body for c in chunks)) == _non_space(prose_text)
        for chunk in chunks:
            assert prose_text[chunk.location.start_char:chunk.location.end_char] == chunk.body

    def test_round_trip_intelligent(self, markdown_text):
        options = _make_options(strategy="intelligent", deduplicate_overlaps=False)
        chunks = DocumentChunker(options).chunk_text(markdown_text).chunks
        assert _non_space("".join(c.body for c in chunks)) == _non_space(markdown_text)

    def test_round_trip_titled_document_default_options(self, prose_text):
        text = "Operations Handbook\n\n2024-03-01\n\n" + prose_text
        result = DocumentChunker().chunk_text(text, options=ChunkingOptions(strategy="intelligent"))
        chunks = result.chunks
        assert chunks[0].props["DocumentHeader"] == "Operations Handbook\n2024-03-01"
        assert chunks[0].body.startswith("Operations Handbook")
        assert _non_space("".join(c.body for c in chunks)) == _non_space(text)

    def test_table_rows_appear_once(self, table_text):
        options = _make_options(max_chunk_size=200, min_chunk_size=50, overlap_size=40)
        chunks = DocumentChunker(options).chunk_text(table_text).chunks
        rows = [line for line in table_text.split("\n") if line.startswith("| ") and "product name" in line]
        seen = [line for c in chunks for line in c.body.split("\n") if "product name" in line]
        assert seen == rows

    def test_table_chunks_repeat_header(self, table_text):
        options = _make_options(max_chunk_size=200, min_chunk_size=50, overlap_size=40)
        table_chunks = [
            c for c in DocumentChunker(options).chunk_text(table_text).chunks if c.props.get("table")
        ]
        assert len(table_chunks) > 1
        for chunk in table_chunks:
            lines = chunk.body.split("\n")
            header_index = lines.index("| id | product | price |")
            assert lines[header_index + 1] == "|----|---------|-------|"
            assert chunk.overlap_length == 0


class TestReconcileOverlaps:
    _PREVIOUS = "The deploy finished without errors. Restart the worker service now."

    def _reconcile(self, body: str) -> RawChunk:
        text = self._PREVIOUS + "\n\n" + body
        options = _make_options(strategy="smart", overlap_size=40)
        structure = StructuralScanner().scan(text)
        context = ChunkingContext(
            text=text,
            options=options,
            profile=ENGLISH,
            structure=structure,
            units=SemanticUnitExtractor(ENGLISH).extract(text, structure),
            evaluator=BoundaryQualityEvaluator(ENGLISH),
            overlap_manager=AdaptiveOverlapManager(ENGLISH),
        )
        start = len(self._PREVIOUS) + 2
        chunks = [
            RawChunk(body=self._PREVIOUS, start=0, end=len(self._PREVIOUS)),
            RawChunk(body=body, start=start, end=len(text), overlap="Restart the worker service now."),
        ]
        return DocumentChunker().reconcile_overlaps(chunks, context)[1]

    def test_overlap_recut_from_previous(self):
        chunk = self._reconcile("The exporter then resumes its queue.")
        assert chunk.overlap == "Restart the worker service now."

    def test_overlap_not_repeated_when_body_opens_with_it(self):
        chunk = self._reconcile("Restart the worker service now. The exporter then resumes its queue.")
        assert chunk.overlap == ""
        assert chunk.content == chunk.body

    def test_pipeline_never_doubles_context(self):
        sentences = [
            "Restart the worker service now.",
            "The exporter drains its queue before shutting down.",
            "Every batch is written to the archive bucket.",
        ]
        paragraphs = [
            " ".join(sentences[i % 3:] + sentences[:i % 3]) + " " + sentences[0]
            for i in range(6)
        ]
        text = "\n\n".join(paragraphs)
        options = _make_options(strategy="smart", overlap_size=40)
        chunks = DocumentChunker(options).chunk_text(text).chunks
        for chunk in chunks:
            overlap = chunk.content[:chunk.overlap_length]
            if overlap:
                assert not chunk.body.startswith(overlap.strip())


class TestLocation:
    def test_heading_path_from_markdown(self):
        text = (
            "# Guide\n\n## Install\n\n"
            "Download the archive and unpack it into the tools directory before the first run."
        )
        result = DocumentChunker().chunk_text(text)
        chunk = result.chunks[0]
        assert chunk.props["DocumentHeader"] == "# Guide\n## Install"
        assert chunk.content.startswith("# Guide")
        assert chunk.location.heading_path == ["Guide"]

    def test_heading_path_inside_nested_section(self):
        text = (
            "# Guide\n\n## Install\n\n"
            "Download the archive and unpack it into the tools directory before the first run."
        )
        sections = build_sections(StructuralScanner().scan(text).headers, len(text))
        assert heading_path(sections, text.index("Download"), 3) == ["Guide", "Install"]
        assert heading_path(sections, text.index("Download"), 1) == ["Guide"]

    def test_supplied_sections_and_pages(self):
        text = "First page sentence one. " * 4 + "Second page sentence two. " * 4
        split = len("First page sentence one. " * 4)
        document = DocumentContent(
            text=text,
            metadata={"document_id": "paged"},
            sections=[ContentSection(title="Body", level=1, start=0, end=len(text))],
            page_ranges={1: (0, split - 1), 2: (split, len(text))},
        )
        chunk = DocumentChunker().chunk(document).chunks[0]
        assert chunk.location.heading_path == ["Body"]
        assert chunk.location.start_page == 1
        assert chunk.location.end_page == 2


class TestCancellation:
    def test_cancelled_token_stops_run(self, prose_text, small_options):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ChunkingCancelledError):
            DocumentChunker(small_options).chunk_text(prose_text, cancel_token=token)

    def test_uncancelled_token(self, prose_text, small_options):
        result = DocumentChunker(small_options).chunk_text(prose_text, cancel_token=CancellationToken())
        assert result.total_chunks > 1


class TestLoadDocument:
    def test_text_file(self, tmp_path, chunker):
        path = tmp_path / "notes.md"
        path.write_text("# Notes\n\nThe backup runs every night at two.", encoding="utf-8")
        result = chunker.chunk_file(str(path))

        assert result.document_id == "notes"
        assert result.source == str(path)
        assert result.chunks[0].id.startswith("notes_chunk_")

    def test_json_document(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text(json.dumps({
            "text": "Stored text for the loader.",
            "metadata": {"document_id": "custom-id"},
        }), encoding="utf-8")
        document = load_document(str(path))

        assert document.document_id == "custom-id"
        assert document.metadata["file_type"] == "json"
        assert document.text == "Stored text for the loader."

    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentLoadError) as exc_info:
            load_document(str(tmp_path / "missing.txt"))
        assert exc_info.value.path.endswith("missing.txt")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DocumentLoadError):
            load_document(str(path))
