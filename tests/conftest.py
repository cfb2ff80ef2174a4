"""
Pytest fixtures for the chunking engine tests.
"""

import pytest

from ragchunk import ChunkingOptions, DocumentChunker

_TOPICS = ["cache", "scheduler", "parser", "indexer", "exporter"]


def _make_prose(paragraphs: int = 6, sentences: int = 5) -> str:
    """Plain English prose: blank-line separated paragraphs of full sentences."""
    blocks = []
    for p in range(paragraphs):
        topic = _TOPICS[p % len(_TOPICS)]
        blocks.append(" ".join(
            f"The {topic} component processes batch {p * sentences + s} "
            f"before the nightly window closes."
            for s in range(sentences)
        ))
    return "\n\n".join(blocks)


def _make_table(rows: int = 50) -> str:
    """Markdown table with a header, a separator and ``rows`` rows of ~36 chars."""
    lines = ["| id | product | price |", "|----|---------|-------|"]
    lines.extend(f"| {i:02d} | product name {i:02d} | 12.50 EUR |" for i in range(rows))
    return "\n".join(lines)


@pytest.fixture
def prose_text():
    return _make_prose()


@pytest.fixture
def markdown_text():
    return (
        "# Operations Guide\n\n"
        "## Installation\n\n"
        "Install the package on every worker node. The installer checks the "
        "runtime version first. Nodes without network access need the offline bundle.\n\n"
        "## Configuration\n\n"
        "Settings are read from the environment at startup. Every setting has a "
        "default that suits small deployments. Large clusters should raise the "
        "connection limits before the first rollout.\n\n"
        "### Logging\n\n"
        "Log lines go to standard error. Rotate them with the host tooling rather "
        "than inside the service.\n"
    )


@pytest.fixture
def table_text():
    return (
        "The price list below is valid for the current quarter.\n\n"
        + _make_table(50)
        + "\n\nPrices exclude shipping. Contact sales for volume discounts."
    )


@pytest.fixture
def small_options():
    """Options small enough to force several chunks on the fixture texts."""
    return ChunkingOptions(max_chunk_size=300, min_chunk_size=50, overlap_size=60)


@pytest.fixture
def chunker():
    return DocumentChunker()
