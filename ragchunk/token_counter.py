"""
Token estimates for emitted chunks.

Chunk sizes are enforced in characters; the token count on each
DocumentChunk is informational, so downstream embedders can check their own
context limits. tiktoken's cl100k_base is used as a widely shared BPE
vocabulary.

Usage:
    from ragchunk.token_counter import count_tokens, count_tokens_batch

    n = count_tokens("Chunk text.")
    counts = count_tokens_batch([c.content for c in chunks])
"""

import tiktoken

ENCODING_NAME = "cl100k_base"

# Loaded lazily; the encoding itself is immutable and safe to share.
_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    """Get or initialize the tiktoken encoder (singleton)."""
    global _encoder
    if _encoder is None:
        _encoder = tiktoken.get_encoding(ENCODING_NAME)
    return _encoder


def count_tokens(text: str) -> int:
    """Number of cl100k_base tokens in ``text`` (0 for empty input)."""
    if not text:
        return 0
    return len(_get_encoder().encode(text, disallowed_special=()))


def count_tokens_batch(texts: list[str]) -> list[int]:
    """
    Count tokens for a list of texts in one encoder pass.

    Args:
        texts: List of text strings.

    Returns:
        List of token counts, one per input text.
    """
    if not texts:
        return []
    encoder = _get_encoder()
    encoded = encoder.encode_batch(
        [t or "" for t in texts], disallowed_special=()
    )
    return [len(tokens) for tokens in encoded]
