"""
Command-line interface: chunk a text, markdown or DocumentContent JSON file.

Usage:
    python -m ragchunk handbook.md
    python -m ragchunk handbook.md --strategy smart --max-size 800 -o chunks.json
    python -m ragchunk --serve --port 8002
"""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn
from pydantic import ValidationError

from .app import create_app
from .chunker import DocumentChunker
from .config import ChunkingServiceConfig
from .exceptions import ChunkingError, format_error_chain
from .logging_config import get_logger, setup_logging
from .storage import ChunkingStorage

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ragchunk",
        description="Split a document into retrieval-ready chunks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s notes.md
  %(prog)s report.txt --strategy intelligent --max-size 1500
  %(prog)s document.json -o chunks.json --log-level DEBUG
  %(prog)s --serve --host 127.0.0.1 --port 8002
        """,
    )
    parser.add_argument(
        "input", type=Path, nargs="?", help="Text, markdown or DocumentContent JSON file"
    )
    parser.add_argument(
        "--strategy",
        default=None,
        help="auto, smart or intelligent (default: RAGCHUNK_STRATEGY or auto)",
    )
    parser.add_argument("--max-size", type=int, default=None, help="Maximum characters per chunk")
    parser.add_argument("--min-size", type=int, default=None, help="Minimum characters per chunk")
    parser.add_argument("--overlap", type=int, default=None, help="Target overlap in characters (0 disables)")
    parser.add_argument("--language", default=None, help="Language code, or 'auto' to detect")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output JSON file (default: <data_dir>/<document_id>/chunks/...)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API instead of chunking a file")
    parser.add_argument("--host", default="0.0.0.0", help="Server host (with --serve)")
    parser.add_argument("--port", type=int, default=8002, help="Server port (with --serve)")
    return parser


def run_server(host: str, port: int) -> None:
    uvicorn.run(create_app(), host=host, port=port)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=getattr(logging, args.log_level))

    if args.serve:
        run_server(args.host, args.port)
        return 0
    if args.input is None:
        parser.error("Provide an input file or use --serve to run the API.")

    if not args.input.exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        config = ChunkingServiceConfig.from_env()
        options = config.options.with_overrides(
            strategy=args.strategy,
            max_chunk_size=args.max_size,
            min_chunk_size=args.min_size,
            overlap_size=args.overlap,
            language_code=args.language,
        )
    except ValidationError as e:
        logger.error(f"Invalid options: {e}")
        return 2

    try:
        result = DocumentChunker(options).chunk_file(str(args.input))
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            result.save(str(args.output))
            output_path = args.output
        else:
            output_path = ChunkingStorage(config.data_dir).save(result).chunk_file
    except ChunkingError as e:
        logger.error(format_error_chain(e))
        return 1

    stats = result.stats
    print(f"Document:  {result.document_id}")
    print(f"Strategy:  {result.strategy} ({result.language})")
    print(f"Chunks:    {stats.total_chunks} (avg {stats.avg_chunk_size:.0f} chars, "
          f"max {stats.max_chunk_size}, oversize {stats.oversize_chunks})")
    print(f"Quality:   {stats.avg_quality:.2f}")
    print(f"Output:    {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
