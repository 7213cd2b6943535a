"""
Budget Extraction CLI

Extracts structured line items from construction budget PDFs (or plain text
files) by sending the document to the model chunk by chunk.

Usage:
    budget-extract extract presupuesto.pdf -o budget.json
    budget-extract extract presupuesto.txt --text --provider openai
    budget-extract segment presupuesto.pdf --max-chunk-size 15000
    budget-extract serve --port 8000

Environment:
    GEMINI_API_KEY: Gemini API key (default provider)
    OPENAI_API_KEY: OpenAI API key (with --provider openai)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import uvicorn
from dotenv import load_dotenv

from chunking import DEFAULT_MAX_CHUNK_SIZE, segment_text

from .app import create_app
from .config import ExtractorConfig
from .exceptions import BudgetExtractorError, format_error_chain
from .extractor import BudgetExtractor
from .logging_config import setup_logging
from .models import ExtractionConfig, Provider
from .pdf_text import extract_pdf_text

logger = logging.getLogger(__name__)


def progress_callback(message: str) -> None:
    """Print progress updates."""
    print(message, flush=True)


def _read_document(path: Path, as_text: bool) -> str:
    if as_text:
        return path.read_text(encoding="utf-8")
    return extract_pdf_text(path, progress_callback=progress_callback)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="budget-extract",
        description="Extract line items from construction budgets using an LLM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract a PDF with default settings (Gemini)
  budget-extract extract presupuesto.pdf -o budget.json

  # Use OpenAI instead
  budget-extract extract presupuesto.pdf --provider openai --model gpt-4o-mini

  # Inspect how a document would be split, without calling the model
  budget-extract segment presupuesto.pdf --max-chunk-size 15000
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Extract budget items from a document")
    extract.add_argument("input_path", help="Path to the PDF (or text file with --text)")
    extract.add_argument("-o", "--output",
                         help="Output JSON file (default: <input>_budget.json)")
    extract.add_argument("--text", action="store_true",
                         help="Treat the input as a UTF-8 text file instead of a PDF")
    extract.add_argument("--api-key",
                         help="Model API key (or set GEMINI_API_KEY / OPENAI_API_KEY)")
    extract.add_argument("--provider", choices=[p.value for p in Provider],
                         default=Provider.GEMINI.value,
                         help="Model backend (default: gemini)")
    extract.add_argument("--model",
                         help="Model name (default depends on provider)")
    extract.add_argument("--max-field-chunk-length", type=int, default=256,
                         help="Maximum characters per description chunk (default: 256)")
    extract.add_argument("--cost-per-1k", type=float, default=0.00015,
                         help="Cost per 1000 tokens for the estimate (default: 0.00015)")
    extract.add_argument("-v", "--verbose", action="store_true",
                         help="Verbose output")

    segment = subparsers.add_parser("segment", help="Show how a document would be chunked")
    segment.add_argument("input_path", help="Path to the PDF (or text file with --text)")
    segment.add_argument("--text", action="store_true",
                         help="Treat the input as a UTF-8 text file instead of a PDF")
    segment.add_argument("--max-chunk-size", type=int, default=DEFAULT_MAX_CHUNK_SIZE,
                         help=f"Maximum characters per chunk (default: {DEFAULT_MAX_CHUNK_SIZE})")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def cmd_extract(args: argparse.Namespace) -> int:
    input_path = Path(args.input_path)
    try:
        config = ExtractionConfig(
            provider=Provider(args.provider),
            model=args.model,
            max_field_chunk_length=args.max_field_chunk_length,
            cost_per_1k_tokens=args.cost_per_1k,
        )
    except ValueError as e:
        print(f"\nERROR: invalid settings\n{format_error_chain(e)}", file=sys.stderr)
        return 1

    print(f"\n{'='*60}")
    print("Budget Extractor - Chunked Extraction")
    print(f"{'='*60}")
    print(f"Document: {input_path.name}")
    print(f"Model: {config.model}")
    print(f"{'='*60}\n")

    try:
        text = _read_document(input_path, args.text)
        extractor = BudgetExtractor(config=config, api_key=args.api_key)
        result = extractor.extract(text, progress_callback=progress_callback)
    except (BudgetExtractorError, ValueError, OSError) as e:
        logger.error(f"Extraction failed: {e}")
        print(f"\nERROR:\n{format_error_chain(e)}", file=sys.stderr)
        return 1

    output_path = Path(args.output) if args.output else input_path.with_name(
        f"{input_path.stem}_budget.json"
    )
    try:
        result.save(output_path)
    except OSError as e:
        logger.error(f"Could not write {output_path}: {e}")
        print(f"\nERROR:\n{format_error_chain(e)}", file=sys.stderr)
        return 1

    print(f"\nExtraction Statistics:")
    print(f"  Line items: {len(result.line_items())}")
    print(f"  Separators: {len(result.separators())}")
    print(f"  Grand total: {result.grand_total():,.2f}")
    if result.ai_usage:
        print(f"  Tokens used: {result.ai_usage.input_tokens:,} input, "
              f"{result.ai_usage.output_tokens:,} output")
        print(f"  Estimated cost: ${result.ai_usage.estimated_cost:.6f}")
    print(f"\n  Saved to: {output_path}")
    return 0


def cmd_segment(args: argparse.Namespace) -> int:
    input_path = Path(args.input_path)
    try:
        text = _read_document(input_path, args.text)
        chunks = segment_text(text, max_chunk_size=args.max_chunk_size)
    except (BudgetExtractorError, ValueError, OSError) as e:
        print(f"\nERROR:\n{format_error_chain(e)}", file=sys.stderr)
        return 1

    print(f"\n{len(text):,} characters -> {len(chunks)} chunks "
          f"(max {args.max_chunk_size:,})")
    for index, chunk in enumerate(chunks, start=1):
        first_line = chunk.split("\n", 1)[0][:60]
        print(f"  {index:3d}. {len(chunk):7,} chars  {first_line}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    uvicorn.run(create_app(ExtractorConfig.from_env()), host=args.host, port=args.port)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING)

    commands = {
        "extract": cmd_extract,
        "segment": cmd_segment,
        "serve": cmd_serve,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
