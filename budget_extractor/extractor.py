"""
Budget Extractor - Chunked Extraction Engine

Sequential pipeline for budget extraction from document text:
1. Segment the text into model-sized chunks (chunking.segment_text)
2. Send each chunk to the model, one request at a time
3. Accumulate items (document order) and token usage
4. Normalize raw items into line items and separators with display chunks

A failure in any chunk aborts the run; no partial result is returned.

Usage:
    from budget_extractor import BudgetExtractor

    extractor = BudgetExtractor(api_key="...")
    result = extractor.extract(document_text, progress_callback=print)
    result.save("budget.json")

Environment (optional):
    GEMINI_API_KEY / OPENAI_API_KEY: Model credentials
"""

import logging
import math
import time
import uuid
from typing import Any, Callable, Optional

from chunking import chunk_field, segment_text

from .api_client import BudgetAPIClient
from .exceptions import ExtractionError
from .models import (
    DEFAULT_DESCRIPTION,
    DEFAULT_UNIT,
    ExtractionConfig,
    ExtractionResult,
    LineItem,
    RawBudgetItem,
    SeparatorItem,
    UsageTally,
    utcnow,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class BudgetExtractor:
    """
    Drives chunk-by-chunk extraction and assembles the final result.

    Usage:
        extractor = BudgetExtractor(config=ExtractionConfig(max_chunk_size=15000))
        result = extractor.extract(text)

        for item in result.items:
            print(item.type, item.description)

        print(result.ai_usage.total_tokens, result.ai_usage.estimated_cost)
    """

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        api_key: Optional[str] = None,
        client: Optional[BudgetAPIClient] = None,
    ):
        """
        Initialize the extractor.

        Args:
            config: Extraction configuration
            api_key: Model API key (ignored when a client is given)
            client: Pre-built extraction client (mainly for tests)
        """
        self.config = config or ExtractionConfig()
        self.client = client or BudgetAPIClient(api_key=api_key, config=self.config)

    def extract(
        self,
        text: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ExtractionResult:
        """
        Extract budget items from document text.

        Args:
            text: Full document text
            progress_callback: Optional callback(message)

        Returns:
            ExtractionResult with items in document order and usage totals

        Raises:
            ExtractionError: A chunk failed; wraps the chunk error
        """
        start_time = time.time()

        def report(message: str) -> None:
            if progress_callback:
                progress_callback(message)

        chunks = segment_text(text, max_chunk_size=self.config.max_chunk_size)
        total_chunks = len(chunks)

        logger.info(f"Starting budget extraction: {len(text)} characters, {total_chunks} chunks")
        report(f"Processing {total_chunks} chunks with {self.client.label}...")

        raw_items: list[RawBudgetItem] = []
        usage: Optional[UsageTally] = None

        for chunk_index, chunk in enumerate(chunks, start=1):
            report(f"Processing chunk {chunk_index} of {total_chunks}...")

            try:
                response = self.client.extract_chunk(chunk, chunk_index)
            except Exception as e:
                logger.error(f"Error processing chunk {chunk_index}: {e}")
                report(f"Error processing chunk {chunk_index}: {e}")
                raise ExtractionError(chunk_index, total_chunks, original_error=e) from e

            raw_items.extend(response.items)

            if response.usage is not None:
                if usage is None:
                    usage = UsageTally()
                usage.add(response.usage)

            report(
                f"Chunk {chunk_index}/{total_chunks}: {len(response.items)} items extracted "
                f"(total: {len(raw_items)})"
            )

            # Rate limiting (avoid hitting API limits)
            if chunk_index < total_chunks and self.config.request_delay > 0:
                time.sleep(self.config.request_delay)

        report(f"Organizing {len(raw_items)} budget items...")

        items = [
            build_budget_item(raw, self.config.max_field_chunk_length)
            for raw in raw_items
        ]

        if usage is not None:
            usage.apply_cost_rate(self.config.cost_per_1k_tokens)

        finished_at = utcnow()
        processing_time = time.time() - start_time
        logger.info(f"Extraction complete in {processing_time:.1f}s: {len(items)} items")

        return ExtractionResult(
            items=items,
            extracted_at=finished_at,
            processed_at=finished_at,
            ai_usage=usage,
        )


# =============================================================================
# NORMALIZATION
# =============================================================================


def build_budget_item(raw: RawBudgetItem, max_field_chunk_length: int) -> LineItem | SeparatorItem:
    """
    Turn one raw model entry into a typed budget item.

    Every item gets a fresh id, a description (default "No description") and
    description chunks with all copied flags cleared. Line items get numeric
    defaults for anything missing or unparseable.
    """
    description = _clean_text(raw.description) or DEFAULT_DESCRIPTION
    chunks = chunk_field(description, max_field_chunk_length)

    common = {
        "id": str(uuid.uuid4()),
        "line_id": _clean_text(raw.line_id),
        "description": description,
        "chunks": chunks,
        "copied_chunks": [False] * len(chunks),
    }

    if raw.is_separator:
        return SeparatorItem(**common)

    return LineItem(
        **common,
        quantity=_to_number(raw.quantity, 1),
        unit=_clean_text(raw.unit) or DEFAULT_UNIT,
        unit_price=_to_number(raw.unit_price, 0),
        total=_to_number(raw.total, 0),
    )


def _clean_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _to_number(value: Any, default: float) -> float:
    """Parse a numeric field; missing, unparseable or non-finite values give default."""
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, str):
        value = _normalize_decimal(value)
    elif not isinstance(value, (int, float)):
        return default

    try:
        number = float(value)
    except (ValueError, OverflowError):
        return default

    if not math.isfinite(number):
        return default
    return number


def _normalize_decimal(text: str) -> str:
    """
    Rewrite a locale-formatted amount as a plain decimal string.

    The right-most of "," and "." is the decimal mark when both appear
    ("1.250,50" and "1,250.50" are both 1250.5). A lone comma is a decimal
    mark, and repeated dots are thousands separators ("1.250.000").
    """
    text = text.strip().replace("€", "")
    text = "".join(text.split())

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    if "," in text:
        return text.replace(",", ".") if text.count(",") == 1 else text.replace(",", "")
    if text.count(".") > 1:
        return text.replace(".", "")
    return text


# =============================================================================
# FUNCTIONAL API
# =============================================================================


def extract_budget(
    text: str,
    api_key: Optional[str],
    max_field_chunk_length: int = 256,
    cost_per_1k_tokens: float = 0.00015,
    progress_callback: Optional[ProgressCallback] = None,
    config: Optional[ExtractionConfig] = None,
    client: Optional[BudgetAPIClient] = None,
) -> ExtractionResult:
    """
    One-shot extraction with explicit display and cost settings.

    Args:
        text: Full document text
        api_key: Model API key
        max_field_chunk_length: Maximum characters per description chunk
        cost_per_1k_tokens: Currency cost per 1000 total tokens
        progress_callback: Optional callback(message)
        config: Base configuration (the two settings above override it)
        client: Pre-built extraction client

    Returns:
        ExtractionResult
    """
    base = config or ExtractionConfig()
    effective = ExtractionConfig.model_validate(
        {
            **base.model_dump(),
            "max_field_chunk_length": max_field_chunk_length,
            "cost_per_1k_tokens": cost_per_1k_tokens,
        }
    )
    extractor = BudgetExtractor(config=effective, api_key=api_key, client=client)
    return extractor.extract(text, progress_callback=progress_callback)
