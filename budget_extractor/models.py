"""
Data Models for Budget Extraction.

This module defines the data structures flowing through the chunked
extraction pipeline:

    document text → [Segmenter] → chunks
                                    ↓
        [Extraction Client] → RawBudgetItem[] + ChunkUsage   (per chunk)
                                    ↓
        [Orchestrator]      → BudgetItem[] (LineItem | SeparatorItem)
                                    ↓
                          ExtractionResult (+ UsageTally)

Design Principles:
    - Pydantic v2 for validation and serialization
    - Raw model output is lenient (RawBudgetItem); everything downstream is a
      tagged variant with explicit fields, discriminated on ``type``
    - Copied flags are the only state a consumer mutates after extraction

Usage:
    from budget_extractor import BudgetExtractor

    result = BudgetExtractor(api_key="...").extract(text)
    for item in result.line_items():
        print(item.line_id, item.description, item.total)
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


DEFAULT_UNIT = "ud"
DEFAULT_DESCRIPTION = "No description"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class ItemType(str, Enum):
    """Kind of budget entry emitted by the model."""

    LINE = "line"
    SEPARATOR = "separator"


class Provider(str, Enum):
    """Model backends supported by the extraction client."""

    GEMINI = "gemini"
    OPENAI = "openai"


class UsageOperation(str, Enum):
    """Why a usage record was written."""

    PROCESS = "process"
    REPROCESS = "reprocess"


# =============================================================================
# RAW MODEL OUTPUT
# =============================================================================


class RawBudgetItem(BaseModel):
    """
    One entry exactly as the model emitted it.

    Every field is optional and untyped; the orchestrator validates and
    defaults these values when building BudgetItem instances.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Optional[Any] = None
    line_id: Optional[Any] = Field(None, alias="lineId")
    description: Optional[Any] = None
    quantity: Optional[Any] = None
    unit: Optional[Any] = None
    unit_price: Optional[Any] = Field(None, alias="unitPrice")
    total: Optional[Any] = None

    @property
    def is_separator(self) -> bool:
        return isinstance(self.type, str) and self.type.strip().lower() == ItemType.SEPARATOR.value


# =============================================================================
# USAGE
# =============================================================================


class ChunkUsage(BaseModel):
    """Token counters reported by the model for one request."""

    input_tokens: int = Field(0, ge=0, description="Prompt tokens")
    output_tokens: int = Field(0, ge=0, description="Generated tokens")
    total_tokens: int = Field(0, ge=0, description="Total tokens billed")


class UsageTally(BaseModel):
    """
    Accumulated token usage and estimated cost for one extraction run.

    Counters only grow while a run is in progress.
    """

    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)
    total_tokens: int = Field(0, ge=0)
    estimated_cost: float = Field(
        0.0,
        ge=0.0,
        description="total_tokens / 1000 * cost_per_1k_tokens",
    )

    def add(self, usage: ChunkUsage) -> None:
        """Add the counters of one chunk."""
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.total_tokens += usage.total_tokens

    def apply_cost_rate(self, cost_per_1k_tokens: float) -> None:
        """Recompute estimated_cost from total_tokens."""
        self.estimated_cost = estimate_cost(self.total_tokens, cost_per_1k_tokens)


def estimate_cost(total_tokens: int, cost_per_1k_tokens: float) -> float:
    """Estimated monetary cost of a token count."""
    return (total_tokens / 1000) * cost_per_1k_tokens


# =============================================================================
# BUDGET ITEMS
# =============================================================================


class _BudgetItemBase(BaseModel):
    id: str = Field(..., description="Unique item identifier")
    line_id: Optional[str] = Field(
        None,
        description="Item number printed in the document (e.g. '1.1', 'A.01')",
    )
    description: str = Field(..., description="Full description text")
    chunks: list[str] = Field(
        default_factory=list,
        description="Description split into display-sized pieces",
    )
    copied_chunks: list[bool] = Field(
        default_factory=list,
        description="Copied flag per description chunk",
    )

    @model_validator(mode="after")
    def _check_copied_chunks(self):
        if not self.copied_chunks and self.chunks:
            self.copied_chunks = [False] * len(self.chunks)
        if len(self.copied_chunks) != len(self.chunks):
            raise ValueError(
                f"copied_chunks has {len(self.copied_chunks)} flags "
                f"for {len(self.chunks)} chunks"
            )
        return self

    def mark_chunk_copied(self, index: int, copied: bool = True) -> None:
        """Set the copied flag of one description chunk."""
        if index < 0 or index >= len(self.chunks):
            raise IndexError(f"Chunk {index} out of range (0-{len(self.chunks) - 1})")
        self.copied_chunks[index] = copied


class LineItem(_BudgetItemBase):
    """A priced budget line."""

    type: Literal["line"] = "line"
    quantity: float = 1
    unit: str = DEFAULT_UNIT
    unit_price: float = 0
    total: float = 0

    copied_quantity: bool = False
    copied_unit: bool = False
    copied_unit_price: bool = False
    copied_total: bool = False

    COPYABLE_FIELDS: ClassVar[tuple[str, ...]] = ("quantity", "unit", "unit_price", "total")

    def mark_field_copied(self, field: str, copied: bool = True) -> None:
        """Set the copied flag of quantity, unit, unit_price or total."""
        if field not in self.COPYABLE_FIELDS:
            raise ValueError(
                f"Unknown field '{field}'; expected one of {', '.join(self.COPYABLE_FIELDS)}"
            )
        setattr(self, f"copied_{field}", copied)


class SeparatorItem(_BudgetItemBase):
    """A category or section header. Carries no quantities or prices."""

    type: Literal["separator"] = "separator"


BudgetItem = Annotated[Union[LineItem, SeparatorItem], Field(discriminator="type")]


# =============================================================================
# CONFIGURATION
# =============================================================================


_PROVIDER_DEFAULTS = {
    Provider.GEMINI: {"model": "gemini-2.5-flash", "max_output_tokens": 65536},
    Provider.OPENAI: {"model": "gpt-4o-mini", "max_output_tokens": 16384},
}


class ExtractionConfig(BaseModel):
    """
    Configuration for the budget extraction pipeline.

    Controls the model backend, chunk sizes, pacing and cost estimation.
    """

    # API configuration
    provider: Provider = Field(
        Provider.GEMINI,
        description="Model backend",
    )
    model: Optional[str] = Field(
        None,
        description="Model name (defaults per provider)",
    )
    max_output_tokens: Optional[int] = Field(
        None,
        ge=256,
        le=131072,
        description="Maximum tokens per model reply (defaults per provider)",
    )
    temperature: float = Field(
        0.0,
        ge=0.0,
        le=2.0,
        description="Sampling temperature (0 = deterministic)",
    )
    request_timeout: float = Field(
        120.0,
        gt=0,
        le=1800,
        description="Seconds before a model request is abandoned",
    )

    # Chunking
    max_chunk_size: int = Field(
        20000,
        ge=500,
        description="Maximum characters of document text per model request",
    )
    max_field_chunk_length: int = Field(
        256,
        ge=1,
        description="Maximum characters per description chunk (display/copy)",
    )

    # Pacing and cost
    request_delay: float = Field(
        0.5,
        ge=0.0,
        le=60.0,
        description="Seconds to wait between chunk requests",
    )
    cost_per_1k_tokens: float = Field(
        0.00015,
        ge=0.0,
        description="Currency cost per 1000 total tokens",
    )

    @model_validator(mode="after")
    def _apply_provider_defaults(self):
        defaults = _PROVIDER_DEFAULTS[self.provider]
        if self.model is None:
            self.model = defaults["model"]
        if self.max_output_tokens is None:
            self.max_output_tokens = defaults["max_output_tokens"]
        return self


# =============================================================================
# FINAL RESULT
# =============================================================================


class ExtractionResult(BaseModel):
    """
    Complete result of one budget extraction run.

    Items keep the order in which they appeared across chunks.
    """

    items: list[BudgetItem] = Field(
        default_factory=list,
        description="Line items and separators in document order",
    )
    extracted_at: datetime = Field(
        default_factory=utcnow,
        description="When extraction finished",
    )
    processed_at: datetime = Field(
        default_factory=utcnow,
        description="When the result was assembled",
    )
    ai_usage: Optional[UsageTally] = Field(
        None,
        description="Aggregated token usage (None if the model never reported it)",
    )

    # --- Query Methods ---

    def get_item(self, item_id: str) -> Optional[LineItem | SeparatorItem]:
        """Find an item by its identifier."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def line_items(self) -> list[LineItem]:
        return [i for i in self.items if isinstance(i, LineItem)]

    def separators(self) -> list[SeparatorItem]:
        return [i for i in self.items if isinstance(i, SeparatorItem)]

    def grand_total(self) -> float:
        """Sum of the totals of all line items."""
        return sum(i.total for i in self.line_items())

    @computed_field
    @property
    def total_items(self) -> int:
        return len(self.items)

    # --- Export Methods ---

    def to_dict(self) -> dict[str, Any]:
        """Export as dictionary for serialization."""
        return self.model_dump(mode="json")

    def to_json(self, indent: int = 2) -> str:
        """Export as formatted JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    def save(self, path: str | Path) -> None:
        """Save the result to a JSON file."""
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: str | Path) -> "ExtractionResult":
        """Load a result from a JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(data)


# =============================================================================
# USAGE RECORDS
# =============================================================================


class UsageRecord(BaseModel):
    """Token usage of one run, persisted for cost accounting."""

    id: str
    document_id: str
    file_name: str = ""
    operation: UsageOperation = UsageOperation.PROCESS
    timestamp: datetime = Field(default_factory=utcnow)
    usage: UsageTally
    cost_per_1k_tokens: float = Field(0.0, ge=0.0)


# =============================================================================
# HTTP API
# =============================================================================


class ExtractRequest(BaseModel):
    pdf_path: str
    document_id: Optional[str] = None


class ExtractResponse(BaseModel):
    document_id: str
    output_path: str
    items: int
    total_tokens: int = 0
    estimated_cost: float = 0.0


class UsageSummary(BaseModel):
    runs: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0
