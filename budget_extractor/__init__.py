"""
Budget Extractor - Chunked LLM Extraction for Construction Budgets

Extracts structured line items from construction budget documents
(presupuestos de obra) by splitting the text into model-sized chunks and
sending them to Gemini or OpenAI one at a time.

Features:
- Segmentation at natural boundaries (chapters, totals, blank lines)
- Sequential chunk requests with token usage and cost tracking
- Line items and category separators in document order
- Long descriptions split into copy-sized chunks with copied flags
- JSON-file record store, FastAPI service and CLI

Quick Start:
    from budget_extractor import BudgetExtractor

    extractor = BudgetExtractor(api_key="...")
    result = extractor.extract(document_text, progress_callback=print)

    for item in result.line_items():
        print(item.line_id, item.description, item.total)

    result.save("budget.json")

Environment:
    GEMINI_API_KEY: Gemini API key (default provider)
    OPENAI_API_KEY: OpenAI API key (provider="openai")
"""

__version__ = "1.0.0"

# Main extractor
from .extractor import BudgetExtractor, build_budget_item, extract_budget

# Model client
from .api_client import BudgetAPIClient, ChunkResponse

# Data models
from .models import (
    # Enums
    ItemType,
    Provider,
    UsageOperation,
    # Core models
    RawBudgetItem,
    LineItem,
    SeparatorItem,
    BudgetItem,
    ChunkUsage,
    UsageTally,
    ExtractionResult,
    UsageRecord,
    estimate_cost,
    # Configuration
    ExtractionConfig,
)
from .config import ExtractorConfig

# Exceptions
from .exceptions import (
    BudgetExtractorError,
    ChunkError,
    ChunkParseError,
    ChunkTransportError,
    ChunkConnectionError,
    ChunkRateLimitError,
    ExtractionError,
    PDFError,
    PDFNotFoundError,
    PDFCorruptedError,
    is_retryable,
    format_error_chain,
)

# Collaborators
from .pdf_text import extract_pdf_text
from .storage import BudgetStorage
from .service import ExtractionService

__all__ = [
    # Version
    "__version__",
    # Main class
    "BudgetExtractor",
    "build_budget_item",
    "extract_budget",
    "BudgetAPIClient",
    "ChunkResponse",
    # Enums
    "ItemType",
    "Provider",
    "UsageOperation",
    # Models
    "RawBudgetItem",
    "LineItem",
    "SeparatorItem",
    "BudgetItem",
    "ChunkUsage",
    "UsageTally",
    "ExtractionResult",
    "UsageRecord",
    "estimate_cost",
    "ExtractionConfig",
    "ExtractorConfig",
    # Exceptions
    "BudgetExtractorError",
    "ChunkError",
    "ChunkParseError",
    "ChunkTransportError",
    "ChunkConnectionError",
    "ChunkRateLimitError",
    "ExtractionError",
    "PDFError",
    "PDFNotFoundError",
    "PDFCorruptedError",
    "is_retryable",
    "format_error_chain",
    # Collaborators
    "extract_pdf_text",
    "BudgetStorage",
    "ExtractionService",
]
