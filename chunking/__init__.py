"""
Chunking Module - Text splitting for budget extraction

Two pure functions, no I/O:

- segment_text: splits a whole document into model-sized chunks at natural
  boundaries (blank lines, chapter headers, totals, rules, page breaks).
- chunk_field: splits one item description into display-sized pieces at
  sentence, phrase and word boundaries.

Quick Start:
    from chunking import segment_text, chunk_field

    segments = segment_text(document_text, max_chunk_size=20000)
    pieces = chunk_field(item.description, max_length=256)
"""

__version__ = "1.0.0"

from .segmenter import (
    DEFAULT_MAX_CHUNK_SIZE,
    DEFAULT_BREAK_POLICY,
    BreakPolicy,
    is_natural_break_line,
    segment_text,
)
from .field_chunker import chunk_field

__all__ = [
    "__version__",
    "DEFAULT_MAX_CHUNK_SIZE",
    "DEFAULT_BREAK_POLICY",
    "BreakPolicy",
    "is_natural_break_line",
    "segment_text",
    "chunk_field",
]
