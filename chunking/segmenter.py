"""
Document Segmenter for the Budget Extraction Pipeline

Splits the raw text of a budget document into chunks small enough for a
single model request, preferring natural boundaries (blank lines, chapter
headers, totals, decorative rules, page breaks) over arbitrary cuts.

Algorithm:
1. Split the text into lines and accumulate them into a running chunk.
2. When the next line would overflow max_chunk_size, look back up to
   50 lines (never past the chunk start) for a natural break line.
3. A break is accepted if the lines replayed into the next chunk stay
   under 80% of max_chunk_size; the nearest acceptable break wins.
4. Otherwise cut hard before the current line.

Segments partition the input: joining them with newlines yields every
non-blank input line, in order, exactly once.

Usage:
    from chunking.segmenter import segment_text

    chunks = segment_text(document_text, max_chunk_size=20000)
"""

import re
from dataclasses import dataclass, field
from typing import Optional

# Character budget of one model request.
DEFAULT_MAX_CHUNK_SIZE = 20000

# How many lines before the overflowing line are searched for a break.
BREAK_LOOKBACK_LINES = 50

# Lines replayed into the next chunk must stay under this share of the budget.
BREAK_TAIL_RATIO = 0.8

_SECTION_MARKER = re.compile(
    r"^(\d+\.?\s|\d+\.\d+\.?\s|CHAPTER\s+\d+|CAP[IÍ]TULO\s+\d+|CAP\.\s*\d+)",
    re.IGNORECASE,
)

_KEYWORD_LINE = re.compile(
    r"^(OBRA|PARTIDA|UNIDAD|MEDICI[OÓ]N|RESUMEN|TOTAL|SUBTOTAL|PRESUPUESTO)",
    re.IGNORECASE,
)

_DECORATIVE_RULE = re.compile(r"^[=\-_*]{3,}$")

_PAGE_BREAK = re.compile(r"^(P[AÁ]GINA|PAGE)")

_HEADER_PUNCTUATION = re.compile(r"[.,:;]")


@dataclass
class BreakPolicy:
    """
    Table of heuristics deciding whether a line is a natural break.

    The defaults are tuned for Spanish/English construction budgets.
    Replace the patterns (or subclass) to adapt the segmenter to
    other document families.
    """

    section_markers: list[re.Pattern] = field(default_factory=lambda: [_SECTION_MARKER])
    keyword_lines: list[re.Pattern] = field(default_factory=lambda: [_KEYWORD_LINE])
    decorative_rules: list[re.Pattern] = field(default_factory=lambda: [_DECORATIVE_RULE])
    page_breaks: list[re.Pattern] = field(default_factory=lambda: [_PAGE_BREAK])
    max_header_length: int = 100
    detect_caps_headers: bool = True

    def is_natural_break(self, line: str) -> bool:
        """Return True if a chunk may end after this line."""
        if "\f" in line:
            return True

        trimmed = line.strip()
        if not trimmed:
            return True

        for patterns in (
            self.section_markers,
            self.keyword_lines,
            self.decorative_rules,
            self.page_breaks,
        ):
            if any(p.search(trimmed) for p in patterns):
                return True

        return self.detect_caps_headers and self._is_caps_header(trimmed)

    def _is_caps_header(self, trimmed: str) -> bool:
        # Short, upper-case, unpunctuated lines are usually section titles.
        return (
            trimmed == trimmed.upper()
            and len(trimmed) < self.max_header_length
            and not _HEADER_PUNCTUATION.search(trimmed)
        )


DEFAULT_BREAK_POLICY = BreakPolicy()


def is_natural_break_line(line: str, policy: Optional[BreakPolicy] = None) -> bool:
    """Check a single line against the (default) break policy."""
    return (policy or DEFAULT_BREAK_POLICY).is_natural_break(line)


def segment_text(
    text: str,
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
    policy: Optional[BreakPolicy] = None,
) -> list[str]:
    """
    Split document text into model-sized chunks at natural boundaries.

    Args:
        text: Full document text (pages already concatenated).
        max_chunk_size: Maximum characters per chunk. A single line longer
            than this becomes its own oversized chunk.
        policy: Natural-break heuristics (defaults to DEFAULT_BREAK_POLICY).

    Returns:
        Ordered list of non-blank chunks. Text that fits in one chunk is
        returned trimmed as a single element; blank text returns [].
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")

    if not text or not text.strip():
        return []

    if len(text) <= max_chunk_size:
        return [text.strip()]

    policy = policy or DEFAULT_BREAK_POLICY
    lines = text.split("\n")

    chunks: list[str] = []
    start = 0
    length = len(lines[0])  # length of "\n".join(lines[start:i])

    for i in range(1, len(lines)):
        line = lines[i]

        if length + 1 + len(line) <= max_chunk_size:
            length += 1 + len(line)
            continue

        break_index = _find_break_point(lines, start, i, max_chunk_size, policy)

        if break_index is not None:
            chunks.append(_join_lines(lines[start:break_index + 1]))
            start = break_index + 1
        else:
            chunks.append(_join_lines(lines[start:i]))
            start = i

        length = len("\n".join(lines[start:i + 1]))

    chunks.append(_join_lines(lines[start:]))

    return [chunk for chunk in chunks if chunk.strip()]


def _find_break_point(
    lines: list[str],
    start: int,
    current: int,
    max_chunk_size: int,
    policy: BreakPolicy,
) -> Optional[int]:
    """
    Search backwards from the overflowing line for an acceptable break.

    Returns the index of the break line, or None for a hard cut.
    """
    limit = max_chunk_size * BREAK_TAIL_RATIO
    lower = max(start, current - BREAK_LOOKBACK_LINES)

    # The ratio bounds the lines replayed into the next chunk, not the
    # flushed chunk, so a break is never rejected for leaving the flushed
    # chunk short of 80% of the budget.
    # tail = "\n".join(lines[candidate + 1:current + 1])
    tail_length = len(lines[current])

    for candidate in range(current - 1, lower - 1, -1):
        if tail_length >= limit:
            return None

        if policy.is_natural_break(lines[candidate]) and _has_content(
            lines[start:candidate + 1]
        ):
            return candidate

        tail_length += len(lines[candidate]) + 1

    return None


def _has_content(lines: list[str]) -> bool:
    return any(line.strip() for line in lines)


def _join_lines(lines: list[str]) -> str:
    """Join lines, dropping blank lines at both edges only."""
    begin = 0
    end = len(lines)
    while begin < end and not lines[begin].strip():
        begin += 1
    while end > begin and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[begin:end])
