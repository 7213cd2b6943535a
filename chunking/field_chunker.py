"""
Field Chunker for Budget Item Descriptions

Splits one long description into display-sized pieces so a reviewer can
copy them one at a time. Boundaries are tried from coarse to fine:

1. Sentences: ".", "!" or "?" followed by whitespace
2. Phrases:   "," or ";" followed by whitespace
3. Words:     whitespace

Units are accumulated (joined by a single space) until the next one would
overflow max_length. A unit that is too long on its own is split at the next
finer level. A single word longer than max_length is kept whole.

Usage:
    from chunking.field_chunker import chunk_field

    chunks = chunk_field(item_description, max_length=256)
"""

import re

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_PHRASE_BOUNDARY = re.compile(r"(?<=[,;])\s+")
_WORD_BOUNDARY = re.compile(r"\s+")

# Coarsest first.
_LEVELS = (_SENTENCE_BOUNDARY, _PHRASE_BOUNDARY, _WORD_BOUNDARY)


def chunk_field(description: str, max_length: int) -> list[str]:
    """
    Split a description into trimmed chunks of at most max_length characters.

    Args:
        description: Text of a single budget item field.
        max_length: Maximum characters per chunk.

    Returns:
        Non-empty, trimmed chunks in reading order. A description that already
        fits is returned as a single chunk; a blank description returns [].
    """
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")

    if not description or not description.strip():
        return []

    text = description.strip()
    if len(text) <= max_length:
        return [text]

    return _split(text, max_length, level=0)


def _split(text: str, max_length: int, level: int) -> list[str]:
    units = [u.strip() for u in _LEVELS[level].split(text) if u.strip()]
    finest = level == len(_LEVELS) - 1

    chunks: list[str] = []
    current = ""

    for unit in units:
        candidate = f"{current} {unit}" if current else unit
        if len(candidate) <= max_length:
            current = candidate
            continue

        if current:
            chunks.append(current)
            current = ""

        if len(unit) > max_length and not finest:
            pieces = _split(unit, max_length, level + 1)
            chunks.extend(pieces[:-1])
            current = pieces[-1]
        else:
            current = unit

    if current:
        chunks.append(current)

    return chunks
