"""
Custom Exceptions for Budget Extraction.

This module defines a hierarchy of exceptions for precise error handling
in the chunked, sequential budget extraction pipeline.

Exception Hierarchy:
    BudgetExtractorError (base)
    ├── ChunkError
    │   ├── ChunkParseError
    │   └── ChunkTransportError
    │       ├── ChunkConnectionError
    │       └── ChunkRateLimitError
    ├── ExtractionError
    └── PDFError
        ├── PDFNotFoundError
        └── PDFCorruptedError

A chunk-level failure (ChunkError) is always fatal to the run: the
orchestrator reports it and re-raises it wrapped in an ExtractionError.

Usage:
    from budget_extractor.exceptions import ExtractionError, ChunkParseError

    try:
        result = extractor.extract(text)
    except ExtractionError as e:
        print(f"Chunk {e.chunk_index}/{e.total_chunks} failed: {e}")
        if isinstance(e.original_error, ChunkParseError):
            print(f"Reply was {e.original_error.raw_length} characters")
"""

from __future__ import annotations

from typing import Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class BudgetExtractorError(Exception):
    """
    Base exception for all budget extraction errors.

    Attributes:
        message: Human-readable error description
        details: Additional technical details (optional)
    """

    def __init__(
        self,
        message: str = "A budget extraction error occurred",
        details: Optional[str] = None,
    ):
        self.message = message
        self.details = details

        full_message = message
        if details:
            full_message = f"{message} | Details: {details}"

        super().__init__(full_message)


# =============================================================================
# CHUNK ERRORS
# =============================================================================


class ChunkError(BudgetExtractorError):
    """
    Base class for failures while processing a single text chunk.

    Attributes:
        chunk_index: 1-based position of the chunk in the run
    """

    def __init__(
        self,
        chunk_index: int,
        message: Optional[str] = None,
        details: Optional[str] = None,
    ):
        self.chunk_index = chunk_index
        msg = message or f"Chunk {chunk_index} failed"
        super().__init__(msg, details)


class ChunkParseError(ChunkError):
    """
    Raised when the model's reply for a chunk is not valid JSON.

    Attributes:
        chunk_index: 1-based position of the chunk
        raw_length: Length of the raw reply in characters
        original_error: The underlying parse exception
    """

    def __init__(
        self,
        chunk_index: int,
        raw_length: int,
        original_error: Optional[Exception] = None,
    ):
        self.raw_length = raw_length
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(
            chunk_index,
            message=(
                f"Chunk {chunk_index} parsing failed "
                f"(response length: {raw_length} characters)"
            ),
            details=details,
        )


class ChunkTransportError(ChunkError):
    """
    Raised when the call to the model fails (network, auth, quota).

    Attributes:
        chunk_index: 1-based position of the chunk
        original_error: The underlying SDK exception
        status_code: HTTP status code if available
    """

    def __init__(
        self,
        chunk_index: int,
        message: str = "Model request failed",
        original_error: Optional[Exception] = None,
        status_code: Optional[int] = None,
    ):
        self.original_error = original_error
        self.status_code = status_code

        if status_code:
            message = f"{message} (HTTP {status_code})"
        details = str(original_error) if original_error else None

        super().__init__(
            chunk_index,
            message=f"Chunk {chunk_index}: {message}",
            details=details,
        )


class ChunkConnectionError(ChunkTransportError):
    """
    Raised when the model API cannot be reached.

    This includes network errors, DNS failures, and request timeouts.
    """

    def __init__(
        self,
        chunk_index: int,
        original_error: Optional[Exception] = None,
        message: str = "Cannot connect to model API",
    ):
        super().__init__(chunk_index, message, original_error)


class ChunkRateLimitError(ChunkTransportError):
    """
    Raised when the model API rejects a request for quota or rate reasons.

    Attributes:
        retry_after: Suggested wait time in seconds (if provided by the API)
    """

    def __init__(
        self,
        chunk_index: int,
        retry_after: Optional[float] = None,
        original_error: Optional[Exception] = None,
    ):
        self.retry_after = retry_after
        message = "Model API rate limit exceeded"
        if retry_after:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(chunk_index, message, original_error, status_code=429)


# =============================================================================
# RUN ERRORS
# =============================================================================


class ExtractionError(BudgetExtractorError):
    """
    Raised by the orchestrator when a run is aborted.

    Wraps the first fatal chunk error with run-level context. No partial
    result is produced when this is raised.

    Attributes:
        chunk_index: 1-based position of the failing chunk
        total_chunks: Number of chunks in the run
        original_error: The chunk-level exception
    """

    def __init__(
        self,
        chunk_index: int,
        total_chunks: int,
        original_error: Optional[Exception] = None,
    ):
        self.chunk_index = chunk_index
        self.total_chunks = total_chunks
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(
            f"Budget extraction failed at chunk {chunk_index} of {total_chunks}",
            details,
        )


# =============================================================================
# PDF ERRORS
# =============================================================================


class PDFError(BudgetExtractorError):
    """Base class for PDF-related errors."""

    def __init__(
        self,
        message: str = "PDF error",
        path: Optional[str] = None,
        details: Optional[str] = None,
    ):
        self.path = path
        if path:
            message = f"{message} [{path}]"
        super().__init__(message, details)


class PDFNotFoundError(PDFError):
    """
    Raised when the PDF file cannot be found.

    Attributes:
        path: Path to the missing file
    """

    def __init__(self, path: str):
        super().__init__(
            message=f"PDF file not found: {path}",
            path=path,
        )


class PDFCorruptedError(PDFError):
    """
    Raised when the PDF file is corrupted or cannot be opened.

    Attributes:
        path: Path to the corrupted file
        original_error: The underlying error from the PDF library
    """

    def __init__(
        self,
        path: str,
        original_error: Optional[Exception] = None,
    ):
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(
            message=f"PDF file is corrupted or unreadable: {path}",
            path=path,
            details=details,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """
    Check if re-running the whole extraction might succeed.

    Returns True for:
    - Network/connection errors
    - Rate limit errors
    - Temporary server failures (5xx)

    Returns False for:
    - Unparseable model replies
    - Missing or corrupted PDFs

    An ExtractionError is judged by the chunk error it wraps.
    """
    if isinstance(error, ExtractionError) and error.original_error is not None:
        return is_retryable(error.original_error)
    if isinstance(error, (ChunkConnectionError, ChunkRateLimitError)):
        return True
    if isinstance(error, ChunkTransportError) and error.status_code in (500, 502, 503, 504):
        return True
    return False


def format_error_chain(error: Exception) -> str:
    """
    Format an exception and its chain for logging.

    Returns a multi-line string showing the error hierarchy.
    """
    lines = []
    current = error
    depth = 0

    while current is not None:
        prefix = "  " * depth + ("└─ " if depth > 0 else "")
        lines.append(f"{prefix}{type(current).__name__}: {current}")

        if getattr(current, "original_error", None):
            current = current.original_error
            depth += 1
        elif current.__cause__:
            current = current.__cause__
            depth += 1
        else:
            break

    return "\n".join(lines)
