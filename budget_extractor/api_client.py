"""
Model API Client for Chunked Budget Extraction.

This module provides the client that sends one text chunk to the model and
returns the raw budget items it found:
- Gemini (google-generativeai) or OpenAI backends, JSON response mode
- Single request, single parse attempt (no retries)
- Bounded request timeout
- Token usage extraction from response metadata
- SDK errors mapped to the chunk error hierarchy
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from openai import (
    OpenAI,
    APIError as OpenAIAPIError,
    APIConnectionError as OpenAIConnectionError,
    RateLimitError,
)

from .exceptions import (
    ChunkConnectionError,
    ChunkParseError,
    ChunkRateLimitError,
    ChunkTransportError,
)
from .models import ChunkUsage, ExtractionConfig, Provider, RawBudgetItem
from .prompts import SYSTEM_PROMPT, get_chunk_extraction_prompt


logger = logging.getLogger(__name__)

API_KEY_ENV_VARS = {
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
}


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class ChunkResponse:
    """
    Parsed reply for one chunk.

    Attributes:
        items: Raw items in the order the model emitted them
        usage: Token counters, or None if the backend did not report them
        raw_length: Length of the raw reply in characters
    """

    items: list[RawBudgetItem] = field(default_factory=list)
    usage: Optional[ChunkUsage] = None
    raw_length: int = 0


# =============================================================================
# API CLIENT
# =============================================================================


class BudgetAPIClient:
    """
    Sends document chunks to the model and parses the JSON it returns.

    Usage:
        client = BudgetAPIClient(api_key="...")
        response = client.extract_chunk(chunk_text, chunk_index=1)
        print(len(response.items), response.usage)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[ExtractionConfig] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Model API key (defaults to GEMINI_API_KEY or
                OPENAI_API_KEY, depending on the provider)
            config: Extraction configuration (provider, model, limits)
        """
        self.config = config or ExtractionConfig()
        self.provider = self.config.provider

        env_var = API_KEY_ENV_VARS[self.provider]
        self.api_key = api_key or os.getenv(env_var)
        if not self.api_key:
            raise ValueError(f"API key required. Set {env_var} environment variable.")

        self.model = self.config.model
        self._gemini_model = None
        self._openai_client = None

        if self.provider == Provider.GEMINI:
            genai.configure(api_key=self.api_key)
            self._gemini_model = genai.GenerativeModel(
                model_name=self.model,
                generation_config={
                    "response_mime_type": "application/json",
                    "max_output_tokens": self.config.max_output_tokens,
                    "temperature": self.config.temperature,
                },
                system_instruction=SYSTEM_PROMPT,
            )
        else:
            self._openai_client = OpenAI(
                api_key=self.api_key,
                timeout=self.config.request_timeout,
                max_retries=0,
            )

    @property
    def label(self) -> str:
        """Human-readable backend name for progress messages."""
        if self.provider == Provider.GEMINI:
            return "Gemini AI"
        return f"OpenAI ({self.model})"

    def extract_chunk(self, chunk_text: str, chunk_index: int) -> ChunkResponse:
        """
        Extract raw budget items from one chunk.

        Args:
            chunk_text: Segment of the document text
            chunk_index: 1-based position of the chunk in the run

        Returns:
            ChunkResponse with raw items and optional usage

        Raises:
            ChunkParseError: The reply is not valid JSON
            ChunkRateLimitError: Quota or rate limit exceeded
            ChunkConnectionError: API unreachable or request timed out
            ChunkTransportError: Any other API failure
        """
        prompt = get_chunk_extraction_prompt(chunk_text, chunk_index)

        if self.provider == Provider.GEMINI:
            raw_content, usage = self._call_gemini(prompt, chunk_index)
        else:
            raw_content, usage = self._call_openai(prompt, chunk_index)

        items = self._parse_items(raw_content, chunk_index)
        logger.info(f"Chunk {chunk_index} parsed successfully: {len(items)} items extracted")

        return ChunkResponse(items=items, usage=usage, raw_length=len(raw_content))

    # -------------------------------------------------------------------------
    # Backends
    # -------------------------------------------------------------------------

    def _call_gemini(self, prompt: str, chunk_index: int) -> tuple[str, Optional[ChunkUsage]]:
        try:
            response = self._gemini_model.generate_content(
                prompt,
                request_options={"timeout": self.config.request_timeout},
            )
        except (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests) as e:
            logger.warning(f"Chunk {chunk_index}: rate limit hit")
            raise ChunkRateLimitError(chunk_index, original_error=e) from e
        except (google_exceptions.DeadlineExceeded, google_exceptions.RetryError) as e:
            logger.warning(f"Chunk {chunk_index}: request timed out")
            raise ChunkConnectionError(chunk_index, original_error=e) from e
        except google_exceptions.GoogleAPICallError as e:
            raise ChunkTransportError(
                chunk_index, str(e.message or "Model request failed"), e, _status_code(e.code)
            ) from e
        except google_exceptions.GoogleAPIError as e:
            raise ChunkTransportError(chunk_index, original_error=e) from e

        usage = self._read_usage(
            getattr(response, "usage_metadata", None),
            ("prompt_token_count", "promptTokenCount"),
            ("candidates_token_count", "candidatesTokenCount"),
            ("total_token_count", "totalTokenCount"),
        )

        try:
            raw_content = response.text or ""
        except ValueError as e:
            # Raised by the SDK when the reply has no text parts (e.g. blocked).
            logger.error(f"Chunk {chunk_index}: model returned no text: {e}")
            raise ChunkParseError(chunk_index, 0, e) from e

        return raw_content, usage

    def _call_openai(self, prompt: str, chunk_index: int) -> tuple[str, Optional[ChunkUsage]]:
        try:
            response = self._openai_client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.config.max_output_tokens,
                temperature=self.config.temperature,
                response_format={"type": "json_object"},
            )
        except RateLimitError as e:
            logger.warning(f"Chunk {chunk_index}: rate limit hit")
            raise ChunkRateLimitError(chunk_index, original_error=e) from e
        except OpenAIConnectionError as e:
            logger.warning(f"Chunk {chunk_index}: connection error")
            raise ChunkConnectionError(chunk_index, original_error=e) from e
        except OpenAIAPIError as e:
            raise ChunkTransportError(
                chunk_index, str(e), e, getattr(e, "status_code", None)
            ) from e

        usage = self._read_usage(
            getattr(response, "usage", None),
            ("prompt_tokens",),
            ("completion_tokens",),
            ("total_tokens",),
        )
        raw_content = response.choices[0].message.content or ""
        return raw_content, usage

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    def _parse_items(self, raw_content: str, chunk_index: int) -> list[RawBudgetItem]:
        """
        Parse the reply into raw items.

        A missing or non-list "items" key means zero items; only a JSON
        syntax error is fatal.
        """
        try:
            data = json.loads(raw_content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse chunk {chunk_index}: {e}")
            logger.debug(f"Response preview: {raw_content[:500]}...")
            logger.error(f"Response length: {len(raw_content)} characters")
            raise ChunkParseError(chunk_index, len(raw_content), e) from e

        if isinstance(data, dict):
            entries = data.get("items")
        elif isinstance(data, list):
            entries = data
        else:
            entries = None

        if not isinstance(entries, list):
            return []

        items: list[RawBudgetItem] = []
        for position, entry in enumerate(entries):
            if not isinstance(entry, dict):
                logger.warning(
                    f"Chunk {chunk_index}: skipping item {position} "
                    f"(expected object, got {type(entry).__name__})"
                )
                continue
            items.append(RawBudgetItem.model_validate(entry))

        return items

    @staticmethod
    def _read_usage(
        metadata: Any,
        input_keys: tuple[str, ...],
        output_keys: tuple[str, ...],
        total_keys: tuple[str, ...],
    ) -> Optional[ChunkUsage]:
        """Read token counters from an SDK object or a plain dict."""
        if metadata is None:
            return None

        def _read(keys: tuple[str, ...]) -> int:
            for key in keys:
                if isinstance(metadata, dict):
                    value = metadata.get(key)
                else:
                    value = getattr(metadata, key, None)
                if isinstance(value, (int, float)) and value > 0:
                    return int(value)
            return 0

        return ChunkUsage(
            input_tokens=_read(input_keys),
            output_tokens=_read(output_keys),
            total_tokens=_read(total_keys),
        )


def _status_code(code: Any) -> Optional[int]:
    """HTTP status of a google.api_core error, if known."""
    try:
        return int(code) if code is not None else None
    except (TypeError, ValueError):
        return None
