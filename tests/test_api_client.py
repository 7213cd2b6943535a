"""
Tests for BudgetAPIClient with mocked Gemini and OpenAI SDKs.
"""

import json
from types import SimpleNamespace
from unittest.mock import Mock, PropertyMock, patch

import httpx
import openai
import pytest
from google.api_core import exceptions as google_exceptions

from budget_extractor import (
    BudgetAPIClient,
    ChunkConnectionError,
    ChunkParseError,
    ChunkRateLimitError,
    ChunkTransportError,
    ExtractionConfig,
    Provider,
    is_retryable,
)


def _gemini_response(payload, usage=None):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return Mock(text=text, usage_metadata=usage)


def _openai_response(payload, usage=None):
    response = Mock()
    response.choices = [Mock()]
    response.choices[0].message.content = json.dumps(payload)
    response.usage = usage
    return response


@pytest.fixture
def mock_genai():
    with patch("budget_extractor.api_client.genai") as mock:
        yield mock


@pytest.fixture
def gemini_model(mock_genai):
    model = Mock()
    mock_genai.GenerativeModel.return_value = model
    return model


@pytest.fixture
def gemini_client(gemini_model):
    return BudgetAPIClient(api_key="test-key")


@pytest.fixture
def mock_openai():
    with patch("budget_extractor.api_client.OpenAI") as mock:
        yield mock


@pytest.fixture
def openai_client(mock_openai):
    config = ExtractionConfig(provider=Provider.OPENAI)
    return BudgetAPIClient(api_key="test-key", config=config)


class TestClientInit:
    def test_missing_api_key_raises(self, mock_genai):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="GEMINI_API_KEY"):
                BudgetAPIClient()

    def test_api_key_from_env(self, mock_genai):
        with patch.dict("os.environ", {"GEMINI_API_KEY": "env-key"}):
            client = BudgetAPIClient()
        assert client.api_key == "env-key"
        mock_genai.configure.assert_called_once_with(api_key="env-key")

    def test_gemini_json_mode(self, mock_genai):
        BudgetAPIClient(api_key="test-key")

        kwargs = mock_genai.GenerativeModel.call_args.kwargs
        assert kwargs["model_name"] == "gemini-2.5-flash"
        assert kwargs["generation_config"]["response_mime_type"] == "application/json"
        assert kwargs["generation_config"]["max_output_tokens"] == 65536

    def test_openai_client_settings(self, mock_openai):
        config = ExtractionConfig(provider=Provider.OPENAI, request_timeout=30)
        client = BudgetAPIClient(api_key="test-key", config=config)

        mock_openai.assert_called_once_with(api_key="test-key", timeout=30, max_retries=0)
        assert client.model == "gpt-4o-mini"
        assert client.label == "OpenAI (gpt-4o-mini)"

    def test_openai_requires_its_own_key(self, mock_openai):
        config = ExtractionConfig(provider=Provider.OPENAI)
        with patch.dict("os.environ", {"GEMINI_API_KEY": "gemini"}, clear=True):
            with pytest.raises(ValueError, match="OPENAI_API_KEY"):
                BudgetAPIClient(config=config)


class TestGeminiExtraction:
    def test_items_in_order(self, gemini_client, gemini_model, raw_separator, raw_line):
        gemini_model.generate_content.return_value = _gemini_response(
            {"items": [raw_separator, raw_line]}
        )

        response = gemini_client.extract_chunk("CAPÍTULO 1\n1.1 Excavación", 1)

        assert [item.is_separator for item in response.items] == [True, False]
        assert response.items[1].line_id == "1.1"
        assert response.items[1].unit_price == 18.4

    def test_prompt_contains_chunk_and_number(self, gemini_client, gemini_model):
        gemini_model.generate_content.return_value = _gemini_response({"items": []})

        gemini_client.extract_chunk("1.1 Demolición de {tabique}", 3)

        prompt = gemini_model.generate_content.call_args.args[0]
        assert "1.1 Demolición de {tabique}" in prompt
        assert "chunk 3" in prompt

    def test_request_timeout(self, gemini_client, gemini_model):
        gemini_model.generate_content.return_value = _gemini_response({"items": []})

        gemini_client.extract_chunk("text", 1)

        kwargs = gemini_model.generate_content.call_args.kwargs
        assert kwargs["request_options"] == {"timeout": 120.0}

    def test_usage_metadata(self, gemini_client, gemini_model):
        usage = SimpleNamespace(
            prompt_token_count=10, candidates_token_count=20, total_token_count=30
        )
        gemini_model.generate_content.return_value = _gemini_response({"items": []}, usage)

        response = gemini_client.extract_chunk("text", 1)

        assert response.usage.input_tokens == 10
        assert response.usage.output_tokens == 20
        assert response.usage.total_tokens == 30

    def test_usage_metadata_as_dict(self, gemini_client, gemini_model):
        usage = {"promptTokenCount": 7, "candidatesTokenCount": 3, "totalTokenCount": 10}
        gemini_model.generate_content.return_value = _gemini_response({"items": []}, usage)

        response = gemini_client.extract_chunk("text", 1)

        assert response.usage.total_tokens == 10

    def test_missing_usage(self, gemini_client, gemini_model):
        gemini_model.generate_content.return_value = _gemini_response({"items": []})
        assert gemini_client.extract_chunk("text", 1).usage is None

    @pytest.mark.parametrize(
        "payload",
        [{}, {"items": None}, {"items": "none"}, {"other": [1, 2]}],
    )
    def test_missing_items_is_empty(self, gemini_client, gemini_model, payload):
        gemini_model.generate_content.return_value = _gemini_response(payload)
        assert gemini_client.extract_chunk("text", 1).items == []

    def test_top_level_array(self, gemini_client, gemini_model, raw_line):
        gemini_model.generate_content.return_value = _gemini_response([raw_line])
        assert len(gemini_client.extract_chunk("text", 1).items) == 1

    def test_non_object_entries_skipped(self, gemini_client, gemini_model, raw_line):
        gemini_model.generate_content.return_value = _gemini_response(
            {"items": ["junk", 3, raw_line, None]}
        )
        response = gemini_client.extract_chunk("text", 1)
        assert len(response.items) == 1

    def test_invalid_json(self, gemini_client, gemini_model):
        gemini_model.generate_content.return_value = _gemini_response('{"items": [')

        with pytest.raises(ChunkParseError) as exc_info:
            gemini_client.extract_chunk("text", 2)

        error = exc_info.value
        assert error.chunk_index == 2
        assert error.raw_length == len('{"items": [')
        assert isinstance(error.original_error, json.JSONDecodeError)
        assert not is_retryable(error)

    def test_empty_reply(self, gemini_client, gemini_model):
        gemini_model.generate_content.return_value = _gemini_response("")

        with pytest.raises(ChunkParseError) as exc_info:
            gemini_client.extract_chunk("text", 1)
        assert exc_info.value.raw_length == 0

    def test_blocked_reply(self, gemini_client, gemini_model):
        response = Mock(usage_metadata=None)
        type(response).text = PropertyMock(side_effect=ValueError("no parts"))
        gemini_model.generate_content.return_value = response

        with pytest.raises(ChunkParseError):
            gemini_client.extract_chunk("text", 1)


class TestGeminiErrors:
    def test_rate_limit(self, gemini_client, gemini_model):
        gemini_model.generate_content.side_effect = google_exceptions.ResourceExhausted("quota")

        with pytest.raises(ChunkRateLimitError) as exc_info:
            gemini_client.extract_chunk("text", 4)

        assert exc_info.value.chunk_index == 4
        assert exc_info.value.status_code == 429
        assert is_retryable(exc_info.value)

    def test_timeout(self, gemini_client, gemini_model):
        gemini_model.generate_content.side_effect = google_exceptions.DeadlineExceeded("slow")

        with pytest.raises(ChunkConnectionError):
            gemini_client.extract_chunk("text", 1)

    def test_server_error(self, gemini_client, gemini_model):
        gemini_model.generate_content.side_effect = google_exceptions.InternalServerError("boom")

        with pytest.raises(ChunkTransportError) as exc_info:
            gemini_client.extract_chunk("text", 1)

        assert exc_info.value.status_code == 500
        assert is_retryable(exc_info.value)

    def test_permission_denied_not_retryable(self, gemini_client, gemini_model):
        gemini_model.generate_content.side_effect = google_exceptions.PermissionDenied("bad key")

        with pytest.raises(ChunkTransportError) as exc_info:
            gemini_client.extract_chunk("text", 1)

        assert exc_info.value.status_code == 403
        assert not is_retryable(exc_info.value)


class TestOpenAIExtraction:
    def test_items_and_usage(self, openai_client, mock_openai, raw_line):
        usage = SimpleNamespace(prompt_tokens=5, completion_tokens=5, total_tokens=10)
        mock_openai.return_value.chat.completions.create.return_value = _openai_response(
            {"items": [raw_line]}, usage
        )

        response = openai_client.extract_chunk("text", 1)

        assert len(response.items) == 1
        assert response.usage.total_tokens == 10

        kwargs = mock_openai.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["max_tokens"] == 16384

    def test_rate_limit(self, openai_client, mock_openai):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.RateLimitError(
            "Rate limit", response=httpx.Response(429, request=request), body=None
        )
        mock_openai.return_value.chat.completions.create.side_effect = error

        with pytest.raises(ChunkRateLimitError):
            openai_client.extract_chunk("text", 1)

    def test_connection_error(self, openai_client, mock_openai):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_openai.return_value.chat.completions.create.side_effect = (
            openai.APIConnectionError(request=request)
        )

        with pytest.raises(ChunkConnectionError):
            openai_client.extract_chunk("text", 1)

    def test_status_error(self, openai_client, mock_openai):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.InternalServerError(
            "Server error", response=httpx.Response(503, request=request), body=None
        )
        mock_openai.return_value.chat.completions.create.side_effect = error

        with pytest.raises(ChunkTransportError) as exc_info:
            openai_client.extract_chunk("text", 1)

        assert exc_info.value.status_code == 503
