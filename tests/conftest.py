"""
Pytest fixtures for Budget Extractor tests.
"""

import pytest

from budget_extractor import (
    BudgetExtractor,
    BudgetStorage,
    ChunkResponse,
    ChunkUsage,
    ExtractionConfig,
    ExtractionResult,
    LineItem,
    RawBudgetItem,
    SeparatorItem,
)


class FakeClient:
    """
    Stand-in for BudgetAPIClient.

    Each entry of ``responses`` is either a ChunkResponse, an exception to
    raise, or a callable(chunk_text, chunk_index) returning a ChunkResponse.
    """

    label = "Fake model"

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: list[tuple[str, int]] = []

    def extract_chunk(self, chunk_text, chunk_index):
        self.calls.append((chunk_text, chunk_index))
        response = self.responses[len(self.calls) - 1]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(chunk_text, chunk_index)
        return response


def make_response(*items, usage=None) -> ChunkResponse:
    """Build a ChunkResponse from raw item dicts."""
    return ChunkResponse(
        items=[RawBudgetItem.model_validate(item) for item in items],
        usage=usage,
        raw_length=100,
    )


def make_lines_text(line_count: int, width: int = 99, char: str = "x") -> str:
    """Text without natural breaks: lowercase lines of equal width."""
    return "\n".join(char * width for _ in range(line_count))


@pytest.fixture
def fake_client():
    """Factory for FakeClient instances: ``fake_client(responses)``."""
    return FakeClient


@pytest.fixture
def chunk_response():
    """Factory for ChunkResponse objects: ``chunk_response(*items, usage=None)``."""
    return make_response


@pytest.fixture
def lines_text():
    """Factory for break-free text: ``lines_text(line_count, width=99, char="x")``."""
    return make_lines_text


@pytest.fixture
def fast_config():
    """Small chunks and no pacing delay."""
    return ExtractionConfig(max_chunk_size=1000, request_delay=0)


@pytest.fixture
def three_chunk_text():
    """25 lines of 99 chars: 10 + 10 + 5 lines at max_chunk_size=1000."""
    return make_lines_text(25)


@pytest.fixture
def raw_line():
    return {
        "type": "line",
        "lineId": "1.1",
        "description": "Excavación en zanja en terreno compacto, por medios mecánicos.",
        "quantity": 12.5,
        "unit": "m³",
        "unitPrice": 18.4,
        "total": 230.0,
    }


@pytest.fixture
def raw_separator():
    return {
        "type": "separator",
        "lineId": None,
        "description": "CAPÍTULO 1 MOVIMIENTO DE TIERRAS",
        "quantity": None,
        "unit": None,
        "unitPrice": 0,
        "total": 0,
    }


@pytest.fixture
def make_extractor(fast_config):
    """Factory for extractors wired to a FakeClient."""

    def _make(responses, config=None):
        client = FakeClient(responses)
        return BudgetExtractor(config=config or fast_config, client=client), client

    return _make


@pytest.fixture
def sample_result():
    """A small extraction result with one separator and two lines."""
    return ExtractionResult(
        items=[
            SeparatorItem(
                id="sep-1",
                description="CAPÍTULO 1 DEMOLICIONES",
                chunks=["CAPÍTULO 1 DEMOLICIONES"],
            ),
            LineItem(
                id="line-1",
                line_id="1.1",
                description="Demolición de tabique. Incluso retirada de escombros.",
                chunks=["Demolición de tabique.", "Incluso retirada de escombros."],
                quantity=20,
                unit="m²",
                unit_price=8.5,
                total=170,
            ),
            LineItem(
                id="line-2",
                line_id="1.2",
                description="Levantado de carpintería",
                chunks=["Levantado de carpintería"],
                quantity=4,
                unit_price=25,
                total=100,
            ),
        ],
        ai_usage=None,
    )


@pytest.fixture
def storage(tmp_path):
    return BudgetStorage(str(tmp_path / "budgets"))


@pytest.fixture
def usage_15_25_40():
    return ChunkUsage(input_tokens=15, output_tokens=25, total_tokens=40)
