from dataclasses import dataclass, field
import os
from typing import Optional

from .api_client import API_KEY_ENV_VARS
from .models import ExtractionConfig, Provider


@dataclass
class ExtractorConfig:
    data_dir: str = "data/budgets"
    api_key: Optional[str] = None
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        def _int(name: str) -> Optional[int]:
            value = os.environ.get(name)
            return int(value) if value else None

        def _float(name: str) -> Optional[float]:
            value = os.environ.get(name)
            return float(value) if value else None

        provider = Provider(os.environ.get("BUDGET_PROVIDER", Provider.GEMINI.value).lower())

        overrides = {
            "model": os.environ.get("BUDGET_MODEL") or None,
            "max_chunk_size": _int("BUDGET_MAX_CHUNK_SIZE"),
            "max_field_chunk_length": _int("BUDGET_MAX_FIELD_CHUNK_LENGTH"),
            "cost_per_1k_tokens": _float("BUDGET_COST_PER_1K"),
            "request_delay": _float("BUDGET_REQUEST_DELAY"),
            "request_timeout": _float("BUDGET_REQUEST_TIMEOUT"),
        }
        extraction = ExtractionConfig(
            provider=provider,
            **{key: value for key, value in overrides.items() if value is not None},
        )

        return cls(
            data_dir=os.environ.get("BUDGET_DATA_DIR", cls.data_dir),
            api_key=os.environ.get(API_KEY_ENV_VARS[provider]),
            extraction=extraction,
        )
