import uuid
from pathlib import Path
from typing import Callable, Optional

from .config import ExtractorConfig
from .extractor import BudgetExtractor
from .models import ExtractionResult, UsageOperation, UsageRecord, UsageSummary
from .pdf_text import extract_pdf_text
from .storage import BudgetStorage


class ExtractionService:
    def __init__(
        self,
        config: ExtractorConfig | None = None,
        extractor: BudgetExtractor | None = None,
    ):
        self.config = config or ExtractorConfig()
        self._extractor = extractor
        self.storage = BudgetStorage(self.config.data_dir)

    @property
    def extractor(self) -> BudgetExtractor:
        # Built lazily so read-only endpoints work without credentials.
        if self._extractor is None:
            self._extractor = BudgetExtractor(
                config=self.config.extraction,
                api_key=self.config.api_key,
            )
        return self._extractor

    def extract_text(
        self,
        text: str,
        progress_callback: Optional[Callable[[str], None]] = None,
    ) -> ExtractionResult:
        return self.extractor.extract(text, progress_callback=progress_callback)

    def extract_pdf(
        self,
        pdf_path: str,
        document_id: Optional[str] = None,
        progress_callback: Optional[Callable[[str], None]] = None,
    ) -> tuple[ExtractionResult, str, str]:
        path = Path(pdf_path)
        document_id = document_id or path.stem
        self.storage.build_paths(document_id)

        text = extract_pdf_text(path, progress_callback=progress_callback)
        reprocess = self.storage.has_result(document_id)
        result = self.extract_text(text, progress_callback=progress_callback)

        output_path = self.storage.save_result(document_id, result)

        if result.ai_usage is not None:
            self.storage.append_usage(
                UsageRecord(
                    id=str(uuid.uuid4()),
                    document_id=document_id,
                    file_name=path.name,
                    operation=UsageOperation.REPROCESS if reprocess else UsageOperation.PROCESS,
                    usage=result.ai_usage,
                    cost_per_1k_tokens=self.config.extraction.cost_per_1k_tokens,
                )
            )

        return result, document_id, str(output_path)

    def load_result(self, document_id: str) -> Optional[ExtractionResult]:
        return self.storage.load_result(document_id)

    def usage_summary(self) -> UsageSummary:
        summary = UsageSummary()
        for record in self.storage.list_usage():
            summary.runs += 1
            summary.input_tokens += record.usage.input_tokens
            summary.output_tokens += record.usage.output_tokens
            summary.total_tokens += record.usage.total_tokens
            summary.estimated_cost += record.usage.estimated_cost
        return summary
