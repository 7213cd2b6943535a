import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .models import ExtractionResult, LineItem, SeparatorItem, UsageRecord


@dataclass
class BudgetPaths:
    document_id: str
    document_dir: Path
    budget_file: Path


class BudgetStorage:
    BUDGET_FILE = "budget.json"
    USAGE_FILE = "usage.jsonl"

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)

    @property
    def usage_file(self) -> Path:
        return self.data_dir / self.USAGE_FILE

    def build_paths(self, document_id: str) -> BudgetPaths:
        # Ids name a single directory directly under data_dir.
        if document_id in ("", ".", "..") or Path(document_id).name != document_id:
            raise ValueError(f"Invalid document id: {document_id!r}")
        document_dir = self.data_dir / document_id
        return BudgetPaths(
            document_id=document_id,
            document_dir=document_dir,
            budget_file=document_dir / self.BUDGET_FILE,
        )

    # --- Results ---

    def save_result(self, document_id: str, result: ExtractionResult) -> Path:
        paths = self.build_paths(document_id)
        paths.document_dir.mkdir(parents=True, exist_ok=True)
        result.save(paths.budget_file)
        return paths.budget_file

    def load_result(self, document_id: str) -> Optional[ExtractionResult]:
        budget_file = self.build_paths(document_id).budget_file
        if not budget_file.exists():
            return None
        return ExtractionResult.load(budget_file)

    def has_result(self, document_id: str) -> bool:
        return self.build_paths(document_id).budget_file.exists()

    def delete_result(self, document_id: str) -> bool:
        document_dir = self.build_paths(document_id).document_dir
        if not document_dir.exists():
            return False
        shutil.rmtree(document_dir)
        return True

    def list_documents(self) -> list[str]:
        if not self.data_dir.exists():
            return []
        return sorted(
            path.name
            for path in self.data_dir.iterdir()
            if (path / self.BUDGET_FILE).exists()
        )

    def update_item_flags(
        self,
        document_id: str,
        item_id: str,
        chunk_index: Optional[int] = None,
        field: Optional[str] = None,
        copied: bool = True,
    ) -> LineItem | SeparatorItem:
        """Persist a copied-flag toggle on one description chunk or numeric field."""
        result = self.load_result(document_id)
        if result is None:
            raise FileNotFoundError(f"No budget stored for document '{document_id}'")

        item = result.get_item(item_id)
        if item is None:
            raise KeyError(item_id)

        if chunk_index is not None:
            item.mark_chunk_copied(chunk_index, copied)
        if field is not None:
            if not isinstance(item, LineItem):
                raise ValueError(f"Separator '{item_id}' has no field '{field}'")
            item.mark_field_copied(field, copied)

        self.save_result(document_id, result)
        return item

    # --- Usage records ---

    def append_usage(self, record: UsageRecord) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with self.usage_file.open("a", encoding="utf-8") as f:
            f.write(record.model_dump_json() + "\n")

    def list_usage(self, document_id: Optional[str] = None) -> list[UsageRecord]:
        if not self.usage_file.exists():
            return []
        records = []
        with self.usage_file.open("r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                record = UsageRecord.model_validate(json.loads(line))
                if document_id is None or record.document_id == document_id:
                    records.append(record)
        return records

    def clear_usage(self) -> None:
        if self.usage_file.exists():
            self.usage_file.unlink()
