"""Tests for budget_extractor.storage."""

import pytest

from budget_extractor import UsageRecord, UsageTally


def _record(document_id: str, total: int, record_id: str = "r") -> UsageRecord:
    return UsageRecord(
        id=record_id,
        document_id=document_id,
        file_name=f"{document_id}.pdf",
        usage=UsageTally(input_tokens=total // 2, output_tokens=total // 2, total_tokens=total),
        cost_per_1k_tokens=0.00015,
    )


class TestResults:
    def test_save_and_load(self, storage, sample_result):
        path = storage.save_result("obra-1", sample_result)

        assert path == storage.data_dir / "obra-1" / "budget.json"
        assert path.exists()
        loaded = storage.load_result("obra-1")
        assert [i.id for i in loaded.items] == ["sep-1", "line-1", "line-2"]

    def test_load_missing(self, storage):
        assert storage.load_result("missing") is None
        assert not storage.has_result("missing")

    def test_save_overwrites(self, storage, sample_result):
        storage.save_result("obra-1", sample_result)
        sample_result.items.pop()
        storage.save_result("obra-1", sample_result)

        assert storage.load_result("obra-1").total_items == 2

    def test_delete(self, storage, sample_result):
        storage.save_result("obra-1", sample_result)

        assert storage.delete_result("obra-1") is True
        assert not storage.has_result("obra-1")
        assert storage.delete_result("obra-1") is False

    @pytest.mark.parametrize("document_id", ["../escaped", "..", ".", "", "a/b", "/tmp/abs"])
    def test_rejects_unsafe_document_id(self, storage, sample_result, tmp_path, document_id):
        with pytest.raises(ValueError):
            storage.save_result(document_id, sample_result)
        with pytest.raises(ValueError):
            storage.delete_result(document_id)
        with pytest.raises(ValueError):
            storage.load_result(document_id)

        assert not (tmp_path / "escaped").exists()
        assert list(tmp_path.rglob("budget.json")) == []

    def test_delete_cannot_remove_data_dir_parent(self, storage, sample_result, tmp_path):
        storage.save_result("obra-1", sample_result)

        with pytest.raises(ValueError):
            storage.delete_result("..")

        assert storage.has_result("obra-1")
        assert tmp_path.exists()

    def test_list_documents(self, storage, sample_result):
        assert storage.list_documents() == []

        storage.save_result("b", sample_result)
        storage.save_result("a", sample_result)

        assert storage.list_documents() == ["a", "b"]


class TestItemFlags:
    def test_chunk_flag_persisted(self, storage, sample_result):
        storage.save_result("obra-1", sample_result)

        item = storage.update_item_flags("obra-1", "line-1", chunk_index=1)

        assert item.copied_chunks == [False, True]
        assert storage.load_result("obra-1").get_item("line-1").copied_chunks == [False, True]

    def test_field_flag_persisted(self, storage, sample_result):
        storage.save_result("obra-1", sample_result)

        storage.update_item_flags("obra-1", "line-2", field="total")
        storage.update_item_flags("obra-1", "line-2", field="total", copied=False)
        storage.update_item_flags("obra-1", "line-2", field="unit")

        item = storage.load_result("obra-1").get_item("line-2")
        assert item.copied_total is False
        assert item.copied_unit is True

    def test_unknown_item(self, storage, sample_result):
        storage.save_result("obra-1", sample_result)
        with pytest.raises(KeyError):
            storage.update_item_flags("obra-1", "nope", chunk_index=0)

    def test_unknown_document(self, storage):
        with pytest.raises(FileNotFoundError):
            storage.update_item_flags("nope", "line-1", chunk_index=0)

    def test_separator_has_no_fields(self, storage, sample_result):
        storage.save_result("obra-1", sample_result)
        with pytest.raises(ValueError):
            storage.update_item_flags("obra-1", "sep-1", field="total")


class TestUsageRecords:
    def test_append_and_list(self, storage):
        storage.append_usage(_record("a", 40, "1"))
        storage.append_usage(_record("b", 10, "2"))
        storage.append_usage(_record("a", 20, "3"))

        assert [r.id for r in storage.list_usage()] == ["1", "2", "3"]
        assert [r.usage.total_tokens for r in storage.list_usage("a")] == [40, 20]

    def test_empty(self, storage):
        assert storage.list_usage() == []

    def test_clear(self, storage):
        storage.append_usage(_record("a", 40))
        storage.clear_usage()
        assert storage.list_usage() == []
