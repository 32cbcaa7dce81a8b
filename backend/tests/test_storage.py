"""Tests for document stores and the page/summary store."""
import json

import pytest

from app.models.transaction import SignatureRecord, TransactionSummary
from app.services.storage.filesystem import FileDocumentStore
from app.services.storage.memory import MemoryDocumentStore
from app.services.summary_builder import merge_page, new_summary
from app.services.transaction_store import TransactionStore
from app.utils.errors import PageConflict, StorageError
from conftest import WALLET, make_records


def records_from(raw):
    return [SignatureRecord.model_validate(entry) for entry in raw]


@pytest.fixture(params=["memory", "file"])
def document_store(request, tmp_path):
    if request.param == "memory":
        return MemoryDocumentStore()
    return FileDocumentStore(tmp_path / "transactions")


class TestDocumentStores:
    def test_put_get_delete(self, document_store):
        assert document_store.get("missing") is None
        assert not document_store.exists("doc")

        document_store.put("doc", {"a": [1, 2]})
        assert document_store.get("doc") == {"a": [1, 2]}
        assert document_store.exists("doc")

        assert document_store.delete("doc") is True
        assert document_store.delete("doc") is False
        assert document_store.get("doc") is None

    def test_returned_documents_are_copies(self, document_store):
        document_store.put("doc", {"items": [1]})
        document_store.get("doc")["items"].append(2)
        assert document_store.get("doc") == {"items": [1]}

    def test_unserializable_document_rejected(self, document_store):
        with pytest.raises(StorageError):
            document_store.put("doc", {"value": object()})


class TestFileDocumentStore:
    def test_writes_pretty_json_files(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        store.put(f"{WALLET}-summary", {"address": WALLET})

        path = tmp_path / f"{WALLET}-summary.json"
        assert json.loads(path.read_text()) == {"address": WALLET}
        assert "\n" in path.read_text()
        assert [p.name for p in tmp_path.iterdir()] == [path.name]

    def test_replace_keeps_single_file(self, tmp_path):
        store = FileDocumentStore(tmp_path)
        store.put("doc", [1])
        store.put("doc", [2])
        assert store.get("doc") == [2]
        assert len(list(tmp_path.iterdir())) == 1

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        (tmp_path / "doc.json").write_text("{not json")
        with pytest.raises(StorageError):
            FileDocumentStore(tmp_path).get("doc")

    def test_failed_write_reports_storage_error(self, tmp_path, monkeypatch):
        def fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("app.services.storage.filesystem.os.replace", fail)
        monkeypatch.setattr("app.services.storage.filesystem.os.unlink", fail)

        with pytest.raises(StorageError, match="disk full"):
            FileDocumentStore(tmp_path).put("doc", {"a": 1})

    @pytest.mark.parametrize("key", ["../escape", "a/b", ".hidden", ""])
    def test_unsafe_keys_rejected(self, tmp_path, key):
        with pytest.raises(StorageError):
            FileDocumentStore(tmp_path).put(key, {})


class TestTransactionStore:
    def test_write_and_read_page(self, store):
        page = records_from(make_records(3))
        assert store.write_page(WALLET, 1, page) is True

        loaded = store.read_page(WALLET, 1)
        assert [r.signature for r in loaded] == [r.signature for r in page]
        assert loaded[0].block_time == page[0].block_time
        assert store.read_page(WALLET, 2) is None

    def test_page_keys_follow_file_naming(self, store, documents):
        store.write_page(WALLET, 7, records_from(make_records(1)))
        assert documents.keys() == [f"{WALLET}-transactions-page-7"]

    def test_rewriting_identical_page_is_noop(self, store, documents):
        page = records_from(make_records(2))
        store.write_page(WALLET, 1, page)
        assert store.write_page(WALLET, 1, page) is False
        assert documents.writes == [f"{WALLET}-transactions-page-1"]

    def test_rewriting_different_page_conflicts(self, store):
        store.write_page(WALLET, 1, records_from(make_records(2)))
        with pytest.raises(PageConflict):
            store.write_page(WALLET, 1, records_from(make_records(2, prefix="other")))
        assert store.read_page(WALLET, 1)[0].signature == "sig-00002"

    def test_changed_mutable_fields_overwrite_page(self, store):
        raw = make_records(2)
        store.write_page(WALLET, 1, records_from([dict(r, confirmationStatus="confirmed") for r in raw]))

        assert store.write_page(WALLET, 1, records_from(raw)) is True
        assert {r.confirmation_status for r in store.read_page(WALLET, 1)} == {"finalized"}

    def test_replace_overwrites_other_signatures(self, store):
        store.write_page(WALLET, 1, records_from(make_records(2)))

        assert store.write_page(WALLET, 1, records_from(make_records(3, prefix="new")), replace=True) is True
        assert [r.signature for r in store.read_page(WALLET, 1)] == ["new-00003", "new-00002", "new-00001"]

    def test_summary_round_trip_uses_camel_case(self, store, documents):
        summary = merge_page(new_summary(WALLET), 1, records_from(make_records(5)))
        store.save_summary(summary)

        document = documents.get(f"{WALLET}-summary")
        assert document["totalTransactions"] == 5
        assert document["earliestTransaction"]["blockTime"] == summary.earliest_transaction.block_time
        assert document["pages"][0]["pageNumber"] == 1
        assert store.load_summary(WALLET) == summary

    def test_missing_summary(self, store):
        assert store.load_summary(WALLET) is None

    def test_corrupt_summary(self, store, documents):
        documents.put(f"{WALLET}-summary", {"address": WALLET, "pages": "nope"})
        with pytest.raises(StorageError):
            store.load_summary(WALLET)

    def test_legacy_summary_infers_all_fetched(self, store, documents):
        documents.put(f"{WALLET}-summary", {
            "address": WALLET,
            "totalPages": 5,
            "totalTransactions": 999,
            "pages": [
                {"pageNumber": 2, "transactionCount": 40, "lastSignature": "b", "timestamp": 2},
                {"pageNumber": 1, "transactionCount": 100, "lastSignature": "a", "timestamp": 1},
            ],
        })

        summary = store.load_summary(WALLET)

        assert summary.all_fetched is True
        assert [p.page_number for p in summary.pages] == [1, 2]
        assert summary.total_pages == 2
        assert summary.total_transactions == 140

    def test_stored_all_fetched_flag_is_kept(self, store, documents):
        documents.put(f"{WALLET}-summary", {
            "address": WALLET,
            "allFetched": False,
            "pages": [{"pageNumber": 1, "transactionCount": 40, "lastSignature": "a", "timestamp": 1}],
        })
        assert store.load_summary(WALLET).all_fetched is False

    def test_delete(self, store):
        store.write_page(WALLET, 1, records_from(make_records(1)))
        store.save_summary(TransactionSummary(address=WALLET))

        assert store.delete_summary(WALLET) is True
        assert store.delete_page(WALLET, 1) is True
        assert store.delete_page(WALLET, 1) is False
        assert store.load_summary(WALLET) is None
