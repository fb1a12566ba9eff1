"""Tests for jot.backends.filtering."""

import pytest

from jot.backends.filtering import FilteringBackend
from jot.core.exceptions import BackendIOError, NotFoundError, ReadOnlyOperationError
from jot.db.models import Document, DocType, SyncStatus


class CountingSource:
    """In-memory backend that counts list() calls."""

    def __init__(self, docs):
        self.docs = list(docs)
        self.list_calls = 0

    def doc_type(self):
        return DocType.NOTE

    def list(self):
        self.list_calls += 1
        return list(self.docs)

    def get(self, doc_id, hard=False):
        for doc in self.docs:
            if doc.id == doc_id:
                return doc
        raise NotFoundError(doc_id)

    def count(self):
        return len(self.docs)

    def status(self):
        return SyncStatus.OK

    def storage_path(self):
        return "/notes"

    def storage_path_doc(self, doc_id):
        return f"/notes/{doc_id}.md"


class FilterBox:
    """Stands in for a search box the UI updates."""

    def __init__(self, text=""):
        self.text = text
        self.reads = 0

    def __call__(self):
        self.reads += 1
        return self.text


@pytest.fixture
def docs():
    return [
        Document(id="3", created="2021-07-03", author="a", content="tomatoes planted", modified="2021-07-03"),
        Document(id="2", created="2021-07-02", author="a", content="nothing much", title="Garden plan"),
        Document(id="1", created="2021-07-01", author="a", content="Garden tour", modified="2021-07-10"),
    ]


@pytest.fixture
def source(docs):
    return CountingSource(docs)


class TestFilteringBackend:
    def test_empty_filter_passes_everything_in_source_order(self, source):
        view = FilteringBackend(source, FilterBox())
        assert [d.id for d in view.list()] == ["3", "2", "1"]
        assert view.count() == 3

    def test_none_filter_is_empty(self, source):
        view = FilteringBackend(source, lambda: None)
        assert view.count() == 3
        assert view.filter_text == ""

    def test_matches_sorted_by_recency(self, source):
        view = FilteringBackend(source, FilterBox("garden"))
        # "1" was modified most recently.
        assert [d.id for d in view.list()] == ["1", "2"]

    def test_filter_change_recomputes(self, source):
        box = FilterBox("garden")
        view = FilteringBackend(source, box)
        assert view.count() == 2
        box.text = "tomato"
        assert [d.id for d in view.list()] == ["3"]
        assert view.filter_text == "tomato"
        box.text = ""
        assert view.count() == 3

    def test_snapshot_taken_once(self, source):
        box = FilterBox("garden")
        view = FilteringBackend(source, box)
        for text in ("garden", "tomato", "", "garden"):
            box.text = text
            view.list()
        assert source.list_calls == 1

    def test_source_changes_need_refresh(self, source, docs):
        view = FilteringBackend(source, FilterBox("pepper"))
        source.docs.append(Document(id="4", created="2021-07-04", author="a", content="peppers"))
        assert view.count() == 0
        assert [d.id for d in view.refresh()] == ["4"]
        assert source.list_calls == 2

    def test_returns_copies(self, source):
        view = FilteringBackend(source, FilterBox())
        view.list().clear()
        assert view.count() == 3

    def test_delegates_to_source(self, source, docs):
        view = FilteringBackend(source, FilterBox("nothing matches this"))
        assert view.get("3") is docs[0]
        assert view.doc_type() == DocType.NOTE
        assert view.status() == SyncStatus.OK
        assert view.storage_path() == "/notes"
        assert view.storage_path_doc("3") == "/notes/3.md"
        assert view.source is source

    def test_get_ignores_filter(self, source):
        view = FilteringBackend(source, FilterBox("tomato"))
        assert view.get("2").title == "Garden plan"

    def test_read_only(self, source, docs):
        view = FilteringBackend(source, FilterBox())
        with pytest.raises(ReadOnlyOperationError, match="read-only"):
            view.reconcile("3")
        with pytest.raises(ReadOnlyOperationError, match="read-only"):
            view.create_or_update(docs[0])

    def test_snapshot_failure_propagates(self):
        class Broken(CountingSource):
            def list(self):
                raise BackendIOError("disk on fire")

        with pytest.raises(BackendIOError):
            FilteringBackend(Broken([]), FilterBox())

    def test_over_filesystem_store(self, notes_dir):
        from jot.notes.store import FilesystemStore

        with FilesystemStore(notes_dir, watch=False) as store:
            view = FilteringBackend(store, lambda: "GARDEN")
            assert {d.id for d in view.list()} == {"1625025715", "1625113859"}
            assert view.storage_path() == notes_dir
