"""Tests for jot.backends.remote."""

import threading

import pytest

from jot.backends.remote import RemoteCacheBackend, collect_pages
from jot.core.exceptions import APIError, BackendIOError, NotFoundError
from jot.db.models import Document, DocType, SyncStatus


class ScriptedBackend(RemoteCacheBackend):
    """Remote backend whose fetches return (or raise) whatever the test queues."""

    DOC_TYPE = DocType.KEEP

    def __init__(self, refresh_interval=600, *, clock):
        super().__init__(refresh_interval, clock=clock)
        self.responses = []
        self.fetches = 0

    def fetch_all(self):
        self.fetches += 1
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def storage_path(self):
        return "remote://items"

    def storage_path_doc(self, doc_id):
        return f"remote://items/{doc_id}"


def _doc(doc_id, created="2021-07-01T00:00:00Z"):
    return Document(id=doc_id, created=created, doc_type=DocType.KEEP, content=f"item {doc_id}")


@pytest.fixture
def backend(clock):
    return ScriptedBackend(clock=clock)


class TestCollectPages:
    def test_follows_tokens(self):
        pages = {
            None: {"items": [1, 2], "nextPageToken": "p2"},
            "p2": {"items": [3], "nextPageToken": "p3"},
            "p3": {"items": []},
        }
        seen = []

        def fetch(token):
            seen.append(token)
            return pages[token]

        assert collect_pages(fetch, "items") == [1, 2, 3]
        assert seen == [None, "p2", "p3"]

    def test_custom_keys_and_empty_response(self):
        assert collect_pages(lambda token: {"next_cursor": None, "results": None}, "results", "next_cursor") == []
        assert collect_pages(lambda token: None, "results") == []


class TestStateMachine:
    def test_uninitialized_backend_is_synchronizing(self, backend):
        assert backend.count() == 0
        assert backend.last_fetched is None
        assert backend.status() == SyncStatus.SYNCHRONIZING
        assert backend.fetches == 0

    def test_first_list_fetches(self, backend, clock):
        backend.responses.append([_doc("a", "2021-07-01T00:00:00Z"), _doc("b", "2021-07-02T00:00:00Z")])
        assert [d.id for d in backend.list()] == ["b", "a"]
        assert backend.status() == SyncStatus.OK
        assert backend.count() == 2
        assert backend.last_fetched == clock.now

    def test_fresh_collection_is_not_refetched(self, backend, clock):
        backend.responses.append([_doc("a")])
        backend.list()
        clock.advance(600)
        backend.list()
        assert backend.fetches == 1
        assert backend.status() == SyncStatus.OK

    def test_stale_collection_is_refetched(self, backend, clock):
        backend.responses += [[_doc("a"), _doc("b")], [_doc("b")]]
        backend.list()
        clock.advance(601)
        assert backend.status() == SyncStatus.SYNCHRONIZING
        assert [d.id for d in backend.list()] == ["b"]
        assert backend.fetches == 2
        with pytest.raises(NotFoundError):
            backend.get("a")

    def test_failure_keeps_last_good_collection(self, backend, clock):
        backend.responses += [[_doc("a")], APIError("HTTP 503")]
        backend.list()
        clock.advance(601)

        assert [d.id for d in backend.list()] == ["a"]
        assert backend.status() == SyncStatus.ERROR
        assert backend.get("a").id == "a"

    def test_error_status_is_sticky_until_success(self, backend, clock):
        backend.responses += [[_doc("a")], APIError("HTTP 503"), [_doc("a"), _doc("c")]]
        backend.list()
        clock.advance(601)
        backend.list()
        clock.advance(10_000)
        assert backend.status() == SyncStatus.ERROR
        assert backend.count() == 1
        assert backend.list()[0].id == "a"
        assert backend.count() == 2
        assert backend.status() == SyncStatus.OK

    def test_first_fetch_failure_raises(self, backend):
        backend.responses.append(APIError("HTTP 401"))
        with pytest.raises(APIError):
            backend.list()
        assert backend.status() == SyncStatus.ERROR

    def test_non_backend_errors_are_wrapped(self, backend):
        backend.responses.append(ConnectionResetError("reset by peer"))
        with pytest.raises(BackendIOError, match="reset by peer"):
            backend.list()


class TestGet:
    def test_soft_get_never_fetches(self, backend):
        with pytest.raises(NotFoundError, match="x not found"):
            backend.get("x")
        assert backend.fetches == 0

    def test_hard_get_always_refetches(self, backend):
        backend.responses += [[_doc("a")], [_doc("a"), _doc("new")]]
        backend.list()
        assert backend.get("new", hard=True).id == "new"
        assert backend.fetches == 2

    def test_hard_get_of_deleted_item(self, backend):
        backend.responses += [[_doc("a")], []]
        backend.list()
        with pytest.raises(NotFoundError):
            backend.get("a", hard=True)

    def test_hard_get_failure_raises(self, backend):
        backend.responses += [[_doc("a")], APIError("HTTP 500")]
        backend.list()
        with pytest.raises(BackendIOError):
            backend.get("a", hard=True)
        assert backend.get("a").id == "a"


def test_rejects_non_positive_interval(clock):
    with pytest.raises(ValueError):
        ScriptedBackend(refresh_interval=0, clock=clock)


def test_protocol_surface(backend):
    assert backend.doc_type() == DocType.KEEP
    assert backend.storage_path() == "remote://items"
    assert backend.storage_path_doc("a") == "remote://items/a"


class BlockingBackend(ScriptedBackend):
    """Fetch parks on an event so concurrent callers pile up behind it."""

    def __init__(self, *, clock):
        super().__init__(clock=clock)
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch_all(self):
        self.fetches += 1
        self.entered.set()
        assert self.release.wait(5)
        return [_doc("a"), _doc("b", "2021-07-02T00:00:00Z")]


class TestConcurrency:
    def test_concurrent_lists_share_one_fetch(self, clock):
        backend = BlockingBackend(clock=clock)
        num_readers = 8
        results: list[list[str]] = []
        errors: list[Exception] = []

        def read() -> None:
            try:
                results.append([d.id for d in backend.list()])
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=read) for _ in range(num_readers)]
        for t in threads:
            t.start()
        assert backend.entered.wait(5)
        assert backend.status() == SyncStatus.SYNCHRONIZING
        backend.release.set()
        for t in threads:
            t.join()

        assert not errors, f"Errors during concurrent lists: {errors}"
        assert backend.fetches == 1
        assert results == [["b", "a"]] * num_readers
        assert backend.status() == SyncStatus.OK

    def test_stale_backend_refetches_once_for_concurrent_readers(self, clock):
        backend = BlockingBackend(clock=clock)
        backend.release.set()
        backend.list()
        clock.advance(601)
        backend.release.clear()
        backend.entered.clear()

        threads = [threading.Thread(target=backend.list) for _ in range(5)]
        for t in threads:
            t.start()
        assert backend.entered.wait(5)
        # Collection stays readable while the refetch is in flight.
        assert backend.get("a").id == "a"
        backend.release.set()
        for t in threads:
            t.join()

        assert backend.fetches == 2
