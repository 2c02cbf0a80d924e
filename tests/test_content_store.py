import io
import sqlite3
from pathlib import Path

from wiki.domain.models import AttachmentUpload, PageInput
from wiki.features.content.errors import (
    DuplicatePageName,
    HomePageProtected,
    InvalidPageName,
    StorageError,
    UsernameTaken,
    UserNotFound,
    WrongPassword,
)
from wiki.features.content.service import ContentStore
from wiki.infra.cache import ListingCache
from wiki.infra.db import DbConfig
from wiki.infra.repo_pages import PageRepo
from wiki.infra.storage import BlobStore


def _upload(name: str = "notes.txt", data: bytes = b"payload") -> AttachmentUpload:
    return AttachmentUpload(file_name=name, content_type="text/plain", data=io.BytesIO(data))


def test_save_normalizes_name_and_keeps_content_verbatim(store: ContentStore) -> None:
    content = "# Hi\n\n> quoted <script>x</script>"

    result = store.save_page(PageInput(id=None, name="Getting Started", content=content))

    assert result.ok and result.error is None
    assert result.page.name == "getting-started"
    loaded = store.get_page("GETTING-STARTED")
    assert loaded is not None
    assert loaded.id == result.page.id
    assert loaded.content == content


def test_save_with_id_updates_in_place(store: ContentStore) -> None:
    first = store.save_page(PageInput(id=None, name="Docs", content="v1")).page

    second = store.save_page(PageInput(id=first.id, name="Docs Renamed", content="v2")).page

    assert second.id == first.id
    assert second.name == "docs-renamed"
    assert second.last_modified_utc >= first.last_modified_utc
    assert store.get_page("docs") is None
    assert store.get_page("docs-renamed").content == "v2"


def test_save_with_unknown_id_inserts(store: ContentStore) -> None:
    result = store.save_page(PageInput(id=42, name="Fresh", content="x"))

    assert result.ok
    assert store.get_page("fresh") is not None


def test_save_rejects_empty_name(store: ContentStore) -> None:
    result = store.save_page(PageInput(id=None, name="   ", content="x"))

    assert not result.ok
    assert isinstance(result.error, InvalidPageName)


def test_save_duplicate_name_is_an_error_not_a_crash(store: ContentStore, tmp_path: Path) -> None:
    store.save_page(PageInput(id=None, name="Docs", content="a"))

    result = store.save_page(PageInput(id=None, name="DOCS", content="b", attachment=_upload()))

    assert not result.ok
    assert isinstance(result.error, DuplicatePageName)
    blobs = tmp_path / "blobs"
    assert not blobs.exists() or list(blobs.iterdir()) == []


def test_home_page_cannot_be_renamed(store: ContentStore) -> None:
    home = store.save_page(PageInput(id=None, name="Home Page", content="welcome")).page

    result = store.save_page(PageInput(id=home.id, name="Landing", content="welcome"))

    assert not result.ok
    assert isinstance(result.error, HomePageProtected)
    assert store.get_page("home-page") is not None
    assert store.save_page(PageInput(id=home.id, name="HOME PAGE", content="edited")).ok


def test_home_page_cannot_be_deleted(store: ContentStore) -> None:
    home = store.save_page(PageInput(id=None, name="home-page", content="welcome")).page

    result = store.delete_page(home.id)

    assert not result.ok
    assert isinstance(result.error, HomePageProtected)
    assert store.delete_page(home.id, "HOME-PAGE").ok is False
    assert store.get_page("home-page") is not None


def test_delete_missing_page_is_not_an_error(store: ContentStore) -> None:
    result = store.delete_page(12345)

    assert result.ok is False
    assert result.error is None


def test_delete_page_removes_attachment_blobs(store: ContentStore) -> None:
    page = store.save_page(PageInput(id=None, name="Docs", content="x", attachment=_upload())).page
    file_id = page.attachments[0].file_id

    assert store.delete_page(page.id).ok

    assert store.get_page("docs") is None
    assert store.get_attachment(file_id) is None


def test_attachments_are_appended(store: ContentStore) -> None:
    page = store.save_page(
        PageInput(id=None, name="Docs", content="x", attachment=_upload("a.txt", b"A"))
    ).page
    page = store.save_page(
        PageInput(id=page.id, name="Docs", content="x", attachment=_upload("b.txt", b"B"))
    ).page
    page = store.save_page(PageInput(id=page.id, name="Docs", content="y")).page

    assert [a.file_name for a in page.attachments] == ["a.txt", "b.txt"]
    stored = store.get_attachment(page.attachments[1].file_id)
    assert stored.data == b"B"
    assert stored.meta.filename == "b.txt"
    assert stored.meta.mime_type == "text/plain"


def test_upload_then_delete_attachment(store: ContentStore) -> None:
    page = store.save_page(PageInput(id=None, name="Five", content="x", attachment=_upload())).page
    file_id = page.attachments[0].file_id

    result = store.delete_attachment(page.id, file_id)

    assert result.ok
    assert result.page.attachments == ()
    assert store.get_attachment(file_id) is None
    assert store.get_page("five").attachments == ()


def test_delete_unknown_attachment_leaves_page_unchanged(store: ContentStore) -> None:
    page = store.save_page(PageInput(id=None, name="Docs", content="x", attachment=_upload())).page

    result = store.delete_attachment(page.id, "does-not-exist")

    assert not result.ok
    assert result.page == page
    assert store.get_page("docs").attachments == page.attachments


def test_delete_attachment_on_missing_page(store: ContentStore) -> None:
    result = store.delete_attachment(999, "whatever")

    assert (result.ok, result.page, result.error) == (False, None, None)


def test_listing_reflects_mutations_before_ttl(tmp_path: Path) -> None:
    store = ContentStore(
        db=DbConfig(path=tmp_path / "wiki.db"),
        blobs=BlobStore(tmp_path),
        cache=ListingCache(ttl_s=3600),
    )
    store.save_page(PageInput(id=None, name="One", content="1"))
    assert [p.name for p in store.list_pages()] == ["one"]

    two = store.save_page(PageInput(id=None, name="Two", content="2")).page
    assert sorted(p.name for p in store.list_pages()) == ["one", "two"]

    store.save_page(PageInput(id=two.id, name="Deux", content="2"))
    assert sorted(p.name for p in store.list_pages()) == ["deux", "one"]

    store.delete_page(two.id)
    assert [p.name for p in store.list_pages()] == ["one"]


def test_listing_is_served_from_cache(store: ContentStore, tmp_path: Path) -> None:
    store.save_page(PageInput(id=None, name="One", content="1"))
    assert len(store.list_pages()) == 1

    # A write that bypasses the store is invisible until the entry is evicted.
    conn = sqlite3.connect(tmp_path / "wiki.db")
    conn.execute(
        "INSERT INTO pages(name, content, last_modified_utc) VALUES('ghost', '', '2024-01-01T00:00:00+00:00')"
    )
    conn.commit()
    conn.close()

    assert len(store.list_pages()) == 1


def test_register_twice_reports_username_taken(store: ContentStore) -> None:
    assert store.register("alice", "password1").ok

    result = store.register("alice", "password1")

    assert not result.ok
    assert isinstance(result.error, UsernameTaken)
    assert str(result.error) == "username taken"


def test_authenticate(store: ContentStore) -> None:
    store.register("alice", "password1")

    ok = store.authenticate("alice", "password1")
    wrong = store.authenticate("alice", "wrong")
    missing = store.authenticate("bob", "password1")

    assert ok.ok and ok.user.name == "alice"
    assert ok.user.password_hash != "password1"
    assert not wrong.ok and wrong.user is None
    assert isinstance(wrong.error, WrongPassword)
    assert str(wrong.error) == "wrong password"
    assert not missing.ok
    assert isinstance(missing.error, UserNotFound)
    assert str(missing.error) == "no such user"


def test_listing_read_overtaken_by_a_write_is_not_cached(store: ContentStore, monkeypatch) -> None:
    store.save_page(PageInput(id=None, name="One", content="1"))
    original = PageRepo.list_all
    calls = []

    def list_all_then_write(self):
        pages = original(self)
        if not calls:
            calls.append(1)
            # Another request saves a page after this read, before it is cached.
            assert store.save_page(PageInput(id=None, name="Two", content="2")).ok
        return pages

    monkeypatch.setattr(PageRepo, "list_all", list_all_then_write)

    assert [p.name for p in store.list_pages()] == ["one"]
    assert sorted(p.name for p in store.list_pages()) == ["one", "two"]


def test_delete_attachment_of_another_page_is_refused(store: ContentStore) -> None:
    a = store.save_page(PageInput(id=None, name="A", content="x")).page
    b = store.save_page(PageInput(id=None, name="B", content="x", attachment=_upload())).page
    file_id = b.attachments[0].file_id

    result = store.delete_attachment(a.id, file_id)

    assert not result.ok
    assert result.page == a
    assert store.get_attachment(file_id) is not None
    assert store.get_page("b").attachments == b.attachments


def test_delete_attachment_update_failure_keeps_stale_page(store: ContentStore, monkeypatch) -> None:
    page = store.save_page(PageInput(id=None, name="Docs", content="x", attachment=_upload())).page
    file_id = page.attachments[0].file_id
    monkeypatch.setattr(PageRepo, "update", lambda self, p: False)

    result = store.delete_attachment(page.id, file_id)

    assert not result.ok
    assert result.error is None
    assert result.page == page
    assert store.get_attachment(file_id) is None
    assert store.get_page("docs").attachments == page.attachments


def test_save_blob_failure_is_a_storage_error(store: ContentStore, tmp_path: Path, monkeypatch) -> None:
    def failing_upload(self, key, filename, source, mime_type="application/octet-stream"):
        raise OSError("disk full")

    monkeypatch.setattr(BlobStore, "upload", failing_upload)

    result = store.save_page(PageInput(id=None, name="Docs", content="x", attachment=_upload()))

    assert not result.ok
    assert result.page is None
    assert isinstance(result.error, StorageError)
    assert isinstance(result.error.__cause__, OSError)
    assert store.get_page("docs") is None
    blobs = tmp_path / "blobs"
    assert not blobs.exists() or list(blobs.iterdir()) == []


def test_delete_page_database_failure_is_a_storage_error(store: ContentStore, monkeypatch) -> None:
    page = store.save_page(PageInput(id=None, name="Docs", content="x")).page

    def failing_delete(self, page_id):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(PageRepo, "delete", failing_delete)

    result = store.delete_page(page.id)

    assert not result.ok
    assert isinstance(result.error, StorageError)
    assert store.get_page("docs") is not None


def test_corrupt_attachment_metadata_is_not_found(store: ContentStore, tmp_path: Path) -> None:
    page = store.save_page(PageInput(id=None, name="Docs", content="x", attachment=_upload())).page
    file_id = page.attachments[0].file_id
    (tmp_path / "blobs" / file_id / "meta.json").write_text("{}", encoding="utf-8")

    assert store.get_attachment(file_id) is None
