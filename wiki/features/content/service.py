import logging
import sqlite3
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from wiki.config import WikiConfig
from wiki.domain.models import (
    Attachment,
    AttachmentDeleteResult,
    AttachmentUpload,
    AuthResult,
    DeleteResult,
    Page,
    PageInput,
    RegisterResult,
    SaveResult,
    StoredFile,
)
from wiki.domain.naming import normalize_page_name, same_page_name
from wiki.features.content.errors import (
    DuplicatePageName,
    HomePageProtected,
    InvalidPageName,
    StorageError,
    UsernameTaken,
    UserNotFound,
    WrongPassword,
)
from wiki.infra.cache import ListingCache
from wiki.infra.db import DbConfig, init_db, open_db
from wiki.infra.passwords import hash_password, verify_password
from wiki.infra.repo_pages import PageRepo
from wiki.infra.repo_users import UserRepo
from wiki.infra.storage import BlobStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _storage_error(message: str, cause: Exception) -> StorageError:
    err = StorageError(message)
    err.__cause__ = cause
    return err


class ContentStore:
    """Pages, attachments and users behind the operations the web layer calls.

    Every operation opens its own database handle and reports failures through
    the returned result record instead of raising.
    """

    def __init__(
        self,
        *,
        db: DbConfig,
        blobs: BlobStore,
        cache: ListingCache,
        home_page_name: str = "home-page",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self._blobs = blobs
        self._cache = cache
        self._home_page_name = home_page_name
        self._clock = clock
        init_db(db)

    @classmethod
    def from_config(cls, cfg: WikiConfig) -> "ContentStore":
        return cls(
            db=DbConfig(path=cfg.db_path),
            blobs=BlobStore(Path(cfg.blobs_dir)),
            cache=ListingCache(ttl_s=cfg.cache_ttl_seconds),
            home_page_name=cfg.home_page_name,
        )

    @property
    def home_page_name(self) -> str:
        return self._home_page_name

    # Pages

    def list_pages(self) -> list[Page]:
        pages = self._cache.get()
        if pages is not None:
            return pages
        generation = self._cache.generation
        try:
            with open_db(self._db) as conn:
                pages = PageRepo(conn).list_all()
        except sqlite3.Error:
            logger.exception("Unable to list pages")
            return []
        self._cache.set(pages, generation=generation)
        return pages

    def get_page(self, name: str) -> Page | None:
        try:
            with open_db(self._db) as conn:
                return PageRepo(conn).get_by_name(name)
        except sqlite3.Error:
            logger.exception("Unable to load page '%s'", name)
            return None

    def get_page_by_id(self, page_id: int) -> Page | None:
        try:
            with open_db(self._db) as conn:
                return PageRepo(conn).get_by_id(page_id)
        except sqlite3.Error:
            logger.exception("Unable to load page id %s", page_id)
            return None

    def save_page(self, page_input: PageInput) -> SaveResult:
        name = normalize_page_name(page_input.name)
        if not name:
            return SaveResult(ok=False, error=InvalidPageName("page name is required"))

        uploaded: Attachment | None = None
        try:
            with open_db(self._db) as conn:
                repo = PageRepo(conn)
                existing = repo.get_by_id(page_input.id) if page_input.id is not None else None

                if (
                    existing is not None
                    and same_page_name(existing.name, self._home_page_name)
                    and not same_page_name(name, self._home_page_name)
                ):
                    logger.warning("Refusing to rename home page id %s to '%s'", existing.id, name)
                    return SaveResult(
                        ok=False,
                        error=HomePageProtected(
                            f"the home page name cannot be changed, keep it {self._home_page_name}"
                        ),
                    )

                now = self._clock()
                if page_input.attachment is not None and page_input.attachment.file_name.strip():
                    uploaded = self._store_attachment(page_input.attachment, now)

                if existing is None:
                    page = repo.insert(
                        Page(
                            id=0,
                            name=name,
                            content=page_input.content,
                            last_modified_utc=now,
                            attachments=(uploaded,) if uploaded else (),
                        )
                    )
                else:
                    page = replace(
                        existing,
                        name=name,
                        content=page_input.content,
                        last_modified_utc=now,
                        attachments=existing.attachments + ((uploaded,) if uploaded else ()),
                    )
                    if not repo.update(page):
                        self._discard_blob(uploaded)
                        logger.warning("Updating page id %s changed no rows", existing.id)
                        return SaveResult(
                            ok=False, error=StorageError(f"page id {existing.id} was not updated")
                        )
        except sqlite3.IntegrityError as e:
            self._discard_blob(uploaded)
            logger.warning("Page name '%s' is already in use", name)
            err = DuplicatePageName(f"a page named '{name}' already exists")
            err.__cause__ = e
            return SaveResult(ok=False, error=err)
        except (sqlite3.Error, OSError, ValueError) as e:
            self._discard_blob(uploaded)
            logger.exception("There is an exception in trying to save page name '%s'", page_input.name)
            return SaveResult(ok=False, error=_storage_error("problem in saving page", e))

        self._cache.invalidate()
        return SaveResult(ok=True, page=page)

    def delete_page(self, page_id: int, protected_name: str | None = None) -> DeleteResult:
        protected = self._home_page_name if protected_name is None else protected_name
        try:
            with open_db(self._db) as conn:
                repo = PageRepo(conn)
                page = repo.get_by_id(page_id)
                if page is None:
                    logger.warning("Delete operation fails because page id %s cannot be found", page_id)
                    return DeleteResult(ok=False)

                if same_page_name(page.name, protected):
                    logger.warning("Page id %s is the home page and cannot be deleted", page_id)
                    return DeleteResult(
                        ok=False, error=HomePageProtected("the home page cannot be deleted")
                    )

                for attachment in page.attachments:
                    self._delete_blob_best_effort(attachment.file_id)

                if not repo.delete(page_id):
                    logger.warning("Page id %s could not be deleted", page_id)
                    return DeleteResult(ok=False)
        except sqlite3.Error as e:
            logger.exception("Error in deleting page id %s", page_id)
            return DeleteResult(ok=False, error=_storage_error("problem in deleting page", e))

        self._cache.invalidate()
        return DeleteResult(ok=True)

    # Attachments

    def delete_attachment(self, page_id: int, file_id: str) -> AttachmentDeleteResult:
        """Delete the blob, then drop the attachment entry from its page.

        The two steps are not atomic: if the page update fails after the blob
        is gone, the page keeps a dangling entry and ok is False.
        """

        page: Page | None = None
        try:
            with open_db(self._db) as conn:
                repo = PageRepo(conn)
                page = repo.get_by_id(page_id)
                if page is None:
                    logger.warning("Delete attachment fails because page id %s cannot be found", page_id)
                    return AttachmentDeleteResult(ok=False)

                if not any(a.file_id.casefold() == file_id.casefold() for a in page.attachments):
                    logger.warning("Attachment %s does not belong to page id %s", file_id, page_id)
                    return AttachmentDeleteResult(ok=False, page=page)

                if not self._blobs.delete(file_id):
                    logger.warning("Attachment %s could not be deleted from blob storage", file_id)
                    return AttachmentDeleteResult(ok=False, page=page)

                remaining = tuple(a for a in page.attachments if a.file_id.casefold() != file_id.casefold())
                updated = replace(page, attachments=remaining)
                if not repo.update(updated):
                    logger.warning(
                        "Attachment %s deleted but updating page id %s attachment list failed",
                        file_id,
                        page_id,
                    )
                    return AttachmentDeleteResult(ok=False, page=page)
                page = updated
        except (sqlite3.Error, OSError, ValueError) as e:
            logger.exception("Error in deleting attachment %s of page id %s", file_id, page_id)
            return AttachmentDeleteResult(
                ok=False, page=page, error=_storage_error("problem in deleting attachment", e)
            )

        self._cache.invalidate()
        return AttachmentDeleteResult(ok=True, page=page)

    def get_attachment(self, file_id: str) -> StoredFile | None:
        try:
            meta = self._blobs.find_meta(file_id)
            if meta is None:
                return None
            data = self._blobs.download(file_id)
        except ValueError:
            return None
        except (OSError, KeyError):
            logger.exception("Unable to read attachment %s", file_id)
            return None
        if data is None:
            return None
        return StoredFile(meta=meta, data=data)

    # Users

    def authenticate(self, name: str, password: str) -> AuthResult:
        try:
            with open_db(self._db) as conn:
                user = UserRepo(conn).find_by_name(name)
        except sqlite3.Error as e:
            logger.exception("Unable to look up user '%s'", name)
            return AuthResult(ok=False, error=_storage_error("problem in reading users", e))

        if user is None:
            return AuthResult(ok=False, error=UserNotFound("no such user"))
        if not verify_password(password, user.password_hash):
            return AuthResult(ok=False, error=WrongPassword("wrong password"))
        return AuthResult(ok=True, user=user)

    def register(self, name: str, password: str) -> RegisterResult:
        try:
            with open_db(self._db) as conn:
                repo = UserRepo(conn)
                if repo.exists(name):
                    return RegisterResult(ok=False, error=UsernameTaken("username taken"))
                repo.insert(name, hash_password(password))
        except sqlite3.IntegrityError:
            return RegisterResult(ok=False, error=UsernameTaken("username taken"))
        except sqlite3.Error as e:
            logger.exception("Unable to register user '%s'", name)
            return RegisterResult(ok=False, error=_storage_error("problem in registering user", e))
        return RegisterResult(ok=True)

    # Helpers

    def _store_attachment(self, upload: AttachmentUpload, now: datetime) -> Attachment:
        attachment = Attachment(
            file_id=str(uuid.uuid4()),
            file_name=upload.file_name,
            mime_type=upload.content_type or "application/octet-stream",
            last_modified_utc=now,
        )
        self._blobs.upload(
            attachment.file_id, attachment.file_name, upload.data, mime_type=attachment.mime_type
        )
        return attachment

    def _discard_blob(self, attachment: Attachment | None) -> None:
        if attachment is not None:
            self._delete_blob_best_effort(attachment.file_id)

    def _delete_blob_best_effort(self, file_id: str) -> None:
        try:
            if not self._blobs.delete(file_id):
                logger.warning("Attachment blob %s was already missing", file_id)
        except (OSError, ValueError):
            logger.exception("Unable to delete attachment blob %s", file_id)
