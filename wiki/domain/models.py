from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO


@dataclass(frozen=True)
class Attachment:
    file_id: str
    file_name: str
    mime_type: str
    last_modified_utc: datetime


@dataclass(frozen=True)
class Page:
    id: int
    name: str
    content: str
    last_modified_utc: datetime
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class User:
    id: int
    name: str
    password_hash: str


@dataclass(frozen=True)
class AttachmentUpload:
    """File payload that accompanies a page save.

    `data` is either the raw bytes or a readable binary stream.
    """

    file_name: str
    content_type: str
    data: bytes | BinaryIO


@dataclass(frozen=True)
class PageInput:
    id: int | None
    name: str
    content: str
    attachment: AttachmentUpload | None = None


@dataclass(frozen=True)
class BlobMeta:
    id: str
    filename: str
    mime_type: str
    length: int
    uploaded_at: str


@dataclass(frozen=True)
class StoredFile:
    meta: BlobMeta
    data: bytes


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    page: Page | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class DeleteResult:
    ok: bool
    error: Exception | None = None


@dataclass(frozen=True)
class AttachmentDeleteResult:
    ok: bool
    page: Page | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class AuthResult:
    ok: bool
    user: User | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class RegisterResult:
    ok: bool
    error: Exception | None = None

