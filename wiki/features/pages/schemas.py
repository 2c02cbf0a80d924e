from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from wiki.domain.models import Page


class PageForm(BaseModel):
    id: int | None = None
    name: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)


class AttachmentOut(BaseModel):
    file_id: str
    file_name: str
    mime_type: str
    last_modified_utc: datetime


class PageOut(BaseModel):
    id: int
    name: str
    content: str
    last_modified_utc: datetime
    attachments: list[AttachmentOut]

    @classmethod
    def from_page(cls, page: Page) -> "PageOut":
        return cls(
            id=page.id,
            name=page.name,
            content=page.content,
            last_modified_utc=page.last_modified_utc,
            attachments=[
                AttachmentOut(
                    file_id=a.file_id,
                    file_name=a.file_name,
                    mime_type=a.mime_type,
                    last_modified_utc=a.last_modified_utc,
                )
                for a in page.attachments
            ],
        )
