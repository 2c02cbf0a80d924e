import logging
from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response

from wiki.domain.models import AttachmentUpload, PageInput
from wiki.domain.naming import normalize_page_name, same_page_name, to_kebab_case
from wiki.features.content.service import ContentStore
from wiki.features.pages.schemas import PageForm, PageOut
from wiki.web.errors import http_error
from wiki.web.validation import validate_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["pages"])


def _store(request: Request) -> ContentStore:
    return request.app.state.store


@router.get("/pages")
def list_pages(request: Request) -> dict[str, Any]:
    pages = sorted(_store(request).list_pages(), key=lambda p: p.name)
    return {"items": [{"id": p.id, "name": p.name} for p in pages]}


@router.get("/new-page")
def new_page_name(page_name: str = "") -> dict[str, str]:
    if not page_name.strip():
        raise HTTPException(status_code=400, detail="page_name_required")
    return {"name": to_kebab_case(page_name)}


@router.get("/pages/{page_name}")
def get_page(request: Request, page_name: str) -> PageOut:
    page = _store(request).get_page(page_name)
    if page is None:
        raise HTTPException(status_code=404, detail="page_not_found")
    return PageOut.from_page(page)


@router.post("/pages/{page_name}")
def save_page(
    request: Request,
    page_name: str,
    name: str = Form(""),
    content: str = Form(""),
    id: int | None = Form(None),
    attachment: UploadFile | None = File(None),
) -> PageOut:
    store = _store(request)
    form = validate_form(PageForm, {"id": id, "name": name, "content": content})

    home = store.home_page_name
    if same_page_name(page_name, home) and normalize_page_name(form.name) != home:
        raise HTTPException(
            status_code=422,
            detail={
                "issues": [
                    {
                        "code": "home_page_name",
                        "path": "name",
                        "message": f"You cannot modify home page name. Please keep it {home}",
                    }
                ]
            },
        )

    upload = None
    if attachment is not None and attachment.filename:
        upload = AttachmentUpload(
            file_name=attachment.filename,
            content_type=attachment.content_type or "application/octet-stream",
            data=attachment.file,
        )

    result = store.save_page(PageInput(id=form.id, name=form.name, content=form.content, attachment=upload))
    if not result.ok or result.page is None:
        logger.error("Problem in saving page '%s': %s", page_name, result.error)
        raise http_error(result.error, "save_failed", default_status=500)
    return PageOut.from_page(result.page)


@router.post("/pages/{page_id}/delete")
def delete_page(request: Request, page_id: int) -> dict[str, Any]:
    result = _store(request).delete_page(page_id)
    if not result.ok:
        if result.error is not None:
            logger.error("Error in deleting page id %s: %s", page_id, result.error)
        raise http_error(result.error, "page_not_found", default_status=404)
    return {"deleted": page_id}


@router.post("/pages/{page_id}/attachments/{file_id}/delete")
def delete_attachment(request: Request, page_id: int, file_id: str) -> dict[str, Any]:
    result = _store(request).delete_attachment(page_id, file_id)
    if not result.ok:
        logger.error("Unable to delete page attachment id %s", file_id)
        if result.page is None and result.error is None:
            raise HTTPException(status_code=404, detail="page_not_found")
        raise http_error(result.error, "attachment_not_deleted", default_status=409)
    return {"deleted": file_id, "page": result.page.name if result.page else None}


@router.get("/attachments/{file_id}")
def download_attachment(request: Request, file_id: str) -> Response:
    stored = _store(request).get_attachment(file_id)
    if stored is None:
        raise HTTPException(status_code=404, detail="attachment_not_found")
    logger.info("Attachment %s - %s", stored.meta.id, stored.meta.filename)
    return Response(
        content=stored.data,
        media_type=stored.meta.mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(stored.meta.filename, safe='')}"},
    )
