from fastapi import HTTPException

from wiki.features.content.errors import WikiError

_STATUS_BY_CODE = {
    "page_not_found": 404,
    "home_page_protected": 409,
    "invalid_page_name": 422,
    "duplicate_page_name": 409,
    "user_not_found": 401,
    "wrong_password": 401,
    "username_taken": 409,
    "storage_error": 500,
}


def http_error(error: Exception | None, default_detail: str, default_status: int = 400) -> HTTPException:
    if isinstance(error, WikiError):
        return HTTPException(
            status_code=_STATUS_BY_CODE.get(error.code, default_status),
            detail={"code": error.code, "message": error.message},
        )
    return HTTPException(status_code=default_status, detail=default_detail)
