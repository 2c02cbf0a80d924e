from __future__ import annotations

from typing import Any, TypeVar

from fastapi import HTTPException
from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


def _to_issues(e: ValidationError) -> list[dict[str, str]]:
    issues: list[dict[str, str]] = []
    for err in e.errors():
        loc = err.get("loc") or []
        issues.append(
            {
                "code": str(err.get("type") or "validation_error"),
                "path": ".".join(str(p) for p in loc),
                "message": str(err.get("msg") or "invalid"),
            }
        )
    return issues


def validate_form(model: type[M], data: dict[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"issues": _to_issues(e)})
