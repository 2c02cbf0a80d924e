from typing import Any

from fastapi import APIRouter, Form, Request

from wiki.features.auth.schemas import LoginForm, RegisterForm
from wiki.web.errors import http_error
from wiki.web.validation import validate_form

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register")
def register(
    request: Request,
    name: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
) -> dict[str, Any]:
    form = validate_form(
        RegisterForm, {"name": name, "password": password, "confirm_password": confirm_password}
    )
    result = request.app.state.store.register(form.name, form.password)
    if not result.ok:
        raise http_error(result.error, "register_failed")
    return {"registered": form.name}


@router.post("/login")
def login(request: Request, name: str = Form(""), password: str = Form("")) -> dict[str, Any]:
    form = validate_form(LoginForm, {"name": name, "password": password})
    result = request.app.state.store.authenticate(form.name, form.password)
    if not result.ok or result.user is None:
        raise http_error(result.error, "login_failed", default_status=401)
    return {"id": result.user.id, "name": result.user.name}
