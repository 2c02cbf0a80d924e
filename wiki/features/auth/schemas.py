from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class LoginForm(BaseModel):
    name: str = Field(min_length=1)
    password: str = Field(min_length=8)


class RegisterForm(BaseModel):
    name: str = Field(min_length=1)
    password: str = Field(min_length=8)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterForm":
        if self.password != self.confirm_password:
            raise ValueError("passwords do not match")
        return self
