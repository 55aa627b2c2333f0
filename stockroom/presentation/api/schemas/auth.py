"""Pydantic schemas for the authentication endpoints."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EmailPayload(_CamelModel):
    email: EmailStr


class RegisterPayload(_CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginPayload(_CamelModel):
    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1)


class VerifyCodePayload(_CamelModel):
    user_id: int = Field(..., alias="userId")
    otp: str = Field(..., min_length=1, max_length=12)


class UserIdPayload(_CamelModel):
    user_id: int = Field(..., alias="userId")


class ResetPasswordPayload(_CamelModel):
    user_id: int = Field(..., alias="userId")
    password: str = Field(..., min_length=1)
    otp: Optional[str] = None


class ExternalLoginPayload(_CamelModel):
    token: str = Field(..., min_length=1)
    provider: str = "google"
