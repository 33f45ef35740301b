"""Pydantic schemas for users and authentication."""
from __future__ import annotations
from typing import Annotated
from pydantic import BaseModel, BeforeValidator, EmailStr, Field, field_validator


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(_normalize_email)]


class RegisterRequest(BaseModel):
    name: str
    email: NormalizedEmail
    password: str = Field(min_length=6)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class LoginRequest(BaseModel):
    email: NormalizedEmail
    password: str = Field(min_length=6)


class GuestLoginRequest(BaseModel):
    email: NormalizedEmail


class UserOut(BaseModel):
    id: str = Field(serialization_alias="_id")
    name: str
    email: str
    is_guest: bool

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    user: UserOut
    token: str


class ProfileResponse(BaseModel):
    user: UserOut
