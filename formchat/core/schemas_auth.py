"""Pydantic schemas for admin authentication."""

from pydantic import BaseModel, Field


class AdminUser(BaseModel):
    id: str
    email: str | None = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None
    user: AdminUser


class SessionResponse(BaseModel):
    user: AdminUser
    auth_method: str
