"""Demo login/register models."""

from typing import Optional

from pydantic import BaseModel


class AuthRequest(BaseModel):
    action: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class AuthUser(BaseModel):
    id: str
    username: str


class AuthResponse(BaseModel):
    success: bool = True
    user: Optional[AuthUser] = None
    message: Optional[str] = None
