from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from cardshelf.apis.schemas import CamelModel


class UserCreate(CamelModel):
    uid: str = Field(..., min_length=1, max_length=128)
    display_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None


class UserRead(CamelModel):
    id: int
    uid: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    user_added_collections: list[int] = Field(default_factory=list)
    created_at: datetime


class LibraryToggleResponse(CamelModel):
    message: str
    user_added_collections: list[int]


class VerifyTokenResponse(CamelModel):
    verified: bool
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
