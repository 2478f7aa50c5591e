from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from cardshelf.apis.flashcards.schemas import FlashcardRead
from cardshelf.apis.schemas import CamelModel


class CollectionCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str = Field("", max_length=500)
    is_public: bool = False


class CollectionUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("name", "description")
    @classmethod
    def reject_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("Field may not be null")
        return value


class CollectionRead(CamelModel):
    id: int
    name: str
    description: str
    is_public: bool
    submitted: bool
    creator_id: int
    created_at: datetime
    updated_at: datetime


class PublicCollectionRead(CollectionRead):
    creator_name: Optional[str] = None
    card_count: int = 0
    is_added_by_user: bool = False
    preview_cards: list[FlashcardRead] = Field(default_factory=list)


class SubmitResponse(CamelModel):
    message: str
    collection: CollectionRead
