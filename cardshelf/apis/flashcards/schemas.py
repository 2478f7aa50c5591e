from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from cardshelf.apis.schemas import CamelModel


class FlashcardCreate(CamelModel):
    question: str = Field(..., min_length=3, max_length=500)
    answer: str = Field(..., min_length=1, max_length=1000)
    collection_id: int


class FlashcardUpdate(CamelModel):
    question: Optional[str] = Field(None, min_length=3, max_length=500)
    answer: Optional[str] = Field(None, min_length=1, max_length=1000)

    @field_validator("question", "answer")
    @classmethod
    def reject_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("Field may not be null")
        return value


class FlashcardRead(CamelModel):
    id: int
    question: str
    answer: str
    collection_id: int
    creator_id: int
    created_at: datetime
    updated_at: datetime


class FlashcardList(CamelModel):
    flashcards: list[FlashcardRead] = Field(default_factory=list)
