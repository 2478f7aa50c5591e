"""Visibility rules for collections and, through their parent, flashcards.

A collection is readable by its creator and, once public, by everyone.
Only the creator may change it or the cards inside it. Both predicates look
at already-loaded fields only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cardshelf.core.db.schemas.flashcards import Collection


def can_read(user_id: int, collection: "Collection") -> bool:
    return bool(collection.is_public) or collection.creator_id == user_id


def can_write(user_id: int, collection: "Collection") -> bool:
    return collection.creator_id == user_id
