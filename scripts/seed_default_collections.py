"""Create the public starter collections new users get in their library.

Idempotent: collections that already exist as public collections are skipped.
The names must match LIBRARY_DEFAULT_COLLECTIONS for seeding to pick them up.

Usage:
  uv run scripts/seed_default_collections.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import select

from cardshelf.core.config import settings
from cardshelf.core.db.base import get_session
from cardshelf.core.db.schemas import Collection
from cardshelf.core.db_services import (
    CollectionService,
    FlashcardService,
    UserLibraryService,
)


SYSTEM_UID = "cardshelf-system"

STARTER_COLLECTIONS: dict[str, list[tuple[str, str]]] = {
    "AI Prompt Engineering": [
        ("What is a prompt?", "Instructions given to an AI to guide its output"),
        (
            "What is temperature in AI?",
            "A parameter that controls randomness in generation",
        ),
    ],
    "Programming Tips": [
        ("What is DRY?", "Don't Repeat Yourself - a principle to reduce repetition"),
        (
            "What is SOLID?",
            "Five design principles for OOP: Single responsibility, Open-closed, "
            "Liskov substitution, Interface segregation, Dependency inversion",
        ),
    ],
}


async def main() -> int:
    async for session in get_session():
        owner = await UserLibraryService(session).ensure_user(
            uid=SYSTEM_UID, display_name="Cardshelf"
        )
        collections = CollectionService(session)
        flashcards = FlashcardService(session)

        for name in settings.library.default_collections:
            cards = STARTER_COLLECTIONS.get(name)
            if cards is None:
                print(f"- No starter cards defined for {name!r}, skipping")
                continue
            exists = (
                await session.execute(
                    select(Collection.id).where(
                        Collection.name == name, Collection.is_public.is_(True)
                    )
                )
            ).first()
            if exists:
                print(f"- {name!r} already present (id={exists[0]})")
                continue

            collection = await collections.create(
                creator=owner, name=name, is_public=True
            )
            for question, answer in cards:
                await flashcards.create(
                    creator=owner,
                    collection_id=collection.id,
                    question=question,
                    answer=answer,
                )
            print(f"- Created {name!r} (id={collection.id}) with {len(cards)} cards")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
