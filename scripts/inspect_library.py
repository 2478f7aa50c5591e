"""Quick DB inspector for the flashcard library.

Summarizes users, collections and cards, and lists the public catalog with
card counts and how many libraries each public collection sits in.

Usage:
  uv run scripts/inspect_library.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure project root is on sys.path so `cardshelf` package imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import select, func

from cardshelf.core.db.base import get_session
from cardshelf.core.db.schemas import (
    Collection,
    Flashcard,
    User,
    user_added_collections,
)


async def main() -> int:
    async for session in get_session():  # get_session is an async generator
        total_users = (await session.execute(select(func.count(User.id)))).scalar() or 0
        total_collections = (
            await session.execute(select(func.count(Collection.id)))
        ).scalar() or 0
        total_cards = (
            await session.execute(select(func.count(Flashcard.id)))
        ).scalar() or 0
        orphans = (
            await session.execute(
                select(func.count(Flashcard.id)).where(
                    ~Flashcard.collection_id.in_(select(Collection.id))
                )
            )
        ).scalar() or 0

        print("Library DB summary:")
        print(f"- Users: {total_users}")
        print(f"- Collections: {total_collections}")
        print(f"- Flashcards: {total_cards}")
        print(f"- Orphaned flashcards: {orphans}")

        cards = (
            select(Flashcard.collection_id, func.count(Flashcard.id).label("n"))
            .group_by(Flashcard.collection_id)
            .subquery()
        )
        members = (
            select(
                user_added_collections.c.collection_id,
                func.count(user_added_collections.c.user_id).label("n"),
            )
            .group_by(user_added_collections.c.collection_id)
            .subquery()
        )
        rows = (
            await session.execute(
                select(
                    Collection,
                    func.coalesce(cards.c.n, 0),
                    func.coalesce(members.c.n, 0),
                )
                .outerjoin(cards, cards.c.collection_id == Collection.id)
                .outerjoin(members, members.c.collection_id == Collection.id)
                .where(Collection.is_public.is_(True))
                .order_by(Collection.id)
            )
        ).all()

        if not rows:
            print("- No public collections found.")
            return 0

        print("\nPublic catalog:")
        for c, n_cards, n_members in rows:
            print(
                f"  • ID {c.id} | name={c.name!r} | cards={n_cards} | "
                f"in_libraries={n_members} | submitted={c.submitted}"
            )

        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
