"""Database service classes for collections, flashcards and user libraries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import and_, delete, func, insert, or_, select

from cardshelf.core.config import settings
from cardshelf.core.db.schemas.auth import User, user_added_collections
from cardshelf.core.db.schemas.flashcards import Collection, Flashcard
from cardshelf.core.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    ValidationFailed,
)
from cardshelf.core.logging import get_logger
from cardshelf.core.sanitize import clean_optional, clean_text
from cardshelf.modules.access import can_read, can_write


logger = get_logger(__name__)
audit_logger = get_logger("cardshelf.audit")


@dataclass
class PublicCatalogEntry:
    collection: Collection
    creator_name: Optional[str]
    card_count: int
    is_added_by_user: bool
    preview_cards: list[Flashcard] = field(default_factory=list)


def required_text(field_name: str, value: str) -> str:
    """Clean a mandatory field; markup-only input leaves nothing to store."""
    cleaned = clean_text(value)
    if not cleaned:
        raise ValidationFailed(errors={field_name: "Must contain text"})
    return cleaned


class UserLibraryService:
    """Service for user records and their personal collection library."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_uid(self, uid: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.uid == uid))
        return result.scalar_one_or_none()

    async def _default_collection_ids(self) -> list[int]:
        """Resolve the configured default collection names to public collections."""
        names = settings.library.default_collections
        if not names:
            return []
        result = await self.session.execute(
            select(Collection.id, Collection.name)
            .where(Collection.name.in_(names), Collection.is_public.is_(True))
            .order_by(Collection.id)
        )
        by_name: dict[str, int] = {}
        for collection_id, name in result.all():
            by_name.setdefault(name, collection_id)

        missing = [n for n in names if n not in by_name]
        if missing:
            logger.warning(f"Default collections not found: {missing}")
        return [by_name[n] for n in names if n in by_name]

    async def ensure_user(
        self,
        *,
        uid: str,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        """Return the user for ``uid``, creating and seeding it on first sight."""
        existing = await self.get_by_uid(uid)
        if existing:
            return existing

        user = User(
            uid=uid,
            display_name=clean_optional(display_name),
            email=email.strip().lower() if email else None,
        )
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError:
            # Another request created the same user concurrently
            await self.session.rollback()
            existing = await self.get_by_uid(uid)
            if existing is None:
                raise
            return existing

        default_ids = await self._default_collection_ids()
        for collection_id in default_ids:
            await self.session.execute(
                insert(user_added_collections).values(
                    user_id=user.id, collection_id=collection_id
                )
            )

        await self.session.commit()
        await self.session.refresh(user)
        logger.info(f"Created user {user.id} (uid={uid}) seeded with {len(default_ids)} collections")
        return user

    async def added_collection_ids(self, user_id: int) -> list[int]:
        result = await self.session.execute(
            select(user_added_collections.c.collection_id)
            .where(user_added_collections.c.user_id == user_id)
            .order_by(user_added_collections.c.id)
        )
        return list(result.scalars().all())

    async def in_library(self, user_id: int, collection_id: int) -> bool:
        result = await self.session.execute(
            select(user_added_collections.c.id).where(
                user_added_collections.c.user_id == user_id,
                user_added_collections.c.collection_id == collection_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def toggle_added_collection(
        self, user: User, collection_id: int
    ) -> tuple[list[int], str]:
        """Remove the collection from the library if present, add it otherwise."""
        user_id = user.id
        if await self.in_library(user_id, collection_id):
            await self.session.execute(
                delete(user_added_collections).where(
                    user_added_collections.c.user_id == user_id,
                    user_added_collections.c.collection_id == collection_id,
                )
            )
            await self.session.commit()
            message = "Collection removed from your library"
        else:
            collection = await self.session.get(Collection, collection_id)
            # Private collections of other users are treated as nonexistent
            if collection is None or not can_read(user_id, collection):
                raise NotFoundError("Collection not found")
            try:
                await self.session.execute(
                    insert(user_added_collections).values(
                        user_id=user_id, collection_id=collection_id
                    )
                )
                await self.session.commit()
            except IntegrityError:
                # A concurrent request added it first
                await self.session.rollback()
                logger.info(f"User {user_id}: collection {collection_id} was already added")
            message = "Collection added to your library"

        logger.info(f"User {user_id}: {message.lower()} ({collection_id})")
        return await self.added_collection_ids(user_id), message


class CollectionService:
    """Service for the collection lifecycle."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        creator: User,
        name: str,
        description: str = "",
        is_public: bool = False,
    ) -> Collection:
        collection = Collection(
            creator_id=creator.id,
            name=required_text("name", name),
            description=clean_text(description or ""),
            is_public=is_public,
        )
        self.session.add(collection)
        await self.session.commit()
        await self.session.refresh(collection)
        logger.info(f"Collection {collection.id} created by user {creator.id}")
        return collection

    async def get(self, collection_id: int) -> Optional[Collection]:
        return await self.session.get(Collection, collection_id)

    async def count_cards(self, collection_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Flashcard.id)).where(Flashcard.collection_id == collection_id)
        )
        return result.scalar() or 0

    async def load(self, collection_id: int, user_id: int, *, write: bool = False) -> Collection:
        """Fetch a collection the user may see, or stop the request.

        Collections the user cannot read are reported as missing so their
        fields never reach the response. Write access additionally requires
        ownership.
        """
        collection = await self.get(collection_id)
        if collection is None or not can_read(user_id, collection):
            raise NotFoundError("Collection not found")
        if write and not can_write(user_id, collection):
            raise ForbiddenError("You don't have permission to modify this collection")
        return collection

    async def list_mine(self, user_id: int) -> list[Collection]:
        """Own private collections plus everything in the user's library."""
        added = select(user_added_collections.c.collection_id).where(
            user_added_collections.c.user_id == user_id
        )
        result = await self.session.execute(
            select(Collection)
            .where(
                or_(
                    and_(
                        Collection.creator_id == user_id,
                        Collection.is_public.is_(False),
                    ),
                    Collection.id.in_(added),
                )
            )
            .order_by(Collection.id)
        )
        return list(result.scalars().all())

    async def list_public(self, user_id: int) -> list[PublicCatalogEntry]:
        """Public catalog enriched with creator, card counts and random previews."""
        rows = await self.session.execute(
            select(Collection, User.display_name)
            .join(User, Collection.creator_id == User.id)
            .where(Collection.is_public.is_(True))
            .order_by(Collection.id)
        )
        pairs = rows.all()
        if not pairs:
            return []

        ids = [c.id for c, _ in pairs]
        counts_q = await self.session.execute(
            select(Flashcard.collection_id, func.count(Flashcard.id))
            .where(Flashcard.collection_id.in_(ids))
            .group_by(Flashcard.collection_id)
        )
        counts = {cid: n for cid, n in counts_q.all()}

        added_q = await self.session.execute(
            select(user_added_collections.c.collection_id).where(
                user_added_collections.c.user_id == user_id
            )
        )
        added = set(added_q.scalars().all())

        out: list[PublicCatalogEntry] = []
        for collection, creator_name in pairs:
            preview_q = await self.session.execute(
                select(Flashcard)
                .where(Flashcard.collection_id == collection.id)
                .order_by(func.random())
                .limit(settings.library.preview_cards)
            )
            out.append(
                PublicCatalogEntry(
                    collection=collection,
                    creator_name=creator_name,
                    card_count=counts.get(collection.id, 0),
                    is_added_by_user=collection.id in added,
                    preview_cards=list(preview_q.scalars().all()),
                )
            )
        return out

    async def update(self, collection: Collection, changes: dict[str, Any]) -> Collection:
        """Apply only the supplied name/description, sanitized."""
        if "name" in changes:
            collection.name = required_text("name", changes["name"])
        if "description" in changes:
            collection.description = clean_text(changes["description"])
        await self.session.commit()
        await self.session.refresh(collection)
        return collection

    async def delete(self, collection: Collection) -> int:
        """Delete the collection, its cards and library entries in one transaction."""
        collection_id = collection.id
        removed = await self.session.execute(
            delete(Flashcard).where(Flashcard.collection_id == collection_id)
        )
        await self.session.execute(
            delete(user_added_collections).where(
                user_added_collections.c.collection_id == collection_id
            )
        )
        await self.session.execute(delete(Collection).where(Collection.id == collection_id))
        await self.session.commit()
        logger.info(f"Collection {collection_id} deleted with {removed.rowcount} flashcards")
        return removed.rowcount

    async def submit_for_review(self, user: User, collection: Collection) -> Collection:
        if collection.creator_id != user.id:
            raise NotFoundError("Collection not found")
        if collection.submitted:
            raise BadRequestError("Collection has already been submitted for review")

        card_count = await self.count_cards(collection.id)
        collection.submitted = True
        await self.session.commit()
        await self.session.refresh(collection)

        audit_logger.info(
            f"Collection submitted for review: id={collection.id} "
            f"name={collection.name!r} cards={card_count} "
            f"creator_id={user.id} creator_uid={user.uid} "
            f"creator_name={user.display_name!r} creator_email={user.email}"
        )
        return collection


class FlashcardService:
    """Service for flashcards, scoped to their parent collection."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        creator: User,
        collection_id: int,
        question: str,
        answer: str,
    ) -> Flashcard:
        collection = await self.session.get(Collection, collection_id)
        if collection is None:
            raise NotFoundError("Collection not found")
        if not can_write(creator.id, collection):
            raise ForbiddenError(
                "You can't create flashcards in collections that are not created by you"
            )

        flashcard = Flashcard(
            collection_id=collection.id,
            creator_id=creator.id,
            question=required_text("question", question),
            answer=required_text("answer", answer),
        )
        self.session.add(flashcard)
        await self.session.commit()
        await self.session.refresh(flashcard)
        logger.info(f"Flashcard {flashcard.id} created in collection {collection.id}")
        return flashcard

    async def load(self, flashcard_id: int, user_id: int) -> tuple[Flashcard, Collection]:
        """Fetch a flashcard whose parent collection the user may read."""
        flashcard = await self.session.get(Flashcard, flashcard_id)
        if flashcard is None:
            raise NotFoundError("Flashcard not found")
        collection = await self.session.get(Collection, flashcard.collection_id)
        if collection is None:
            raise NotFoundError("Associated collection not found")
        if not can_read(user_id, collection):
            raise ForbiddenError("Access denied to this flashcard")
        return flashcard, collection

    async def update(self, flashcard: Flashcard, changes: dict[str, Any]) -> Flashcard:
        for key in ("question", "answer"):
            if key in changes:
                setattr(flashcard, key, required_text(key, changes[key]))
        await self.session.commit()
        await self.session.refresh(flashcard)
        return flashcard

    async def delete(self, flashcard: Flashcard) -> None:
        flashcard_id = flashcard.id
        await self.session.execute(delete(Flashcard).where(Flashcard.id == flashcard_id))
        await self.session.commit()
        logger.info(f"Flashcard {flashcard_id} deleted")

    async def list_by_collection(self, collection_id: int, user_id: int) -> list[Flashcard]:
        collection = await self.session.get(Collection, collection_id)
        if collection is None or not can_read(user_id, collection):
            raise NotFoundError("Collection not found")
        result = await self.session.execute(
            select(Flashcard)
            .where(Flashcard.collection_id == collection_id)
            .order_by(Flashcard.id)
        )
        return list(result.scalars().all())
