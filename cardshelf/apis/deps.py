from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cardshelf.core.db.base import get_session
from cardshelf.core.db.schemas.auth import User
from cardshelf.core.db.schemas.flashcards import Collection, Flashcard
from cardshelf.core.db_services import (
    CollectionService,
    FlashcardService,
    UserLibraryService,
)
from cardshelf.core.errors import ForbiddenError, UnauthorizedError
from cardshelf.core.identity import ExternalIdentity, IdentityResolver, bearer_token
from cardshelf.modules.access import can_write


@dataclass
class RequestContext:
    """Everything one request has resolved so far.

    Created once the caller is authenticated; the loaders below attach the
    collection or flashcard named in the path before the handler runs.
    """

    user: User
    session: AsyncSession
    collection: Optional[Collection] = None
    flashcard: Optional[Flashcard] = None


def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity_resolver


async def current_identity(
    authorization: Optional[str] = Header(default=None),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> ExternalIdentity:
    """Verify the bearer token on the request with the identity provider."""
    token = bearer_token(authorization)
    if not token:
        raise UnauthorizedError()
    return await resolver.verify(token)


async def get_request_context(
    identity: ExternalIdentity = Depends(current_identity),
    session: AsyncSession = Depends(get_session),
) -> RequestContext:
    """Resolve the verified identity to a user, creating it on first sign-in."""
    user = await UserLibraryService(session).ensure_user(
        uid=identity.uid,
        display_name=identity.display_name,
        email=identity.email,
    )
    return RequestContext(
        user=user,
        session=session,
    )


async def collection_context(
    collection_id: int,
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    ctx.collection = await CollectionService(ctx.session).load(collection_id, ctx.user.id)
    return ctx


async def writable_collection_context(
    collection_id: int,
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    ctx.collection = await CollectionService(ctx.session).load(
        collection_id, ctx.user.id, write=True
    )
    return ctx


async def flashcard_context(
    flashcard_id: int,
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    ctx.flashcard, ctx.collection = await FlashcardService(ctx.session).load(
        flashcard_id, ctx.user.id
    )
    return ctx


async def writable_flashcard_context(
    flashcard_id: int,
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    ctx.flashcard, ctx.collection = await FlashcardService(ctx.session).load(
        flashcard_id, ctx.user.id
    )
    if not can_write(ctx.user.id, ctx.collection):
        raise ForbiddenError("You don't have permission to modify this flashcard")
    return ctx
