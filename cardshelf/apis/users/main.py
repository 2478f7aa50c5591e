from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardshelf.apis.deps import RequestContext, get_identity_resolver, get_request_context
from cardshelf.core.config import settings
from cardshelf.core.db.base import get_session
from cardshelf.core.db.schemas.auth import User
from cardshelf.core.db_services import UserLibraryService
from cardshelf.core.errors import InvalidTokenError, UnauthorizedError
from cardshelf.core.identity import IdentityResolver, bearer_token
from .schemas import (
    LibraryToggleResponse,
    UserCreate,
    UserRead,
    VerifyTokenResponse,
)


router = APIRouter()

PREFIX = f"/{settings.app.version}/users"


def _user_read(user: User, added: list[int]) -> UserRead:
    return UserRead(
        id=user.id,
        uid=user.uid,
        display_name=user.display_name,
        email=user.email,
        user_added_collections=added,
        created_at=user.created_at,
    )


@router.post(
    PREFIX,
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    tags=["users"],
)
async def create_user(
    req: UserCreate,
    session: AsyncSession = Depends(get_session),
) -> UserRead:
    """Create the user on first sign-in; returns the existing record otherwise."""
    library = UserLibraryService(session)
    user = await library.ensure_user(
        uid=req.uid,
        display_name=req.display_name,
        email=str(req.email) if req.email else None,
    )
    return _user_read(user, await library.added_collection_ids(user.id))


@router.post(
    f"{PREFIX}/verify-token",
    response_model=VerifyTokenResponse,
    tags=["users"],
)
async def verify_token(
    authorization: Optional[str] = Header(default=None),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> VerifyTokenResponse:
    token = bearer_token(authorization)
    if not token:
        raise InvalidTokenError()
    try:
        identity = await resolver.verify(token)
    except UnauthorizedError as e:
        raise InvalidTokenError() from e
    return VerifyTokenResponse(
        verified=True,
        uid=identity.uid,
        email=identity.email,
        display_name=identity.display_name,
    )


@router.get(
    f"{PREFIX}/me",
    response_model=UserRead,
    tags=["users"],
)
async def get_me(
    ctx: RequestContext = Depends(get_request_context),
) -> UserRead:
    added = await UserLibraryService(ctx.session).added_collection_ids(ctx.user.id)
    return _user_read(ctx.user, added)


@router.put(
    f"{PREFIX}/collections/{{collection_id:int}}",
    response_model=LibraryToggleResponse,
    tags=["users"],
)
async def toggle_library_collection(
    collection_id: int,
    ctx: RequestContext = Depends(get_request_context),
) -> LibraryToggleResponse:
    """Add a collection to the user's library, or remove it if already there."""
    added, message = await UserLibraryService(ctx.session).toggle_added_collection(
        ctx.user, collection_id
    )
    return LibraryToggleResponse(message=message, user_added_collections=added)
