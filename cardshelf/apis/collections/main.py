from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from cardshelf.apis.deps import (
    RequestContext,
    collection_context,
    get_request_context,
    writable_collection_context,
)
from cardshelf.apis.flashcards.schemas import FlashcardRead
from cardshelf.core.config import settings
from cardshelf.core.db_services import CollectionService
from .schemas import (
    CollectionCreate,
    CollectionRead,
    CollectionUpdate,
    PublicCollectionRead,
    SubmitResponse,
)


router = APIRouter()

PREFIX = f"/{settings.app.version}/collections"


@router.get(
    PREFIX,
    response_model=list[CollectionRead],
    tags=["collections"],
)
async def list_my_collections(
    ctx: RequestContext = Depends(get_request_context),
) -> list[CollectionRead]:
    """Own private collections plus the ones added to the user's library."""
    collections = await CollectionService(ctx.session).list_mine(ctx.user.id)
    return [CollectionRead.model_validate(c) for c in collections]


@router.post(
    PREFIX,
    response_model=CollectionRead,
    status_code=status.HTTP_201_CREATED,
    tags=["collections"],
)
async def create_collection(
    req: CollectionCreate,
    ctx: RequestContext = Depends(get_request_context),
) -> CollectionRead:
    collection = await CollectionService(ctx.session).create(
        creator=ctx.user,
        name=req.name,
        description=req.description,
        is_public=req.is_public,
    )
    return CollectionRead.model_validate(collection)


@router.get(
    f"{PREFIX}/public",
    response_model=list[PublicCollectionRead],
    tags=["collections"],
)
async def list_public_collections(
    ctx: RequestContext = Depends(get_request_context),
) -> list[PublicCollectionRead]:
    entries = await CollectionService(ctx.session).list_public(ctx.user.id)
    return [
        PublicCollectionRead(
            **CollectionRead.model_validate(e.collection).model_dump(),
            creator_name=e.creator_name,
            card_count=e.card_count,
            is_added_by_user=e.is_added_by_user,
            preview_cards=[FlashcardRead.model_validate(c) for c in e.preview_cards],
        )
        for e in entries
    ]


@router.get(
    f"{PREFIX}/{{collection_id:int}}",
    response_model=CollectionRead,
    tags=["collections"],
)
async def get_collection(
    ctx: RequestContext = Depends(collection_context),
) -> CollectionRead:
    return CollectionRead.model_validate(ctx.collection)


@router.patch(
    f"{PREFIX}/{{collection_id:int}}",
    response_model=CollectionRead,
    tags=["collections"],
)
async def update_collection(
    req: CollectionUpdate,
    ctx: RequestContext = Depends(writable_collection_context),
) -> CollectionRead:
    collection = await CollectionService(ctx.session).update(
        ctx.collection, req.model_dump(exclude_unset=True)
    )
    return CollectionRead.model_validate(collection)


@router.delete(
    f"{PREFIX}/{{collection_id:int}}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["collections"],
)
async def delete_collection(
    ctx: RequestContext = Depends(writable_collection_context),
) -> Response:
    await CollectionService(ctx.session).delete(ctx.collection)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    f"{PREFIX}/{{collection_id:int}}/submit",
    response_model=SubmitResponse,
    tags=["collections"],
)
async def submit_collection(
    ctx: RequestContext = Depends(collection_context),
) -> SubmitResponse:
    """Flag a collection for public review; only its creator may do this once."""
    collection = await CollectionService(ctx.session).submit_for_review(
        ctx.user, ctx.collection
    )
    return SubmitResponse(
        message="Collection submitted for review",
        collection=CollectionRead.model_validate(collection),
    )
