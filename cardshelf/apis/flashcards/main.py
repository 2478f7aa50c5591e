from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from cardshelf.apis.deps import (
    RequestContext,
    flashcard_context,
    get_request_context,
    writable_flashcard_context,
)
from cardshelf.core.config import settings
from cardshelf.core.db_services import FlashcardService
from .schemas import (
    FlashcardCreate,
    FlashcardList,
    FlashcardRead,
    FlashcardUpdate,
)


router = APIRouter()

PREFIX = f"/{settings.app.version}/flashcards"


@router.post(
    PREFIX,
    response_model=FlashcardRead,
    status_code=status.HTTP_201_CREATED,
    tags=["flashcards"],
)
async def create_flashcard(
    req: FlashcardCreate,
    ctx: RequestContext = Depends(get_request_context),
) -> FlashcardRead:
    flashcard = await FlashcardService(ctx.session).create(
        creator=ctx.user,
        collection_id=req.collection_id,
        question=req.question,
        answer=req.answer,
    )
    return FlashcardRead.model_validate(flashcard)


@router.get(
    f"{PREFIX}/{{flashcard_id:int}}",
    response_model=FlashcardRead,
    tags=["flashcards"],
)
async def get_flashcard(
    ctx: RequestContext = Depends(flashcard_context),
) -> FlashcardRead:
    return FlashcardRead.model_validate(ctx.flashcard)


@router.patch(
    f"{PREFIX}/{{flashcard_id:int}}",
    response_model=FlashcardRead,
    tags=["flashcards"],
)
async def update_flashcard(
    req: FlashcardUpdate,
    ctx: RequestContext = Depends(writable_flashcard_context),
) -> FlashcardRead:
    flashcard = await FlashcardService(ctx.session).update(
        ctx.flashcard, req.model_dump(exclude_unset=True)
    )
    return FlashcardRead.model_validate(flashcard)


@router.delete(
    f"{PREFIX}/{{flashcard_id:int}}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["flashcards"],
)
async def delete_flashcard(
    ctx: RequestContext = Depends(writable_flashcard_context),
) -> Response:
    await FlashcardService(ctx.session).delete(ctx.flashcard)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    f"{PREFIX}/collections/{{collection_id:int}}",
    response_model=FlashcardList,
    tags=["flashcards"],
)
async def list_collection_flashcards(
    collection_id: int,
    ctx: RequestContext = Depends(get_request_context),
) -> FlashcardList:
    flashcards = await FlashcardService(ctx.session).list_by_collection(
        collection_id, ctx.user.id
    )
    return FlashcardList(
        flashcards=[FlashcardRead.model_validate(c) for c in flashcards]
    )
