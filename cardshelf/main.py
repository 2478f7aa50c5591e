from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardshelf.apis.collections.main import router as collections_router
from cardshelf.apis.flashcards.main import router as flashcards_router
from cardshelf.apis.users.main import router as users_router
from cardshelf.core.config import settings
from cardshelf.core.db.base import engine
from cardshelf.core.errors import register_exception_handlers
from cardshelf.core.identity import IdentityResolver, JWKSIdentityResolver
from cardshelf.core.logging import get_logger, setup_logging
from cardshelf.core.middleware import RequestIDMiddleware, SecurityHeadersMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app.name} {settings.app.version} (mode={settings.app.mode})")
    try:
        yield
    finally:
        await engine.dispose()


def create_app(identity_resolver: Optional[IdentityResolver] = None) -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.app.name, version=settings.app.version, lifespan=lifespan
    )

    # One resolver for the life of the process, reached through app.state
    app.state.identity_resolver = identity_resolver or JWKSIdentityResolver.from_settings(
        settings.identity
    )

    if not settings.app.is_production:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.app.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info("CORS configured for development environment")

    # Last added runs outermost
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(users_router)
    app.include_router(collections_router)
    app.include_router(flashcards_router)

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "app": settings.app.name,
            "version": settings.app.version,
        }

    return app


app = create_app()
