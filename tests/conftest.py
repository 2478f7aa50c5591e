"""Pytest configuration and fixtures."""

import asyncio
import json
import os
import time
from collections.abc import Callable, Generator
from typing import Any

# Settings are read at import time; point them at test values first
os.environ["MODE"] = "dev"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LIBRARY_DEFAULT_COLLECTIONS"] = "[]"

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jwcrypto import jwk  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

import cardshelf.core.db.schemas  # noqa: E402,F401
from cardshelf.core.db.base import Base, get_session  # noqa: E402
from cardshelf.core.identity import JWKSIdentityResolver  # noqa: E402
from cardshelf.main import create_app  # noqa: E402

ISSUER = "https://securetoken.google.com/cardshelf-test"
AUDIENCE = "cardshelf-test"
KEY_ID = "test-key"


@pytest.fixture(scope="session")
def signing_key() -> jwk.JWK:
    """RSA key standing in for the identity provider's signing key."""
    return jwk.JWK.generate(kty="RSA", size=2048)


@pytest.fixture(scope="session")
def identity_resolver(signing_key: jwk.JWK) -> JWKSIdentityResolver:
    public_jwk = json.loads(signing_key.export_public())
    public_jwk["kid"] = KEY_ID
    return JWKSIdentityResolver(issuer=ISSUER, audience=AUDIENCE, jwks={"keys": [public_jwk]})


@pytest.fixture(scope="session")
def make_token(signing_key: jwk.JWK) -> Callable[..., str]:
    """Mint an ID token the way the identity provider would."""
    private_pem = signing_key.export_to_pem(private_key=True, password=None)

    def _make(
        uid: str,
        *,
        email: str | None = None,
        name: str | None = None,
        issuer: str = ISSUER,
        audience: str = AUDIENCE,
        lifetime: int = 3600,
        kid: str = KEY_ID,
    ) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": issuer,
            "aud": audience,
            "sub": uid,
            "iat": now,
            "exp": now + lifetime,
        }
        if email:
            payload["email"] = email
        if name:
            payload["name"] = name
        return jwt.encode(payload, private_pem, algorithm="RS256", headers={"kid": kid})

    return _make


@pytest.fixture
def auth_headers(make_token: Callable[..., str]) -> Callable[..., dict[str, str]]:
    def _headers(uid: str, **claims: Any) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(uid, **claims)}"}

    return _headers


@pytest.fixture
def session_maker(tmp_path: Any) -> Generator[async_sessionmaker[AsyncSession], None, None]:
    """Fresh SQLite database per test, created and dropped around it."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def _create() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        asyncio.run(engine.dispose())


@pytest.fixture
def run_db(session_maker: async_sessionmaker[AsyncSession]) -> Callable[..., Any]:
    """Run ``fn(session)`` against the test database from a synchronous test."""

    def _run(fn: Callable[[AsyncSession], Any]) -> Any:
        async def _inner() -> Any:
            async with session_maker() as session:
                result = await fn(session)
                await session.commit()
                return result

        return asyncio.run(_inner())

    return _run


@pytest.fixture
def client(
    session_maker: async_sessionmaker[AsyncSession],
    identity_resolver: JWKSIdentityResolver,
) -> Generator[TestClient, Any, None]:
    """Create a test client wired to the test database and identity provider."""
    app = create_app(identity_resolver=identity_resolver)

    async def override_get_session() -> Any:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def alice(auth_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    return auth_headers("alice-uid", email="Alice@Example.com", name="Alice")


@pytest.fixture
def bob(auth_headers: Callable[..., dict[str, str]]) -> dict[str, str]:
    return auth_headers("bob-uid", email="bob@example.com", name="Bob")


@pytest.fixture
def make_collection(client: TestClient) -> Callable[..., dict[str, Any]]:
    def _make(headers: dict[str, str], **body: Any) -> dict[str, Any]:
        body.setdefault("name", "Swedish Basics")
        response = client.post("/v1/collections", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_flashcard(client: TestClient) -> Callable[..., dict[str, Any]]:
    def _make(headers: dict[str, str], collection_id: int, **body: Any) -> dict[str, Any]:
        body.setdefault("question", "How do you say hello in Swedish?")
        body.setdefault("answer", "Hej")
        body["collectionId"] = collection_id
        response = client.post("/v1/flashcards", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make
