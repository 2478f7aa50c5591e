from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    host: str = Field(default="localhost", alias="POSTGRES_HOST")
    port: int = Field(default=5432, alias="POSTGRES_DB_PORT")
    db_name: str = Field(default="cardshelf", alias="POSTGRES_DB_NAME")
    user: str = Field(default="cardshelf", alias="POSTGRES_DB_USER")
    password: str = Field(default="cardshelf", alias="POSTGRES_DB_PASSWORD")
    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts
    url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    @computed_field
    def connection_string(self) -> str:
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db_name}"


class IdentitySettings(BaseSettings):
    """Third-party identity provider (Firebase-style RS256 ID tokens)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    project_id: str = Field(default="cardshelf-dev", alias="IDENTITY_PROJECT_ID")
    issuer_override: Optional[str] = Field(default=None, alias="IDENTITY_ISSUER")
    audience_override: Optional[str] = Field(default=None, alias="IDENTITY_AUDIENCE")
    jwks_url: str = Field(
        default="https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com",
        alias="IDENTITY_JWKS_URL",
    )
    jwks_cache_seconds: int = Field(default=3600, alias="IDENTITY_JWKS_CACHE_SECONDS")

    @computed_field
    def issuer(self) -> str:
        return self.issuer_override or f"https://securetoken.google.com/{self.project_id}"

    @computed_field
    def audience(self) -> str:
        return self.audience_override or self.project_id


class LibrarySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    # Names of public collections every new user starts with
    default_collections: list[str] = Field(
        default_factory=lambda: ["AI Prompt Engineering", "Programming Tips"],
        alias="LIBRARY_DEFAULT_COLLECTIONS",
    )
    preview_cards: int = Field(default=5, alias="LIBRARY_PREVIEW_CARDS")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="cardshelf", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    database: DatabaseSettings = Field(default_factory=lambda: DatabaseSettings())
    identity: IdentitySettings = Field(default_factory=lambda: IdentitySettings())
    library: LibrarySettings = Field(default_factory=lambda: LibrarySettings())


settings = Settings()
