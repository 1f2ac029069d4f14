"""
Service Configuration

Loads every setting from environment variables (optionally from a .env
file). Variable names for Postgres and Cloudflare match the ones the
deployment already uses.

Environment Variables:
    DOCUMENT_STORE: postgres | file | memory (default: postgres)
    DOCUMENT_STORE_PATH: JSON file for the file store (default: documents.json)
    DATABASE_URL: Full connection string; overrides the POSTGRES_* values
    POSTGRES_HOST / POSTGRES_PORT / POSTGRES_DB / POSTGRES_USER / POSTGRES_PASSWORD
    DOCUMENTS_TABLE: Table name (default: documents)
    CREATE_SCHEMA: Create the table on startup (default: true)
    STORE_TIMEOUT_SECONDS: Pool checkout + statement timeout (default: 5)

    EMBEDDING_PROVIDER: workers-ai | openai | mock (default: workers-ai)
    EMBEDDING_MODEL: Model name (default: @cf/baai/bge-base-en-v1.5)
    EMBEDDING_DIM: Vector dimension D (default: 768)
    CLOUDFLARE_ACCOUNT_ID / CLOUDFLARE_API_TOKEN: Workers AI credentials
    OPENAI_API_KEY: OpenAI credentials
    PROVIDER_TIMEOUT_SECONDS: Per-call timeout (default: 10)
    PROVIDER_MAX_RETRIES: Retries on transient failures (default: 2)
    PROVIDER_BACKOFF_SECONDS: First backoff delay, doubled per retry (default: 0.5)

    SIMILARITY_METRIC: cosine | dot (default: cosine)
    SCORE_SCALE: unit | raw (default: unit, remaps cosine to [0, 1])
    SEARCH_DEFAULT_K: Results per query when k is omitted (default: 10)
    SEARCH_MAX_K: Largest k accepted by /search (default: 100)

    HOST / PORT: HTTP bind address (default: 0.0.0.0:3000)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


@dataclass
class DatabaseConfig:
    """PostgreSQL connection settings."""

    host: str = "localhost"
    port: int = 5432
    database: str = "postgres"
    user: str = "postgres"
    password: str = ""
    url: str | None = None
    table_name: str = "documents"
    create_schema: bool = True
    timeout_seconds: float = 5.0
    min_pool_size: int = 1
    max_pool_size: int = 10

    @property
    def connection_string(self) -> str:
        if self.url:
            return self.url
        return (
            f"host={self.host} port={self.port} dbname={self.database} "
            f"user={self.user} password={self.password}"
        )


@dataclass
class ProviderConfig:
    """Embedding provider settings."""

    name: str = "workers-ai"
    model: str = "@cf/baai/bge-base-en-v1.5"
    dimensions: int = 768
    account_id: str | None = None
    api_token: str | None = None
    openai_api_key: str | None = None
    timeout_seconds: float = 10.0
    max_retries: int = 2
    backoff_seconds: float = 0.5


@dataclass
class SearchConfig:
    """Similarity ranking settings."""

    metric: str = "cosine"
    score_scale: str = "unit"
    default_k: int = 10
    max_k: int = 100


@dataclass
class ServiceConfig:
    """Top-level configuration for the whole service."""

    document_store: str = "postgres"
    document_store_path: str = "documents.json"
    host: str = "0.0.0.0"
    port: int = 3000
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    search: SearchConfig = field(default_factory=SearchConfig)

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Load config from environment variables."""
        env = os.environ.get
        return cls(
            document_store=env("DOCUMENT_STORE", "postgres").lower(),
            document_store_path=env("DOCUMENT_STORE_PATH", "documents.json"),
            host=env("HOST", "0.0.0.0"),
            port=int(env("PORT", "3000")),
            database=DatabaseConfig(
                host=env("POSTGRES_HOST", "localhost"),
                port=int(env("POSTGRES_PORT", "5432")),
                database=env("POSTGRES_DB", "postgres"),
                user=env("POSTGRES_USER", "postgres"),
                password=env("POSTGRES_PASSWORD", ""),
                url=env("DATABASE_URL") or None,
                table_name=env("DOCUMENTS_TABLE", "documents"),
                create_schema=_env_bool("CREATE_SCHEMA", "true"),
                timeout_seconds=float(env("STORE_TIMEOUT_SECONDS", "5")),
            ),
            provider=ProviderConfig(
                name=env("EMBEDDING_PROVIDER", "workers-ai").lower(),
                model=env("EMBEDDING_MODEL", "@cf/baai/bge-base-en-v1.5"),
                dimensions=int(env("EMBEDDING_DIM", "768")),
                account_id=env("CLOUDFLARE_ACCOUNT_ID") or None,
                api_token=env("CLOUDFLARE_API_TOKEN") or None,
                openai_api_key=env("OPENAI_API_KEY") or None,
                timeout_seconds=float(env("PROVIDER_TIMEOUT_SECONDS", "10")),
                max_retries=int(env("PROVIDER_MAX_RETRIES", "2")),
                backoff_seconds=float(env("PROVIDER_BACKOFF_SECONDS", "0.5")),
            ),
            search=SearchConfig(
                metric=env("SIMILARITY_METRIC", "cosine").lower(),
                score_scale=env("SCORE_SCALE", "unit").lower(),
                default_k=int(env("SEARCH_DEFAULT_K", "10")),
                max_k=int(env("SEARCH_MAX_K", "100")),
            ),
        )


# Global config singleton
_config: ServiceConfig | None = None


def load_env() -> None:
    """Load environment variables from a .env file if one exists."""
    from dotenv import load_dotenv

    load_dotenv()


def get_config() -> ServiceConfig:
    """Get the global service config (lazy-loaded from env)."""
    global _config
    if _config is None:
        load_env()
        _config = ServiceConfig.from_env()
    return _config


def set_config(config: ServiceConfig) -> None:
    """Install an explicit config (tests, embedding the app)."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
