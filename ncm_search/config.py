import os

from pydantic import BaseModel, Field


def _require_env(name: str) -> str:
    """
    Fetch a required environment variable or raise a clear error.
    """

    value = os.getenv(key=name)
    if value is None or value == "":
        raise EnvironmentError(
            f"Environment variable {name} is required but not set."
        )
    return value


def _env(name: str, default: str) -> str:
    """
    Fetch an optional environment variable, falling back to a default.
    """

    value = os.getenv(key=name)
    if value is None or value == "":
        return default
    return value


def _env_flag(name: str, default: bool) -> bool:
    return _env(name, "1" if default else "0").strip().lower() in {"1", "true", "yes", "on"}


class DatabaseSettings(BaseModel):
    """
    Database connection settings loaded from environment variables.
    """

    username: str = Field(default_factory=lambda: _require_env("DB_USER"))
    password: str = Field(default_factory=lambda: _require_env("DB_PASSWORD"))
    host: str = Field(default_factory=lambda: _require_env("DB_HOST"))
    port: int = Field(default_factory=lambda: int(_require_env("DB_PORT")))
    name: str = Field(default_factory=lambda: _require_env("DB_NAME"))
    run_migrations: bool = Field(default_factory=lambda: _env_flag("DB_RUN_MIGRATIONS", True))

    def url(self) -> str:
        """
        Build an asynchronous PostgreSQL URL for application use.
        """

        return (
            "postgresql+asyncpg://"
            f"{self.username}:{self.password}"
            f"@{self.host}:{self.port}/{self.name}"
        )

    def sync_url(self) -> str:
        """
        Build a synchronous PostgreSQL URL for migration tooling.
        """

        return (
            "postgresql+psycopg://"
            f"{self.username}:{self.password}"
            f"@{self.host}:{self.port}/{self.name}"
        )


class EmbeddingSettings(BaseModel):
    """
    Parameters for embedding generation and vector storage.
    """

    backend: str = Field(default_factory=lambda: _env("EMBEDDING_BACKEND", "openai"))
    model_name: str = Field(default_factory=lambda: _env("EMBEDDING_MODEL", "text-embedding-3-small"))
    dimension: int = Field(default_factory=lambda: int(_env("EMBEDDING_DIM", "1536")))
    api_key: str = Field(default_factory=lambda: _env("OPENAI_API_KEY", ""))
    chunk_size: int = Field(default_factory=lambda: int(_env("EMBEDDING_CHUNK_SIZE", "500")))
    max_concurrency: int = Field(default_factory=lambda: int(_env("EMBEDDING_MAX_CONCURRENCY", "2")))
    request_timeout_seconds: float = Field(
        default_factory=lambda: float(_env("EMBEDDING_REQUEST_TIMEOUT", "5"))
    )
    batch_timeout_seconds: float = Field(
        default_factory=lambda: float(_env("EMBEDDING_BATCH_TIMEOUT", "120"))
    )
    max_retries: int = Field(default_factory=lambda: int(_env("EMBEDDING_MAX_RETRIES", "2")))
    load_timeout_seconds: float = Field(
        default_factory=lambda: float(_env("EMBEDDING_LOAD_TIMEOUT", "300"))
    )
    # E5-style local models expect "query: " / "passage: " prefixes
    query_prefix: str = Field(default_factory=lambda: os.getenv("EMBEDDING_QUERY_PREFIX", ""))
    passage_prefix: str = Field(default_factory=lambda: os.getenv("EMBEDDING_PASSAGE_PREFIX", ""))


class LexicalWeights(BaseModel):
    """
    Scores assigned to each kind of lexical match.

    Code matches outrank description matches, and description matches stay
    below typical high-confidence semantic similarities.
    """

    code_exact: float = Field(default=1.0, ge=0, le=1)
    code_prefix: float = Field(default=0.9, ge=0, le=1)
    description_exact: float = Field(default=0.8, ge=0, le=1)
    description_prefix: float = Field(default=0.7, ge=0, le=1)
    description_substring: float = Field(default=0.6, ge=0, le=1)
    token_overlap: float = Field(default=0.5, ge=0, le=1)
    min_token_length: int = Field(default=3, ge=1)


class SearchSettings(BaseModel):
    """
    Defaults and bounds applied to NCM search requests.
    """

    default_limit: int = Field(default_factory=lambda: int(_env("SEARCH_DEFAULT_LIMIT", "10")))
    max_limit: int = Field(default_factory=lambda: int(_env("SEARCH_MAX_LIMIT", "50")))
    default_threshold: float = Field(
        default_factory=lambda: float(_env("SEARCH_DEFAULT_THRESHOLD", "0.5"))
    )
    index_timeout_seconds: float = Field(
        default_factory=lambda: float(_env("SEARCH_INDEX_TIMEOUT", "5"))
    )
    lexical_candidate_limit: int = Field(
        default_factory=lambda: int(_env("SEARCH_LEXICAL_CANDIDATES", "200"))
    )
    metric: str = Field(default_factory=lambda: _env("SEARCH_METRIC", "cosine"))
    lexical: LexicalWeights = Field(default_factory=LexicalWeights)


class QueryExpansionSettings(BaseModel):
    """
    Optional LLM rewrite of product descriptions into nomenclature wording.
    """

    enabled: bool = Field(default_factory=lambda: _env_flag("QUERY_EXPANSION_ENABLED", False))
    model_name: str = Field(default_factory=lambda: _env("QUERY_EXPANSION_MODEL", "gpt-4o-mini"))
    api_key: str = Field(default_factory=lambda: _env("OPENAI_API_KEY", ""))
    timeout_seconds: float = Field(
        default_factory=lambda: float(_env("QUERY_EXPANSION_TIMEOUT", "4"))
    )
    max_tokens: int = Field(default=200)


class ClassificationSettings(BaseModel):
    """
    Score thresholds mapping search results to confidence levels.
    """

    high_threshold: float = Field(
        default_factory=lambda: float(_env("CLASSIFICATION_HIGH_THRESHOLD", "0.85"))
    )
    medium_threshold: float = Field(
        default_factory=lambda: float(_env("CLASSIFICATION_MEDIUM_THRESHOLD", "0.65"))
    )
    candidate_limit: int = Field(default=5)


class AuthSettings(BaseModel):
    """
    Verification parameters for access tokens issued by the auth backend.
    """

    jwt_secret: str = Field(default_factory=lambda: _require_env("AUTH_JWT_SECRET"))
    algorithm: str = Field(default_factory=lambda: _env("AUTH_JWT_ALGORITHM", "HS256"))
    audience: str = Field(default_factory=lambda: _env("AUTH_JWT_AUDIENCE", "authenticated"))


class Settings(BaseModel):
    """
    Root application settings.
    """

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    expansion: QueryExpansionSettings = Field(default_factory=QueryExpansionSettings)
    classification: ClassificationSettings = Field(default_factory=ClassificationSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)


settings = Settings()
