import os
from pathlib import Path

from loguru import logger
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    SQLite is only meant for local development. Deployments must set
    DATABASE_URL to the Postgres instance that owns `match_documents`.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info("Using DATABASE_URL from environment")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "ragcontext.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(
        f"Using SQLite database (LOCAL DEV ONLY): {db_url}. "
        "Vector search falls back to local similarity ranking without the match_documents function."
    )
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )

    # Embedding / completion backends
    fireworks_api_key: str = Field(default="", validation_alias="FIREWORKS_API_KEY")
    fireworks_base_url: str = Field(
        default="https://api.fireworks.ai/inference/v1",
        validation_alias="FIREWORKS_BASE_URL",
    )
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL")
    openrouter_api_key: str = Field(default="", validation_alias="OPENROUTER_API_KEY")
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1", validation_alias="OPENROUTER_BASE_URL")
    aws_access_key_id: str = Field(default="", validation_alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str = Field(default="", validation_alias="AWS_SECRET_ACCESS_KEY")
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")

    # Web search
    brave_search_api_key: str = Field(default="", validation_alias="BRAVE_SEARCH_API_KEY")
    brave_search_url: str = Field(
        default="https://api.search.brave.com/res/v1/web/search",
        validation_alias="BRAVE_SEARCH_URL",
    )

    # RAG defaults, used when an instance has no rag_configurations row
    rag_default_embedding_provider: str = Field(default="fireworks", validation_alias="RAG_DEFAULT_EMBEDDING_PROVIDER")
    rag_default_embedding_model: str = Field(default="deepseek-v3", validation_alias="RAG_DEFAULT_EMBEDDING_MODEL")
    rag_default_max_chunks: int = Field(default=5, gt=0, validation_alias="RAG_DEFAULT_MAX_CHUNKS")
    rag_default_similarity_threshold: float = Field(default=0.7, validation_alias="RAG_DEFAULT_SIMILARITY_THRESHOLD")
    rag_default_max_tokens: int = Field(default=4000, gt=0, validation_alias="RAG_DEFAULT_MAX_TOKENS")
    rag_fallback_candidate_limit: int = Field(
        default=500,
        gt=0,
        validation_alias="RAG_FALLBACK_CANDIDATE_LIMIT",
        description="Rows scanned per instance when the match_documents function is unavailable",
    )

    # Web search summarization
    rag_summarization_provider: str = Field(default="fireworks", validation_alias="RAG_SUMMARIZATION_PROVIDER")
    rag_summarization_model: str = Field(
        default="accounts/fireworks/models/claude-3-haiku-20240307",
        validation_alias="RAG_SUMMARIZATION_MODEL",
    )

    # Deadlines
    rag_stage_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        validation_alias="RAG_STAGE_TIMEOUT_SECONDS",
        description="Deadline for each external call (embedding, search, web search, summarization)",
    )
    rag_request_timeout_seconds: float = Field(
        default=45.0,
        gt=0,
        validation_alias="RAG_REQUEST_TIMEOUT_SECONDS",
        description="End-to-end deadline for one get_context call",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("rag_default_similarity_threshold")
    @classmethod
    def validate_similarity_threshold(cls, value: float) -> float:
        """Similarity threshold must lie in [0, 1]."""
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"RAG_DEFAULT_SIMILARITY_THRESHOLD must be within [0, 1], got {value}")
        return value

    @field_validator("rag_default_embedding_provider", "rag_summarization_provider")
    @classmethod
    def normalize_provider(cls, value: str) -> str:
        """Provider names are matched case-insensitively."""
        return value.strip().lower()

    @field_validator("fireworks_api_key", "brave_search_api_key")
    @classmethod
    def warn_missing_key(cls, value: str, info: ValidationInfo) -> str:
        """Missing keys are allowed for local development but disable the matching backend."""
        if not value:
            field_name = (info.field_name or "").upper()
            logger.warning(f"{field_name} is not set. Calls to that backend will fail with CredentialMissingError.")
        return value


settings = Settings()
