"""Tests for settings validation and logger setup."""

import pytest
from loguru import logger
from pydantic import ValidationError

from ragcontext.config.settings import Settings
from ragcontext.core.logger import setup_logger


def _settings(**env) -> Settings:
    return Settings(_env_file=None, DATABASE_URL="sqlite://", **env)


def test_defaults(monkeypatch):
    for name in ("RAG_DEFAULT_EMBEDDING_PROVIDER", "RAG_DEFAULT_MAX_CHUNKS", "RAG_STAGE_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)

    cfg = _settings()

    assert cfg.rag_default_embedding_provider == "fireworks"
    assert cfg.rag_default_max_chunks == 5
    assert cfg.rag_stage_timeout_seconds == 15.0
    assert cfg.brave_search_url == "https://api.search.brave.com/res/v1/web/search"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RAG_DEFAULT_EMBEDDING_PROVIDER", "Bedrock")
    monkeypatch.setenv("RAG_REQUEST_TIMEOUT_SECONDS", "12.5")

    cfg = _settings()

    assert cfg.rag_default_embedding_provider == "bedrock"
    assert cfg.rag_request_timeout_seconds == 12.5


def test_invalid_log_level_defaults_to_info():
    assert _settings(LOG_LEVEL="verbose").log_level == "INFO"
    assert _settings(LOG_LEVEL="debug").log_level == "DEBUG"


def test_similarity_threshold_range():
    with pytest.raises(ValidationError):
        _settings(RAG_DEFAULT_SIMILARITY_THRESHOLD=1.5)


def test_setup_logger_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "ragcontext.log"

    setup_logger(level="INFO", log_file=str(log_file))
    logger.info("rag_fallback", instance_id="inst-1", stage="disabled")
    logger.complete()

    content = log_file.read_text(encoding="utf-8")
    setup_logger(level="INFO")

    assert "rag_fallback" in content
    assert "inst-1" in content
