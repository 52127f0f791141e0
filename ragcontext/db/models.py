from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class RagConfigurationRow(Base):
    """Per-instance RAG configuration.

    One row per AI instance. Every column is nullable: a NULL value means
    "not configured" and the caller option or hard default applies instead.
    This core only reads the table.
    """

    __tablename__ = "rag_configurations"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    ai_instance_id: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    embedding_provider: Mapped[str | None] = mapped_column(String, nullable=True)
    embedding_model_id: Mapped[str | None] = mapped_column(String, nullable=True)
    max_chunks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    similarity_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    enable_deduplication: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    track_token_usage: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    enable_fallback_search: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))


class UsageLog(Base):
    """Append-only ledger of billable operations.

    Rows are inserted by the usage tracker and never updated or read back
    by the RAG pipeline.
    """

    __tablename__ = "usage_logs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    ai_instance_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String, nullable=False)
    model: Mapped[str] = mapped_column(String, nullable=False)
    operation_type: Mapped[str] = mapped_column(String, nullable=False)  # embedding | completion | summarization
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("idx_usage_logs_instance_created", "ai_instance_id", "created_at"),)


class DocumentVector(Base):
    """Embedded document chunk owned by one AI instance.

    The embedding is stored as a JSON float array so the table works on
    SQLite for local development; on Postgres the match_documents function
    casts it to a pgvector value.
    """

    __tablename__ = "document_vectors"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    ai_instance_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    document_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    doc_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    embedding: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("idx_document_vectors_instance_document", "ai_instance_id", "document_id"),)
