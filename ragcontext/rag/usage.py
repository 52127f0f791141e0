"""Usage ledger writer.

Billable operations (embedding, summarization) append one row to
usage_logs. Accounting is best-effort telemetry: a failed write is logged
and swallowed, never retried and never surfaced to the caller.
"""

import asyncio
from datetime import datetime, timezone

from loguru import logger

from ragcontext.db.models import UsageLog
from ragcontext.db.session import SessionFactory, get_session
from ragcontext.rag.types import OperationType, UsageRecord


def build_usage_record(
    instance_id: str,
    provider: str,
    model: str,
    operation_type: OperationType | str,
    input_tokens: int,
    output_tokens: int,
) -> UsageRecord:
    """Create a UsageRecord with total_tokens and a UTC timestamp filled in."""
    return UsageRecord(
        instance_id=instance_id,
        provider=provider,
        model=model,
        operation_type=OperationType(operation_type),
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
        created_at=datetime.now(timezone.utc),
    )


class UsageTracker:
    """Appends usage records to the usage_logs table."""

    def __init__(self, session_factory: SessionFactory | None = None):
        """Initialize tracker.

        Args:
            session_factory: Factory used to open a session per write.
                Defaults to the process-wide factory.
        """
        self.session_factory = session_factory

    async def record(
        self,
        instance_id: str,
        provider: str,
        model: str,
        operation_type: OperationType | str,
        input_tokens: int,
        output_tokens: int,
    ) -> None:
        """Record one billable operation.

        Raises:
            Never raises - all errors are logged and swallowed
        """
        try:
            usage = build_usage_record(instance_id, provider, model, operation_type, input_tokens, output_tokens)
            await asyncio.to_thread(self._persist, usage)
        except Exception:
            logger.exception(
                "Failed to record usage",
                instance_id=instance_id,
                provider=provider,
                model=model,
                operation_type=str(operation_type),
            )
            return

        logger.debug(
            "Usage recorded",
            event="usage_recorded",
            instance_id=instance_id,
            provider=provider,
            model=model,
            operation_type=usage.operation_type.value,
            total_tokens=usage.total_tokens,
        )

    def _persist(self, usage: UsageRecord) -> None:
        with get_session(self.session_factory) as session:
            session.add(
                UsageLog(
                    ai_instance_id=usage.instance_id,
                    provider=usage.provider,
                    model=usage.model,
                    operation_type=usage.operation_type.value,
                    input_tokens=usage.input_tokens,
                    output_tokens=usage.output_tokens,
                    total_tokens=usage.total_tokens,
                    created_at=usage.created_at,
                )
            )
