"""Audit trail of tool invocations.

Records are written to ``tool_usage_logs`` in their own session, off the
request path. A failed write is logged for operators and never affects the
invocation that produced it.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from sqlalchemy import text

from bakeryhub.infra.clock import now_iso
from bakeryhub.infra.database import get_db_session
from bakeryhub.infra.metrics import audit_write_failures_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditRecord:
    tenant_id: int
    user_id: int
    tool_name: str
    parameters: Dict[str, Any]
    result: Dict[str, Any]
    success: bool
    error_message: Optional[str] = None
    denial_stage: Optional[str] = None  # tenant | role | quota
    execution_time_ms: Optional[int] = None
    timestamp: str = field(default_factory=now_iso)


class AuditRecorder:
    """Writes audit records without blocking or failing the caller."""

    def __init__(self):
        self._pending: Set[asyncio.Task] = set()

    def write(self, record: AuditRecord) -> None:
        """Insert one record in a dedicated transaction."""
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO tool_usage_logs (
                        tenant_id, user_id, tool_name, parameters, result, success,
                        error_message, denial_stage, execution_time_ms, created_at
                    ) VALUES (
                        :tenant_id, :user_id, :tool_name, :parameters, :result, :success,
                        :error_message, :denial_stage, :execution_time_ms, :created_at
                    )
                """),
                {
                    "tenant_id": record.tenant_id,
                    "user_id": record.user_id,
                    "tool_name": record.tool_name,
                    "parameters": json.dumps(record.parameters, default=str),
                    "result": json.dumps(record.result, default=str),
                    "success": record.success,
                    "error_message": record.error_message,
                    "denial_stage": record.denial_stage,
                    "execution_time_ms": record.execution_time_ms,
                    "created_at": record.timestamp,
                },
            )

    def _write_safely(self, record: AuditRecord) -> None:
        try:
            self.write(record)
        except Exception as e:
            audit_write_failures_total.inc()
            logger.warning(
                "Failed to write audit record",
                extra={
                    "tenant_id": record.tenant_id,
                    "user_id": record.user_id,
                    "tool_name": record.tool_name,
                    "error": str(e),
                },
            )

    def submit(self, record: AuditRecord) -> None:
        """
        Schedule a record for writing and return immediately.

        Inside a running event loop the write runs in a worker thread;
        otherwise it is written synchronously. Never raises.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self._write_safely(record)
            return

        try:
            task = asyncio.create_task(asyncio.to_thread(self._write_safely, record))
        except Exception:
            logger.warning("Could not schedule audit write", extra={"tool_name": record.tool_name}, exc_info=True)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for pending writes; used at shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


audit_recorder = AuditRecorder()
