"""Base class for all agent tools.

Every tool runs the same fixed sequence in ``invoke``: argument cleaning,
tenant check, role check, optional quota check, parameter decoding, the
business action, then an audit record. Only the business action varies.
"""

import asyncio
import logging
import threading
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Generator, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, ValidationError
from sqlalchemy.orm import Session

from bakeryhub.exceptions import BusinessRuleError, InvocationCancelledError
from bakeryhub.infra.metrics import (
    access_denials_total,
    tool_invocation_duration,
    tool_invocations_total,
)
from bakeryhub.logging.audit_recorder import AuditRecord, AuditRecorder, audit_recorder as default_audit_recorder
from bakeryhub.models.context import ExecutionContext, QuotaOperation, Role
from bakeryhub.models.tool import Rejection, ToolDescriptor, ToolInvocationResult
from bakeryhub.security.access_validator import (
    validate_quota,
    validate_role_permission,
    validate_tenant_access,
)
from bakeryhub.security.sanitizer import sanitize_params

logger = logging.getLogger(__name__)

TENANT_DENIED_MESSAGE = "Access denied: Invalid tenant access"
GENERIC_FAILURE_MESSAGE = "Operation failed. Please try again later."
TIMEOUT_MESSAGE = "Operation timed out"

# set by ``invoke`` once the caller has stopped waiting for the worker thread
_cancelled: ContextVar[Optional[threading.Event]] = ContextVar("tool_invocation_cancelled", default=None)


def _invocation_cancelled() -> bool:
    event = _cancelled.get()
    return event is not None and event.is_set()


async def wait_for_idle_session(context: ExecutionContext, timeout: Optional[float] = None) -> bool:
    """
    Wait until no tool worker thread is using ``context.db``.

    A timed-out tool keeps running in its thread until it finishes and rolls
    back; callers that close or reuse the session wait for it here.
    """
    lock = context.session_lock
    if lock.acquire(blocking=False):
        lock.release()
        return True
    acquired = await asyncio.to_thread(lock.acquire, True, -1 if timeout is None else timeout)
    if acquired:
        lock.release()
        return True
    logger.warning(
        "Session still in use by a timed-out tool",
        extra={"tenant_id": context.tenant_id, "user_id": context.user_id},
    )
    return False


class ToolParams(BaseModel):
    """Base for tool parameter models; unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore")


def _strip_titles(schema: Any) -> Any:
    if isinstance(schema, dict):
        return {key: _strip_titles(value) for key, value in schema.items() if key != "title"}
    if isinstance(schema, list):
        return [_strip_titles(item) for item in schema]
    return schema


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "arguments"
        parts.append(f"{location}: {item.get('msg')}")
    return "Invalid parameters: " + "; ".join(parts)


class BaseTool:
    """
    A named operation the model may request.

    Subclasses set the class attributes and implement ``execute``. ``execute``
    receives decoded parameters and the verified context and returns plain
    data, or a ``Rejection`` when a business rule refuses the request.
    """
    name: str = ""
    description: str = ""
    params_model: Type[ToolParams] = ToolParams
    allowed_roles: Tuple[Role, ...] = ()
    quota_operation: Optional[QuotaOperation] = None

    def __init__(self, audit_recorder: Optional[AuditRecorder] = None):
        if not self.name or not self.allowed_roles:
            raise ValueError(f"{type(self).__name__} must define name and allowed_roles")
        self.audit_recorder = audit_recorder or default_audit_recorder

    @property
    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            parameters_schema=self.parameters_schema(),
            allowed_roles=list(self.allowed_roles),
            quota_operation=self.quota_operation,
        )

    @classmethod
    def parameters_schema(cls) -> Dict[str, Any]:
        """JSON schema of the parameters in function-calling form."""
        schema = _strip_titles(cls.params_model.model_json_schema())
        parameters = {
            "type": "object",
            "properties": schema.get("properties", {}),
            "required": schema.get("required", []),
        }
        if "$defs" in schema:
            parameters["$defs"] = schema["$defs"]
        return parameters

    def to_function_schema(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }

    def execute(self, params: ToolParams, context: ExecutionContext) -> Any:
        raise NotImplementedError

    @contextmanager
    def transaction(self, db: Session) -> Generator[Session, None, None]:
        """Commit the block's writes together, or roll all of them back."""
        try:
            yield db
            if _invocation_cancelled():
                raise InvocationCancelledError(TIMEOUT_MESSAGE)
            db.commit()
        except BaseException:
            db.rollback()
            raise

    def _check_access(self, context: ExecutionContext) -> Tuple[Optional[str], Optional[str]]:
        """Return (stage, caller-facing message) of the first failed check, or (None, None)."""
        check = validate_tenant_access(context)
        if not check.allowed:
            return "tenant", TENANT_DENIED_MESSAGE

        check = validate_role_permission(context, self.allowed_roles)
        if not check.allowed:
            roles = ", ".join(role.value for role in self.allowed_roles)
            return "role", f"Access denied: Required roles: {roles}"

        if self.quota_operation is not None:
            check = validate_quota(context, self.quota_operation)
            if not check.allowed:
                return "quota", f"Operation blocked: {check.reason}"

        return None, None

    def _run(self, params: Dict[str, Any], context: ExecutionContext) -> Tuple[ToolInvocationResult, Optional[str]]:
        try:
            stage, denial = self._check_access(context)
        except Exception:
            logger.error("Access checks failed", extra={"tool_name": self.name}, exc_info=True)
            context.db.rollback()
            return ToolInvocationResult.fail(GENERIC_FAILURE_MESSAGE), None

        if stage:
            logger.warning(
                "Tool invocation denied",
                extra={
                    "tool_name": self.name,
                    "tenant_id": context.tenant_id,
                    "user_id": context.user_id,
                    "denial_stage": stage,
                },
            )
            access_denials_total.labels(tool_name=self.name, stage=stage).inc()
            return ToolInvocationResult.fail(denial), stage

        try:
            decoded = self.params_model.model_validate(params)
        except ValidationError as e:
            return ToolInvocationResult.fail(_format_validation_error(e)), None

        try:
            data = self.execute(decoded, context)
        except InvocationCancelledError:
            logger.warning(
                "Timed-out tool action rolled back",
                extra={"tool_name": self.name, "tenant_id": context.tenant_id},
            )
            return ToolInvocationResult.fail(TIMEOUT_MESSAGE), None
        except BusinessRuleError as e:
            return ToolInvocationResult.fail(str(e) or type(e).__name__), None
        except Exception:
            logger.error(
                "Tool action failed",
                extra={"tool_name": self.name, "tenant_id": context.tenant_id},
                exc_info=True,
            )
            context.db.rollback()
            return ToolInvocationResult.fail(GENERIC_FAILURE_MESSAGE), None

        if isinstance(data, Rejection):
            return ToolInvocationResult.fail(data.reason), None
        return ToolInvocationResult.ok(data), None

    def _run_exclusive(
        self,
        params: Dict[str, Any],
        context: ExecutionContext,
        cancelled: threading.Event,
    ) -> Tuple[ToolInvocationResult, Optional[str]]:
        # One worker at a time per session; a cancelled run commits nothing.
        with context.session_lock:
            if cancelled.is_set():
                return ToolInvocationResult.fail(TIMEOUT_MESSAGE), None
            token = _cancelled.set(cancelled)
            try:
                return self._run(params, context)
            finally:
                _cancelled.reset(token)

    async def invoke(
        self,
        raw_args: Any,
        context: ExecutionContext,
        timeout: Optional[float] = None,
    ) -> ToolInvocationResult:
        """
        Run the tool for a verified context. Never raises.

        Checks and the action run in a worker thread so ``timeout`` can be
        enforced. Returns exactly one result; a denial at any stage means the
        business action did not run.
        """
        start_time = time.time()
        params = sanitize_params(raw_args)
        cancelled = threading.Event()
        try:
            result, stage = await asyncio.wait_for(
                asyncio.to_thread(self._run_exclusive, params, context, cancelled),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            cancelled.set()
            logger.warning(
                "Tool invocation timed out",
                extra={"tool_name": self.name, "tenant_id": context.tenant_id, "timeout": timeout},
            )
            result, stage = ToolInvocationResult.fail(TIMEOUT_MESSAGE), None
        duration = time.time() - start_time

        status = "success" if result.success else ("denied" if stage else "failure")
        tool_invocations_total.labels(tool_name=self.name, status=status).inc()
        tool_invocation_duration.labels(tool_name=self.name).observe(duration)

        try:
            self.audit_recorder.submit(
                AuditRecord(
                    tenant_id=context.tenant_id,
                    user_id=context.user_id,
                    tool_name=self.name,
                    parameters=params,
                    result=result.to_payload(),
                    success=result.success,
                    error_message=result.error,
                    denial_stage=stage,
                    execution_time_ms=int(duration * 1000),
                )
            )
        except Exception:
            logger.warning("Audit submission failed", extra={"tool_name": self.name}, exc_info=True)

        return result


def rows_to_dicts(result) -> list:
    """Materialize a query result as a list of plain dicts."""
    return [dict(row._mapping) for row in result]
