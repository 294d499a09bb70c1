"""Tool descriptor and invocation result models."""

from dataclasses import dataclass

from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Optional

from bakeryhub.models.context import Role, QuotaOperation


class ToolDescriptor(BaseModel):
    """Static description of a tool, as registered at startup."""
    name: str = Field(..., description="Unique tool name exposed to the model")
    description: str = Field(..., description="Description shown to the model")
    parameters_schema: Dict[str, Any] = Field(..., description="JSON Schema for parameters")
    allowed_roles: List[Role] = Field(..., min_length=1, description="Roles that may invoke the tool, in declaration order")
    quota_operation: Optional[QuotaOperation] = Field(
        default=None,
        description="Subscription limit checked before the action runs",
    )

    @property
    def requires_quota_check(self) -> bool:
        return self.quota_operation is not None


class ToolInvocationResult(BaseModel):
    """
    Uniform result of a tool invocation.

    Exactly one of ``data`` (on success) or ``error`` (on failure) is set.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @model_validator(mode="after")
    def _check_outcome(self):
        if self.success and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if not self.success and not self.error:
            raise ValueError("failed result must carry an error")
        return self

    @classmethod
    def ok(cls, data: Any, message: str = "Operation completed successfully") -> "ToolInvocationResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str) -> "ToolInvocationResult":
        return cls(success=False, error=error)

    def to_payload(self) -> Dict[str, Any]:
        """Serializable form sent back to the model and the caller."""
        return self.model_dump(exclude_none=True)


@dataclass(frozen=True)
class Rejection:
    """
    Business outcome of an action that refused the request.

    Actions return this instead of data when a rule rejects the operation;
    the tool boundary turns it into a failure result.
    """
    reason: str
