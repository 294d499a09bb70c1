"""Domain exceptions raised inside the service.

Tool actions report expected rule violations by returning a ``Rejection``;
the exceptions here are for startup, request binding and infrastructure faults.
"""


class BakeryHubError(Exception):
    """Base class for service errors."""


class ToolRegistrationError(BakeryHubError):
    """Raised at startup when two tools share a name."""


class ContextRefusedError(BakeryHubError):
    """Raised when a request cannot be bound to an active (tenant, user)."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ModelUnavailableError(BakeryHubError):
    """Raised when the language model cannot be reached after retries."""


class BusinessRuleError(BakeryHubError):
    """Aborts a tool transaction; converted into a failure result."""


class InsufficientStockError(BusinessRuleError):
    """Requested quantity exceeds the stock on hand."""


class InvocationCancelledError(BakeryHubError):
    """Raised at commit time when the invocation has already timed out."""
