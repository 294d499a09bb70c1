"""Registry of the tools available to the conversation loop."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from bakeryhub.exceptions import ToolRegistrationError
from bakeryhub.logging.audit_recorder import AuditRecorder
from bakeryhub.models.context import ExecutionContext, Role
from bakeryhub.models.tool import ToolInvocationResult
from bakeryhub.tools.base import BaseTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Name-indexed set of tools.

    Built once at startup and read-only afterwards; safe to share across
    concurrent requests.
    """

    def __init__(self, tools: Optional[Iterable[BaseTool]] = None):
        self._tools: Dict[str, BaseTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        """
        Raises:
            ToolRegistrationError: If a tool with the same name is registered
        """
        if tool.name in self._tools:
            raise ToolRegistrationError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[BaseTool]:
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def tools_for_role(self, role: Role) -> List[BaseTool]:
        """Tools whose allowed roles include ``role``, in registration order."""
        role = Role(role)
        return [tool for tool in self._tools.values() if role in tool.allowed_roles]

    def schema_for_role(self, role: Role) -> List[Dict[str, Any]]:
        """Function-calling schema of the tools visible to ``role``."""
        return [tool.to_function_schema() for tool in self.tools_for_role(role)]

    async def dispatch(
        self,
        name: str,
        args: Any,
        context: ExecutionContext,
        timeout: Optional[float] = None,
    ) -> ToolInvocationResult:
        """Invoke a tool by name. Unknown names yield a failure result."""
        tool = self._tools.get(name)
        if tool is None:
            logger.warning(
                "Unknown tool requested",
                extra={"tool_name": name, "tenant_id": context.tenant_id},
            )
            return ToolInvocationResult.fail(f"Tool '{name}' not found")
        return await tool.invoke(args, context, timeout=timeout)


def build_default_registry(audit_recorder: Optional[AuditRecorder] = None) -> ToolRegistry:
    """Registry with every built-in bakery tool."""
    from bakeryhub.tools.admin_tools import ADMIN_TOOLS
    from bakeryhub.tools.client_tools import CLIENT_TOOLS
    from bakeryhub.tools.customer_tools import CUSTOMER_TOOLS
    from bakeryhub.tools.driver_tools import DRIVER_TOOLS
    from bakeryhub.tools.supplier_tools import SUPPLIER_TOOLS

    registry = ToolRegistry()
    for tool_class in DRIVER_TOOLS + CLIENT_TOOLS + CUSTOMER_TOOLS + SUPPLIER_TOOLS + ADMIN_TOOLS:
        registry.register(tool_class(audit_recorder=audit_recorder))
    logger.info("Tool registry built", extra={"tool_count": len(registry)})
    return registry
