from server.core.RequestContext import RequestContext
from server.core.ToolExecutor import Tool
from server.tools.AuthTools import AuthTools
from server.tools.DocumentTools import DocumentTools
from server.tools.OrderTools import OrderTools


class Toolbox:
    """Builds the per-request tool registry for a capability's tool names."""

    def __init__(self, auth_tools: AuthTools, order_tools: OrderTools, document_tools: DocumentTools) -> None:
        self._providers = (auth_tools, order_tools, document_tools)

    def build(self, names: tuple[str, ...] | list[str], context: RequestContext) -> dict[str, Tool]:
        """Return the named tools bound to the request context, keyed by name.

        Raises:
            ValueError: If a name matches no known tool.
        """
        available: dict[str, Tool] = {}
        for provider in self._providers:
            for tool in provider.get_tools(context):
                available[tool.name] = tool
        unknown = [name for name in names if name not in available]
        if unknown:
            raise ValueError(f"Unknown tool name(s): {', '.join(unknown)}")
        return {name: available[name] for name in names}

    def get_descriptions(self) -> dict[str, str]:
        descriptions: dict[str, str] = {}
        for provider in self._providers:
            descriptions.update(provider.DESCRIPTIONS)
        return descriptions
