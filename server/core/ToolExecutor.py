"""Tool definitions and their execution.

Tool failures are data: every failure mode ends up as a
{"success": False, "error": ...} result the model can react to.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from shared.errors.errors import RetrievalError, ToolExecutionError
from shared.helper.HelperConfig import HelperConfig
from shared.models.events import SourceEvent, ToolCallRequest, ToolCallResult


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_model: type[BaseModel]
    handler: Callable[[Any], Awaitable[dict]]
    source_extractor: Callable[[dict], list[SourceEvent]] | None = None

    def schema(self) -> dict:
        """Function schema sent to the model."""
        parameters = self.input_model.model_json_schema()
        parameters.pop("title", None)
        for prop in parameters.get("properties", {}).values():
            prop.pop("title", None)
        return {"name": self.name, "description": self.description, "parameters": parameters}


def format_validation_error(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "input"
        messages.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(messages)


class ToolExecutor:
    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()

    async def execute(self, tools: dict[str, Tool], request: ToolCallRequest) -> ToolCallResult:
        """Validate the request input and run the matching tool handler.

        Never raises for tool-level problems. Unknown tools, invalid input and
        handler failures all produce a failure result.

        Args:
            tools (dict[str, Tool]): Tools available to this request, keyed by name.
            request (ToolCallRequest): The call requested by the model.

        Returns:
            ToolCallResult: The handler output or a failure result.
        """
        tool = tools.get(request.tool_name)
        if tool is None:
            self.logging.warning("Model requested unknown or unavailable tool '%s'.", request.tool_name, color="yellow")
            return self._failure(request, f"Tool '{request.tool_name}' is not available.")

        try:
            params = tool.input_model.model_validate(request.args)
        except ValidationError as exc:
            self.logging.warning("Invalid input for tool '%s': %s", tool.name, format_validation_error(exc), color="yellow")
            return self._failure(request, f"Invalid input: {format_validation_error(exc)}")

        try:
            output = await tool.handler(params)
        except (ToolExecutionError, RetrievalError) as exc:
            self.logging.warning("Tool '%s' failed: %s", tool.name, exc, color="yellow")
            return self._failure(request, str(exc))
        except Exception as exc:
            self.logging.exception("Unexpected error in tool '%s'.", tool.name)
            return self._failure(request, f"An unexpected error occurred: {exc}")

        self.logging.debug("Tool '%s' (%s) finished.", tool.name, request.tool_call_id)
        return ToolCallResult(tool_call_id=request.tool_call_id, tool_name=tool.name, result=output)

    def extract_sources(self, tools: dict[str, Tool], result: ToolCallResult) -> list[SourceEvent]:
        """Return the source references of a successful tool result."""
        tool = tools.get(result.tool_name)
        if tool is None or tool.source_extractor is None or not result.result.get("success"):
            return []
        return tool.source_extractor(result.result)

    @staticmethod
    def _failure(request: ToolCallRequest, error: str) -> ToolCallResult:
        return ToolCallResult(
            tool_call_id=request.tool_call_id,
            tool_name=request.tool_name,
            result={"success": False, "error": error},
        )
