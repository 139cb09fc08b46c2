"""Bounded model/tool orchestration loop."""

import asyncio
import random
from typing import AsyncIterator

from server.core.CapabilityRegistry import CapabilityRegistry
from server.core.RequestContext import RequestContext
from server.core.ToolExecutor import Tool, ToolExecutor
from server.core.TranscriptReconciler import TranscriptState, finalize, reconcile
from server.core.model_input import assistant_turn, build_model_messages, tool_message
from server.tools.Toolbox import Toolbox
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.errors.errors import DuplicateToolCallError, TransportError
from shared.helper.HelperConfig import HelperConfig
from shared.models.events import (
    ModelEvent,
    SourceEvent,
    StepFinish,
    StreamFinish,
    TextDelta,
    ToolCallRequest,
    ToolCallResult,
)
from shared.models.message import Message, TextPart, new_id

DEFAULT_MAX_STEPS = 5
DEFAULT_MAX_RETRIES = 5


class AgentLoop:
    """Runs model invocations and tool executions until the model answers with text only.

    run() yields the stream events of one assistant turn: text deltas, tool
    call requests and results, sources, one step-finish per model invocation
    and a final finish event carrying the reconciled assistant message.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        llm_client: LLMClientInterface,
        registry: CapabilityRegistry,
        toolbox: Toolbox,
        executor: ToolExecutor | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client
        self._registry = registry
        self._toolbox = toolbox
        self._executor = executor or ToolExecutor(helper_config)

        self.max_steps = int(helper_config.get_number_val("AGENT_MAX_STEPS", default=DEFAULT_MAX_STEPS))
        self.max_retries = int(helper_config.get_number_val("MODEL_MAX_RETRIES", default=DEFAULT_MAX_RETRIES))
        self.retry_base_delay = float(helper_config.get_number_val("MODEL_RETRY_BASE_DELAY", default=0.5))
        self.retry_max_delay = float(helper_config.get_number_val("MODEL_RETRY_MAX_DELAY", default=8.0))
        self.gated = helper_config.get_bool_val("GATED_UNAUTHENTICATED", default=False)

    ##########################################
    ################# CORE ###################
    ##########################################

    async def run(self, context: RequestContext, transcript: list[Message], message_id: str | None = None) -> AsyncIterator:
        """Run one assistant turn.

        Args:
            context (RequestContext): Session, authentication state and chat of the request.
            transcript (list[Message]): All prior messages of the chat, including the new user message.
            message_id (str | None): Id of the assistant message to produce.

        Yields:
            Stream events, ending with a StreamFinish.

        Raises:
            TransportError: If the model cannot be reached after all retries,
                refuses the request, or the stream breaks after it started.
        """
        message_id = message_id or new_id()
        capability = self._registry.resolve(context.authenticated, gated=self.gated)

        if not capability.invoke_model:
            yield TextDelta(text=capability.static_message)
            message = Message(
                id=message_id,
                chat_id=context.chat_id,
                role="assistant",
                parts=[TextPart(text=capability.static_message)],
            )
            yield StreamFinish(message=message, finish_reason="static")
            return

        tools = self._toolbox.build(capability.tool_names, context)
        schemas = [tool.schema() for tool in tools.values()]
        messages = build_model_messages(transcript)
        state = TranscriptState()

        for step in range(1, self.max_steps + 1):
            step_text = ""
            requests: list[ToolCallRequest] = []
            async for event in self._stream_model(capability.system_prompt, messages, schemas):
                if isinstance(event, ToolCallRequest):
                    try:
                        state = reconcile(state, event)
                    except DuplicateToolCallError as exc:
                        self.logging.warning("Ignoring tool call: %s", exc, color="yellow")
                        continue
                    requests.append(event)
                else:
                    state = reconcile(state, event)
                    step_text += event.text
                yield event

            if not requests:
                yield StepFinish(step=step, tool_calls=0)
                yield StreamFinish(message=finalize(state, context.chat_id, message_id), finish_reason="stop")
                return

            messages.append(assistant_turn(step_text, requests))
            results: dict[str, dict] = {}
            async for result, sources in self._run_tools(tools, requests):
                state = reconcile(state, result)
                results[result.tool_call_id] = result.result
                yield result
                for source in sources:
                    state = reconcile(state, source)
                    yield source
            for request in requests:
                messages.append(tool_message(request.tool_call_id, results[request.tool_call_id]))
            yield StepFinish(step=step, tool_calls=len(requests))

        self.logging.warning(
            "Chat '%s' reached the step bound of %d model invocations.", context.chat_id, self.max_steps, color="yellow"
        )
        yield StreamFinish(message=finalize(state, context.chat_id, message_id), finish_reason="step-bound")

    ##########################################
    ################ HELPERS #################
    ##########################################

    async def _run_tools(
        self, tools: dict[str, Tool], requests: list[ToolCallRequest]
    ) -> AsyncIterator[tuple[ToolCallResult, list[SourceEvent]]]:
        """Execute all requests of a step concurrently, yielding results in completion order."""
        tasks = [asyncio.create_task(self._executor.execute(tools, request)) for request in requests]
        for next_done in asyncio.as_completed(tasks):
            result = await next_done
            yield result, self._executor.extract_sources(tools, result)

    async def _stream_model(self, system_prompt: str, messages: list[dict], schemas: list[dict]) -> AsyncIterator[ModelEvent]:
        """Stream one model invocation, retrying failures that happen before the first event."""
        attempt = 0
        while True:
            started = False
            try:
                async for event in self._llm_client.do_stream_chat(system_prompt, messages, schemas):
                    started = True
                    yield event
                return
            except TransportError as exc:
                if started or not exc.retryable or attempt >= self.max_retries:
                    self.logging.error("Model request failed: %s", exc)
                    raise
                attempt += 1
                delay = self.get_retry_delay(attempt)
                self.logging.warning(
                    "Model request failed (%s). Retry %d/%d in %.2fs.", exc, attempt, self.max_retries, delay, color="yellow"
                )
                await asyncio.sleep(delay)

    def get_retry_delay(self, attempt: int) -> float:
        """Exponential backoff capped at MODEL_RETRY_MAX_DELAY, with up to 25% jitter."""
        delay = min(self.retry_base_delay * (2 ** (attempt - 1)), self.retry_max_delay)
        jitter_range = delay * 0.25
        delay += random.uniform(-jitter_range, jitter_range)
        return max(0.0, delay)
