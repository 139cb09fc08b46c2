import asyncio
from typing import AsyncIterator, Mapping

from server.core.AgentLoop import AgentLoop
from server.core.AuthGate import AuthGate
from server.core.RequestContext import RequestContext
from server.core.TranscriptReconciler import TranscriptState, finalize, reconcile
from server.core.prompts import NO_SESSION_MESSAGE
from shared.clients.session.SessionClientInterface import FORWARDED_HEADERS
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.errors.errors import ChatAccessError, DuplicateToolCallError, TransportError
from shared.helper.HelperConfig import HelperConfig
from shared.models.events import (
    SourceEvent,
    StreamError,
    StreamFinish,
    StreamStart,
    TextDelta,
    ToolCallRequest,
    ToolCallResult,
)
from shared.models.message import Chat, Message, TextPart, new_id
from shared.models.session import Session

CHAT_TITLE_MAX_LENGTH = 100
DEFAULT_CHAT_TITLE = "New Chat"
_TRANSCRIPT_EVENTS = (TextDelta, ToolCallRequest, ToolCallResult, SourceEvent)


def build_chat_title(text: str) -> str:
    return text[:CHAT_TITLE_MAX_LENGTH] or DEFAULT_CHAT_TITLE


class ChatService:
    """Handles chat requests: session gating, persistence and the streamed assistant turn.

    The agent loop runs in a background task that feeds a queue. Stopping to
    read the stream (e.g. a client disconnect) does not cancel it, so tool side
    effects and the final transcript write always complete.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        store: StoreClientInterface,
        auth_gate: AuthGate,
        agent_loop: AgentLoop,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._auth_gate = auth_gate
        self._agent_loop = agent_loop
        self._tasks: set[asyncio.Task] = set()

    ##########################################
    ################# CHAT ###################
    ##########################################

    async def start_chat(
        self,
        session: Session | None,
        headers: Mapping[str, str],
        text: str,
        chat_id: str | None = None,
    ) -> tuple[str, AsyncIterator]:
        """Store the user message and start the assistant turn.

        Without a session, a static instructional message is streamed and
        nothing is persisted.

        Returns:
            tuple[str, AsyncIterator]: The chat id and the stream of events.

        Raises:
            ChatAccessError: If chat_id belongs to another user.
        """
        chat_id = chat_id or new_id()
        message_id = new_id()

        if session is None:
            self.logging.info("Chat request without session, answering with static message.")
            return chat_id, self._static_stream(chat_id, message_id, NO_SESSION_MESSAGE)

        chat = await self._store.get_chat(chat_id)
        if chat is not None and chat.user_id != session.user_id:
            raise ChatAccessError(f"Chat '{chat_id}' belongs to another user.")
        if chat is None:
            chat = await self._store.save_chat(Chat(id=chat_id, user_id=session.user_id, title=build_chat_title(text)))
            self.logging.info("Created chat '%s' for user '%s'.", chat.id, session.user_id)

        parts = [TextPart(text=text)] if text else []
        await self._store.save_messages([Message(chat_id=chat_id, role="user", parts=parts)])

        authenticated = await self._auth_gate.is_authenticated(session)
        transcript = await self._store.get_messages(chat_id)
        context = RequestContext(
            session=session,
            authenticated=authenticated,
            chat_id=chat_id,
            headers={key: value for key, value in headers.items() if key.lower() in FORWARDED_HEADERS},
        )
        self.logging.info(
            "Chat '%s': user '%s' (authenticated=%s), %d messages in transcript.",
            chat_id, session.user_id, authenticated, len(transcript),
        )

        queue: asyncio.Queue = asyncio.Queue()
        task = asyncio.create_task(self._drive(context, transcript, message_id, queue))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return chat_id, self._drain(queue)

    async def _drive(self, context: RequestContext, transcript: list[Message], message_id: str, queue: asyncio.Queue) -> None:
        state = TranscriptState()
        await queue.put(StreamStart(chat_id=context.chat_id, message_id=message_id))
        try:
            async for event in self._agent_loop.run(context, transcript, message_id):
                if isinstance(event, _TRANSCRIPT_EVENTS):
                    state = reconcile(state, event)
                elif isinstance(event, StreamFinish):
                    await self._store.save_messages([event.message])
                await queue.put(event)
        except TransportError as exc:
            partial = finalize(state, context.chat_id, message_id)
            if partial.parts:
                await self._store.save_messages([partial])
                self.logging.info("Stored partial assistant message for chat '%s'.", context.chat_id)
            await queue.put(StreamError(error=str(exc)))
        except DuplicateToolCallError as exc:
            self.logging.error("Transcript of chat '%s' could not be reconciled: %s", context.chat_id, exc)
            await queue.put(StreamError(error=str(exc)))
        except Exception:
            self.logging.exception("Assistant turn for chat '%s' failed.", context.chat_id)
            await queue.put(StreamError(error="An unexpected error occurred while generating the response."))
        finally:
            await queue.put(None)

    @staticmethod
    async def _drain(queue: asyncio.Queue) -> AsyncIterator:
        while True:
            event = await queue.get()
            if event is None:
                return
            yield event

    @staticmethod
    async def _static_stream(chat_id: str, message_id: str, text: str) -> AsyncIterator:
        message = Message(id=message_id, chat_id=chat_id, role="assistant", parts=[TextPart(text=text)])
        yield StreamStart(chat_id=chat_id, message_id=message_id)
        yield TextDelta(text=text)
        yield StreamFinish(message=message, finish_reason="static")

    ##########################################
    ################ HISTORY #################
    ##########################################

    async def list_chats(self, session: Session) -> list[Chat]:
        return await self._store.get_chats_by_user(session.user_id)

    async def get_chat(self, session: Session, chat_id: str) -> tuple[Chat, list[Message]] | None:
        """Return a chat with its messages, or None if it does not exist.

        Raises:
            ChatAccessError: If the chat belongs to another user.
        """
        chat = await self._store.get_chat(chat_id)
        if chat is None:
            return None
        if chat.user_id != session.user_id:
            raise ChatAccessError(f"Chat '{chat_id}' belongs to another user.")
        return chat, await self._store.get_messages(chat_id)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def shutdown(self) -> None:
        """Wait for running assistant turns to finish."""
        if self._tasks:
            self.logging.info("Waiting for %d running assistant turn(s)...", len(self._tasks))
            await asyncio.gather(*self._tasks, return_exceptions=True)
