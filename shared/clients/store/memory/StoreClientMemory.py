import asyncio

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.message import Chat, Message
from shared.models.order import Order


class StoreClientMemory(StoreClientInterface):
    """Non-persistent store for local development and tests."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._chats: dict[str, Chat] = {}
        self._messages: dict[str, list[Message]] = {}
        self._orders: list[Order] = []
        self._write_lock = asyncio.Lock()

    def _get_engine_name(self) -> str:
        return "Memory"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    async def boot(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def is_healthy(self) -> bool:
        return True

    async def get_chat(self, chat_id: str) -> Chat | None:
        chat = self._chats.get(chat_id)
        return chat.model_copy() if chat is not None else None

    async def save_chat(self, chat: Chat) -> Chat:
        async with self._write_lock:
            self._chats[chat.id] = chat.model_copy()
        return chat

    async def get_chats_by_user(self, user_id: str) -> list[Chat]:
        chats = [chat for chat in self._chats.values() if chat.user_id == user_id]
        return sorted(chats, key=lambda chat: chat.created_at, reverse=True)

    async def get_messages(self, chat_id: str) -> list[Message]:
        messages = self._messages.get(chat_id, [])
        return [message.model_copy(deep=True) for message in sorted(messages, key=lambda m: m.created_at)]

    async def save_messages(self, messages: list[Message]) -> list[Message]:
        async with self._write_lock:
            for message in messages:
                self._messages.setdefault(message.chat_id, []).append(message.model_copy(deep=True))
        return messages

    async def insert_order(self, order: Order) -> Order:
        async with self._write_lock:
            if any(existing.order_number == order.order_number for existing in self._orders):
                raise ValueError(f"Order number {order.order_number} already exists.")
            self._orders.append(order.model_copy())
        return order

    async def query_orders(self, user_id: str, limit: int = 10) -> list[Order]:
        orders = [order for order in self._orders if order.user_id == user_id]
        orders.sort(key=lambda order: order.order_date, reverse=True)
        return orders[: self.clamp_order_limit(limit)]
