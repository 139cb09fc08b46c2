from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.message import Chat, Message
from shared.models.order import Order

MAX_ORDER_QUERY_LIMIT = 50


class StoreClientInterface(ClientInterface):
    """Relational persistence for chats, messages and orders."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    def _get_client_type(self) -> str:
        return "store"

    @staticmethod
    def clamp_order_limit(limit: int) -> int:
        return max(1, min(int(limit), MAX_ORDER_QUERY_LIMIT))

    ##########################################
    ################# CHATS ##################
    ##########################################

    @abstractmethod
    async def get_chat(self, chat_id: str) -> Chat | None:
        pass

    @abstractmethod
    async def save_chat(self, chat: Chat) -> Chat:
        pass

    @abstractmethod
    async def get_chats_by_user(self, user_id: str) -> list[Chat]:
        """Return the user's chats, newest first."""
        pass

    ##########################################
    ################ MESSAGES ################
    ##########################################

    @abstractmethod
    async def get_messages(self, chat_id: str) -> list[Message]:
        """Return the chat's messages ordered by created_at."""
        pass

    @abstractmethod
    async def save_messages(self, messages: list[Message]) -> list[Message]:
        pass

    ##########################################
    ################# ORDERS #################
    ##########################################

    @abstractmethod
    async def insert_order(self, order: Order) -> Order:
        pass

    @abstractmethod
    async def query_orders(self, user_id: str, limit: int = 10) -> list[Order]:
        """Return at most limit (<= 50) of the user's orders, newest first."""
        pass
