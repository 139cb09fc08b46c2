"""PostgreSQL store using SQLAlchemy 2.0 async Core."""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    select,
    text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.message import Chat, Message
from shared.models.order import Order

metadata = MetaData()

chat_table = Table(
    "chat",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("title", Text, nullable=False),
    Column("visibility", String(16), nullable=False, default="private"),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

message_table = Table(
    "message",
    metadata,
    Column("id", String, primary_key=True),
    Column("chat_id", String, ForeignKey("chat.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("role", String(16), nullable=False),
    Column("parts", JSON, nullable=True),
    # legacy flattened representation, only read for migration
    Column("content", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

order_table = Table(
    "sales_orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_number", String, nullable=False, unique=True),
    Column("customer_name", Text, nullable=False),
    Column("customer_email", Text, nullable=False),
    Column("product_name", Text, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Numeric(10, 2), nullable=False),
    Column("total_amount", Numeric(10, 2), nullable=False),
    Column("status", String(32), nullable=False),
    Column("user_id", String, nullable=False, index=True),
    Column("order_date", DateTime(timezone=True), nullable=False),
)


class StoreClientPostgres(StoreClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._url = self.get_config_val("URL", default=None, val_type="string")
        self._create_tables = self.get_config_val("CREATE_TABLES", default=True, val_type="bool")
        self._engine: AsyncEngine | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Postgres"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="URL", val_type="string", default=None),
            EnvConfig(env_key="CREATE_TABLES", val_type="bool", default=True),
        ]

    def _get_db(self) -> AsyncEngine:
        if self._engine is None:
            raise Exception("Database engine not initialised. Call boot() before using the store.")
        return self._engine

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        self._engine = create_async_engine(self._url, pool_pre_ping=True)
        if self._create_tables:
            async with self._engine.begin() as conn:
                await conn.run_sync(metadata.create_all)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    async def is_healthy(self) -> bool:
        try:
            async with self._get_db().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            self.logging.warning("Database healthcheck failed: %s", exc)
            return False

    ##########################################
    ################# CHATS ##################
    ##########################################

    async def get_chat(self, chat_id: str) -> Chat | None:
        async with self._get_db().connect() as conn:
            row = (await conn.execute(select(chat_table).where(chat_table.c.id == chat_id).limit(1))).mappings().first()
        return Chat.model_validate(dict(row)) if row is not None else None

    async def save_chat(self, chat: Chat) -> Chat:
        async with self._get_db().begin() as conn:
            await conn.execute(chat_table.insert().values(**chat.model_dump()))
        return chat

    async def get_chats_by_user(self, user_id: str) -> list[Chat]:
        query = select(chat_table).where(chat_table.c.user_id == user_id).order_by(chat_table.c.created_at.desc())
        async with self._get_db().connect() as conn:
            rows = (await conn.execute(query)).mappings().all()
        return [Chat.model_validate(dict(row)) for row in rows]

    ##########################################
    ################ MESSAGES ################
    ##########################################

    async def get_messages(self, chat_id: str) -> list[Message]:
        query = select(message_table).where(message_table.c.chat_id == chat_id).order_by(message_table.c.created_at)
        async with self._get_db().connect() as conn:
            rows = (await conn.execute(query)).mappings().all()
        return [self._row_to_message(row) for row in rows]

    @staticmethod
    def _row_to_message(row) -> Message:
        if row["parts"] is None:
            return Message.from_legacy_content(
                id=row["id"],
                chat_id=row["chat_id"],
                role=row["role"],
                content=row["content"],
                created_at=row["created_at"],
            )
        return Message.model_validate({
            "id": row["id"],
            "chat_id": row["chat_id"],
            "role": row["role"],
            "parts": row["parts"],
            "created_at": row["created_at"],
        })

    async def save_messages(self, messages: list[Message]) -> list[Message]:
        if not messages:
            return []
        rows = [
            {
                "id": message.id,
                "chat_id": message.chat_id,
                "role": message.role,
                "parts": [part.model_dump(mode="json") for part in message.parts],
                "created_at": message.created_at,
            }
            for message in messages
        ]
        async with self._get_db().begin() as conn:
            await conn.execute(message_table.insert(), rows)
        return messages

    ##########################################
    ################# ORDERS #################
    ##########################################

    async def insert_order(self, order: Order) -> Order:
        async with self._get_db().begin() as conn:
            await conn.execute(order_table.insert().values(**order.model_dump(mode="python")))
        return order

    async def query_orders(self, user_id: str, limit: int = 10) -> list[Order]:
        query = (
            select(order_table)
            .where(order_table.c.user_id == user_id)
            .order_by(order_table.c.order_date.desc())
            .limit(self.clamp_order_limit(limit))
        )
        async with self._get_db().connect() as conn:
            rows = (await conn.execute(query)).mappings().all()
        return [Order.model_validate(dict(row)) for row in rows]
