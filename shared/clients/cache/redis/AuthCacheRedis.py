import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shared.clients.cache.AuthCacheInterface import AuthCacheInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class AuthCacheRedis(AuthCacheInterface):
    """Flag cache shared by all API workers. Expiry is delegated to Redis (SETEX)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._url = self.get_config_val("URL", default="redis://localhost:6379/0", val_type="string")
        self._redis: aioredis.Redis | None = None

    def _get_engine_name(self) -> str:
        return "Redis"

    def _get_required_config(self) -> list[EnvConfig]:
        return [EnvConfig(env_key="URL", val_type="string", default="redis://localhost:6379/0")]

    def _get_redis(self) -> aioredis.Redis:
        if self._redis is None:
            raise Exception("Redis client not initialised. Call boot() before using the cache.")
        return self._redis

    async def boot(self) -> None:
        self._redis = aioredis.from_url(self._url, decode_responses=True)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def is_healthy(self) -> bool:
        try:
            return bool(await self._get_redis().ping())
        except RedisError as exc:
            self.logging.warning("Redis healthcheck failed: %s", exc)
            return False

    async def get(self, user_id: str) -> bool | None:
        value = await self._get_redis().get(self.get_key(user_id))
        if value == "true":
            return True
        if value == "false":
            return False
        return None

    async def set(self, user_id: str, ttl_seconds: int | None = None, authenticated: bool = True) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        await self._get_redis().setex(self.get_key(user_id), ttl, "true" if authenticated else "false")

    async def expire(self, user_id: str) -> None:
        await self._get_redis().delete(self.get_key(user_id))
