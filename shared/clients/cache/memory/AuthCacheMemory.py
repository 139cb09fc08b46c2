import asyncio
import time

from shared.clients.cache.AuthCacheInterface import AuthCacheInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class AuthCacheMemory(AuthCacheInterface):
    """Process-local flag cache. Suitable for a single API worker and for tests."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        # key -> (flag, monotonic expiry)
        self._entries: dict[str, tuple[bool, float]] = {}
        self._write_lock = asyncio.Lock()

    def _get_engine_name(self) -> str:
        return "Memory"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    async def boot(self) -> None:
        pass

    async def close(self) -> None:
        self._entries.clear()

    async def is_healthy(self) -> bool:
        return True

    async def get(self, user_id: str) -> bool | None:
        entry = self._entries.get(self.get_key(user_id))
        if entry is None:
            return None
        flag, expires_at = entry
        if time.monotonic() >= expires_at:
            return None
        return flag

    async def set(self, user_id: str, ttl_seconds: int | None = None, authenticated: bool = True) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        async with self._write_lock:
            self._entries[self.get_key(user_id)] = (authenticated, time.monotonic() + ttl)

    async def expire(self, user_id: str) -> None:
        async with self._write_lock:
            self._entries.pop(self.get_key(user_id), None)
