from typing import Mapping

from shared.clients.cache.AuthCacheInterface import AuthCacheInterface
from shared.clients.session.SessionClientInterface import SessionClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.session import Session


class AuthGate:
    """Resolves the session of a request and whether it counts as authenticated.

    The authentication flag lives in the auth cache. A cached flag, including
    the explicit False written by signOut, is authoritative until it expires.
    On a miss the flag is re-derived from the session (a non-anonymous session
    is authenticated) and cached again.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        session_client: SessionClientInterface,
        auth_cache: AuthCacheInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._session_client = session_client
        self._auth_cache = auth_cache

    async def get_session(self, headers: Mapping[str, str]) -> Session | None:
        return await self._session_client.get_session(headers)

    async def is_authenticated(self, session: Session) -> bool:
        cached = await self._auth_cache.get(session.user_id)
        if cached is not None:
            return cached

        authenticated = not session.is_anonymous
        if authenticated:
            self.logging.debug("Auth flag for user '%s' re-derived from session.", session.user_id)
            await self._auth_cache.set(session.user_id)
        return authenticated
