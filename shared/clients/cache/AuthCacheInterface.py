from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig

AUTH_FLAG_PREFIX = "user:authenticated:"
AUTH_FLAG_TTL_SECONDS = 60 * 60 * 24 * 7


class AuthCacheInterface(ClientInterface):
    """Cache of the per-user authentication flag.

    The flag is a performance cache over the session store: a miss means
    "unknown", never "signed out".
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.ttl_seconds = int(helper_config.get_number_val("AUTH_FLAG_TTL_SECONDS", default=AUTH_FLAG_TTL_SECONDS))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "cache"

    def get_key(self, user_id: str) -> str:
        return f"{AUTH_FLAG_PREFIX}{user_id}"

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    @abstractmethod
    async def get(self, user_id: str) -> bool | None:
        """Return the cached flag (True or an explicit sign-out False), or None if absent or expired."""
        pass

    @abstractmethod
    async def set(self, user_id: str, ttl_seconds: int | None = None, authenticated: bool = True) -> None:
        """Store the flag for ttl_seconds (default: the configured TTL).

        authenticated=False records a sign-out, which a later lookup must not
        re-derive away until it expires.
        """
        pass

    @abstractmethod
    async def expire(self, user_id: str) -> None:
        """Remove the flag. Removing an absent flag is not an error."""
        pass
