from functools import partial

from pydantic import BaseModel, Field

from server.core.RequestContext import RequestContext
from server.core.ToolExecutor import Tool
from shared.clients.cache.AuthCacheInterface import AuthCacheInterface
from shared.clients.session.SessionClientInterface import SessionClientInterface
from shared.errors.errors import ToolExecutionError
from shared.helper.HelperConfig import HelperConfig

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SignUpInput(BaseModel):
    username: str = Field(min_length=1, description="The username for the new account")
    password: str = Field(min_length=8, description="The password (minimum 8 characters)")
    email: str = Field(pattern=EMAIL_PATTERN, description="The user's email address")
    name: str | None = Field(default=None, description="The user's display name (optional, defaults to username)")


class SignInInput(BaseModel):
    username: str = Field(min_length=1, description="The user's username")
    password: str = Field(min_length=1, description="The user's password")


class SignOutInput(BaseModel):
    pass


class AuthTools:
    """signUp, signIn and signOut. Success sets or clears the authentication flag."""

    DESCRIPTIONS: dict[str, str] = {
        "signUp": "Sign up a new user with username and password. Use this when the user wants to create a new account.",
        "signIn": "Sign in an existing user with their username and password. Use this when the user wants to log in.",
        "signOut": "Sign out the current user. Use this when the user wants to log out.",
    }

    def __init__(
        self,
        helper_config: HelperConfig,
        session_client: SessionClientInterface,
        auth_cache: AuthCacheInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._session_client = session_client
        self._auth_cache = auth_cache

    def get_tools(self, context: RequestContext) -> list[Tool]:
        return [
            Tool(name="signUp", description=self.DESCRIPTIONS["signUp"], input_model=SignUpInput, handler=partial(self.sign_up, context)),
            Tool(name="signIn", description=self.DESCRIPTIONS["signIn"], input_model=SignInInput, handler=partial(self.sign_in, context)),
            Tool(name="signOut", description=self.DESCRIPTIONS["signOut"], input_model=SignOutInput, handler=partial(self.sign_out, context)),
        ]

    async def sign_up(self, context: RequestContext, params: SignUpInput) -> dict:
        user = await self._session_client.do_sign_up(
            username=params.username,
            password=params.password,
            email=params.email,
            name=params.name or params.username,
        )
        await self._auth_cache.set(context.user_id)
        self.logging.info("User '%s' signed up as '%s'.", context.user_id, params.username, color="green")
        return {
            "success": True,
            "message": "Account created successfully! You are now signed in.",
            "user": {"id": user.id, "email": user.email, "name": user.name},
        }

    async def sign_in(self, context: RequestContext, params: SignInInput) -> dict:
        user = await self._session_client.do_sign_in(username=params.username, password=params.password)
        await self._auth_cache.set(context.user_id)
        self.logging.info("User '%s' signed in as '%s'.", context.user_id, params.username, color="green")
        return {
            "success": True,
            "message": "Successfully signed in!",
            "user": {"id": user.id, "username": user.username, "email": user.email, "name": user.name},
        }

    async def sign_out(self, context: RequestContext, params: SignOutInput) -> dict:
        """Record an explicit signed-out flag for the session user.

        A cache failure propagates, so the executor reports the sign-out as
        failed. Guest sessions are kept at the session store;
        only real accounts are also signed out there.
        """
        await self._auth_cache.set(context.user_id, authenticated=False)
        if not context.session.is_anonymous:
            try:
                await self._session_client.do_sign_out(context.headers)
            except ToolExecutionError as exc:
                # the signed-out flag is authoritative for the assistant
                self.logging.warning("Session store sign-out for user '%s' failed: %s", context.user_id, exc, color="yellow")
        self.logging.info("User '%s' signed out.", context.user_id)
        return {
            "success": True,
            "message": "Successfully signed out. You'll need to sign in again to continue using the service.",
        }
