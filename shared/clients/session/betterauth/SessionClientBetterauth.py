from shared.clients.session.SessionClientInterface import SessionClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.session import AuthUser, Session


class SessionClientBetterauth(SessionClientInterface):
    """Session client for a Better Auth server with the username and anonymous plugins."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._base_path = self.get_config_val("BASE_PATH", default="/api/auth", val_type="string").rstrip("/")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Betterauth"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="BASE_PATH", val_type="string", default="/api/auth"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # the caller's cookie is forwarded per request
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"{self._base_path}/ok"

    def _get_endpoint_session(self) -> str:
        return f"{self._base_path}/get-session"

    def _get_endpoint_sign_up(self) -> str:
        return f"{self._base_path}/sign-up/email"

    def _get_endpoint_sign_in(self) -> str:
        return f"{self._base_path}/sign-in/username"

    def _get_endpoint_sign_out(self) -> str:
        return f"{self._base_path}/sign-out"

    ################ PAYLOAD BUILDER ##################
    def get_sign_up_payload(self, username: str, password: str, email: str, name: str | None) -> dict:
        return {"email": email, "password": password, "name": name or username, "username": username}

    def get_sign_in_payload(self, username: str, password: str) -> dict:
        return {"username": username, "password": password}

    ##########################################
    ############ RESPONSE PARSER #############
    ##########################################

    def extract_session(self, response_data: dict | None) -> Session | None:
        if not response_data:
            return None
        user = response_data.get("user") or {}
        if not user.get("id"):
            return None
        return Session(user_id=str(user["id"]), is_anonymous=bool(user.get("isAnonymous", False)))

    def extract_user(self, response_data: dict) -> AuthUser:
        user = (response_data or {}).get("user")
        if not user or not user.get("id"):
            raise ValueError("response does not contain a user")
        return AuthUser(
            id=str(user["id"]),
            email=user.get("email"),
            name=user.get("name"),
            username=user.get("username"),
        )

    def extract_error_message(self, response_data: dict | None) -> str | None:
        if not isinstance(response_data, dict):
            return None
        return response_data.get("message") or response_data.get("code")
