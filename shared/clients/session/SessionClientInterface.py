from abc import abstractmethod
from typing import Mapping

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.errors.errors import ToolExecutionError
from shared.helper.HelperConfig import HelperConfig
from shared.models.session import AuthUser, Session

# request headers that identify the caller towards the session store
FORWARDED_HEADERS = ("cookie", "authorization")


class SessionClientInterface(HttpClientInterface):
    """Client for the credential/session subsystem (session lookup, sign-up, sign-in, sign-out)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "session"

    def get_forwarded_headers(self, headers: Mapping[str, str]) -> dict:
        """Pick the identifying headers of an inbound request."""
        lowered = {key.lower(): value for key, value in headers.items()}
        return {key: lowered[key] for key in FORWARDED_HEADERS if key in lowered}

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_session(self) -> str:
        """Returns the endpoint path for session lookups."""
        pass

    @abstractmethod
    def _get_endpoint_sign_up(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_sign_in(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_sign_out(self) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_sign_up_payload(self, username: str, password: str, email: str, name: str | None) -> dict:
        pass

    @abstractmethod
    def get_sign_in_payload(self, username: str, password: str) -> dict:
        pass

    ##########################################
    ############ RESPONSE PARSER #############
    ##########################################

    @abstractmethod
    def extract_session(self, response_data: dict | None) -> Session | None:
        """Build a Session from a session lookup response, None if there is no session."""
        pass

    @abstractmethod
    def extract_user(self, response_data: dict) -> AuthUser:
        """Build an AuthUser from a sign-up or sign-in response.

        Raises:
            ValueError: If the response carries no user.
        """
        pass

    @abstractmethod
    def extract_error_message(self, response_data: dict | None) -> str | None:
        """Return the human-readable error message of a failed response, if any."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def get_session(self, headers: Mapping[str, str]) -> Session | None:
        """Look up the session of an inbound request.

        Args:
            headers (Mapping[str, str]): The inbound request headers.

        Returns:
            Session | None: The session, or None if the caller has none.
        """
        forwarded = self.get_forwarded_headers(headers)
        if not forwarded:
            return None
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_session(), additional_headers=forwarded)
        if response.status_code == 401 or not response.is_success:
            if response.status_code != 401:
                self.logging.warning("Session lookup failed with status %d.", response.status_code)
            return None
        return self.extract_session(response.json())

    async def do_sign_up(self, username: str, password: str, email: str, name: str | None = None) -> AuthUser:
        """Create an account.

        Raises:
            ToolExecutionError: If the session store rejects the sign-up (e.g. duplicate account).
        """
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_sign_up(),
            json=self.get_sign_up_payload(username, password, email, name),
        )
        return self._extract_user_or_raise(response, "Sign up failed")

    async def do_sign_in(self, username: str, password: str) -> AuthUser:
        """Verify credentials.

        Raises:
            ToolExecutionError: If the credentials are rejected.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_sign_in(),
            json=self.get_sign_in_payload(username, password),
        )
        return self._extract_user_or_raise(response, "Sign in failed")

    async def do_sign_out(self, headers: Mapping[str, str]) -> None:
        """End the session identified by the request headers.

        Raises:
            ToolExecutionError: If the session store answers with an error status.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_sign_out(),
            additional_headers=self.get_forwarded_headers(headers),
            json={},
        )
        if response.status_code >= 300:
            raise ToolExecutionError(self._error_from_response(response) or "Sign out failed")

    def _extract_user_or_raise(self, response, fallback_message: str) -> AuthUser:
        if response.status_code >= 300:
            raise ToolExecutionError(self._error_from_response(response) or fallback_message)
        try:
            return self.extract_user(response.json())
        except ValueError as exc:
            raise ToolExecutionError(f"{fallback_message}: {exc}") from exc

    def _error_from_response(self, response) -> str | None:
        try:
            return self.extract_error_message(response.json())
        except ValueError:
            return None
