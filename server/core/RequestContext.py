from dataclasses import dataclass, field

from shared.models.session import Session


@dataclass
class RequestContext:
    """Per-request data handed to the agent loop and the tools it builds."""

    session: Session
    authenticated: bool
    chat_id: str
    # cookie/authorization headers forwarded to the session store on sign-out
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def user_id(self) -> str:
        return self.session.user_id
