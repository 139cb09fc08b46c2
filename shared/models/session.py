"""Pydantic models exchanged with the session/credential subsystem."""

from pydantic import BaseModel


class Session(BaseModel):
    """The session attached to an inbound request.

    Attributes:
        user_id:      ID of the session user (anonymous users have one too).
        is_anonymous: True for guest sessions that never signed up or in.
    """

    user_id: str
    is_anonymous: bool = False


class AuthUser(BaseModel):
    """A user returned by a successful sign-up or sign-in."""

    id: str
    email: str | None = None
    name: str | None = None
    username: str | None = None
