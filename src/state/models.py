from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from common.models import User


class SessionStatus(str, Enum):
    INITIALIZING = "initializing"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class Session(BaseModel):
    """
    Immutable snapshot of "who is logged in".

    Fields
    - user: identity record of the logged-in user, or None.
    - token: opaque bearer credential, or None.
    - is_loading: True only until the startup restore has finished.

    A user without a token (or a token without a user) is rejected, so
    `is_authenticated` can be derived from either field.
    """

    model_config = ConfigDict(frozen=True)

    user: Optional[User] = None
    token: Optional[str] = None
    is_loading: bool = False

    @model_validator(mode="after")
    def _paired(self) -> "Session":
        if (self.user is None) != (self.token is None):
            raise ValueError("user and token must be set together")
        return self

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None

    @property
    def status(self) -> SessionStatus:
        if self.is_loading:
            return SessionStatus.INITIALIZING
        if self.is_authenticated:
            return SessionStatus.AUTHENTICATED
        return SessionStatus.UNAUTHENTICATED

    @classmethod
    def initializing(cls) -> "Session":
        return cls(is_loading=True)

    @classmethod
    def logged_out(cls) -> "Session":
        return cls()
