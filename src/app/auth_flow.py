from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from common.api_client import FoodSaverApiError, FoodSaverError, FoodSaverTransportError
from common.validation import validate_login, validate_registration
from state.session_store import SessionStore


@dataclass(frozen=True)
class FormResult:
    """Outcome of an auth form submission.

    Attributes
    - ok: the store is now authenticated
    - title: alert title to display on failure
    - message: alert body to display on failure
    """

    ok: bool
    title: Optional[str] = None
    message: Optional[str] = None


SUCCESS = FormResult(ok=True)


def _failure_message(exc: FoodSaverError, fallback: str) -> str:
    if isinstance(exc, FoodSaverApiError) and exc.message:
        return exc.message
    if isinstance(exc, FoodSaverTransportError):
        return "Cannot reach the server. Check your connection and try again."
    return fallback


def submit_login(store: SessionStore, email: str, password: str) -> FormResult:
    error = validate_login(email, password)
    if error:
        return FormResult(ok=False, title="Error", message=error)
    try:
        store.login(email.strip(), password)
    except FoodSaverError as exc:
        return FormResult(ok=False, title="Login Failed", message=_failure_message(exc, "Invalid credentials"))
    return SUCCESS


def submit_register(
    store: SessionStore,
    name: str,
    email: str,
    password: str,
    confirm_password: str,
) -> FormResult:
    error = validate_registration(name, email, password, confirm_password)
    if error:
        return FormResult(ok=False, title="Error", message=error)
    try:
        store.register(name.strip(), email.strip(), password)
    except FoodSaverError as exc:
        return FormResult(
            ok=False,
            title="Registration Failed",
            message=_failure_message(exc, "Please try again"),
        )
    return SUCCESS


__all__ = ["FormResult", "submit_login", "submit_register"]
