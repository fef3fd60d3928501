from __future__ import annotations

import json
import logging
import threading
from typing import Callable, List, Optional, Tuple

from common.api_client import FoodSaverClient
from common.models import AuthResponse, User

from .models import Session, SessionStatus
from .storage import CREDENTIAL_KEYS, TOKEN_KEY, USER_KEY, KeyValueStorage


logger = logging.getLogger(__name__)

Listener = Callable[[Session], None]


class SessionStore:
    """
    Single owner of the authentication state.

    Lifecycle
    - Starts in `INITIALIZING` (`is_loading=True`).
    - `load_user()` restores the persisted credential record and always ends
      in `AUTHENTICATED` or `UNAUTHENTICATED`; it never raises.
    - `login()` / `register()` persist the credential record first, then
      publish the new session. Errors propagate to the caller unchanged.
    - `logout()` clears storage best-effort and always resets the session.
    - `revalidate()` drops the in-memory session when storage no longer holds
      a complete record (e.g. after the API client cleared it on a 401).

    Only `load_user()` clears `is_loading`; the other transitions carry it
    over. Mutating operations are serialized by a re-entrant lock. Listener
    exceptions are logged and never propagate out of an operation.
    """

    def __init__(self, api: FoodSaverClient, storage: KeyValueStorage) -> None:
        self._api = api
        self._storage = storage
        self._session = Session.initializing()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

    # -------- Read state --------
    @property
    def session(self) -> Session:
        return self._session

    @property
    def user(self) -> Optional[User]:
        return self._session.user

    @property
    def token(self) -> Optional[str]:
        return self._session.token

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def is_loading(self) -> bool:
        return self._session.is_loading

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener` for session changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    # -------- Internal --------
    def _set(self, session: Session) -> None:
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                # Listener errors never escape a state transition
                logger.exception("Session listener %r failed", listener)

    def _read_persisted(self) -> Optional[Tuple[str, User]]:
        token = self._storage.get_item(TOKEN_KEY)
        user_raw = self._storage.get_item(USER_KEY)
        if not token or not user_raw:
            return None
        user = User.model_validate(json.loads(user_raw))
        return (token, user)

    def _persist(self, auth: AuthResponse) -> None:
        try:
            self._storage.set_item(TOKEN_KEY, auth.token)
            self._storage.set_item(USER_KEY, auth.user.model_dump_json())
        except Exception:
            # Never leave a token without its user behind
            try:
                self._storage.multi_remove(CREDENTIAL_KEYS)
            except Exception:
                logger.warning("Failed to roll back partial credential write", exc_info=True)
            raise

    def _authenticate(self, auth: AuthResponse) -> None:
        self._persist(auth)
        self._set(Session(user=auth.user, token=auth.token, is_loading=self._session.is_loading))
        logger.info("Session started for user_id=%s", auth.user.id)

    # -------- Operations --------
    def load_user(self) -> None:
        """Restore the session from storage. Fails closed to logged out."""
        with self._lock:
            try:
                restored = self._read_persisted()
            except Exception:
                logger.warning("Stored session unreadable; starting logged out", exc_info=True)
                restored = None

            if restored is None:
                self._set(Session.logged_out())
                return
            token, user = restored
            self._set(Session(user=user, token=token))
            logger.info("Session restored for user_id=%s", user.id)

    def login(self, email: str, password: str) -> None:
        with self._lock:
            auth = self._api.login(email, password)
            self._authenticate(auth)

    def register(self, name: str, email: str, password: str) -> None:
        """Create an account and log in. Input validation belongs to the caller."""
        with self._lock:
            auth = self._api.register(name, email, password)
            self._authenticate(auth)

    def logout(self) -> None:
        with self._lock:
            try:
                self._storage.multi_remove(CREDENTIAL_KEYS)
            except Exception:
                logger.warning("Failed to clear stored credentials on logout", exc_info=True)
            self._set(Session(is_loading=self._session.is_loading))
            logger.info("Session ended")

    def revalidate(self) -> bool:
        """
        Re-check the in-memory session against storage.

        Intended for checkpoints such as app resume or screen focus. Only ever
        moves towards logged out; returns the resulting `is_authenticated`.
        """
        with self._lock:
            if not self._session.is_authenticated:
                return False
            try:
                still_valid = self._read_persisted() is not None
            except Exception:
                still_valid = False
            if not still_valid:
                logger.info("Stored credentials gone; dropping in-memory session")
                self._set(Session(is_loading=self._session.is_loading))
            return still_valid


__all__ = ["SessionStore"]
