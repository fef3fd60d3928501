from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from state.models import Session
from state.session_store import SessionStore


logger = logging.getLogger(__name__)


class Route(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    AUTH = "auth"  # login / register
    MAIN = "main"  # authenticated feature screens


class RootRouter:
    """
    Top-level decision between the auth flow and the main flow.

    - `mount()` triggers the one startup restore; later mounts are no-ops.
    - Nothing but LOADING is reported until the restore has finished.
    - If the restore raises, the router stays on ERROR and does not retry.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        on_change: Optional[Callable[[Route], None]] = None,
    ) -> None:
        self._store = store
        self._on_change = on_change
        self._mounted = False
        self._error: Optional[BaseException] = None
        self._unsubscribe = store.subscribe(self._handle_session)

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def route(self) -> Route:
        if self._error is not None:
            return Route.ERROR
        session = self._store.session
        if session.is_loading:
            return Route.LOADING
        return Route.MAIN if session.is_authenticated else Route.AUTH

    def mount(self) -> Route:
        if self._mounted:
            return self.route
        self._mounted = True
        try:
            self._store.load_user()
        except Exception as exc:
            logger.error("Failed to load user", exc_info=True)
            self._error = exc
            self._emit()
        route = self.route
        logger.info("App ready, route=%s", route.value)
        return route

    def unmount(self) -> None:
        self._unsubscribe()

    def _handle_session(self, _session: Session) -> None:
        self._emit()

    def _emit(self) -> None:
        if self._on_change is not None:
            self._on_change(self.route)


__all__ = ["RootRouter", "Route"]
