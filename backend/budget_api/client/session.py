"""Client-side session state.

``SessionState`` is an explicit state machine with observable transitions::

    signed_out -> signed_in -> refreshing -> signed_in
                                          -> signed_out

``FileSessionStore`` mirrors the current token pair to disk so a later
process can pick the session up again. It is a convenience copy; the
server never trusts it over its own cookies or the identity provider.
"""

from collections.abc import Callable
from enum import Enum
from pathlib import Path

import structlog
from pydantic import BaseModel, ValidationError

logger = structlog.get_logger()


class SessionStatus(str, Enum):
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"
    REFRESHING = "refreshing"


class SessionTokens(BaseModel):
    access_token: str
    refresh_token: str
    expires_in: int | None = None
    expires_at: int | None = None


class SessionTransitionError(RuntimeError):
    pass


_ALLOWED = {
    SessionStatus.SIGNED_OUT: {SessionStatus.SIGNED_IN},
    SessionStatus.SIGNED_IN: {SessionStatus.SIGNED_IN, SessionStatus.REFRESHING, SessionStatus.SIGNED_OUT},
    SessionStatus.REFRESHING: {SessionStatus.SIGNED_IN, SessionStatus.SIGNED_OUT},
}

Listener = Callable[[SessionStatus, SessionTokens | None], None]


class SessionState:
    def __init__(self) -> None:
        self.status = SessionStatus.SIGNED_OUT
        self.tokens: SessionTokens | None = None
        self._listeners: list[Listener] = []

    @property
    def access_token(self) -> str | None:
        return self.tokens.access_token if self.tokens else None

    @property
    def refresh_token(self) -> str | None:
        return self.tokens.refresh_token if self.tokens else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(status, tokens)`` on every transition. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def sign_in(self, tokens: SessionTokens) -> None:
        self._transition(SessionStatus.SIGNED_IN, tokens)

    def begin_refresh(self) -> None:
        self._transition(SessionStatus.REFRESHING, self.tokens)

    def finish_refresh(self, tokens: SessionTokens | None) -> None:
        """Complete a refresh: new tokens sign back in, ``None`` signs out."""
        if tokens is None:
            self._transition(SessionStatus.SIGNED_OUT, None)
        else:
            self._transition(SessionStatus.SIGNED_IN, tokens)

    def sign_out(self) -> None:
        if self.status is not SessionStatus.SIGNED_OUT:
            self._transition(SessionStatus.SIGNED_OUT, None)

    def _transition(self, status: SessionStatus, tokens: SessionTokens | None) -> None:
        if status not in _ALLOWED[self.status]:
            raise SessionTransitionError(f"cannot go from {self.status.value} to {status.value}")
        self.status = status
        self.tokens = tokens
        for listener in list(self._listeners):
            listener(status, tokens)


class FileSessionStore:
    """Persist the token pair as JSON, kept in sync through a subscription."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> SessionTokens | None:
        if not self.path.exists():
            return None
        try:
            return SessionTokens.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValidationError:
            logger.warning("session_file_invalid", path=str(self.path))
            return None

    def save(self, tokens: SessionTokens) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(tokens.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def attach(self, state: SessionState) -> Callable[[], None]:
        """Restore a saved session into ``state`` and mirror later changes."""
        saved = self.load()
        if saved is not None and state.status is SessionStatus.SIGNED_OUT:
            state.sign_in(saved)
        return state.subscribe(self._on_change)

    def _on_change(self, status: SessionStatus, tokens: SessionTokens | None) -> None:
        if status is SessionStatus.SIGNED_IN and tokens is not None:
            self.save(tokens)
        elif status is SessionStatus.SIGNED_OUT:
            self.clear()
