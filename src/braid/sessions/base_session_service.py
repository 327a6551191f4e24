"""Abstract session service interface and shared state reconciliation."""

import abc
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..events.event import Event
from .session import Session
from .state import State

logger = logging.getLogger(__name__)


@dataclass
class GetSessionConfig:
    """Options for reading a session.

    Attributes:
        num_recent_events: Only return this many of the most recent events.
        after_timestamp: Only return events with a timestamp at or after this time.
    """

    num_recent_events: Optional[int] = None
    after_timestamp: Optional[float] = None


@dataclass
class ListSessionsResponse:
    """Sessions of a user. Events are not included."""

    sessions: list[Session] = field(default_factory=list)


@dataclass
class StateDeltas:
    """A state delta split by persistence scope, with scope prefixes removed."""

    app: dict[str, Any] = field(default_factory=dict)
    user: dict[str, Any] = field(default_factory=dict)
    session: dict[str, Any] = field(default_factory=dict)


def extract_state_delta(state: Optional[dict[str, Any]]) -> StateDeltas:
    """Route each key of a state delta to the app, user or session scope.

    `temp:` keys belong to no scope and are dropped.
    """
    deltas = StateDeltas()
    for key, value in (state or {}).items():
        if key.startswith(State.APP_PREFIX):
            deltas.app[key[len(State.APP_PREFIX) :]] = value
        elif key.startswith(State.USER_PREFIX):
            deltas.user[key[len(State.USER_PREFIX) :]] = value
        elif not key.startswith(State.TEMP_PREFIX):
            deltas.session[key] = value
    return deltas


def merge_state(
    app_state: dict[str, Any], user_state: dict[str, Any], session_state: dict[str, Any]
) -> dict[str, Any]:
    """Materialize a session's state by overlaying the user and app scopes on the session scope."""
    merged = dict(session_state)
    for key, value in user_state.items():
        merged[State.USER_PREFIX + key] = value
    for key, value in app_state.items():
        merged[State.APP_PREFIX + key] = value
    return merged


class BaseSessionService(abc.ABC):
    """Base class for session services.

    A session service stores sessions, appends events to them and reconciles the state deltas the events carry.
    """

    @abc.abstractmethod
    async def create_session(
        self,
        *,
        app_name: str,
        user_id: str,
        state: Optional[dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> Session:
        """Create a new session.

        Args:
            app_name: Name of the app.
            user_id: Id of the user.
            state: Initial state. Prefixed keys are routed to the app and user scopes.
            session_id: Id of the session. Generated when omitted.

        Returns:
            The new session.
        """

    @abc.abstractmethod
    async def get_session(
        self,
        *,
        app_name: str,
        user_id: str,
        session_id: str,
        config: Optional[GetSessionConfig] = None,
    ) -> Optional[Session]:
        """Read a session, or return None if it does not exist."""

    @abc.abstractmethod
    async def list_sessions(self, *, app_name: str, user_id: str) -> ListSessionsResponse:
        """List the sessions of a user."""

    @abc.abstractmethod
    async def delete_session(self, *, app_name: str, user_id: str, session_id: str) -> None:
        """Delete a session and its events."""

    async def append_event(self, session: Session, event: Event) -> Event:
        """Append an event to a session.

        Partial events are returned as-is and never persisted. `temp:` keys are removed from the event's state delta
        before it is stored.

        Args:
            session: The session to append to. Its events and state are updated in place.
            event: The event to append.

        Returns:
            The appended event.
        """
        if event.partial:
            return event

        event = self._trim_temp_delta_state(event)
        self._update_session_state(session, event)
        session.events.append(event)
        return event

    def _trim_temp_delta_state(self, event: Event) -> Event:
        state_delta = event.actions.state_delta
        if not any(key.startswith(State.TEMP_PREFIX) for key in state_delta):
            return event

        trimmed = {key: value for key, value in state_delta.items() if not key.startswith(State.TEMP_PREFIX)}
        actions = event.actions.model_copy(update={"state_delta": trimmed})
        return event.model_copy(update={"actions": actions})

    def _update_session_state(self, session: Session, event: Event) -> None:
        for key, value in event.actions.state_delta.items():
            if key.startswith(State.TEMP_PREFIX):
                continue
            session.state[key] = value
