"""In-memory session service."""

import copy
import logging
import time
import uuid
from typing import Any, Optional

from typing_extensions import override

from .. import _identifier
from ..events.event import Event
from ..types.exceptions import SessionException
from .base_session_service import (
    BaseSessionService,
    GetSessionConfig,
    ListSessionsResponse,
    extract_state_delta,
    merge_state,
)
from .session import Session

logger = logging.getLogger(__name__)


class InMemorySessionService(BaseSessionService):
    """Session service that keeps everything in process memory.

    Intended for tests and local development. Sessions returned to callers are deep copies, so callers never alias
    the stored sessions.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        # app_name -> user_id -> session_id -> session
        self.sessions: dict[str, dict[str, dict[str, Session]]] = {}
        # app_name -> user_id -> state
        self.user_state: dict[str, dict[str, dict[str, Any]]] = {}
        # app_name -> state
        self.app_state: dict[str, dict[str, Any]] = {}

    @override
    async def create_session(
        self,
        *,
        app_name: str,
        user_id: str,
        state: Optional[dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> Session:
        _identifier.validate(app_name, _identifier.Identifier.APP)
        _identifier.validate(user_id, _identifier.Identifier.USER)
        session_id = session_id.strip() if session_id else str(uuid.uuid4())
        _identifier.validate(session_id, _identifier.Identifier.SESSION)

        if self._get_storage_session(app_name, user_id, session_id) is not None:
            raise SessionException(f"session_id=<{session_id}> | session already exists")

        deltas = extract_state_delta(state)
        self.app_state.setdefault(app_name, {}).update(deltas.app)
        self.user_state.setdefault(app_name, {}).setdefault(user_id, {}).update(deltas.user)

        session = Session(
            id=session_id,
            app_name=app_name,
            user_id=user_id,
            state=deltas.session,
            last_update_time=time.time(),
        )
        self.sessions.setdefault(app_name, {}).setdefault(user_id, {})[session_id] = session
        logger.debug("app_name=<%s>, user_id=<%s>, session_id=<%s> | created session", app_name, user_id, session_id)

        return self._merge_state(app_name, user_id, copy.deepcopy(session))

    @override
    async def get_session(
        self,
        *,
        app_name: str,
        user_id: str,
        session_id: str,
        config: Optional[GetSessionConfig] = None,
    ) -> Optional[Session]:
        storage_session = self._get_storage_session(app_name, user_id, session_id)
        if storage_session is None:
            return None

        session = copy.deepcopy(storage_session)
        if config:
            if config.after_timestamp is not None:
                session.events = [event for event in session.events if event.timestamp >= config.after_timestamp]
            if config.num_recent_events is not None:
                session.events = session.events[-config.num_recent_events :] if config.num_recent_events > 0 else []

        return self._merge_state(app_name, user_id, session)

    @override
    async def list_sessions(self, *, app_name: str, user_id: str) -> ListSessionsResponse:
        sessions = []
        for storage_session in self.sessions.get(app_name, {}).get(user_id, {}).values():
            session = storage_session.model_copy(update={"events": []}, deep=True)
            sessions.append(self._merge_state(app_name, user_id, session))
        return ListSessionsResponse(sessions=sessions)

    @override
    async def delete_session(self, *, app_name: str, user_id: str, session_id: str) -> None:
        if self._get_storage_session(app_name, user_id, session_id) is None:
            return
        del self.sessions[app_name][user_id][session_id]
        logger.debug("app_name=<%s>, user_id=<%s>, session_id=<%s> | deleted session", app_name, user_id, session_id)

    @override
    async def append_event(self, session: Session, event: Event) -> Event:
        event = await super().append_event(session, event)
        if event.partial:
            return event

        session.last_update_time = event.timestamp

        storage_session = self._get_storage_session(session.app_name, session.user_id, session.id)
        if storage_session is None:
            logger.warning("session_id=<%s> | session not found, event was not persisted", session.id)
            return event

        deltas = extract_state_delta(event.actions.state_delta)
        self.app_state.setdefault(session.app_name, {}).update(deltas.app)
        self.user_state.setdefault(session.app_name, {}).setdefault(session.user_id, {}).update(deltas.user)
        storage_session.state.update(deltas.session)

        storage_session.events.append(event.model_copy(deep=True))
        storage_session.last_update_time = event.timestamp
        return event

    def _get_storage_session(self, app_name: str, user_id: str, session_id: str) -> Optional[Session]:
        return self.sessions.get(app_name, {}).get(user_id, {}).get(session_id)

    def _merge_state(self, app_name: str, user_id: str, session: Session) -> Session:
        session.state = merge_state(
            copy.deepcopy(self.app_state.get(app_name, {})),
            copy.deepcopy(self.user_state.get(app_name, {}).get(user_id, {})),
            session.state,
        )
        return session
