"""Session storage and state reconciliation.

`DatabaseSessionService` requires the `database` extra and is imported from its module directly.
"""

from .base_session_service import BaseSessionService, GetSessionConfig, ListSessionsResponse
from .in_memory_session_service import InMemorySessionService
from .session import Session
from .state import State

__all__ = [
    "BaseSessionService",
    "GetSessionConfig",
    "InMemorySessionService",
    "ListSessionsResponse",
    "Session",
    "State",
]
