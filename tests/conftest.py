"""Shared test fixtures."""

import pytest

from braid.agents.invocation_context import InvocationContext
from braid.plugins.plugin_manager import PluginManager
from braid.sessions.in_memory_session_service import InMemorySessionService
from braid.sessions.session import Session


@pytest.fixture
def alist():
    """Convert async generator to list."""

    async def _alist(async_gen):
        result = []
        async for item in async_gen:
            result.append(item)
        return result

    return _alist


@pytest.fixture
def session_service():
    return InMemorySessionService()


@pytest.fixture
def session():
    return Session(id="s1", app_name="app", user_id="u1")


@pytest.fixture
def invocation_context_factory(session):
    """Build an invocation context for an agent, sharing one session."""

    def _factory(agent, **kwargs):
        kwargs.setdefault("plugin_manager", PluginManager())
        return InvocationContext(session=session, agent=agent, invocation_id="inv-1", **kwargs)

    return _factory
