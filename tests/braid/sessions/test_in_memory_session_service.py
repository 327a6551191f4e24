import time

import pytest

from braid.events.event import Event
from braid.events.event_actions import EventActions
from braid.sessions.base_session_service import GetSessionConfig
from braid.sessions.in_memory_session_service import InMemorySessionService
from braid.types.exceptions import SessionException


@pytest.fixture
def service():
    return InMemorySessionService()


def state_event(state_delta, **kwargs):
    return Event(author="agent", invocation_id="inv", actions=EventActions(state_delta=state_delta), **kwargs)


@pytest.mark.asyncio
async def test_create_and_get_session(service):
    session = await service.create_session(app_name="app", user_id="u1", session_id="s1", state={"k": "v"})

    assert session.id == "s1"
    assert session.state == {"k": "v"}

    loaded = await service.get_session(app_name="app", user_id="u1", session_id="s1")

    assert loaded == session
    assert loaded is not session


@pytest.mark.asyncio
async def test_create_session_generates_id(service):
    session = await service.create_session(app_name="app", user_id="u1")

    assert session.id


@pytest.mark.asyncio
async def test_create_session_duplicate(service):
    await service.create_session(app_name="app", user_id="u1", session_id="s1")

    with pytest.raises(SessionException, match="already exists"):
        await service.create_session(app_name="app", user_id="u1", session_id="s1")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "app_name, user_id, session_id", [("", "u1", "s1"), ("app", "a/b", "s1"), ("app", "u1", "../s")]
)
async def test_create_session_invalid_identifiers(service, app_name, user_id, session_id):
    with pytest.raises(ValueError):
        await service.create_session(app_name=app_name, user_id=user_id, session_id=session_id)


@pytest.mark.asyncio
async def test_create_session_routes_initial_state(service):
    await service.create_session(
        app_name="app", user_id="u1", session_id="s1", state={"app:a": 1, "user:u": 2, "s": 3, "temp:t": 4}
    )
    other = await service.create_session(app_name="app", user_id="u1", session_id="s2")

    assert other.state == {"app:a": 1, "user:u": 2}


@pytest.mark.asyncio
async def test_get_session_missing(service):
    assert await service.get_session(app_name="app", user_id="u1", session_id="missing") is None


@pytest.mark.asyncio
async def test_append_event_routes_state_by_prefix(service):
    s1 = await service.create_session(app_name="app", user_id="u1", session_id="s1")
    await service.create_session(app_name="app", user_id="u1", session_id="s2")
    await service.create_session(app_name="app", user_id="u2", session_id="s3")

    event = await service.append_event(s1, state_event({"app:x": 1, "user:y": 2, "z": 3, "temp:t": 4}))

    assert "temp:t" not in event.actions.state_delta
    assert s1.state == {"app:x": 1, "user:y": 2, "z": 3}

    s1_loaded = await service.get_session(app_name="app", user_id="u1", session_id="s1")
    s2_loaded = await service.get_session(app_name="app", user_id="u1", session_id="s2")
    s3_loaded = await service.get_session(app_name="app", user_id="u2", session_id="s3")

    assert s1_loaded.state == {"app:x": 1, "user:y": 2, "z": 3}
    assert s2_loaded.state == {"app:x": 1, "user:y": 2}
    assert s3_loaded.state == {"app:x": 1}
    assert "temp:t" not in s1_loaded.events[0].actions.state_delta


@pytest.mark.asyncio
async def test_append_event_partial_not_persisted(service):
    session = await service.create_session(app_name="app", user_id="u1", session_id="s1")
    partial = Event(author="agent", partial=True, content={"role": "model", "parts": [{"text": "pa"}]})

    result = await service.append_event(session, partial)

    assert result is partial
    assert session.events == []
    loaded = await service.get_session(app_name="app", user_id="u1", session_id="s1")
    assert loaded.events == []


@pytest.mark.asyncio
async def test_append_event_advances_last_update_time(service):
    session = await service.create_session(app_name="app", user_id="u1", session_id="s1")
    event = Event(author="agent", timestamp=session.last_update_time + 10)

    await service.append_event(session, event)

    assert session.last_update_time == event.timestamp
    loaded = await service.get_session(app_name="app", user_id="u1", session_id="s1")
    assert loaded.last_update_time == event.timestamp
    assert loaded.events == [event]


@pytest.mark.asyncio
async def test_append_event_does_not_alias_storage(service):
    session = await service.create_session(app_name="app", user_id="u1", session_id="s1")
    event = Event(author="agent", content={"role": "model", "parts": [{"text": "a"}]})
    await service.append_event(session, event)

    event.content["parts"][0]["text"] = "mutated"

    loaded = await service.get_session(app_name="app", user_id="u1", session_id="s1")
    assert loaded.events[0].get_text() == "a"


@pytest.mark.asyncio
async def test_get_session_config_filters(service):
    session = await service.create_session(app_name="app", user_id="u1", session_id="s1")
    now = time.time()
    for offset in range(5):
        await service.append_event(session, Event(author="agent", timestamp=now + offset))

    recent = await service.get_session(
        app_name="app", user_id="u1", session_id="s1", config=GetSessionConfig(num_recent_events=2)
    )
    after = await service.get_session(
        app_name="app", user_id="u1", session_id="s1", config=GetSessionConfig(after_timestamp=now + 3)
    )
    both = await service.get_session(
        app_name="app",
        user_id="u1",
        session_id="s1",
        config=GetSessionConfig(num_recent_events=1, after_timestamp=now + 1),
    )

    assert [event.timestamp for event in recent.events] == [now + 3, now + 4]
    assert [event.timestamp for event in after.events] == [now + 3, now + 4]
    assert [event.timestamp for event in both.events] == [now + 4]


@pytest.mark.asyncio
async def test_list_sessions(service):
    s1 = await service.create_session(app_name="app", user_id="u1", session_id="s1", state={"k": 1})
    await service.create_session(app_name="app", user_id="u1", session_id="s2")
    await service.create_session(app_name="app", user_id="u2", session_id="s3")
    await service.append_event(s1, state_event({"user:name": "ada"}))

    response = await service.list_sessions(app_name="app", user_id="u1")

    sessions = {session.id: session for session in response.sessions}
    assert set(sessions) == {"s1", "s2"}
    assert sessions["s1"].events == []
    assert sessions["s1"].state == {"k": 1, "user:name": "ada"}
    assert sessions["s2"].state == {"user:name": "ada"}


@pytest.mark.asyncio
async def test_delete_session(service):
    await service.create_session(app_name="app", user_id="u1", session_id="s1")

    await service.delete_session(app_name="app", user_id="u1", session_id="s1")
    await service.delete_session(app_name="app", user_id="u1", session_id="s1")

    assert await service.get_session(app_name="app", user_id="u1", session_id="s1") is None


@pytest.mark.asyncio
async def test_append_event_to_deleted_session(service, caplog):
    session = await service.create_session(app_name="app", user_id="u1", session_id="s1")
    await service.delete_session(app_name="app", user_id="u1", session_id="s1")

    event = await service.append_event(session, Event(author="agent"))

    assert session.events == [event]
    assert "session not found" in caplog.text
