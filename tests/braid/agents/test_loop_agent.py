import pytest

from braid.agents.loop_agent import LoopAgent
from tests.fixtures.mock_agents import EscalatingAgent, TextAgent


@pytest.mark.asyncio
async def test_max_iterations(invocation_context_factory, alist):
    first = TextAgent("first")
    second = TextAgent("second")
    agent = LoopAgent(name="loop", max_iterations=3, sub_agents=[first, second])

    events = await alist(agent.run_async(invocation_context_factory(agent)))

    assert [event.author for event in events] == ["first", "second"] * 3
    assert first.run_count == 3
    assert second.run_count == 3


@pytest.mark.asyncio
async def test_zero_iterations(invocation_context_factory, alist):
    first = TextAgent("first")
    agent = LoopAgent(name="loop", max_iterations=0, sub_agents=[first])

    assert await alist(agent.run_async(invocation_context_factory(agent))) == []
    assert first.run_count == 0


@pytest.mark.asyncio
async def test_no_sub_agents(invocation_context_factory, alist):
    agent = LoopAgent(name="loop")

    assert await alist(agent.run_async(invocation_context_factory(agent))) == []


@pytest.mark.asyncio
async def test_escalate_mid_pass_stops_loop(invocation_context_factory, alist):
    before = TextAgent("before")
    escalating = EscalatingAgent("escalating", escalate_on_run=2)
    after = TextAgent("after")
    agent = LoopAgent(name="loop", sub_agents=[before, escalating, after])

    events = await alist(agent.run_async(invocation_context_factory(agent)))

    assert [(event.author, event.get_text()) for event in events] == [
        ("before", "from before"),
        ("escalating", "run 1"),
        ("escalating", "done"),
        ("after", "from after"),
        ("before", "from before"),
        ("escalating", "run 2"),
        ("escalating", "after escalate"),
    ]
    assert after.run_count == 1
    assert events[5].actions.escalate is True


@pytest.mark.asyncio
async def test_escalate_stops_unbounded_loop(invocation_context_factory, alist):
    escalating = EscalatingAgent("escalating", escalate_on_run=4)
    agent = LoopAgent(name="loop", sub_agents=[escalating])

    await alist(agent.run_async(invocation_context_factory(agent)))

    assert escalating.run_count == 4


@pytest.mark.asyncio
async def test_run_live_not_supported(invocation_context_factory, alist):
    agent = LoopAgent(name="loop", sub_agents=[TextAgent("first")])

    with pytest.raises(NotImplementedError, match="LoopAgent"):
        await alist(agent.run_live(invocation_context_factory(agent)))
