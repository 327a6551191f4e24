"""Agent that runs its sub-agents concurrently."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, AsyncGenerator, Optional

from typing_extensions import override

from ..events.event import Event
from .base_agent import BaseAgent

if TYPE_CHECKING:
    from .invocation_context import InvocationContext

logger = logging.getLogger(__name__)


def _create_branch_context_for_sub_agent(
    agent: BaseAgent, sub_agent: BaseAgent, context: "InvocationContext"
) -> "InvocationContext":
    branch_suffix = f"{agent.name}.{sub_agent.name}"
    branch = f"{context.branch}.{branch_suffix}" if context.branch else branch_suffix
    return context.copy(branch=branch)


class ParallelAgent(BaseAgent):
    """Runs its sub-agents concurrently, each in its own branch.

    Events are forwarded in the order they are produced, so events of different branches interleave. Each branch
    waits until its last event has been consumed before producing the next one. If a branch raises, the other
    branches are cancelled and the error propagates.
    """

    @override
    async def _run_async_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        agent_runs = [
            sub_agent.run_async(_create_branch_context_for_sub_agent(self, sub_agent, context))
            for sub_agent in self.sub_agents
        ]
        async for event in _merge_agent_runs(agent_runs):
            yield event

    @override
    async def _run_live_impl(self, context: "InvocationContext") -> AsyncGenerator[Event, None]:
        raise NotImplementedError("This is not supported yet for ParallelAgent.")
        # Make this a generator (unreachable code, but satisfies type hint)
        yield  # pragma: no cover


async def _merge_agent_runs(agent_runs: list[AsyncGenerator[Event, None]]) -> AsyncGenerator[Event, None]:
    """Merge event streams in completion order.

    Args:
        agent_runs: Event streams to merge.

    Yields:
        Every event of every stream, exactly once.
    """
    task_queue: asyncio.Queue[tuple[int, Any]] = asyncio.Queue()
    task_events = [asyncio.Event() for _ in agent_runs]
    stop_event = object()

    tasks = [
        asyncio.create_task(_task(agent_run, task_id, task_queue, task_events[task_id], stop_event))
        for task_id, agent_run in enumerate(agent_runs)
    ]

    try:
        task_count = len(tasks)
        while task_count:
            task_id, event = await task_queue.get()
            if event is stop_event:
                task_count -= 1
                continue

            if isinstance(event, Exception):
                logger.debug("task_id=<%d>, error=<%s> | branch failed, cancelling remaining branches", task_id, event)
                raise event

            yield event
            task_events[task_id].set()
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def _task(
    agent_run: AsyncGenerator[Event, None],
    task_id: int,
    task_queue: asyncio.Queue,
    task_event: asyncio.Event,
    stop_event: object,
) -> None:
    """Pull events from one stream into the shared queue.

    Args:
        agent_run: The event stream to pull from.
        task_id: Index of the stream.
        task_queue: Queue to put events, or the stream's error, into.
        task_event: Set by the consumer once the last event was consumed.
        stop_event: Sentinel put into the queue when the stream ends.
    """
    error: Optional[Exception] = None
    try:
        async for event in agent_run:
            task_event.clear()
            task_queue.put_nowait((task_id, event))
            await task_event.wait()
    except Exception as e:
        error = e
    finally:
        await agent_run.aclose()
        if error is not None:
            task_queue.put_nowait((task_id, error))
        task_queue.put_nowait((task_id, stop_event))
