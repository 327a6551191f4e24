"""Private async execution utilities."""

import asyncio
import contextvars
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


def run_async(async_func: Callable[[], Awaitable[T]]) -> T:
    """Run an async function in a separate thread.

    The async code runs on a new event loop in a worker thread, so this can be called from synchronous code whether
    or not an event loop is already running in the calling thread. Context variables are copied into the thread.

    Args:
        async_func: A callable that returns an awaitable.

    Returns:
        The result of the async function.
    """

    async def execute_async() -> T:
        return await async_func()

    def execute() -> T:
        return asyncio.run(execute_async())

    with ThreadPoolExecutor() as executor:
        context = contextvars.copy_context()
        future = executor.submit(context.run, execute)
        return future.result()
