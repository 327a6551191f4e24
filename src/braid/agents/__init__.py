"""Agents and the contexts they run with.

This package provides:

- BaseAgent: the abstract node of an agent tree
- SequentialAgent, LoopAgent and ParallelAgent: agents that drive their sub-agents
- LlmAgent: an agent driven by a model
- InvocationContext, CallbackContext and ReadonlyContext: the state threaded through a run
"""

from .base_agent import BaseAgent
from .callback_context import CallbackContext, ReadonlyContext
from .invocation_context import InvocationContext, InvocationCostManager
from .live_request_queue import LiveRequest, LiveRequestQueue
from .llm_agent import LlmAgent
from .loop_agent import LoopAgent
from .parallel_agent import ParallelAgent
from .run_config import RunConfig, StreamingMode
from .sequential_agent import SequentialAgent

__all__ = [
    "BaseAgent",
    "CallbackContext",
    "InvocationContext",
    "InvocationCostManager",
    "LiveRequest",
    "LiveRequestQueue",
    "LlmAgent",
    "LoopAgent",
    "ParallelAgent",
    "ReadonlyContext",
    "RunConfig",
    "SequentialAgent",
    "StreamingMode",
]
