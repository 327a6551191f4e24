"""Coordination of multi-agent invocations: agent trees, plugins, events and sessions."""

from . import agents, events, models, plugins, sessions, tools, types
from .agents.base_agent import BaseAgent
from .agents.llm_agent import LlmAgent
from .agents.loop_agent import LoopAgent
from .agents.parallel_agent import ParallelAgent
from .agents.run_config import RunConfig, StreamingMode
from .agents.sequential_agent import SequentialAgent
from .events.event import Event
from .events.event_actions import EventActions
from .plugins.base_plugin import BasePlugin
from .runner.runner import InMemoryRunner, Runner
from .sessions.in_memory_session_service import InMemorySessionService
from .tools.agent_tool import AgentTool
from .tools.function_tool import FunctionTool, tool
from .tools.tool_context import ToolContext

__all__ = [
    "AgentTool",
    "agents",
    "BaseAgent",
    "BasePlugin",
    "Event",
    "EventActions",
    "events",
    "FunctionTool",
    "InMemoryRunner",
    "InMemorySessionService",
    "LlmAgent",
    "LoopAgent",
    "models",
    "ParallelAgent",
    "plugins",
    "RunConfig",
    "Runner",
    "SequentialAgent",
    "sessions",
    "StreamingMode",
    "tool",
    "ToolContext",
    "tools",
    "types",
]
