"""Tools that agents can call."""

from .base_tool import BaseTool
from .function_tool import FunctionTool, tool
from .tool_context import ToolContext

__all__ = ["BaseTool", "FunctionTool", "ToolContext", "tool"]
