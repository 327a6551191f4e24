"""Abstract tool interface."""

import abc
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..models.llm_request import LlmRequest
    from .tool_context import ToolContext


class BaseTool(abc.ABC):
    """Base class for tools an agent can call.

    Attributes:
        name: Name of the tool, as seen by the model.
        description: What the tool does, as seen by the model.
        is_long_running: Whether the tool completes out of band. A long-running tool may return None to signal that
            its result will be delivered later by the client.
    """

    def __init__(self, *, name: str, description: str, is_long_running: bool = False) -> None:
        """Initialize the tool."""
        self.name = name
        self.description = description
        self.is_long_running = is_long_running

    def _get_declaration(self) -> Optional[dict[str, Any]]:
        """Return the function declaration sent to the model, or None to not declare the tool."""
        return None

    @abc.abstractmethod
    async def run_async(self, *, args: dict[str, Any], tool_context: "ToolContext") -> Any:
        """Run the tool.

        Args:
            args: Arguments predicted by the model.
            tool_context: Context of the call.

        Returns:
            The tool's result.
        """

    async def process_llm_request(self, *, tool_context: "ToolContext", llm_request: "LlmRequest") -> None:
        """Add this tool to an outgoing model request."""
        llm_request.append_tools([self])
