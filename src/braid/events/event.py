"""Event record type."""

import time
import uuid
from typing import Optional

from pydantic import Field

from ..models.llm_response import LlmResponse
from ..types.content import FunctionCall, FunctionResponse
from .event_actions import EventActions


class Event(LlmResponse):
    """An entry in a session's conversation log.

    Events are produced by the user, by agents and by the runner. Once appended to a session they are never
    mutated.

    Attributes:
        id: Unique id of the event.
        invocation_id: Id of the invocation that produced the event.
        author: "user" or the name of the agent that produced the event.
        actions: Side effects carried by the event.
        long_running_tool_ids: Ids of function calls that will complete out of band.
        branch: Dot separated agent ancestry, used to isolate the history seen by parallel sub-agents.
        timestamp: Creation time, in seconds since the epoch.
    """

    id: str = Field(default_factory=lambda: Event.new_id())
    invocation_id: str = ""
    author: str
    actions: EventActions = Field(default_factory=EventActions)
    long_running_tool_ids: list[str] = Field(default_factory=list)
    branch: Optional[str] = None
    timestamp: float = Field(default_factory=time.time)

    @staticmethod
    def new_id() -> str:
        """Generate a new event id."""
        return str(uuid.uuid4())

    def is_final_response(self) -> bool:
        """Whether this event is the final response of its author.

        Partial events, function calls and function responses are intermediate steps.
        """
        if self.actions.skip_summarization or self.long_running_tool_ids:
            return True

        return (
            not self.get_function_calls()
            and not self.get_function_responses()
            and not self.partial
            and not self.has_trailing_code_execution_result()
        )

    def get_function_calls(self) -> list[FunctionCall]:
        """Return the function calls in the event's content."""
        if not self.content:
            return []
        return [part["function_call"] for part in self.content.get("parts", []) if "function_call" in part]

    def get_function_responses(self) -> list[FunctionResponse]:
        """Return the function responses in the event's content."""
        if not self.content:
            return []
        return [part["function_response"] for part in self.content.get("parts", []) if "function_response" in part]

    def has_trailing_code_execution_result(self) -> bool:
        """Whether the last part of the content is a code execution result."""
        if not self.content or not self.content.get("parts"):
            return False
        return "code_execution_result" in self.content["parts"][-1]

    def get_text(self) -> str:
        """Return the concatenated text of the event's content, excluding thoughts."""
        if not self.content:
            return ""
        return "".join(
            part["text"] for part in self.content.get("parts", []) if "text" in part and not part.get("thought")
        )
