"""Context passed to tools and tool callbacks."""

from typing import TYPE_CHECKING, Any, Optional

from ..agents.callback_context import CallbackContext
from ..events.event_actions import EventActions
from ..types.tools import ToolConfirmation

if TYPE_CHECKING:
    from ..agents.invocation_context import InvocationContext
    from ..memory.base_memory_service import SearchMemoryResponse


class ToolContext(CallbackContext):
    """Context of a single tool call.

    Attributes:
        function_call_id: Id of the function call being executed.
        tool_confirmation: The resolved confirmation of this call, when it is being resumed after a confirmation
            round trip.
    """

    def __init__(
        self,
        invocation_context: "InvocationContext",
        *,
        function_call_id: Optional[str] = None,
        event_actions: Optional[EventActions] = None,
        tool_confirmation: Optional[ToolConfirmation] = None,
    ) -> None:
        """Initialize the context.

        Args:
            invocation_context: The invocation the call belongs to.
            function_call_id: Id of the function call being executed.
            event_actions: Actions to record changes on.
            tool_confirmation: The resolved confirmation of this call, if any.
        """
        super().__init__(invocation_context, event_actions=event_actions)
        self.function_call_id = function_call_id
        self.tool_confirmation = tool_confirmation

    @property
    def actions(self) -> EventActions:
        """Actions of the function response event."""
        return self._event_actions

    def request_confirmation(self, *, hint: Optional[str] = None, payload: Optional[Any] = None) -> None:
        """Ask the client to confirm this tool call before it completes.

        Args:
            hint: Explanation shown to whoever confirms.
            payload: Structured data the client should fill in.

        Raises:
            ValueError: If the context has no function call id.
        """
        if not self.function_call_id:
            raise ValueError("function_call_id is not set.")

        self._event_actions.requested_tool_confirmations[self.function_call_id] = ToolConfirmation(
            hint=hint or "", confirmed=False, payload=payload
        )

    def request_credential(self, auth_config: Any) -> None:
        """Ask the client for credentials needed by this tool call.

        Raises:
            ValueError: If the context has no function call id.
        """
        if not self.function_call_id:
            raise ValueError("function_call_id is not set.")

        self._event_actions.requested_auth_configs[self.function_call_id] = auth_config

    async def list_artifacts(self) -> list[str]:
        """List the filenames of the session's artifacts.

        Raises:
            ValueError: If no artifact service is configured.
        """
        artifact_service = self._invocation_context.artifact_service
        if artifact_service is None:
            raise ValueError("Artifact service is not initialized.")

        return await artifact_service.list_artifact_keys(
            app_name=self._invocation_context.app_name,
            user_id=self._invocation_context.user_id,
            session_id=self._invocation_context.session.id,
        )

    async def search_memory(self, query: str) -> "SearchMemoryResponse":
        """Search the memory of the current user.

        Raises:
            ValueError: If no memory service is configured.
        """
        memory_service = self._invocation_context.memory_service
        if memory_service is None:
            raise ValueError("Memory service is not available.")

        return await memory_service.search_memory(
            app_name=self._invocation_context.app_name,
            user_id=self._invocation_context.user_id,
            query=query,
        )
