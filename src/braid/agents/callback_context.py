"""Contexts passed to callbacks."""

from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional

from ..events.event_actions import EventActions
from ..sessions.state import State
from ..types.content import Content, Part

if TYPE_CHECKING:
    from .invocation_context import InvocationContext


class ReadonlyContext:
    """Read-only view of an invocation, passed to instruction providers."""

    def __init__(self, invocation_context: "InvocationContext") -> None:
        """Initialize the context.

        Args:
            invocation_context: The invocation being observed.
        """
        self._invocation_context = invocation_context

    @property
    def invocation_context(self) -> "InvocationContext":
        """The underlying invocation context."""
        return self._invocation_context

    @property
    def user_content(self) -> Optional[Content]:
        """The user message that started the invocation."""
        return self._invocation_context.user_content

    @property
    def invocation_id(self) -> str:
        """Id of the invocation."""
        return self._invocation_context.invocation_id

    @property
    def agent_name(self) -> str:
        """Name of the running agent."""
        return self._invocation_context.agent.name

    @property
    def state(self) -> Mapping[str, Any]:
        """Read-only view of the session state."""
        return MappingProxyType(self._invocation_context.session.state)


class CallbackContext(ReadonlyContext):
    """Context passed to agent and model callbacks.

    State changes are applied to the session immediately and recorded on `event_actions`, which become the actions
    of the event the callback produces.
    """

    def __init__(
        self, invocation_context: "InvocationContext", *, event_actions: Optional[EventActions] = None
    ) -> None:
        """Initialize the context.

        Args:
            invocation_context: The invocation being observed.
            event_actions: Actions to record changes on. A new set is created when omitted.
        """
        super().__init__(invocation_context)
        self._event_actions = event_actions if event_actions is not None else EventActions()
        self._state = State(invocation_context.session.state, self._event_actions.state_delta)

    @property
    def state(self) -> State:  # type: ignore[override]
        """Writable session state. Changes are recorded as a delta."""
        return self._state

    @property
    def event_actions(self) -> EventActions:
        """Actions recorded by this context."""
        return self._event_actions

    async def load_artifact(self, filename: str, version: Optional[int] = None) -> Optional[Part]:
        """Load an artifact of the current session.

        Raises:
            ValueError: If no artifact service is configured.
        """
        artifact_service = self._invocation_context.artifact_service
        if artifact_service is None:
            raise ValueError("Artifact service is not initialized.")

        return await artifact_service.load_artifact(
            app_name=self._invocation_context.app_name,
            user_id=self._invocation_context.user_id,
            session_id=self._invocation_context.session.id,
            filename=filename,
            version=version,
        )

    async def save_artifact(self, filename: str, artifact: Part) -> int:
        """Save an artifact to the current session and record its version.

        Returns:
            The version of the saved artifact.

        Raises:
            ValueError: If no artifact service is configured.
        """
        artifact_service = self._invocation_context.artifact_service
        if artifact_service is None:
            raise ValueError("Artifact service is not initialized.")

        version = await artifact_service.save_artifact(
            app_name=self._invocation_context.app_name,
            user_id=self._invocation_context.user_id,
            session_id=self._invocation_context.session.id,
            filename=filename,
            artifact=artifact,
        )
        self._event_actions.artifact_delta[filename] = version
        return version
