"""Artifact service that forwards to the artifacts of a calling tool."""

from typing import TYPE_CHECKING, Optional

from typing_extensions import override

from ..artifacts.base_artifact_service import BaseArtifactService
from ..types.content import Part

if TYPE_CHECKING:
    from .tool_context import ToolContext


class ForwardingArtifactService(BaseArtifactService):
    """Artifact service of an agent run inside a tool call.

    Saves and loads go through the calling tool's context, so artifacts land in the parent session and are recorded
    on the parent's function response event. The app, user and session arguments are ignored.
    """

    def __init__(self, tool_context: "ToolContext") -> None:
        """Initialize the service.

        Args:
            tool_context: Context of the tool call that runs the agent.
        """
        self.tool_context = tool_context

    @override
    async def save_artifact(
        self, *, app_name: str, user_id: str, session_id: str, filename: str, artifact: Part
    ) -> int:
        return await self.tool_context.save_artifact(filename, artifact)

    @override
    async def load_artifact(
        self, *, app_name: str, user_id: str, session_id: str, filename: str, version: Optional[int] = None
    ) -> Optional[Part]:
        return await self.tool_context.load_artifact(filename, version)

    @override
    async def list_artifact_keys(self, *, app_name: str, user_id: str, session_id: str) -> list[str]:
        return await self.tool_context.list_artifacts()

    @override
    async def delete_artifact(self, *, app_name: str, user_id: str, session_id: str, filename: str) -> None:
        await self._parent_service().delete_artifact(**self._parent_key(), filename=filename)

    @override
    async def list_versions(self, *, app_name: str, user_id: str, session_id: str, filename: str) -> list[int]:
        return await self._parent_service().list_versions(**self._parent_key(), filename=filename)

    def _parent_service(self) -> BaseArtifactService:
        artifact_service = self.tool_context.invocation_context.artifact_service
        if artifact_service is None:
            raise ValueError("Artifact service is not initialized.")
        return artifact_service

    def _parent_key(self) -> dict[str, str]:
        invocation_context = self.tool_context.invocation_context
        return {
            "app_name": invocation_context.app_name,
            "user_id": invocation_context.user_id,
            "session_id": invocation_context.session.id,
        }
