"""Abstract artifact service interface."""

import abc
from typing import Optional

from ..types.content import Part


class BaseArtifactService(abc.ABC):
    """Base class for services that store versioned artifacts.

    Artifacts are addressed by app, user, session and filename. Every save creates a new version, starting at 0.
    """

    @abc.abstractmethod
    async def save_artifact(
        self, *, app_name: str, user_id: str, session_id: str, filename: str, artifact: Part
    ) -> int:
        """Save an artifact and return its version."""

    @abc.abstractmethod
    async def load_artifact(
        self, *, app_name: str, user_id: str, session_id: str, filename: str, version: Optional[int] = None
    ) -> Optional[Part]:
        """Load an artifact, by default its latest version."""

    @abc.abstractmethod
    async def list_artifact_keys(self, *, app_name: str, user_id: str, session_id: str) -> list[str]:
        """List the filenames of a session's artifacts."""

    @abc.abstractmethod
    async def delete_artifact(self, *, app_name: str, user_id: str, session_id: str, filename: str) -> None:
        """Delete every version of an artifact."""

    @abc.abstractmethod
    async def list_versions(self, *, app_name: str, user_id: str, session_id: str, filename: str) -> list[int]:
        """List the versions of an artifact."""
