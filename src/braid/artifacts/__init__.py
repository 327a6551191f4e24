"""Artifact storage interface."""

from .base_artifact_service import BaseArtifactService

__all__ = ["BaseArtifactService"]
