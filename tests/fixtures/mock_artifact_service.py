from typing import Optional

from braid.artifacts.base_artifact_service import BaseArtifactService
from braid.types.content import Part


class DictArtifactService(BaseArtifactService):
    """Artifact service that keeps every version of every artifact in a dict, keyed by filename."""

    def __init__(self, artifacts: Optional[dict[str, list[Part]]] = None):
        self.artifacts = artifacts if artifacts is not None else {}
        self.keys: list[tuple[str, str, str]] = []

    async def save_artifact(self, *, app_name, user_id, session_id, filename, artifact):
        self.keys.append((app_name, user_id, session_id))
        versions = self.artifacts.setdefault(filename, [])
        versions.append(artifact)
        return len(versions) - 1

    async def load_artifact(self, *, app_name, user_id, session_id, filename, version=None):
        versions = self.artifacts.get(filename)
        if not versions:
            return None
        return versions[-1] if version is None else versions[version]

    async def list_artifact_keys(self, *, app_name, user_id, session_id):
        return sorted(self.artifacts)

    async def delete_artifact(self, *, app_name, user_id, session_id, filename):
        self.artifacts.pop(filename, None)

    async def list_versions(self, *, app_name, user_id, session_id, filename):
        return list(range(len(self.artifacts.get(filename, []))))
