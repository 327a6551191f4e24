"""Abstract memory service interface."""

import abc
from typing import Optional

from pydantic import BaseModel, Field

from ..sessions.session import Session
from ..types.content import Content


class MemoryEntry(BaseModel):
    """A single remembered message."""

    content: Content
    author: Optional[str] = None
    timestamp: Optional[str] = None


class SearchMemoryResponse(BaseModel):
    """Result of a memory search."""

    memories: list[MemoryEntry] = Field(default_factory=list)


class BaseMemoryService(abc.ABC):
    """Base class for services that remember past sessions and search them."""

    @abc.abstractmethod
    async def add_session_to_memory(self, session: Session) -> None:
        """Ingest a session into memory."""

    @abc.abstractmethod
    async def search_memory(self, *, app_name: str, user_id: str, query: str) -> SearchMemoryResponse:
        """Search the memory of a user."""
