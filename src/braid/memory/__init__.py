"""Long-term memory interface."""

from .base_memory_service import BaseMemoryService, MemoryEntry, SearchMemoryResponse

__all__ = ["BaseMemoryService", "MemoryEntry", "SearchMemoryResponse"]
