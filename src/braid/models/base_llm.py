"""Abstract model client interface."""

import abc
import logging
from typing import AsyncGenerator

from ..types.content import Blob, Content
from .llm_request import LlmRequest
from .llm_response import LlmResponse

logger = logging.getLogger(__name__)


class BaseLlmConnection(abc.ABC):
    """A bidirectional live connection to a model."""

    @abc.abstractmethod
    async def send_history(self, history: list[Content]) -> None:
        """Send the conversation history that precedes the live session."""

    @abc.abstractmethod
    async def send_content(self, content: Content) -> None:
        """Send a content message, such as user text or function responses."""

    @abc.abstractmethod
    async def send_realtime(self, blob: Blob) -> None:
        """Send a chunk of realtime media."""

    async def send_activity_start(self) -> None:
        """Signal the start of user activity.

        Only needed by models that rely on the client for activity detection. Ignored by default.
        """
        logger.debug("connection=<%s> | activity start ignored", type(self).__name__)

    async def send_activity_end(self) -> None:
        """Signal the end of user activity. Ignored by default."""
        logger.debug("connection=<%s> | activity end ignored", type(self).__name__)

    @abc.abstractmethod
    def receive(self) -> AsyncGenerator[LlmResponse, None]:
        """Receive model responses until the connection is closed."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Close the connection."""


class BaseLlm(abc.ABC):
    """Base class for model clients.

    Attributes:
        model: Name of the model.
    """

    def __init__(self, model: str) -> None:
        """Initialize the model client.

        Args:
            model: Name of the model.
        """
        self.model = model

    @abc.abstractmethod
    def generate_content_async(
        self, llm_request: LlmRequest, stream: bool = False
    ) -> AsyncGenerator[LlmResponse, None]:
        """Generate content for a request.

        Args:
            llm_request: The request to send.
            stream: Whether to yield partial responses as they are produced.

        Yields:
            Model responses. With streaming enabled, partial responses precede the aggregated one.
        """

    async def connect(self, llm_request: LlmRequest) -> BaseLlmConnection:
        """Open a live connection to the model.

        Raises:
            NotImplementedError: If the model does not support live connections.
        """
        raise NotImplementedError(f"Live connection is not supported for {self.model}.")
