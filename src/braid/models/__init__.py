"""Model client interfaces.

This package defines the request/response types exchanged with a model and the abstract client that concrete model
providers implement.
"""

from .base_llm import BaseLlm, BaseLlmConnection
from .llm_request import LlmRequest
from .llm_response import LlmResponse

__all__ = ["BaseLlm", "BaseLlmConnection", "LlmRequest", "LlmResponse"]
