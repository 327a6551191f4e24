"""Model response type."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from ..types.content import Content


class LlmResponse(BaseModel):
    """A single response, or response chunk, produced by a model.

    Attributes:
        content: The content of the response.
        partial: Whether the response is an incremental chunk of a streamed response.
        turn_complete: Whether the model finished its turn (live mode).
        interrupted: Whether the model's generation was interrupted (live mode).
        error_code: Error code when the response carries an error.
        error_message: Human readable error description.
        finish_reason: Why the model stopped generating.
        usage_metadata: Token usage reported by the model.
        custom_metadata: Arbitrary metadata attached by callbacks or plugins.
    """

    model_config = ConfigDict(extra="forbid")

    content: Optional[Content] = None
    partial: Optional[bool] = None
    turn_complete: Optional[bool] = None
    interrupted: Optional[bool] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    finish_reason: Optional[str] = None
    usage_metadata: Optional[dict[str, Any]] = None
    custom_metadata: Optional[dict[str, Any]] = None
