"""Per-run configuration."""

import enum
import logging
import sys
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)


class StreamingMode(enum.Enum):
    """How model output is streamed back to the caller."""

    NONE = "none"
    SSE = "sse"
    BIDI = "bidi"


class RunConfig(BaseModel):
    """Configuration of a single run.

    Attributes:
        streaming_mode: Streaming mode for model output.
        max_llm_calls: Maximum number of model calls per invocation. Zero or less means unlimited.
        response_modalities: Output modalities requested from a live model.
        speech_config: Speech settings passed through to a live model.
        custom_metadata: Arbitrary metadata for the run.
    """

    model_config = ConfigDict(extra="forbid")

    streaming_mode: StreamingMode = StreamingMode.NONE
    max_llm_calls: int = 500
    response_modalities: Optional[list[str]] = None
    speech_config: Optional[dict[str, Any]] = None
    custom_metadata: Optional[dict[str, Any]] = None

    @field_validator("max_llm_calls")
    @classmethod
    def validate_max_llm_calls(cls, value: int) -> int:
        """Reject limits that cannot be represented and warn about unlimited runs."""
        if value > sys.maxsize:
            raise ValueError(f"max_llm_calls=<{value}> | max_llm_calls should be less than {sys.maxsize}")
        if value <= 0:
            logger.warning(
                "max_llm_calls=<%d> | model calls are not limited for this run, which can lead to runaway invocations",
                value,
            )
        return value
