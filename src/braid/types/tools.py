"""Tool-related type definitions for the SDK."""

from typing import Any, Optional

from pydantic import BaseModel

REQUEST_CONFIRMATION_FUNCTION_CALL_NAME = "braid_request_confirmation"
"""Name of the function call emitted to ask the client to confirm a tool call."""

REQUEST_CREDENTIAL_FUNCTION_CALL_NAME = "braid_request_credential"
"""Name of the function call emitted to ask the client for credentials."""


class ToolConfirmation(BaseModel):
    """A human-in-the-loop confirmation gate for a single tool call.

    Attributes:
        hint: Explanation shown to whoever is asked to confirm.
        confirmed: Whether the call was confirmed.
        payload: Optional structured data supplied along with the confirmation.
    """

    hint: str = ""
    confirmed: bool = False
    payload: Optional[Any] = None
