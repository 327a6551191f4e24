"""Actions attached to an event."""

from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..types.tools import ToolConfirmation


class EventActions(BaseModel):
    """Side effects carried by an event.

    Attributes:
        skip_summarization: If set, the model is not called to summarize a function response.
        state_delta: State changes made while producing the event.
        artifact_delta: Artifact versions saved while producing the event, keyed by filename.
        transfer_to_agent: Name of the agent control should be transferred to.
        escalate: Asks the enclosing loop, or the parent agent, to stop.
        requested_auth_configs: Credentials requested by tools, keyed by function call id.
        requested_tool_confirmations: Confirmations requested by tools, keyed by function call id.
    """

    model_config = ConfigDict(extra="forbid")

    skip_summarization: Optional[bool] = None
    state_delta: dict[str, Any] = Field(default_factory=dict)
    artifact_delta: dict[str, int] = Field(default_factory=dict)
    transfer_to_agent: Optional[str] = None
    escalate: Optional[bool] = None
    requested_auth_configs: dict[str, Any] = Field(default_factory=dict)
    requested_tool_confirmations: dict[str, ToolConfirmation] = Field(default_factory=dict)


def merge_event_actions(
    sources: Iterable[Optional[EventActions]], target: Optional[EventActions] = None
) -> EventActions:
    """Merge several action sets into one.

    Dictionaries are unioned key by key and scalar fields are last-writer-wins, both in source order.

    Args:
        sources: Action sets to merge, in order. `None` entries are ignored.
        target: Action set to merge into. A new one is created when omitted.

    Returns:
        The merged actions.
    """
    result = target if target is not None else EventActions()

    for source in sources:
        if source is None:
            continue

        result.state_delta.update(source.state_delta)
        result.artifact_delta.update(source.artifact_delta)
        result.requested_auth_configs.update(source.requested_auth_configs)
        result.requested_tool_confirmations.update(source.requested_tool_confirmations)

        if source.skip_summarization is not None:
            result.skip_summarization = source.skip_summarization
        if source.transfer_to_agent is not None:
            result.transfer_to_agent = source.transfer_to_agent
        if source.escalate is not None:
            result.escalate = source.escalate

    return result
