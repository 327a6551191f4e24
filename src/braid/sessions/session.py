"""Session record type."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..events.event import Event


class Session(BaseModel):
    """A conversation between a user and an app.

    Attributes:
        id: Unique id of the session within the app and user.
        app_name: Name of the app.
        user_id: Id of the user.
        state: Materialized state. App and user scoped keys are merged in with their prefixes when the session is
            read.
        events: The append-only event log.
        last_update_time: Time of the last append, in seconds since the epoch. Used to detect stale copies.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    app_name: str
    user_id: str
    state: dict[str, Any] = Field(default_factory=dict)
    events: list[Event] = Field(default_factory=list)
    last_update_time: float = 0.0
