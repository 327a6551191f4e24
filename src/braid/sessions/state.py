"""Two-layer state view used by callbacks and tools."""

from typing import Any


class State:
    """A mutable view over a session's state that records every change in a pending delta.

    Reads prefer the delta over the committed value. Writes go to both, so the change is visible immediately and is
    also carried by the event that produced it.

    Keys may carry a prefix that selects the scope they are persisted in:

    - `app:` shared by every session of the app
    - `user:` shared by every session of the user within the app
    - `temp:` scoped to the current invocation and never persisted

    Unprefixed keys are scoped to the session.
    """

    APP_PREFIX = "app:"
    USER_PREFIX = "user:"
    TEMP_PREFIX = "temp:"

    def __init__(self, value: dict[str, Any], delta: dict[str, Any]) -> None:
        """Initialize the state.

        Args:
            value: The committed state. Updated in place on write.
            delta: The pending delta. Updated in place on write.
        """
        self._value = value
        self._delta = delta

    def __getitem__(self, key: str) -> Any:
        """Return the value of a key, preferring the pending delta."""
        if key in self._delta:
            return self._delta[key]
        return self._value[key]

    def __setitem__(self, key: str, value: Any) -> None:
        """Set a key in both the committed state and the delta."""
        self._value[key] = value
        self._delta[key] = value

    def __contains__(self, key: str) -> bool:
        """Whether the key exists in either layer."""
        return key in self._value or key in self._delta

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value of a key, or `default` when it is missing."""
        if key not in self:
            return default
        return self[key]

    def set(self, key: str, value: Any) -> None:
        """Set the value of a key."""
        self[key] = value

    def update(self, delta: dict[str, Any]) -> None:
        """Set several keys at once."""
        self._value.update(delta)
        self._delta.update(delta)

    def has_delta(self) -> bool:
        """Whether there are pending changes."""
        return bool(self._delta)

    def to_dict(self) -> dict[str, Any]:
        """Return a merged copy of both layers."""
        result = dict(self._value)
        result.update(self._delta)
        return result
