"""Exception-related type definitions for the SDK."""


class SessionException(Exception):
    """Exception raised when session operations fail."""

    pass


class SessionNotFoundException(SessionException):
    """Exception raised when a session that must exist cannot be found."""

    pass


class StaleSessionException(SessionException):
    """Exception raised when an event is appended to an outdated copy of a session.

    The stored session was modified after the caller loaded it. The caller must reload the session and retry; the
    append is never merged or retried automatically.
    """

    def __init__(self, session_id: str, stored_update_time: float, last_update_time: float) -> None:
        """Initialize exception.

        Args:
            session_id: Id of the conflicting session.
            stored_update_time: Update time currently held by the store.
            last_update_time: Update time known to the caller.
        """
        self.session_id = session_id
        self.stored_update_time = stored_update_time
        self.last_update_time = last_update_time
        super().__init__(
            f"session_id=<{session_id}> | stale session, storage was updated at {stored_update_time} "
            f"but the session was last updated at {last_update_time}; reload the session and try again"
        )


class PluginCallbackException(RuntimeError):
    """Exception raised when a plugin callback fails.

    Wraps the original error with the plugin and callback names so the failing hook can be identified.
    """

    def __init__(self, plugin_name: str, callback_name: str, original_exception: Exception) -> None:
        """Initialize exception.

        Args:
            plugin_name: Name of the plugin whose callback failed.
            callback_name: Name of the callback that failed.
            original_exception: The error raised by the callback.
        """
        self.plugin_name = plugin_name
        self.callback_name = callback_name
        self.original_exception = original_exception
        super().__init__(f"Error in plugin '{plugin_name}' during '{callback_name}' callback: {original_exception}")


class LlmCallsLimitExceededException(Exception):
    """Exception raised when an invocation makes more model calls than its run config allows."""

    pass
