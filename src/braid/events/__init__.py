"""Event log records produced during an invocation."""

from .event import Event
from .event_actions import EventActions, merge_event_actions

__all__ = ["Event", "EventActions", "merge_event_actions"]
