"""Entry points that run an agent tree against a session."""

from .runner import InMemoryRunner, Runner

__all__ = ["InMemoryRunner", "Runner"]
