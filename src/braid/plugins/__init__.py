"""Plugins that observe and intercept invocations.

This module provides:

- BasePlugin: base class for plugins
- PluginManager: ordered dispatch of plugin callbacks
- LoggingPlugin: logs every lifecycle point
- SecurityPlugin: policy checks and confirmation of tool calls
"""

from .base_plugin import BasePlugin
from .logging_plugin import LoggingPlugin
from .plugin_manager import PluginManager
from .security_plugin import (
    BasePolicyEngine,
    InMemoryPolicyEngine,
    PolicyCheckResult,
    PolicyOutcome,
    SecurityPlugin,
    ToolCallPolicyContext,
)

__all__ = [
    "BasePlugin",
    "BasePolicyEngine",
    "InMemoryPolicyEngine",
    "LoggingPlugin",
    "PluginManager",
    "PolicyCheckResult",
    "PolicyOutcome",
    "SecurityPlugin",
    "ToolCallPolicyContext",
]
