"""Placeholder substitution for instruction templates.

An instruction string may reference session state as `{key}`, scoped state as `{user:key}`, optional state as
`{key?}` and artifacts of the session as `{artifact.filename}`:

```python
agent = LlmAgent(name="writer", instruction="Write a summary of {facts}. The reader is {user:name?}.")
```
"""

import logging
import re

from ..sessions.state import State
from .callback_context import ReadonlyContext

logger = logging.getLogger(__name__)

_PLACEHOLDER_PATTERN = re.compile(r"\{+[^{}]*\}+")
_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_STATE_PREFIXES = (State.APP_PREFIX, State.USER_PREFIX, State.TEMP_PREFIX)
_ARTIFACT_PREFIX = "artifact."


async def inject_session_state(template: str, readonly_context: ReadonlyContext) -> str:
    """Replace the placeholders of an instruction template with their values.

    Braces that do not enclose a valid state name are left as they are.

    Args:
        template: The instruction template.
        readonly_context: Context of the running agent.

    Returns:
        The instruction with placeholders replaced.

    Raises:
        KeyError: If a required state key or an artifact does not exist.
        ValueError: If an artifact is referenced and no artifact service is configured.
    """
    result: list[str] = []
    last_end = 0
    for match in _PLACEHOLDER_PATTERN.finditer(template):
        result.append(template[last_end : match.start()])
        result.append(await _replace(match.group(), readonly_context))
        last_end = match.end()
    result.append(template[last_end:])
    return "".join(result)


async def _replace(placeholder: str, readonly_context: ReadonlyContext) -> str:
    key = placeholder.lstrip("{").rstrip("}").strip()
    optional = key.endswith("?")
    if optional:
        key = key[:-1]

    invocation_context = readonly_context.invocation_context
    if key.startswith(_ARTIFACT_PREFIX):
        filename = key[len(_ARTIFACT_PREFIX) :]
        artifact_service = invocation_context.artifact_service
        if artifact_service is None:
            raise ValueError("Artifact service is not initialized.")

        artifact = await artifact_service.load_artifact(
            app_name=invocation_context.app_name,
            user_id=invocation_context.user_id,
            session_id=invocation_context.session.id,
            filename=filename,
        )
        if artifact is None:
            raise KeyError(f"Artifact {filename} not found.")
        return artifact["text"] if "text" in artifact else str(artifact)

    if not _is_valid_state_name(key):
        return placeholder

    state = readonly_context.state
    if key in state:
        return str(state[key])
    if optional:
        logger.debug("key=<%s> | optional state key not found, injecting empty string", key)
        return ""

    raise KeyError(f"Context variable not found: `{key}`.")


def _is_valid_state_name(name: str) -> bool:
    """Whether `name` is an identifier, optionally after a state scope prefix."""
    parts = name.split(":")
    if len(parts) == 1:
        return bool(_IDENTIFIER_PATTERN.match(name))
    if len(parts) == 2 and f"{parts[0]}:" in _STATE_PREFIXES:
        return bool(_IDENTIFIER_PATTERN.match(parts[1]))
    return False
