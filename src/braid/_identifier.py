"""Identifier validation utilities."""

import enum
import os


class Identifier(enum.Enum):
    """Kinds of identifiers used to address stored sessions."""

    APP = "app_name"
    USER = "user_id"
    SESSION = "session_id"


def validate(id_: str, type_: Identifier) -> str:
    """Validate an identifier.

    Args:
        id_: Identifier to validate.
        type_: Kind of identifier, used in the error message.

    Returns:
        Validated identifier.

    Raises:
        ValueError: If the id is empty or contains path separators.
    """
    if not id_ or not id_.strip():
        raise ValueError(f"{type_.value}=<{id_}> | id cannot be empty")

    if os.path.basename(id_) != id_:
        raise ValueError(f"{type_.value}=<{id_}> | id cannot contain path separators")

    return id_
