"""
Helpers shared by store implementations.
"""
from __future__ import annotations

import time
import uuid
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError

__all__ = [
    "new_id",
    "now_ms",
    "revalidate",
]

T = TypeVar("T", bound=BaseModel)


def new_id() -> str:
    """
    Generate a new local entity id.
    """
    return str(uuid.uuid4())


def now_ms() -> int:
    """
    Current time in epoch milliseconds, the resolution of local timestamps.
    """
    return int(time.time() * 1000)


def revalidate(model: T, changes: dict) -> T:
    """
    Apply changes to a model and re-run validation, converting pydantic
    errors to our own.
    """
    try:
        return type(model).model_validate(model.model_dump() | changes)
    except PydanticValidationError as e:
        raise ValidationError(
            [
                f"{'.'.join(map(str, err['loc']))}: {err['msg']}"
                for err in e.errors()
            ]
        ) from e
