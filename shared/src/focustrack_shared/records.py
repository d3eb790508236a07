"""Record serialization helpers.

Stored records (Firestore documents and local JSON files) use camelCase keys,
Python models use snake_case.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def to_snake(string: str) -> str:
    """Convert camelCase to snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", string).lower()


def model_to_record(model: BaseModel, exclude: set[str] | None = None) -> dict[str, Any]:
    """Convert a pydantic model to a camelCase document.

    - Drops ``None`` ids so the store can assign its own
    - Keeps datetimes native (Firestore stores them as timestamps)
    - Converts enums to their string values
    """
    data = model.model_dump(mode="python", exclude=exclude)
    if data.get("id") is None:
        data.pop("id", None)
    return _convert_keys_to_camel(data)


def _convert_keys_to_camel(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        camel_key = to_camel(key)
        if isinstance(value, dict):
            result[camel_key] = _convert_keys_to_camel(value)
        elif isinstance(value, Enum):
            result[camel_key] = value.value
        elif isinstance(value, datetime):
            result[camel_key] = value
        else:
            result[camel_key] = value
    return result


def record_to_dict(data: dict[str, Any], doc_id: str | None = None) -> dict[str, Any]:
    """Convert a stored document to a snake_case dict for pydantic parsing."""
    result = _convert_keys_to_snake(data)
    if doc_id is not None:
        result["id"] = doc_id
    return result


def _convert_keys_to_snake(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        snake_key = to_snake(key)
        if isinstance(value, dict):
            result[snake_key] = _convert_keys_to_snake(value)
        else:
            result[snake_key] = value
    return result
