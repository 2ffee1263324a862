"""
Shared schema helpers.

Identifier normalizes ids that clients send as strings, numbers or embedded
references ({"id": ...} / {"_id": ...}) into a single opaque string.
"""

from typing import Any
from pydantic import BeforeValidator
from typing_extensions import Annotated


def _normalize_identifier(value: Any) -> Any:
    if isinstance(value, dict):
        value = value.get("id", value.get("_id"))
    if isinstance(value, bool):
        raise ValueError("Identifier must be a string or number")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("Identifier must not be empty")
    return value


Identifier = Annotated[str, BeforeValidator(_normalize_identifier)]
