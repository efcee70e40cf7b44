from __future__ import annotations

"""Deterministic token estimate: ``ceil(len(serialized) / 4)``.

This is a fixed approximation, not a tokenizer. It only has to be stable so
budget checks are reproducible.

Tool results are opaque, so everything the context store keeps or costs goes
through ``to_jsonable`` first: values JSON cannot represent (arbitrary
objects, undecodable bytes, non-string keys) are replaced by their ``str()``.
"""

import json
import math
from typing import Any, Mapping

from pydantic import BaseModel

CHARS_PER_TOKEN = 4


def to_jsonable(value: Any) -> Any:
    """Return a copy of ``value`` made only of JSON types."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, BaseModel):
        return to_jsonable(value.model_dump())
    if isinstance(value, Mapping):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in value]
    return str(value)


def serialize(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        try:
            return value.model_dump_json()
        except ValueError:
            # unknown types and invalid utf-8 bytes
            return json.dumps(to_jsonable(value))
    return json.dumps(to_jsonable(value))


def estimate_tokens(value: Any) -> int:
    if value is None:
        return 0
    return math.ceil(len(serialize(value)) / CHARS_PER_TOKEN)
