from __future__ import annotations

"""Resolution of step references inside plan parameters.

Planned parameters may point at earlier results:

- ``$PREVIOUS_STEP.content``: property of the last successful result.
- ``$STEP[2].matches[0]``: property of the result of plan step 2.

A parameter that is exactly one reference is replaced by the referenced
value (any type). References embedded in a longer string are replaced by
their string form. References that cannot be resolved are left untouched.

Property lookup is forgiving because models rarely name properties
exactly: see ``ALTERNATIVE_NAMES``. A dict with a single key resolves to
that key's value, and a one-element list resolves to its element when a
scalar name (``path``, ``content``, ``result``) was asked for.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..schemas.domain import StepResult

logger = logging.getLogger(__name__)

ALTERNATIVE_NAMES: Dict[str, Tuple[str, ...]] = {
    "paths": ("matches", "files", "results", "found"),
    "path": ("filePath", "sourcePath", "file", "matches", "output"),
    "content": ("text", "data", "source", "output"),
    "result": ("output", "data", "value", "matches"),
}

_SCALAR_NAMES = frozenset({"path", "content", "result"})

_REFERENCE = re.compile(r"\$(?:PREVIOUS_STEP|STEP\[(\d+)\])((?:\.[A-Za-z_]\w*(?:\[\d+\])*)*)")
_SEGMENT = re.compile(r"([A-Za-z_]\w*)((?:\[\d+\])*)")
_INDEX = re.compile(r"\[(\d+)\]")

_MISSING = object()


def resolve_variables(params: Dict[str, Any], results: Sequence[StepResult]) -> Dict[str, Any]:
    """Return a copy of ``params`` with step references resolved against ``results``."""
    return {key: _resolve_value(value, results) for key, value in params.items()}


def _resolve_value(value: Any, results: Sequence[StepResult]) -> Any:
    if isinstance(value, dict):
        return resolve_variables(value, results)
    if isinstance(value, list):
        return [_resolve_value(v, results) for v in value]
    if not isinstance(value, str) or "$" not in value:
        return value

    whole = _REFERENCE.fullmatch(value)
    if whole is not None:
        resolved = _lookup(whole, results)
        return value if resolved is _MISSING else resolved

    def _substitute(match: re.Match[str]) -> str:
        resolved = _lookup(match, results)
        return match.group(0) if resolved is _MISSING else str(resolved)

    return _REFERENCE.sub(_substitute, value)


def _lookup(match: re.Match[str], results: Sequence[StepResult]) -> Any:
    source = _source_result(match.group(1), results)
    if source is None:
        logger.debug(f"Unresolved reference {match.group(0)!r}: no such result")
        return _MISSING

    current: Any = source.result
    for segment in filter(None, match.group(2).split(".")):
        parsed = _SEGMENT.fullmatch(segment)
        if parsed is None:
            return _MISSING
        name, indexes = parsed.group(1), [int(i) for i in _INDEX.findall(parsed.group(2))]
        current = _property(current, name)
        if current is _MISSING:
            logger.debug(f"Unresolved reference {match.group(0)!r}: no property {name!r}")
            return _MISSING
        for index in indexes:
            if not isinstance(current, list) or index >= len(current):
                return _MISSING
            current = current[index]
        if not indexes and name in _SCALAR_NAMES and isinstance(current, list) and len(current) == 1:
            current = current[0]
    return current


def _source_result(step_index: Optional[str], results: Sequence[StepResult]) -> Optional[StepResult]:
    successful: List[StepResult] = [r for r in results if r.success]
    if step_index is None:
        return successful[-1] if successful else None
    wanted = int(step_index)
    for result in successful:
        if result.step_index == wanted:
            return result
    return None


def _property(obj: Any, name: str) -> Any:
    if not isinstance(obj, dict):
        return _MISSING
    if name in obj:
        return obj[name]
    for alternative in ALTERNATIVE_NAMES.get(name, ()):
        if alternative in obj:
            return obj[alternative]
    if len(obj) == 1:
        return next(iter(obj.values()))
    return _MISSING
