"""JSON encoding shared by the response resolver and scoped logging."""

import dataclasses
import json
from typing import Any


def _default(value: Any) -> Any:
    """Encode the structured types ``json`` does not know about.

    Raises ``TypeError`` for anything else so callers can decide how to
    degrade.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return model_dump()
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def dumps(value: Any) -> str:
    """Compact JSON encoding (no whitespace after separators)."""
    return json.dumps(value, default=_default, separators=(",", ":"))
