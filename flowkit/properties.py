"""Configured-property value normalization.

Step configuration is stored as a flat string/number mapping. Anything richer that a
form hands over (nested objects, lists, booleans, null) is kept as its compact JSON
text so the stored shape never depends on what the form produced.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Literal

from flowkit.model import ConfiguredProperties, PropertyScalar

PropertyKind = Literal["text", "number", "structured"]


def classify_property_value(value: Any) -> PropertyKind:
    if isinstance(value, str):
        return "text"
    # bool is an int subclass but is not a number here.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return "number"
    return "structured"


def _encode_structured(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def normalize_property_value(value: Any) -> PropertyScalar:
    kind = classify_property_value(value)
    if kind == "text" or kind == "number":
        return value
    return _encode_structured(value)


def stringify_values(props: Mapping[str, Any] | None) -> ConfiguredProperties | None:
    if props is None:
        return None
    if not isinstance(props, Mapping):
        raise TypeError(f"properties must be a mapping (type={type(props).__name__})")
    return {str(key): normalize_property_value(value) for key, value in props.items()}
