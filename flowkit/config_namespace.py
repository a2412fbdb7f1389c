"""Strict configuration reader that tracks which keys were consumed."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable

_MISSING = object()


def _join_path(parent: str, key: str) -> str:
    if not parent:
        return key
    return f"{parent}.{key}"


@dataclass
class ConfigNamespace:
    """Read typed values from one config section; leftovers fail `assert_consumed`."""

    data: Mapping[str, Any]
    path: str
    _consumed: set[str] = field(default_factory=set, init=False, repr=False)
    _children: dict[str, "ConfigNamespace"] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def empty(cls, *, path: str) -> "ConfigNamespace":
        return cls({}, path=path)

    def consumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._consumed))

    def unconsumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(str(k) for k in self.data.keys() if k not in self._consumed))

    def assert_consumed(self) -> None:
        unknown = list(self.unconsumed_keys())
        if unknown:
            path = self.path or "<root>"
            known = ", ".join(self.consumed_keys()) or "<none>"
            raise ValueError(f"Unknown config keys under {path}: {', '.join(unknown)} (known: {known})")
        for child in self._children.values():
            child.assert_consumed()

    def _key(self, key: str) -> str:
        if not isinstance(key, str) or not key.strip():
            raise TypeError("ConfigNamespace key must be a non-empty string")
        return key.strip()

    def _get_raw(self, key: str, *, default: Any) -> Any:
        normalized = self._key(key)
        self._consumed.add(normalized)
        if normalized not in self.data:
            if default is _MISSING:
                raise ValueError(f"Missing required config key: {_join_path(self.path, normalized)}")
            return default
        return self.data.get(normalized)

    def namespace(self, key: str, *, required: bool = False) -> "ConfigNamespace":
        normalized = self._key(key)
        if normalized in self._children:
            return self._children[normalized]

        self._consumed.add(normalized)
        child_path = _join_path(self.path, normalized)
        raw = self.data.get(normalized)
        if raw is None:
            if required:
                raise ValueError(f"Missing required config section: {child_path}")
            child = ConfigNamespace.empty(path=child_path)
        elif not isinstance(raw, Mapping):
            raise TypeError(f"{child_path} must be a mapping (type={type(raw).__name__})")
        else:
            child = ConfigNamespace(dict(raw), path=child_path)
        self._children[normalized] = child
        return child

    def get_bool(self, key: str, *, default: bool | object = _MISSING) -> bool:
        value = self._get_raw(key, default=default)
        if not isinstance(value, bool):
            raise TypeError(
                f"{_join_path(self.path, self._key(key))} must be a boolean (type={type(value).__name__})"
            )
        return value

    def get_int(
        self,
        key: str,
        *,
        default: int | object = _MISSING,
        min_value: int | None = None,
    ) -> int:
        value = self._get_raw(key, default=default)
        path = _join_path(self.path, self._key(key))
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{path} must be an int (type={type(value).__name__})")
        if min_value is not None and value < min_value:
            raise ValueError(f"{path} must be >= {min_value} (got {value})")
        return value

    def get_str(
        self,
        key: str,
        *,
        default: str | None | object = _MISSING,
        choices: Iterable[str] | None = None,
    ) -> str | None:
        value = self._get_raw(key, default=default)
        path = _join_path(self.path, self._key(key))
        if value is None:
            return None
        if not isinstance(value, str):
            raise TypeError(f"{path} must be a string (type={type(value).__name__})")
        text = value.strip()
        if not text:
            raise ValueError(f"{path} cannot be empty")
        if choices is not None:
            allowed = sorted({str(item) for item in choices})
            if text not in allowed:
                raise ValueError(f"{path} must be one of: {', '.join(allowed)} (got {text!r})")
        return text

    def get_list_str(self, key: str, *, default: list[str] | object = _MISSING) -> list[str]:
        value = self._get_raw(key, default=default)
        path = _join_path(self.path, self._key(key))
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"{path} must be a list[str] (type={type(value).__name__})")
        items: list[str] = []
        for idx, item in enumerate(value):
            if not isinstance(item, str) or not item.strip():
                raise ValueError(f"{path}[{idx}] must be a non-empty string")
            items.append(item.strip())
        return items
