"""Integration document model.

Every type here is a frozen dataclass. Editing code never mutates a model value in
place; it builds a new one with `dataclasses.replace`, so anything handed out by a
query stays valid after later edits. Mapping fields are stored as read-only proxies
over a private copy.

The dict form uses the camelCase wire names (`stepKind`, `connectorId`, ...) so that
documents round-trip with the persistence backend unchanged. Keys a type does not
model are kept in its `attributes` and written back by `to_dict`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, TypeAlias

ENDPOINT = "endpoint"

PropertyScalar: TypeAlias = str | int | float
ConfiguredProperties: TypeAlias = dict[str, PropertyScalar]


def _optional_str(raw: Mapping[str, Any], key: str, *, path: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{path}.{key} must be a string or null (type={type(value).__name__})")
    return value


def _require_mapping(raw: Any, *, path: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise TypeError(f"{path} must be a mapping (type={type(raw).__name__})")
    return raw


def _optional_properties(raw: Mapping[str, Any], key: str, *, path: str) -> ConfiguredProperties | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise TypeError(f"{path}.{key} must be a mapping or null (type={type(value).__name__})")
    return {str(k): v for k, v in value.items()}


def _extras(raw: Mapping[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {str(key): value for key, value in raw.items() if key not in known}


def _read_only(owner: object, name: str, *, optional: bool = False) -> None:
    value = getattr(owner, name)
    if value is None and optional:
        return
    if not isinstance(value, Mapping):
        raise TypeError(
            f"{type(owner).__name__}.{name} must be a mapping (type={type(value).__name__})"
        )
    object.__setattr__(owner, name, MappingProxyType(dict(value)))


def _drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


def _with_attributes(attributes: Mapping[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    merged = dict(attributes)
    merged.update(_drop_none(payload))
    return merged


_DATA_SHAPE_KEYS = ("kind", "type", "specification")


@dataclass(frozen=True)
class DataShape:
    """Shape of the data an action consumes or produces.

    Any shape object that is present counts as declared, even without a `kind`.
    """

    kind: str | None = None
    type: str | None = None
    specification: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _read_only(self, "attributes")

    @classmethod
    def from_dict(cls, raw: Any, *, path: str = "dataShape") -> "DataShape":
        data = _require_mapping(raw, path=path)
        kind = _optional_str(data, "kind", path=path)
        return cls(
            kind=(kind or "").strip() or None,
            type=_optional_str(data, "type", path=path),
            specification=_optional_str(data, "specification", path=path),
            attributes=_extras(data, _DATA_SHAPE_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        return _with_attributes(
            self.attributes,
            {"kind": self.kind, "type": self.type, "specification": self.specification},
        )


_ACTION_KEYS = ("id", "name", "description", "inputDataShape", "outputDataShape")


@dataclass(frozen=True)
class Action:
    name: str | None = None
    id: str | None = None
    description: str | None = None
    input_data_shape: DataShape | None = None
    output_data_shape: DataShape | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _read_only(self, "attributes")

    @property
    def has_input_shape(self) -> bool:
        return self.input_data_shape is not None

    @property
    def has_output_shape(self) -> bool:
        return self.output_data_shape is not None

    @classmethod
    def from_dict(cls, raw: Any, *, path: str = "action") -> "Action":
        data = _require_mapping(raw, path=path)
        input_shape = data.get("inputDataShape")
        output_shape = data.get("outputDataShape")
        return cls(
            name=_optional_str(data, "name", path=path),
            id=_optional_str(data, "id", path=path),
            description=_optional_str(data, "description", path=path),
            input_data_shape=(
                DataShape.from_dict(input_shape, path=f"{path}.inputDataShape")
                if input_shape is not None
                else None
            ),
            output_data_shape=(
                DataShape.from_dict(output_shape, path=f"{path}.outputDataShape")
                if output_shape is not None
                else None
            ),
            attributes=_extras(data, _ACTION_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        return _with_attributes(
            self.attributes,
            {
                "id": self.id,
                "name": self.name,
                "description": self.description,
                "inputDataShape": self.input_data_shape.to_dict() if self.input_data_shape else None,
                "outputDataShape": self.output_data_shape.to_dict() if self.output_data_shape else None,
            },
        )


_CONNECTION_KEYS = ("id", "name", "connectorId", "description")


@dataclass(frozen=True)
class Connection:
    id: str | None = None
    name: str | None = None
    connector_id: str | None = None
    description: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _read_only(self, "attributes")

    @classmethod
    def from_dict(cls, raw: Any, *, path: str = "connection") -> "Connection":
        data = _require_mapping(raw, path=path)
        return cls(
            id=_optional_str(data, "id", path=path),
            name=_optional_str(data, "name", path=path),
            connector_id=_optional_str(data, "connectorId", path=path),
            description=_optional_str(data, "description", path=path),
            attributes=_extras(data, _CONNECTION_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        return _with_attributes(
            self.attributes,
            {
                "id": self.id,
                "name": self.name,
                "connectorId": self.connector_id,
                "description": self.description,
            },
        )


_STEP_KEYS = ("id", "stepKind", "name", "connection", "action", "configuredProperties")


@dataclass(frozen=True)
class Step:
    id: str | None = None
    step_kind: str | None = None
    name: str | None = None
    connection: Connection | None = None
    action: Action | None = None
    configured_properties: Mapping[str, PropertyScalar] | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _read_only(self, "configured_properties", optional=True)
        _read_only(self, "attributes")

    @property
    def is_endpoint(self) -> bool:
        return self.step_kind == ENDPOINT

    @classmethod
    def from_dict(cls, raw: Any, *, path: str = "step") -> "Step":
        data = _require_mapping(raw, path=path)
        connection = data.get("connection")
        action = data.get("action")
        return cls(
            id=_optional_str(data, "id", path=path),
            step_kind=_optional_str(data, "stepKind", path=path),
            name=_optional_str(data, "name", path=path),
            connection=(
                Connection.from_dict(connection, path=f"{path}.connection")
                if connection is not None
                else None
            ),
            action=Action.from_dict(action, path=f"{path}.action") if action is not None else None,
            configured_properties=_optional_properties(data, "configuredProperties", path=path),
            attributes=_extras(data, _STEP_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        return _with_attributes(
            self.attributes,
            {
                "id": self.id,
                "stepKind": self.step_kind,
                "name": self.name,
                "connection": self.connection.to_dict() if self.connection else None,
                "action": self.action.to_dict() if self.action else None,
                "configuredProperties": (
                    dict(self.configured_properties)
                    if self.configured_properties is not None
                    else None
                ),
            },
        )


def create_step() -> Step:
    """Blank placeholder step: no kind, no connection, no configuration."""
    return Step()


def create_endpoint_step(connection: Connection | None = None) -> Step:
    return Step(step_kind=ENDPOINT, connection=connection)


def parse_steps(raw: Any, *, path: str = "integration.steps") -> tuple[Step, ...]:
    """Steps from their list form; null entries are dropped."""
    if not isinstance(raw, (list, tuple)):
        raise TypeError(f"{path} must be a list (type={type(raw).__name__})")
    return tuple(
        item if isinstance(item, Step) else Step.from_dict(item, path=f"{path}[{idx}]")
        for idx, item in enumerate(raw)
        if item is not None
    )


_INTEGRATION_KEYS = ("id", "name", "description", "steps", "tags", "configuredProperties")


@dataclass(frozen=True)
class Integration:
    id: str | None = None
    name: str | None = None
    description: str | None = None
    steps: tuple[Step, ...] = ()
    tags: tuple[str, ...] = ()
    configured_properties: Mapping[str, PropertyScalar] | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Null entries never make it into a loaded flow.
        steps = tuple(step for step in (self.steps or ()) if step is not None)
        for idx, step in enumerate(steps):
            if not isinstance(step, Step):
                raise TypeError(
                    f"Integration.steps[{idx}] must be a Step (type={type(step).__name__})"
                )
        object.__setattr__(self, "steps", steps)
        object.__setattr__(self, "tags", tuple(str(tag) for tag in (self.tags or ())))
        _read_only(self, "configured_properties", optional=True)
        _read_only(self, "attributes")

    @classmethod
    def from_dict(cls, raw: Any, *, path: str = "integration") -> "Integration":
        data = _require_mapping(raw, path=path)

        raw_tags = data.get("tags") or []
        if not isinstance(raw_tags, (list, tuple)):
            raise TypeError(f"{path}.tags must be a list (type={type(raw_tags).__name__})")

        return cls(
            id=_optional_str(data, "id", path=path),
            name=_optional_str(data, "name", path=path),
            description=_optional_str(data, "description", path=path),
            steps=parse_steps(data.get("steps") or [], path=f"{path}.steps"),
            tags=tuple(str(tag) for tag in raw_tags),
            configured_properties=_optional_properties(data, "configuredProperties", path=path),
            attributes=_extras(data, _INTEGRATION_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = _with_attributes(
            self.attributes,
            {
                "id": self.id,
                "name": self.name,
                "description": self.description,
                "configuredProperties": (
                    dict(self.configured_properties)
                    if self.configured_properties is not None
                    else None
                ),
            },
        )
        payload["steps"] = [step.to_dict() for step in self.steps]
        payload["tags"] = list(self.tags)
        return payload

    def clone(self) -> "Integration":
        """Structural deep copy (through the JSON form, like the persisted document)."""
        return Integration.from_dict(json.loads(json.dumps(self.to_dict(), default=str)))

    def with_steps(self, steps: list[Step] | tuple[Step, ...]) -> "Integration":
        return replace(self, steps=tuple(steps))
