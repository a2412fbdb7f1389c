"""Flow events: the editing commands and lifecycle notifications.

Each event is a small frozen dataclass tagged with a `kind` string. The presentation
layer may also hand over the flat mapping form (`{"kind": ..., "position": ...}`);
`event_from_payload` turns that into the typed event.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Callable, ClassVar, TypeAlias

from flowkit.model import Action, Connection, Integration, Step

OnSave: TypeAlias = Callable[[], Any] | None

INTEGRATION_UPDATED = "integration-updated"
INTEGRATION_NO_CONNECTIONS = "integration-no-connections"
INSERT_STEP = "integration-insert-step"
INSERT_CONNECTION = "integration-insert-connection"
REMOVE_STEP = "integration-remove-step"
SET_STEP = "integration-set-step"
SET_PROPERTIES = "integration-set-properties"
SET_ACTION = "integration-set-action"
SET_CONNECTION = "integration-set-connection"
SET_PROPERTY = "integration-set-property"
SAVE = "integration-save"


def coerce_position(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"position must be numeric (got {value!r})")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"position must be finite (got {value!r})")
        return int(value)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError as exc:
            raise ValueError(f"position must be numeric (got {value!r})") from exc
        if not math.isfinite(number):
            raise ValueError(f"position must be finite (got {value!r})")
        return int(number)
    raise ValueError(f"position must be numeric (got {value!r})")


@dataclass(frozen=True)
class IntegrationUpdated:
    kind: ClassVar[str] = INTEGRATION_UPDATED
    integration: Integration | None = None


@dataclass(frozen=True)
class IntegrationNoConnections:
    kind: ClassVar[str] = INTEGRATION_NO_CONNECTIONS


@dataclass(frozen=True)
class InsertStep:
    kind: ClassVar[str] = INSERT_STEP
    position: int
    on_save: OnSave = None


@dataclass(frozen=True)
class InsertConnection:
    kind: ClassVar[str] = INSERT_CONNECTION
    position: int
    on_save: OnSave = None


@dataclass(frozen=True)
class RemoveStep:
    kind: ClassVar[str] = REMOVE_STEP
    position: int
    on_save: OnSave = None


@dataclass(frozen=True)
class SetStep:
    kind: ClassVar[str] = SET_STEP
    position: int
    step: Step
    on_save: OnSave = None


@dataclass(frozen=True)
class SetProperties:
    kind: ClassVar[str] = SET_PROPERTIES
    position: int
    properties: Mapping[str, Any] | None
    on_save: OnSave = None


@dataclass(frozen=True)
class SetAction:
    kind: ClassVar[str] = SET_ACTION
    position: int
    action: Action
    on_save: OnSave = None


@dataclass(frozen=True)
class SetConnection:
    kind: ClassVar[str] = SET_CONNECTION
    position: int
    connection: Connection
    on_save: OnSave = None


@dataclass(frozen=True)
class SetProperty:
    kind: ClassVar[str] = SET_PROPERTY
    property: str
    value: Any
    on_save: OnSave = None


@dataclass(frozen=True)
class SaveIntegration:
    kind: ClassVar[str] = SAVE
    on_success: Callable[[Integration], Any] | None = None
    on_error: Callable[[Any], Any] | None = None


@dataclass(frozen=True)
class FlowNotification:
    """Any event kind the editor itself does not act on."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)


FlowEvent: TypeAlias = (
    IntegrationUpdated
    | IntegrationNoConnections
    | InsertStep
    | InsertConnection
    | RemoveStep
    | SetStep
    | SetProperties
    | SetAction
    | SetConnection
    | SetProperty
    | SaveIntegration
    | FlowNotification
)

_POSITIONAL: dict[str, type] = {
    INSERT_STEP: InsertStep,
    INSERT_CONNECTION: InsertConnection,
    REMOVE_STEP: RemoveStep,
}


def _callable_or_none(payload: Mapping[str, Any], key: str) -> Callable[..., Any] | None:
    value = payload.get(key)
    if value is None:
        return None
    if not callable(value):
        raise TypeError(f"{key} must be callable (type={type(value).__name__})")
    return value


def _as_step(value: Any) -> Step:
    if isinstance(value, Step):
        return value
    return Step.from_dict(value, path="step")


def _as_action(value: Any) -> Action:
    if isinstance(value, Action):
        return value
    return Action.from_dict(value, path="action")


def _as_connection(value: Any) -> Connection:
    if isinstance(value, Connection):
        return value
    return Connection.from_dict(value, path="connection")


def event_from_payload(payload: Mapping[str, Any]) -> FlowEvent:
    if not isinstance(payload, Mapping):
        raise TypeError(f"Flow event payload must be a mapping (type={type(payload).__name__})")
    kind = payload.get("kind")
    if not isinstance(kind, str) or not kind.strip():
        raise ValueError("Flow event payload requires a non-empty 'kind'")
    kind = kind.strip()
    on_save = _callable_or_none(payload, "onSave")

    if kind in _POSITIONAL:
        return _POSITIONAL[kind](position=coerce_position(payload.get("position")), on_save=on_save)
    if kind == SET_STEP:
        return SetStep(
            position=coerce_position(payload.get("position")),
            step=_as_step(payload.get("step")),
            on_save=on_save,
        )
    if kind == SET_PROPERTIES:
        return SetProperties(
            position=coerce_position(payload.get("position")),
            properties=payload.get("properties"),
            on_save=on_save,
        )
    if kind == SET_ACTION:
        return SetAction(
            position=coerce_position(payload.get("position")),
            action=_as_action(payload.get("action")),
            on_save=on_save,
        )
    if kind == SET_CONNECTION:
        return SetConnection(
            position=coerce_position(payload.get("position")),
            connection=_as_connection(payload.get("connection")),
            on_save=on_save,
        )
    if kind == SET_PROPERTY:
        prop = payload.get("property")
        if not isinstance(prop, str) or not prop.strip():
            raise ValueError(f"{SET_PROPERTY} requires a non-empty 'property'")
        return SetProperty(property=prop.strip(), value=payload.get("value"), on_save=on_save)
    if kind == SAVE:
        # Save continuations travel under `action` and `error`.
        return SaveIntegration(
            on_success=_callable_or_none(payload, "action"),
            on_error=_callable_or_none(payload, "error"),
        )
    if kind == INTEGRATION_UPDATED:
        integration = payload.get("integration")
        if integration is not None and not isinstance(integration, Integration):
            integration = Integration.from_dict(integration)
        return IntegrationUpdated(integration=integration)
    if kind == INTEGRATION_NO_CONNECTIONS:
        return IntegrationNoConnections()

    extra = {key: value for key, value in payload.items() if key != "kind"}
    return FlowNotification(kind=kind, payload=extra)


def event_to_payload(event: FlowEvent) -> dict[str, Any]:
    """Flat mapping form of an event; model values stay as model objects."""
    if isinstance(event, FlowNotification):
        return {"kind": event.kind, **event.payload}
    if isinstance(event, SaveIntegration):
        return {"kind": event.kind, "action": event.on_success, "error": event.on_error}

    payload: dict[str, Any] = {"kind": event.kind}
    for item in fields(event):
        key = "onSave" if item.name == "on_save" else item.name
        payload[key] = getattr(event, item.name)
    return payload
