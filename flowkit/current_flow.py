"""Flow editing state machine.

`CurrentFlow` owns the integration being edited. Everything that changes the flow is a
`FlowEvent` sent through `CurrentFlow.events`; the flow's own handler is the first
subscriber on that bus, so commands and the notifications they cause reach every
subscriber in the order they were emitted.

Positions are 0-based. The first and last positions are endpoint slots: removing
either one leaves a blank endpoint behind instead of shortening the flow. A flow with
zero or one step still reports last position 1 so a trailing endpoint slot is always
available.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from collections import deque
from collections.abc import Mapping
from concurrent.futures import CancelledError, Future
from dataclasses import replace
from typing import Any, Callable

from flowkit.events import (
    FlowEvent,
    FlowNotification,
    InsertConnection,
    InsertStep,
    IntegrationNoConnections,
    IntegrationUpdated,
    RemoveStep,
    SaveIntegration,
    SetAction,
    SetConnection,
    SetProperties,
    SetProperty,
    SetStep,
    event_from_payload,
)
from flowkit.model import (
    ENDPOINT,
    Connection,
    Integration,
    Step,
    create_endpoint_step,
    create_step,
    parse_steps,
)
from flowkit.persistence import IntegrationStore
from flowkit.properties import stringify_values
from flowkit.scheduler import TaskQueue
from flowkit.step_kinds import StepKind, StepKindCatalog

logger = logging.getLogger(__name__)

Subscriber = Callable[[FlowEvent], Any]

_PROPERTY_FIELDS = {
    "id": "id",
    "name": "name",
    "description": "description",
    "tags": "tags",
    "steps": "steps",
    "configuredProperties": "configured_properties",
    "configured_properties": "configured_properties",
}


class Subscription:
    def __init__(self, bus: "FlowEvents", callback: Subscriber) -> None:
        self._bus = bus
        self._callback = callback
        self.closed = False

    def unsubscribe(self) -> None:
        if not self.closed:
            self._bus._remove(self._callback)
            self.closed = True


class FlowEvents:
    """Ordered event bus; events emitted during dispatch are queued, never nested."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._subscribers: list[Subscriber] = []
        self._queue: deque[FlowEvent] = deque()
        self._dispatching = False

    def subscribe(self, callback: Subscriber) -> Subscription:
        if not callable(callback):
            raise TypeError(f"Subscriber must be callable (type={type(callback).__name__})")
        self._subscribers.append(callback)
        return Subscription(self, callback)

    def _remove(self, callback: Subscriber) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def emit(self, event: FlowEvent | Mapping[str, Any]) -> None:
        if isinstance(event, Mapping):
            event = event_from_payload(event)
        self._queue.append(event)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._queue:
                current = self._queue.popleft()
                for subscriber in list(self._subscribers):
                    try:
                        subscriber(current)
                    except Exception:  # noqa: BLE001
                        self._logger.exception("Flow event subscriber failed (kind=%s)", current.kind)
        finally:
            self._dispatching = False


class CurrentFlow:
    def __init__(
        self,
        store: IntegrationStore,
        *,
        catalog: StepKindCatalog | None = None,
        scheduler: TaskQueue | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._scheduler = scheduler or TaskQueue()
        self._logger = logger or logging.getLogger(__name__)
        self._integration: Integration | None = None
        self._loaded = False
        self._pending_saves: dict[str, Future[Integration]] = {}

        self.events = FlowEvents(logger=self._logger)
        self._subscription = self.events.subscribe(self.handle_event)

    @property
    def integration(self) -> Integration | None:
        return self._integration

    @property
    def steps(self) -> tuple[Step, ...] | None:
        if self._integration is None:
            return None
        return self._integration.steps

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def scheduler(self) -> TaskQueue:
        return self._scheduler

    @property
    def catalog(self) -> StepKindCatalog | None:
        return self._catalog

    def load(self, integration: Integration | Mapping[str, Any] | None) -> None:
        """Replace the document being edited.

        `integration-updated` is emitted on the next tick of the task queue, so code
        that subscribes right after calling `load` still sees it.
        """
        if integration is not None and not isinstance(integration, Integration):
            integration = Integration.from_dict(integration)
        self._loaded = False
        self._integration = integration
        self._scheduler.call_soon(self._announce_loaded)

    def _announce_loaded(self) -> None:
        self.events.emit(IntegrationUpdated(integration=self._integration))

    def emit(self, event: FlowEvent | Mapping[str, Any]) -> None:
        self.events.emit(event)

    def is_valid(self) -> bool:
        if self._integration is None:
            return False
        name = self._integration.name
        return bool(name and name.strip())

    def integration_clone(self) -> Integration | None:
        if self._integration is None:
            return None
        return self._integration.clone()

    def get_first_position(self) -> int | None:
        if self._integration is None:
            return None
        return 0

    def get_last_position(self) -> int | None:
        if self._integration is None:
            return None
        if len(self._integration.steps) <= 1:
            return 1
        return len(self._integration.steps) - 1

    def get_middle_position(self) -> int | None:
        last = self.get_last_position()
        if last is None:
            return None
        return int(math.floor(last / 2 + 0.5))

    def get_step(self, position: int | None) -> Step | None:
        if self._integration is None or position is None:
            return None
        steps = self._integration.steps
        if 0 <= position < len(steps):
            return steps[position]
        return None

    def get_start_step(self) -> Step | None:
        return self.get_step(self.get_first_position())

    def get_end_step(self) -> Step | None:
        last = self.get_last_position()
        if last is None or last < 1:
            return None
        return self.get_step(last)

    def get_start_connection(self) -> Connection | None:
        step = self.get_start_step()
        return step.connection if step is not None else None

    def get_end_connection(self) -> Connection | None:
        step = self.get_end_step()
        return step.connection if step is not None else None

    def get_middle_steps(self) -> list[Step]:
        last = self.get_last_position()
        if last is None or last < 2:
            return []
        return list(self._integration.steps[1:-1])

    def get_subsequent_steps(self, position: int) -> list[Step] | None:
        """Steps from `position` (inclusive) to the end."""
        if self._integration is None:
            return None
        return list(self._integration.steps[position:])

    def get_previous_steps(self, position: int) -> list[Step] | None:
        """Steps strictly before `position`."""
        if self._integration is None:
            return None
        return list(self._integration.steps[:position])

    def get_subsequent_connections(self, position: int) -> list[Step] | None:
        steps = self.get_subsequent_steps(position)
        if steps is None:
            return None
        return [step for step in steps if step.is_endpoint]

    def get_previous_connections(self, position: int) -> list[Step] | None:
        steps = self.get_previous_steps(position)
        if steps is None:
            return None
        return [step for step in steps if step.is_endpoint]

    def get_previous_connection(self, position: int) -> Step | None:
        connections = self.get_previous_connections(position)
        if not connections:
            return None
        return connections[-1]

    def get_subsequent_connection(self, position: int) -> Step | None:
        connections = self.get_subsequent_connections(position)
        if not connections:
            return None
        return connections[0]

    def is_empty(self) -> bool:
        if self._integration is None:
            return True
        return len(self._integration.steps) == 0

    def at_end(self, position: int) -> bool:
        if self._integration is None:
            return True
        return position >= len(self._integration.steps)

    def get_visible_step_kinds(self, position: int) -> tuple[StepKind, ...]:
        """Catalog step kinds that may be placed at `position`."""
        if self._catalog is None or self._integration is None or position < 0:
            return ()
        steps = self._integration.steps
        return self._catalog.visible_steps(position, list(steps[:position]), list(steps[position + 1 :]))

    def pending_saves(self) -> tuple[str, ...]:
        return tuple(self._pending_saves)

    def handle_event(self, event: FlowEvent) -> None:
        self._logger.debug("Flow event: %s", event.kind)

        if isinstance(event, IntegrationUpdated):
            self._loaded = True
            self._scheduler.call_soon(self._check_empty)
            return
        if isinstance(event, SaveIntegration):
            self.save(on_success=event.on_success, on_error=event.on_error)
            return
        if isinstance(event, (IntegrationNoConnections, FlowNotification)):
            return

        if self._integration is None:
            self._logger.warning("Ignoring %s: no integration loaded", event.kind)
            return

        position = getattr(event, "position", None)
        if position is not None and position < 0:
            self._logger.warning("Ignoring %s: invalid position %s", event.kind, position)
            return

        if isinstance(event, InsertStep):
            applied = self._insert_after(event.position, create_step())
        elif isinstance(event, InsertConnection):
            applied = self._insert_after(event.position, create_endpoint_step())
        elif isinstance(event, RemoveStep):
            applied = self._remove_step(event.position)
        elif isinstance(event, SetStep):
            applied = self._set_step(event.position, event.step)
        elif isinstance(event, SetProperties):
            applied = self._set_properties(event.position, event.properties)
        elif isinstance(event, SetAction):
            applied = self._set_action(event.position, event)
        elif isinstance(event, SetConnection):
            applied = self._set_connection(event.position, event.connection)
        elif isinstance(event, SetProperty):
            applied = self._set_property(event.property, event.value)
        else:
            self._logger.debug("Unhandled flow event: %s", event.kind)
            return

        if applied:
            self._maybe_do_action(event.on_save)

    def _check_empty(self) -> None:
        if self.is_empty():
            self.events.emit(IntegrationNoConnections())

    def _maybe_do_action(self, fn: Callable[..., Any] | None, *args: Any) -> None:
        if fn is None or not callable(fn):
            return
        try:
            fn(*args)
        except Exception:  # noqa: BLE001
            self._logger.exception("Flow continuation failed")

    def _write_steps(self, steps: list[Step]) -> None:
        self._integration = self._integration.with_steps(steps)

    def _put(self, steps: list[Step], position: int, step: Step) -> None:
        # Keep indices dense when writing past the end.
        while len(steps) < position:
            steps.append(create_step())
        if position == len(steps):
            steps.append(step)
        else:
            steps[position] = step

    def _insert_after(self, position: int, step: Step) -> bool:
        steps = list(self._integration.steps)
        steps.insert(position + 1, step)
        self._write_steps(steps)
        self._logger.debug("Inserted %s after position: %s", step.step_kind or "step", position)
        return True

    def _remove_step(self, position: int) -> bool:
        steps = list(self._integration.steps)
        if position == self.get_first_position() or position == self.get_last_position():
            self._put(steps, position, create_endpoint_step())
            self._logger.debug("Cleared endpoint at position: %s", position)
        elif position < len(steps):
            del steps[position]
            self._logger.debug("Removed step at position: %s", position)
        else:
            self._logger.warning("Ignoring remove at position %s: no step there", position)
            return False
        self._write_steps(steps)
        return True

    def _set_step(self, position: int, step: Step) -> bool:
        steps = list(self._integration.steps)
        self._put(steps, position, replace(create_step(), step_kind=step.step_kind))
        self._write_steps(steps)
        self._logger.debug("Set step at position: %s", position)
        return True

    def _set_properties(self, position: int, properties: Mapping[str, Any] | None) -> bool:
        normalized = stringify_values(properties)
        steps = list(self._integration.steps)
        existing = self.get_step(position) or create_step()
        step = replace(existing, configured_properties=normalized)
        self._put(steps, position, step)
        self._write_steps(steps)
        self._logger.debug(
            "Set properties at position: %s step: %s",
            position,
            json.dumps(step.to_dict(), default=str),
        )
        return True

    def _set_action(self, position: int, event: SetAction) -> bool:
        steps = list(self._integration.steps)
        existing = self.get_step(position)
        if existing is None:
            self._logger.warning("Setting action on missing step at position: %s", position)
            existing = create_step()
        step = replace(existing, action=event.action, step_kind=ENDPOINT)
        self._put(steps, position, step)
        self._write_steps(steps)
        self._logger.debug("Set action %s at position: %s", event.action.name, position)
        return True

    def _set_connection(self, position: int, connection: Connection) -> bool:
        steps = list(self._integration.steps)
        self._put(steps, position, create_endpoint_step(connection))
        self._write_steps(steps)
        self._logger.debug("Set connection %s at position: %s", connection.name, position)
        return True

    def _set_property(self, prop: str, value: Any) -> bool:
        attr = _PROPERTY_FIELDS.get(prop)
        if attr is None:
            attributes = dict(self._integration.attributes)
            attributes[prop] = value
            self._integration = replace(self._integration, attributes=attributes)
        elif attr == "steps":
            try:
                steps = parse_steps(value if value is not None else [], path="integration.steps")
            except (TypeError, ValueError) as exc:
                self._logger.warning("Ignoring integration.steps: %s", exc)
                return False
            self._write_steps(list(steps))
        elif attr == "configured_properties":
            self._integration = replace(
                self._integration, configured_properties=stringify_values(value)
            )
        elif attr == "tags":
            if not isinstance(value, (list, tuple)):
                self._logger.warning("Ignoring integration.tags: expected a list, got %s", type(value).__name__)
                return False
            self._integration = replace(self._integration, tags=tuple(str(tag) for tag in value))
        else:
            text = value if value is None or isinstance(value, str) else str(value)
            self._integration = replace(self._integration, **{attr: text})
        self._logger.debug("Set integration property: %s", prop)
        return True

    def _tagged_clone(self) -> Integration:
        integration = self._integration.clone()
        tags = list(integration.tags)
        connector_ids = [
            step.connection.connector_id
            for step in self.get_subsequent_connections(0) or []
            if step.connection is not None and step.connection.connector_id
        ]
        for connector_id in connector_ids:
            if connector_id not in tags:
                tags.append(connector_id)
        return replace(integration, tags=tuple(tags))

    def save(
        self,
        on_success: Callable[[Integration], Any] | None = None,
        on_error: Callable[[Any], Any] | None = None,
    ) -> str:
        """Persist a tagged copy of the flow; returns the save's correlation id.

        Exactly one of the continuations runs, on a later tick of the task queue.
        """
        save_id = uuid.uuid4().hex
        if self._integration is None:
            self._logger.warning("Save requested with no integration loaded (save_id=%s)", save_id)
            self._scheduler.call_soon(
                self._maybe_do_action, on_error, ValueError("No integration loaded")
            )
            return save_id

        integration = self._tagged_clone()
        self._logger.info(
            "Saving integration: %s (save_id=%s, tags=%s)",
            integration.name or integration.id or "<unnamed>",
            save_id,
            ", ".join(integration.tags) or "<none>",
        )
        try:
            future = self._store.update_or_create(integration)
        except Exception as exc:  # noqa: BLE001
            self._logger.error("Integration store rejected save %s: %s", save_id, exc)
            self._scheduler.call_soon(self._maybe_do_action, on_error, exc)
            return save_id

        self._pending_saves[save_id] = future
        future.add_done_callback(
            lambda done: self._scheduler.call_soon(
                self._complete_save, save_id, done, on_success, on_error
            )
        )
        return save_id

    def _complete_save(
        self,
        save_id: str,
        future: Future[Integration],
        on_success: Callable[[Integration], Any] | None,
        on_error: Callable[[Any], Any] | None,
    ) -> None:
        self._pending_saves.pop(save_id, None)
        if future.cancelled():
            self._logger.info("Save cancelled (save_id=%s)", save_id)
            self._maybe_do_action(on_error, CancelledError(f"Save {save_id} was cancelled"))
            return

        reason = future.exception()
        if reason is not None:
            self._logger.info("Error saving integration (save_id=%s): %s", save_id, reason)
            self._maybe_do_action(on_error, reason)
            return

        saved = future.result()
        self._logger.info("Saved integration (save_id=%s)", save_id)
        self._logger.debug(
            "Saved integration: %s", json.dumps(saved.to_dict(), indent=2, default=str)
        )
        self._maybe_do_action(on_success, saved)
