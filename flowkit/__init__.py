"""Reusable integration-flow editing kernel (model, step-kind catalog, state machine).

This package is intentionally independent of `integration_editor.*`. Concrete step
kinds, configuration files, storage backends and the CLI live in the consuming
application.
"""

from flowkit.config_namespace import ConfigNamespace
from flowkit.current_flow import CurrentFlow, FlowEvents, Subscription
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
    coerce_position,
    event_from_payload,
    event_to_payload,
)
from flowkit.model import (
    ENDPOINT,
    Action,
    Connection,
    DataShape,
    Integration,
    Step,
    create_endpoint_step,
    create_step,
    parse_steps,
)
from flowkit.persistence import InMemoryIntegrationStore, IntegrationStore
from flowkit.properties import classify_property_value, normalize_property_value, stringify_values
from flowkit.scheduler import TaskQueue
from flowkit.step_kinds import PropertySpec, StepKind, StepKindCatalog

__all__ = [
    "ENDPOINT",
    "Action",
    "ConfigNamespace",
    "Connection",
    "CurrentFlow",
    "DataShape",
    "FlowEvent",
    "FlowEvents",
    "FlowNotification",
    "InMemoryIntegrationStore",
    "InsertConnection",
    "InsertStep",
    "Integration",
    "IntegrationNoConnections",
    "IntegrationStore",
    "IntegrationUpdated",
    "PropertySpec",
    "RemoveStep",
    "SaveIntegration",
    "SetAction",
    "SetConnection",
    "SetProperties",
    "SetProperty",
    "SetStep",
    "Step",
    "StepKind",
    "StepKindCatalog",
    "Subscription",
    "TaskQueue",
    "classify_property_value",
    "coerce_position",
    "create_endpoint_step",
    "create_step",
    "event_from_payload",
    "event_to_payload",
    "normalize_property_value",
    "parse_steps",
    "stringify_values",
]
