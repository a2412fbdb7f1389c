import pytest

from flowkit.model import (
    ENDPOINT,
    Action,
    Connection,
    DataShape,
    Integration,
    Step,
    create_endpoint_step,
    create_step,
)


def _payload() -> dict:
    return {
        "id": "int-1",
        "name": "Twitter to Salesforce",
        "tags": ["twitter"],
        "desiredStatus": "Draft",
        "steps": [
            {
                "id": "s1",
                "stepKind": "endpoint",
                "connection": {"id": "c1", "name": "Twitter", "connectorId": "twitter"},
                "action": {
                    "name": "Mention",
                    "outputDataShape": {"kind": "java", "type": "twitter4j.Status"},
                },
            },
            None,
            {"stepKind": "filter", "configuredProperties": {"filter": "${body} != null"}},
            {
                "stepKind": "endpoint",
                "connection": {"name": "Salesforce", "connectorId": "salesforce"},
                "action": {"name": "Create", "inputDataShape": {"kind": "json-schema"}},
            },
        ],
    }


def test_from_dict_maps_wire_names_and_drops_null_steps():
    integration = Integration.from_dict(_payload())

    assert len(integration.steps) == 3
    first = integration.steps[0]
    assert first.is_endpoint
    assert first.connection == Connection(id="c1", name="Twitter", connector_id="twitter")
    assert first.action.output_data_shape == DataShape(kind="java", type="twitter4j.Status")
    assert first.action.has_output_shape and not first.action.has_input_shape
    assert integration.steps[1].configured_properties == {"filter": "${body} != null"}
    assert integration.tags == ("twitter",)
    assert integration.attributes == {"desiredStatus": "Draft"}


def test_to_dict_round_trips_unknown_attributes():
    payload = Integration.from_dict(_payload()).to_dict()
    assert payload["desiredStatus"] == "Draft"
    assert payload["steps"][0]["connection"]["connectorId"] == "twitter"
    assert payload["steps"][2]["action"]["inputDataShape"] == {"kind": "json-schema"}
    assert "connection" not in payload["steps"][1]


def test_clone_is_equal_but_independent():
    integration = Integration.from_dict(_payload())
    clone = integration.clone()
    assert clone == integration
    assert clone is not integration
    assert clone.steps[1].configured_properties is not integration.steps[1].configured_properties


def test_integration_constructor_filters_null_steps():
    integration = Integration(name="x", steps=(create_endpoint_step(), None, create_endpoint_step()))  # type: ignore[arg-type]
    assert len(integration.steps) == 2


def test_integration_rejects_non_step_entries():
    with pytest.raises(TypeError, match=r"Integration.steps\[0\] must be a Step"):
        Integration(steps=({"stepKind": "endpoint"},))  # type: ignore[arg-type]


def test_factories_create_blank_placeholders():
    assert create_step() == Step()
    endpoint = create_endpoint_step(Connection(connector_id="ftp"))
    assert endpoint.step_kind == ENDPOINT
    assert endpoint.action is None
    assert endpoint.connection.connector_id == "ftp"


def test_data_shape_without_kind_still_counts_as_declared():
    action = Action.from_dict({"name": "x", "outputDataShape": {"type": "y"}})
    assert action.output_data_shape == DataShape(type="y")
    assert action.has_output_shape

    integration = Integration.from_dict({"steps": [{"action": {"name": "a", "outputDataShape": {"type": "T"}}}]})
    assert integration.steps[0].action.output_data_shape.to_dict() == {"type": "T"}


def test_unknown_nested_keys_survive_clone():
    raw_step = {
        "stepKind": "endpoint",
        "metadata": {"configured": "true"},
        "connection": {"connectorId": "ftp", "configuredProperties": {"host": "h"}, "icon": "ftp"},
        "action": {
            "name": "a",
            "descriptor": {"p": 1},
            "outputDataShape": {"kind": "java", "name": "Status"},
        },
    }
    integration = Integration.from_dict({"name": "x", "steps": [raw_step]})

    assert integration.steps[0].connection.attributes == {"configuredProperties": {"host": "h"}, "icon": "ftp"}
    assert integration.clone().to_dict()["steps"] == [raw_step]


def test_mapping_fields_are_read_only_copies():
    source = {"filter": "a"}
    step = Step(step_kind="filter", configured_properties=source)
    source["filter"] = "changed"

    assert step.configured_properties == {"filter": "a"}
    with pytest.raises(TypeError):
        step.configured_properties["filter"] = "b"  # type: ignore[index]

    integration = Integration.from_dict(_payload())
    with pytest.raises(TypeError):
        integration.attributes["desiredStatus"] = "Published"  # type: ignore[index]


def test_step_from_dict_rejects_wrong_types():
    with pytest.raises(TypeError, match=r"step.stepKind must be a string or null"):
        Step.from_dict({"stepKind": 3})
    with pytest.raises(TypeError, match=r"integration.steps must be a list"):
        Integration.from_dict({"steps": "nope"})
