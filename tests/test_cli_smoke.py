import json
from pathlib import Path

import pytest

from integration_editor import cli


def _write_config(tmp_path: Path, *, backend: str = "memory") -> Path:
    lines = [
        "editor:",
        f"  log_path: '{(tmp_path / 'logs').as_posix()}'",
        "  log_level: WARNING",
        "store:",
        f"  backend: {backend}",
    ]
    if backend == "file":
        lines.append(f"  path: '{(tmp_path / 'integrations').as_posix()}'")
    config_path = tmp_path / "config.yaml"
    config_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return config_path


def _write_integration(tmp_path: Path, *, middle: bool = False) -> Path:
    steps = [
        {
            "stepKind": "endpoint",
            "connection": {"name": "Twitter", "connectorId": "twitter"},
            "action": {"name": "Mention", "outputDataShape": {"kind": "java"}},
        },
        {
            "stepKind": "endpoint",
            "connection": {"name": "Salesforce", "connectorId": "salesforce"},
            "action": {"name": "Create", "inputDataShape": {"kind": "json-schema"}},
        },
    ]
    if middle:
        steps.insert(1, {"stepKind": "filter", "configuredProperties": {"filter": "${body} != null"}})
    path = tmp_path / "integration.json"
    path.write_text(json.dumps({"name": "Mentions to CRM", "steps": steps}), encoding="utf-8")
    return path


@pytest.fixture
def config_env(tmp_path, monkeypatch):
    config_path = _write_config(tmp_path)
    monkeypatch.setenv("INTEGRATION_EDITOR_CONFIG", str(config_path))
    return config_path


def test_cli_list_steps_smoke(capsys, config_env):
    rc = cli.main(["list-steps"])
    assert rc == 0

    rows = json.loads(capsys.readouterr().out)
    assert [row["stepKind"] for row in rows] == ["mapper", "rule-filter", "filter"]
    assert rows[0]["custom"] is True
    assert rows[0]["conditional"] is True


def test_cli_list_steps_for_position(tmp_path, capsys, config_env):
    integration_path = _write_integration(tmp_path, middle=True)

    rc = cli.main(["list-steps", "--integration", str(integration_path), "--position", "1"])
    assert rc == 0

    rows = json.loads(capsys.readouterr().out)
    assert "mapper" in [row["stepKind"] for row in rows]


def test_cli_show_summarizes_flow(tmp_path, capsys, config_env):
    integration_path = _write_integration(tmp_path, middle=True)

    rc = cli.main(["show", str(integration_path)])
    assert rc == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["name"] == "Mentions to CRM"
    assert summary["valid"] is True
    assert (summary["firstPosition"], summary["middlePosition"], summary["lastPosition"]) == (0, 1, 2)
    assert [step["name"] for step in summary["steps"]] == ["Twitter", "Advanced Filter", "Salesforce"]


def test_cli_edit_and_save(tmp_path, capsys):
    config_path = _write_config(tmp_path, backend="file")
    integration_path = _write_integration(tmp_path)
    commands_path = tmp_path / "commands.yaml"
    commands_path.write_text(
        "\n".join(
            [
                "commands:",
                "  - kind: integration-insert-step",
                "    position: 0",
                "  - kind: integration-set-step",
                "    position: 1",
                "    step:",
                "      stepKind: mapper",
                "  - kind: integration-set-property",
                "    property: description",
                "    value: Route mentions into the CRM",
                "",
            ]
        ),
        encoding="utf-8",
    )

    rc = cli.main(
        ["--config", str(config_path), "edit", str(integration_path), "--commands", str(commands_path), "--save"]
    )
    assert rc == 0

    result = json.loads(capsys.readouterr().out)
    assert [step["stepKind"] for step in result["steps"]] == ["endpoint", "mapper", "endpoint"]
    assert result["description"] == "Route mentions into the CRM"
    assert result["tags"] == ["twitter", "salesforce"]

    stored = tmp_path / "integrations" / f"{result['id']}.json"
    assert json.loads(stored.read_text(encoding="utf-8")) == result


def test_cli_edit_writes_output_file(tmp_path, config_env):
    integration_path = _write_integration(tmp_path)
    commands_path = tmp_path / "commands.yaml"
    commands_path.write_text("commands:\n  - kind: integration-remove-step\n    position: 0\n", encoding="utf-8")
    output_path = tmp_path / "out.json"

    rc = cli.main(["edit", str(integration_path), "--commands", str(commands_path), "--output", str(output_path)])
    assert rc == 0

    result = json.loads(output_path.read_text(encoding="utf-8"))
    assert result["steps"][0] == {"stepKind": "endpoint"}
    assert result["steps"][1]["connection"]["name"] == "Salesforce"


def test_cli_reports_bad_input(tmp_path, capsys, config_env):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    assert cli.main(["show", str(broken)]) == 2
    assert "Invalid JSON" in capsys.readouterr().err

    assert cli.main(["show", str(tmp_path / "missing.json")]) == 2

    commands_path = tmp_path / "commands.yaml"
    commands_path.write_text("- kind: integration-insert-step\n", encoding="utf-8")
    integration_path = _write_integration(tmp_path)
    assert cli.main(["edit", str(integration_path), "--commands", str(commands_path)]) == 2
