from __future__ import annotations

import argparse
import json
import os
import sys
import uuid
from collections.abc import Sequence
from typing import Any

from flowkit.current_flow import CurrentFlow
from flowkit.model import Integration, Step
from flowkit.persistence import InMemoryIntegrationStore

from integration_editor.foundation.config_io import load_config, load_yaml_mapping
from integration_editor.foundation.logging_utils import setup_session_logger
from integration_editor.framework.config import EditorConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="integration-editor", add_help=True)
    parser.add_argument("--config", default=None, help="Path to an editor config YAML file")
    sub = parser.add_subparsers(dest="command", required=True)

    list_steps = sub.add_parser("list-steps", help="List step kinds in the catalog")
    list_steps.add_argument("--integration", default=None, help="Integration JSON file")
    list_steps.add_argument("--position", type=int, default=None, help="Only kinds visible here")

    show = sub.add_parser("show", help="Summarize an integration flow")
    show.add_argument("integration", help="Integration JSON file")

    edit = sub.add_parser("edit", help="Apply flow commands to an integration")
    edit.add_argument("integration", help="Integration JSON file")
    edit.add_argument("--commands", required=True, help="YAML file with a list of flow commands")
    edit.add_argument("--save", action="store_true", help="Persist through the configured store")
    edit.add_argument("--output", default=None, help="Write the result here instead of stdout")

    return parser


def _print_json(value: Any) -> None:
    sys.stdout.write(json.dumps(value, ensure_ascii=False, indent=2))
    sys.stdout.write("\n")


def _load_editor_config(config_path: str | None) -> EditorConfig:
    try:
        raw, meta = load_config(config_path=config_path)
    except FileNotFoundError:
        if config_path is not None or os.environ.get("INTEGRATION_EDITOR_CONFIG", "").strip():
            raise
        raw, meta = {}, {"config_dir": None}
    cfg, warnings = EditorConfig.from_dict(raw, config_dir=meta.get("config_dir"))
    for warning in warnings:
        sys.stderr.write(f"WARNING: {warning}\n")
    return cfg


def _read_integration(path: str) -> Integration:
    with open(path, "r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    return Integration.from_dict(payload, path=os.path.basename(path))


def _read_commands(path: str) -> list[dict[str, Any]]:
    raw = load_yaml_mapping(path)
    commands = raw.get("commands")
    if not isinstance(commands, list):
        raise ValueError(f"{path} must contain a 'commands' list")
    return commands


def _step_label(flow: CurrentFlow, step: Step) -> str | None:
    if step.is_endpoint:
        return step.connection.name if step.connection else None
    if step.step_kind and flow.catalog is not None:
        return flow.catalog.get_step_name(step.step_kind)
    return step.step_kind


def _summary(flow: CurrentFlow) -> dict[str, Any]:
    return {
        "name": flow.integration.name,
        "valid": flow.is_valid(),
        "firstPosition": flow.get_first_position(),
        "middlePosition": flow.get_middle_position(),
        "lastPosition": flow.get_last_position(),
        "tags": list(flow.integration.tags),
        "steps": [
            {
                "position": idx,
                "stepKind": step.step_kind,
                "name": _step_label(flow, step),
                "action": step.action.name if step.action else None,
            }
            for idx, step in enumerate(flow.steps or ())
        ],
    }


def _run(args: argparse.Namespace) -> int:
    from integration_editor.app.session import EditSession

    cfg = _load_editor_config(args.config)
    session_id = uuid.uuid4().hex[:12]
    logger, _log_file = setup_session_logger(cfg.log_path, session_id, level=cfg.log_level)

    if args.command == "list-steps":
        session = EditSession.from_config(cfg, logger=logger, store=InMemoryIntegrationStore())
        catalog = session.flow.catalog
        if args.integration is None:
            _print_json(list(catalog.describe()))
            return 0
        session.open(_read_integration(args.integration))
        position = args.position if args.position is not None else session.flow.get_middle_position()
        visible = {kind.step_kind for kind in session.flow.get_visible_step_kinds(position)}
        _print_json([row for row in catalog.describe() if row["stepKind"] in visible])
        return 0

    if args.command == "show":
        session = EditSession.from_config(cfg, logger=logger, store=InMemoryIntegrationStore())
        session.open(_read_integration(args.integration))
        _print_json(_summary(session.flow))
        return 0

    if args.command == "edit":
        session = EditSession.from_config(cfg, logger=logger)
        session.open(_read_integration(args.integration))
        result = session.apply(_read_commands(args.commands))
        if args.save:
            result = session.save()
        if args.output:
            with open(args.output, "w", encoding="utf-8") as handle:
                json.dump(result.to_dict(), handle, ensure_ascii=False, indent=2)
                handle.write("\n")
        else:
            _print_json(result.to_dict())
        return 0

    raise AssertionError(f"Unhandled command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    from integration_editor.app.session import IntegrationSaveError

    args = build_parser().parse_args(list(argv) if argv is not None else None)
    try:
        return _run(args)
    except (ValueError, TypeError, FileNotFoundError, IntegrationSaveError) as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
