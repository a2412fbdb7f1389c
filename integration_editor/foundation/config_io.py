from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV_VAR = "INTEGRATION_EDITOR_CONFIG"

_ROOT_MARKERS = ("pyproject.toml", ".git")


def find_repo_root(start: str | os.PathLike[str] | None = None) -> str:
    here = Path(start or os.getcwd()).resolve()
    if here.is_file():
        here = here.parent
    for candidate in (here, *here.parents):
        if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
            return str(candidate)
    raise FileNotFoundError(f"No {' or '.join(_ROOT_MARKERS)} found in {here} or its parents")


def load_yaml_mapping(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return dict(payload)


def deep_merge(base: Any, overlay: Any, *, path: str) -> Any:
    """Merge `overlay` onto `base`: mappings merge per key, anything else is replaced.

    A null in the overlay clears the base value. Replacing a section with a non-mapping
    is an error.
    """
    if isinstance(base, Mapping) and isinstance(overlay, Mapping):
        merged = dict(base)
        for key, value in overlay.items():
            child = f"{path}.{key}" if path else str(key)
            merged[key] = deep_merge(base.get(key), value, path=child)
        return merged
    if isinstance(base, Mapping) and overlay is not None:
        raise ValueError(
            f"Invalid config overlay merge at {path or '<root>'}: "
            f"section cannot be replaced by {type(overlay).__name__}"
        )
    return overlay


def _single_file(path: str, mode: str) -> tuple[dict[str, Any], dict[str, Any]]:
    resolved = os.path.abspath(os.path.expandvars(os.path.expanduser(path)))
    return load_yaml_mapping(resolved), {
        "mode": mode,
        "paths": [resolved],
        "config_dir": os.path.dirname(resolved),
    }


def load_config(
    *,
    config_path: str | os.PathLike[str] | None = None,
    env_var: str | None = CONFIG_ENV_VAR,
    start_dir: str | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Load the editor config and return `(mapping, meta)`.

    Resolution order: explicit `config_path`, then the env var, then
    `<repo root>/config/config.yaml` with `config/config.local.yaml` merged on top.
    """
    if config_path is not None and str(config_path).strip():
        return _single_file(str(config_path).strip(), "explicit")
    from_env = os.environ.get(env_var, "").strip() if env_var else ""
    if config_path is None and from_env:
        return _single_file(from_env, "env")

    config_dir = os.path.join(find_repo_root(start_dir), "config")
    base_path = os.path.join(config_dir, "config.yaml")
    if not os.path.exists(base_path):
        raise FileNotFoundError(f"Missing base config file: {base_path}")

    cfg = load_yaml_mapping(base_path)
    paths = [os.path.abspath(base_path)]
    local_path = os.path.join(config_dir, "config.local.yaml")
    if os.path.exists(local_path):
        cfg = deep_merge(cfg, load_yaml_mapping(local_path), path="")
        paths.append(os.path.abspath(local_path))

    return cfg, {
        "mode": "base+local" if len(paths) > 1 else "base",
        "paths": paths,
        "config_dir": config_dir,
    }
