from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from flowkit.config_namespace import ConfigNamespace

StoreBackend = Literal["memory", "file"]
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class StoreConfig:
    backend: StoreBackend = "memory"
    path: str | None = None


@dataclass(frozen=True)
class EditorConfig:
    log_path: str | None = None
    log_level: str = "INFO"
    session_timeout_ticks: int = 100
    store: StoreConfig = field(default_factory=StoreConfig)
    disabled_step_kinds: tuple[str, ...] = ()

    @classmethod
    def from_dict(
        cls,
        cfg: Mapping[str, Any] | None,
        *,
        config_dir: str | None = None,
    ) -> tuple["EditorConfig", list[str]]:
        """
        Parse the editor config mapping.

        Relative paths are resolved against `config_dir` when given. Unknown keys raise
        ValueError; recoverable oddities come back as warnings.
        """

        if cfg is None:
            cfg = {}
        if not isinstance(cfg, Mapping):
            raise TypeError(f"Editor config must be a mapping (type={type(cfg).__name__})")

        warnings: list[str] = []
        root = ConfigNamespace(dict(cfg), path="")

        editor = root.namespace("editor")
        log_path = _resolve_path(editor.get_str("log_path", default=None), config_dir)
        log_level = editor.get_str("log_level", default="INFO", choices=LOG_LEVELS)
        timeout_ticks = editor.get_int("session_timeout_ticks", default=100, min_value=1)

        store = root.namespace("store")
        backend = store.get_str("backend", default="memory", choices=("memory", "file")) or "memory"
        store_path = _resolve_path(store.get_str("path", default=None), config_dir)
        if backend == "file" and not store_path:
            raise ValueError("store.path is required when store.backend is 'file'")
        if backend == "memory" and store_path:
            warnings.append("store.path is ignored when store.backend is 'memory'")
            store_path = None

        catalog = root.namespace("catalog")
        disabled = catalog.get_list_str("disabled", default=[])

        root.assert_consumed()

        return (
            cls(
                log_path=log_path,
                log_level=log_level or "INFO",
                session_timeout_ticks=timeout_ticks,
                store=StoreConfig(backend=backend, path=store_path),  # type: ignore[arg-type]
                disabled_step_kinds=tuple(disabled),
            ),
            warnings,
        )


def _resolve_path(value: str | None, config_dir: str | None) -> str | None:
    if value is None:
        return None
    expanded = os.path.expandvars(os.path.expanduser(value))
    if config_dir and not os.path.isabs(expanded):
        expanded = os.path.join(config_dir, expanded)
    return os.path.abspath(expanded) if config_dir else expanded
