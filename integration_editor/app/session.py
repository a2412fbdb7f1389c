from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any

from flowkit.current_flow import CurrentFlow
from flowkit.model import Integration
from flowkit.persistence import InMemoryIntegrationStore, IntegrationStore
from flowkit.scheduler import TaskQueue

from integration_editor.framework.config import EditorConfig, StoreConfig
from integration_editor.framework.file_store import JsonFileIntegrationStore
from integration_editor.steps.registry import build_step_catalog

_IDLE_SLEEP_SECONDS = 0.01


class IntegrationSaveError(RuntimeError):
    def __init__(self, reason: Any) -> None:
        super().__init__(f"Integration save failed: {reason}")
        self.reason = reason


def make_store(store_cfg: StoreConfig) -> IntegrationStore:
    if store_cfg.backend == "file":
        if not store_cfg.path:
            raise ValueError("store.path is required when store.backend is 'file'")
        return JsonFileIntegrationStore(store_cfg.path)
    if store_cfg.backend == "memory":
        return InMemoryIntegrationStore()
    raise ValueError(f"Unknown store backend: {store_cfg.backend}")


class EditSession:
    """Drives a `CurrentFlow` to completion for synchronous callers (CLI, scripts)."""

    def __init__(self, flow: CurrentFlow, *, config: EditorConfig, logger: logging.Logger) -> None:
        self.flow = flow
        self.config = config
        self.logger = logger

    @classmethod
    def from_config(
        cls,
        config: EditorConfig,
        *,
        logger: logging.Logger | None = None,
        store: IntegrationStore | None = None,
    ) -> "EditSession":
        session_logger = logger or logging.getLogger("integration_editor")
        flow = CurrentFlow(
            store if store is not None else make_store(config.store),
            catalog=build_step_catalog(config.disabled_step_kinds),
            scheduler=TaskQueue(),
            logger=session_logger,
        )
        return cls(flow, config=config, logger=session_logger)

    def _drain(self) -> None:
        self.flow.scheduler.run_until_idle(max_ticks=self.config.session_timeout_ticks)

    def open(self, integration: Integration | Mapping[str, Any]) -> Integration:
        self.flow.load(integration)
        self._drain()
        self.logger.info(
            "Opened integration %s (%d steps)",
            self.flow.integration.name or self.flow.integration.id or "<unnamed>",
            len(self.flow.steps or ()),
        )
        return self.flow.integration

    def apply(self, payloads: Iterable[Mapping[str, Any]]) -> Integration | None:
        for idx, payload in enumerate(payloads):
            if not isinstance(payload, Mapping):
                raise TypeError(f"commands[{idx}] must be a mapping (type={type(payload).__name__})")
            self.flow.emit(payload)
            self._drain()
        return self.flow.integration

    def save(self) -> Integration:
        outcome: dict[str, Any] = {}
        save_id = self.flow.save(
            on_success=lambda saved: outcome.setdefault("saved", saved),
            on_error=lambda reason: outcome.setdefault("error", reason),
        )

        for _ in range(self.config.session_timeout_ticks):
            if outcome:
                break
            if not self.flow.scheduler.run_pending():
                time.sleep(_IDLE_SLEEP_SECONDS)
        else:
            self.flow.scheduler.run_pending()

        if "error" in outcome:
            raise IntegrationSaveError(outcome["error"])
        if "saved" not in outcome:
            raise RuntimeError(
                f"Save {save_id} did not complete within {self.config.session_timeout_ticks} ticks"
            )
        return outcome["saved"]
