from __future__ import annotations

import json
import logging
import os
import uuid
from concurrent.futures import Executor, Future
from dataclasses import replace

from flowkit.model import Integration

logger = logging.getLogger(__name__)


class JsonFileIntegrationStore:
    """Stores each integration as `<id>.json` under one directory."""

    def __init__(self, directory: str, *, executor: Executor | None = None) -> None:
        if not isinstance(directory, str) or not directory.strip():
            raise ValueError("directory must be a non-empty string")
        self._directory = directory
        self._executor = executor

    @property
    def directory(self) -> str:
        return self._directory

    def _path(self, integration_id: str) -> str:
        if not integration_id or os.sep in integration_id or integration_id.startswith("."):
            raise ValueError(f"Invalid integration id: {integration_id!r}")
        return os.path.join(self._directory, f"{integration_id}.json")

    def _write(self, integration: Integration) -> Integration:
        stored = integration if integration.id else replace(integration, id=uuid.uuid4().hex)
        os.makedirs(self._directory, exist_ok=True)
        path = self._path(stored.id)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(stored.to_dict(), handle, ensure_ascii=False, indent=2)
            handle.write("\n")
        os.replace(tmp_path, path)
        logger.debug("Wrote integration %s to %s", stored.id, path)
        return stored

    def update_or_create(self, integration: Integration) -> "Future[Integration]":
        if self._executor is not None:
            return self._executor.submit(self._write, integration)

        future: Future[Integration] = Future()
        try:
            future.set_result(self._write(integration))
        except Exception as exc:  # noqa: BLE001
            future.set_exception(exc)
        return future

    def get(self, integration_id: str) -> Integration | None:
        path = self._path(integration_id)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as handle:
            return Integration.from_dict(json.load(handle), path=os.path.basename(path))

    def list(self) -> list[Integration]:
        if not os.path.isdir(self._directory):
            return []
        found: list[Integration] = []
        for name in sorted(os.listdir(self._directory)):
            if name.endswith(".json"):
                item = self.get(name[: -len(".json")])
                if item is not None:
                    found.append(item)
        return found
