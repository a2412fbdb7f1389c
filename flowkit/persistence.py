from __future__ import annotations

import uuid
from concurrent.futures import Future
from dataclasses import replace
from typing import Protocol

from flowkit.model import Integration


class IntegrationStore(Protocol):
    def update_or_create(self, integration: Integration) -> "Future[Integration]":
        """Persist the integration; the future resolves to the stored document."""


def completed(value: Integration) -> "Future[Integration]":
    future: Future[Integration] = Future()
    future.set_result(value)
    return future


def failed(reason: BaseException) -> "Future[Integration]":
    future: Future[Integration] = Future()
    future.set_exception(reason)
    return future


class InMemoryIntegrationStore:
    def __init__(self) -> None:
        self._items: dict[str, Integration] = {}

    def update_or_create(self, integration: Integration) -> "Future[Integration]":
        stored = integration if integration.id else replace(integration, id=uuid.uuid4().hex)
        self._items[stored.id] = stored.clone()
        return completed(stored.clone())

    def get(self, integration_id: str) -> Integration | None:
        found = self._items.get(integration_id)
        return found.clone() if found is not None else None

    def list(self) -> list[Integration]:
        return [self._items[key].clone() for key in sorted(self._items)]
