from __future__ import annotations

from functools import lru_cache
from typing import Iterable

from flowkit.step_kinds import StepKind, StepKindCatalog


@lru_cache(maxsize=1)
def get_step_catalog() -> StepKindCatalog:
    # Module order is presentation order: mapper first, then the filters.
    from integration_editor.steps import filters, mapper  # noqa: PLC0415

    kinds: list[StepKind] = []
    for module in (mapper, filters):
        exported = getattr(module, "__all_steps__", None)
        if isinstance(exported, (list, tuple)):
            kinds.extend(exported)

    return StepKindCatalog.from_kinds(kinds)


def build_step_catalog(disabled: Iterable[str] = ()) -> StepKindCatalog:
    catalog = get_step_catalog()
    disabled = [kind.strip() for kind in disabled if kind and kind.strip()]
    for kind in disabled:
        if catalog.get_step_config(kind) is None:
            suggestions = catalog.suggest(kind)
            hint = f" (did you mean: {', '.join(suggestions)})" if suggestions else ""
            available = ", ".join(catalog.available()) or "<none>"
            raise ValueError(f"Unknown step kind in catalog.disabled: {kind}{hint} (available: {available})")
    if not disabled:
        return catalog
    return catalog.without(disabled)
