from __future__ import annotations

import difflib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from flowkit.model import Step

VisibilityPredicate = Callable[[int, Sequence[Step], Sequence[Step]], bool]


@dataclass(frozen=True)
class PropertySpec:
    """One entry of a step kind's configurable-property schema."""

    type: str = "string"
    display_name: str | None = None
    required: bool = False
    rows: int | None = None
    default_value: Any = None
    description: str | None = None

    @classmethod
    def from_mapping(cls, raw: Any, *, path: str) -> "PropertySpec":
        if not isinstance(raw, Mapping):
            raise TypeError(f"{path} must be a mapping (type={type(raw).__name__})")

        prop_type = raw.get("type", "string")
        if not isinstance(prop_type, str) or not prop_type.strip():
            raise ValueError(f"{path}.type must be a non-empty string")

        required = raw.get("required", False)
        if not isinstance(required, bool):
            raise TypeError(f"{path}.required must be a boolean (type={type(required).__name__})")

        rows = raw.get("rows")
        if rows is not None and (isinstance(rows, bool) or not isinstance(rows, int) or rows < 1):
            raise ValueError(f"{path}.rows must be a positive int or null (got {rows!r})")

        display_name = raw.get("displayName")
        if display_name is not None and not isinstance(display_name, str):
            raise TypeError(f"{path}.displayName must be a string or null")

        return cls(
            type=prop_type.strip(),
            display_name=display_name,
            required=required,
            rows=rows,
            default_value=raw.get("defaultValue"),
            description=raw.get("description"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "required": self.required}
        if self.display_name is not None:
            out["displayName"] = self.display_name
        if self.rows is not None:
            out["rows"] = self.rows
        if self.default_value is not None:
            out["defaultValue"] = self.default_value
        if self.description is not None:
            out["description"] = self.description
        return out


@dataclass(frozen=True)
class StepKind:
    step_kind: str
    name: str
    description: str = ""
    properties: Mapping[str, PropertySpec] = field(default_factory=dict)
    visible: VisibilityPredicate | None = None
    custom: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.step_kind, str) or not self.step_kind.strip():
            raise TypeError("StepKind.step_kind must be a non-empty string")
        object.__setattr__(self, "step_kind", self.step_kind.strip())

        if not isinstance(self.name, str) or not self.name.strip():
            raise TypeError("StepKind.name must be a non-empty string")
        if not isinstance(self.description, str):
            raise TypeError("StepKind.description must be a string")

        if self.visible is not None and not callable(self.visible):
            raise TypeError(
                f"StepKind.visible must be callable or None (type={type(self.visible).__name__})"
            )

        properties: dict[str, PropertySpec] = {}
        for key, spec in (self.properties or {}).items():
            path = f"StepKind({self.step_kind}).properties.{key}"
            if isinstance(spec, PropertySpec):
                properties[str(key)] = spec
            else:
                properties[str(key)] = PropertySpec.from_mapping(spec, path=path)
        object.__setattr__(self, "properties", properties)

    def is_visible(self, position: int, previous: Sequence[Step], subsequent: Sequence[Step]) -> bool:
        if self.visible is None:
            return True
        return bool(self.visible(position, previous, subsequent))

    def matches(self, step: Step | None) -> bool:
        return step is not None and step.step_kind == self.step_kind


@dataclass(frozen=True)
class StepKindCatalog:
    """Ordered registry of step kinds; order is presentation order."""

    _kinds: tuple[StepKind, ...]

    @classmethod
    def from_kinds(cls, kinds: Iterable[StepKind]) -> "StepKindCatalog":
        entries: list[StepKind] = []
        seen: set[str] = set()
        for kind in kinds:
            if not isinstance(kind, StepKind):
                raise TypeError(f"Expected StepKind (type={type(kind).__name__})")
            if kind.step_kind in seen:
                raise ValueError(f"Duplicate step kind: {kind.step_kind}")
            seen.add(kind.step_kind)
            entries.append(kind)
        return cls(_kinds=tuple(entries))

    def get_steps(self) -> tuple[StepKind, ...]:
        return self._kinds

    def get_step_config(self, kind: str | None) -> StepKind | None:
        for entry in self._kinds:
            if entry.step_kind == kind:
                return entry
        return None

    def get_step_name(self, kind: str) -> str:
        entry = self.get_step_config(kind)
        if entry is not None:
            return entry.name
        return kind

    def get_step_description(self, kind: str) -> str:
        entry = self.get_step_config(kind)
        if entry is not None:
            return entry.description
        return ""

    def is_custom_step(self, step: Step) -> bool:
        """Whether the step's configuration form needs bespoke handling."""
        entry = self.get_step_config(step.step_kind if step is not None else None)
        return entry is not None and entry.custom

    def visible_steps(
        self, position: int, previous: Sequence[Step], subsequent: Sequence[Step]
    ) -> tuple[StepKind, ...]:
        return tuple(
            entry for entry in self._kinds if entry.is_visible(position, previous, subsequent)
        )

    def without(self, kinds: Iterable[str]) -> "StepKindCatalog":
        drop = set(kinds)
        return StepKindCatalog(_kinds=tuple(k for k in self._kinds if k.step_kind not in drop))

    def available(self) -> tuple[str, ...]:
        return tuple(entry.step_kind for entry in self._kinds)

    def describe(self) -> tuple[dict[str, Any], ...]:
        return tuple(
            {
                "stepKind": entry.step_kind,
                "name": entry.name,
                "description": entry.description,
                "custom": entry.custom,
                "conditional": entry.visible is not None,
                "properties": {key: spec.to_dict() for key, spec in entry.properties.items()},
            }
            for entry in self._kinds
        )

    def suggest(self, kind: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (kind or "").strip()
        if not key:
            return ()
        return tuple(difflib.get_close_matches(key, list(self.available()), n=limit))
