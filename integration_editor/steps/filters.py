from __future__ import annotations

from flowkit.step_kinds import PropertySpec, StepKind

from integration_editor.steps.kinds import ADVANCED_FILTER, BASIC_FILTER

BASIC_STEP = StepKind(
    step_kind=BASIC_FILTER,
    name="Basic Filter",
    description=(
        "Continue the integration only if criteria you specify in simple input fields are met. "
        "Suitable for most integrations."
    ),
    custom=True,
)

ADVANCED_STEP = StepKind(
    step_kind=ADVANCED_FILTER,
    name="Advanced Filter",
    description=(
        "Continue the integration only if criteria you define in scripting language "
        "expressions are met."
    ),
    properties={
        "filter": PropertySpec(
            type="textarea",
            display_name="Only continue if",
            required=True,
            rows=10,
        ),
    },
)

__all_steps__ = (BASIC_STEP, ADVANCED_STEP)
