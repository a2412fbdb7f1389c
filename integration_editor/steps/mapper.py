from __future__ import annotations

from collections.abc import Sequence

from flowkit.model import Step
from flowkit.step_kinds import StepKind

from integration_editor.steps.kinds import DATA_MAPPER

KIND_ID = DATA_MAPPER


def has_output_shape(step: Step) -> bool:
    return step.action is not None and step.action.has_output_shape


def has_input_shape(step: Step) -> bool:
    return step.action is not None and step.action.has_input_shape


def mapper_visible(position: int, previous: Sequence[Step], subsequent: Sequence[Step]) -> bool:
    """A mapper needs something upstream producing data and something downstream consuming it."""
    if not any(has_output_shape(step) for step in previous):
        return False
    if not any(has_input_shape(step) for step in subsequent):
        return False
    return True


STEP = StepKind(
    step_kind=KIND_ID,
    name="Data Mapper",
    description="Map fields from the input type to the output type",
    properties={},
    visible=mapper_visible,
    custom=True,
)

__all_steps__ = (STEP,)
