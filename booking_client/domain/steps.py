"""
Booking step sequence as pure transition functions.

The linear sequence has two runtime-dependent gaps:
  - VARIATION is dropped when the chosen service has a single variation
  - ADDONS is only present when the chosen service has add-ons

Both next and previous steps are looked up in the sequence recomputed from
the current StepContext, so skipping a step forward also skips it backward.
"""

from dataclasses import dataclass
from enum import Enum


class BookingStep(str, Enum):
    CATEGORY = "category"
    SERVICE = "service"
    VARIATION = "variation"
    STAFF = "staff"
    ADDONS = "addons"
    DATETIME = "datetime"
    CLIENT = "client"
    CONSENT = "consent"
    SUMMARY = "summary"
    CONFIRMED = "confirmed"  # shown after a successful submission


_FULL_SEQUENCE = [
    BookingStep.CATEGORY,
    BookingStep.SERVICE,
    BookingStep.VARIATION,
    BookingStep.STAFF,
    BookingStep.ADDONS,
    BookingStep.DATETIME,
    BookingStep.CLIENT,
    BookingStep.CONSENT,
    BookingStep.SUMMARY,
]


@dataclass(frozen=True)
class StepContext:
    """Facts discovered at runtime that decide the optional steps."""

    has_addons: bool = False
    single_variation: bool = False


class InvalidStepError(Exception):
    """Raised when an action is not valid from the current step."""


def step_sequence(context: StepContext) -> list[BookingStep]:
    steps = []
    for step in _FULL_SEQUENCE:
        if step is BookingStep.VARIATION and context.single_variation:
            continue
        if step is BookingStep.ADDONS and not context.has_addons:
            continue
        steps.append(step)
    return steps


def _position(current: BookingStep, steps: list[BookingStep]) -> int:
    try:
        return steps.index(current)
    except ValueError:
        raise InvalidStepError(
            f"Step '{current.value}' is not part of the sequence "
            f"{[s.value for s in steps]}"
        ) from None


def next_step(current: BookingStep, context: StepContext) -> BookingStep:
    """The step after current; SUMMARY advances to CONFIRMED."""
    steps = step_sequence(context)
    i = _position(current, steps)
    if i + 1 < len(steps):
        return steps[i + 1]
    return BookingStep.CONFIRMED


def previous_step(current: BookingStep, context: StepContext) -> BookingStep | None:
    """The step before current, or None on the first step."""
    steps = step_sequence(context)
    i = _position(current, steps)
    return steps[i - 1] if i > 0 else None
