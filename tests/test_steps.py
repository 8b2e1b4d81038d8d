"""Step sequencing with the optional variation and add-on steps."""

import pytest

from booking_client.domain.steps import (
    BookingStep,
    InvalidStepError,
    StepContext,
    next_step,
    previous_step,
    step_sequence,
)

S = BookingStep


def test_full_sequence():
    assert step_sequence(StepContext(has_addons=True, single_variation=False)) == [
        S.CATEGORY, S.SERVICE, S.VARIATION, S.STAFF, S.ADDONS,
        S.DATETIME, S.CLIENT, S.CONSENT, S.SUMMARY,
    ]


def test_addons_step_omitted_without_addons():
    steps = step_sequence(StepContext(has_addons=False))
    assert S.ADDONS not in steps
    assert next_step(S.STAFF, StepContext(has_addons=False)) is S.DATETIME


def test_addons_step_present_with_addons():
    assert next_step(S.STAFF, StepContext(has_addons=True)) is S.ADDONS
    assert next_step(S.ADDONS, StepContext(has_addons=True)) is S.DATETIME


def test_back_from_datetime_skips_missing_addons():
    assert previous_step(S.DATETIME, StepContext(has_addons=False)) is S.STAFF
    assert previous_step(S.DATETIME, StepContext(has_addons=True)) is S.ADDONS


def test_single_variation_bypasses_variation_step():
    ctx = StepContext(single_variation=True)
    assert next_step(S.SERVICE, ctx) is S.STAFF
    assert previous_step(S.STAFF, ctx) is S.SERVICE


def test_summary_advances_to_confirmed():
    assert next_step(S.SUMMARY, StepContext()) is S.CONFIRMED


def test_no_step_before_first():
    assert previous_step(S.CATEGORY, StepContext()) is None


def test_step_outside_sequence_is_invalid():
    with pytest.raises(InvalidStepError):
        next_step(S.ADDONS, StepContext(has_addons=False))
    with pytest.raises(InvalidStepError):
        previous_step(S.VARIATION, StepContext(single_variation=True))
