from __future__ import annotations

import math

import pytest

from calccore.core.schedule import compute_accrual, compute_annuity, compute_linear, compute_schedule
from calccore.schemas.schedule import Policy, ScheduleRequest

COMPUTE = [compute_annuity, compute_linear, compute_accrual]


def request_for(policy: Policy, **overrides) -> ScheduleRequest:
    values = dict(principal=1000.0, periodic_rate=0.01, period_count=12, policy=policy)
    values.update(overrides)
    return ScheduleRequest(**values)


@pytest.mark.parametrize("compute", COMPUTE)
@pytest.mark.parametrize("count", [0, -3])
def test_non_positive_period_count_is_rejected(compute, count):
    outcome = compute(request_for(Policy.ANNUITY, period_count=count))

    assert not outcome.ok
    assert outcome.result is None
    assert any("period_count" in message for message in outcome.errors)


@pytest.mark.parametrize("compute", COMPUTE)
@pytest.mark.parametrize("rate", [math.inf, -math.inf, math.nan])
def test_non_finite_rate_is_rejected(compute, rate):
    outcome = compute(request_for(Policy.LINEAR, periodic_rate=rate))

    assert not outcome.ok
    assert any("periodic_rate" in message for message in outcome.errors)


@pytest.mark.parametrize("compute", COMPUTE)
def test_negative_principal_is_rejected(compute):
    outcome = compute(request_for(Policy.ACCRUAL, principal=-1.0))

    assert not outcome.ok
    assert any("principal" in message for message in outcome.errors)


def test_loan_needs_something_to_repay():
    assert not compute_annuity(request_for(Policy.ANNUITY, principal=0.0)).ok
    assert not compute_linear(request_for(Policy.LINEAR, principal=0.0)).ok


def test_all_problems_are_reported_at_once():
    outcome = compute_schedule(
        request_for(Policy.ANNUITY, principal=-5.0, periodic_rate=math.nan, period_count=0, upfront_fee=-1.0)
    )

    assert len(outcome.errors) == 4


def test_negative_rate_loan_degrades_to_interest_free():
    result = compute_annuity(request_for(Policy.ANNUITY, periodic_rate=-0.02, period_count=4)).result

    assert all(p.interest == 0.0 for p in result.periods)
    assert result.final_balance == 0.0


def test_operation_overrides_policy_tag():
    outcome = compute_linear(request_for(Policy.ACCRUAL))

    assert outcome.result.policy is Policy.LINEAR
    assert outcome.result.final_balance == 0.0


def test_annuity_growth_beyond_float_range_is_rejected():
    outcome = compute_annuity(request_for(Policy.ANNUITY, periodic_rate=1.0, period_count=1100))

    assert not outcome.ok
    assert outcome.result is None
    assert any("overflows" in message for message in outcome.errors)


def test_runaway_accrual_balance_is_rejected():
    outcome = compute_accrual(request_for(Policy.ACCRUAL, periodic_rate=1.0, period_count=1100))

    assert not outcome.ok
    assert outcome.result is None
    assert any("overflows" in message for message in outcome.errors)


def test_large_but_representable_growth_is_kept():
    outcome = compute_accrual(request_for(Policy.ACCRUAL, periodic_rate=1.0, period_count=500))

    assert outcome.ok
    assert math.isfinite(outcome.result.final_balance)
