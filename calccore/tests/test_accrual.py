from __future__ import annotations

from datetime import date
from math import isclose

from calccore.core.schedule import compute_accrual, real_values
from calccore.schemas.schedule import Policy, ScheduleRequest


def deposit_request(**overrides) -> ScheduleRequest:
    values = dict(
        principal=1000.0,
        periodic_rate=0.005,
        period_count=12,
        policy=Policy.ACCRUAL,
        periodic_contribution=100.0,
        start_date=date(2025, 1, 1),
    )
    values.update(overrides)
    return ScheduleRequest(**values)


def test_first_period_contribution_earns_growth():
    first = compute_accrual(deposit_request()).result.periods[0]

    assert first.opening_balance == 1000.0
    assert isclose(first.closing_balance, 1105.50, abs_tol=1e-9)
    assert isclose(first.interest, 5.50, abs_tol=1e-9)
    assert first.principal_movement == 100.0


def test_contribution_is_added_before_growth():
    for period in compute_accrual(deposit_request()).result.periods:
        assert period.closing_balance > period.opening_balance + period.principal_movement


def test_zero_growth_accumulates_contributions_only():
    """
    With zero rate the balance is the opening amount plus every contribution
    """
    result = compute_accrual(deposit_request(periodic_rate=0.0)).result

    assert isclose(result.final_balance, 1000.0 + 12 * 100.0, abs_tol=1e-9)
    assert isclose(result.total_interest, 0.0, abs_tol=1e-9)
    assert isclose(result.total_principal_moved, 1200.0, abs_tol=1e-9)


def test_totals_and_chain():
    result = compute_accrual(deposit_request(period_count=120, periodic_flat_fee=2.0, upfront_fee=10.0)).result

    for previous, current in zip(result.periods, result.periods[1:]):
        assert current.opening_balance == previous.closing_balance
    assert isclose(result.total_interest, sum(p.interest for p in result.periods), rel_tol=1e-12)
    assert isclose(result.total_fees, 10.0 + 120 * 2.0, abs_tol=1e-9)
    assert isclose(
        result.final_balance,
        1000.0 + result.total_principal_moved + result.total_interest,
        rel_tol=1e-9,
    )


def test_zero_principal_is_a_valid_savings_start():
    outcome = compute_accrual(deposit_request(principal=0.0))

    assert outcome.ok
    assert outcome.result.periods[0].opening_balance == 0.0


def test_negative_rate_shrinks_balance():
    result = compute_accrual(deposit_request(periodic_rate=-0.01, periodic_contribution=0.0)).result

    assert result.final_balance < 1000.0
    assert result.total_interest < 0


def test_real_values_deflate_by_elapsed_years():
    result = compute_accrual(
        deposit_request(periodic_rate=0.0, periodic_contribution=0.0, period_count=24)
    ).result
    real = real_values(result, annual_rate=0.1, periods_per_year=12)

    assert len(real) == 24
    assert isclose(real[11], 1000.0 / 1.1, rel_tol=1e-12)
    assert isclose(real[23], 1000.0 / 1.21, rel_tol=1e-12)
    assert all(later < earlier for earlier, later in zip(real, real[1:]))


def test_real_value_stays_flat_when_growth_matches_inflation():
    result = compute_accrual(
        deposit_request(periodic_rate=0.05, periodic_contribution=0.0, period_count=10, period_months=12)
    ).result
    real = real_values(result, annual_rate=0.05, periods_per_year=1)

    assert max(real) - min(real) < 1e-6
