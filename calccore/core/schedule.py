"""Period ledger engine shared by the loan, deposit and projection calculators.

Three policies produce the same ``ScheduleResult`` shape:

  - annuity: fixed installment, interest share shrinks over time
  - linear:  fixed principal share, installment shrinks over time
  - accrual: contribution at the START of each period, then growth

Loan policies force the last period's principal to the exact remaining
balance so the ledger always ends at zero.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from calccore.schemas.schedule import PeriodRecord, Policy, ScheduleRequest, ScheduleResult

logger = logging.getLogger(__name__)


@dataclass
class ScheduleOutcome:
    result: Optional[ScheduleResult]
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.result is not None and not self.errors


def annuity_payment(principal: float, rate: float, periods: int) -> float:
    if periods <= 0:
        return 0.0
    if rate <= 0:
        return principal / periods
    growth = (1 + rate) ** periods
    return principal * rate * growth / (growth - 1)


def period_date(start: date, index: int, period_months: int = 1) -> date:
    # relativedelta clamps to the month end (Jan 31 + 1 month -> Feb 28/29)
    return start + relativedelta(months=index * period_months)


def validate_request(request: ScheduleRequest) -> List[str]:
    errors: List[str] = []

    if request.period_count < 1:
        errors.append(f"period_count must be at least 1 (got {request.period_count})")
    if not math.isfinite(request.periodic_rate):
        errors.append("periodic_rate must be a finite number")
    if not math.isfinite(request.principal):
        errors.append("principal must be a finite number")
    elif request.principal < 0:
        errors.append(f"principal must not be negative (got {request.principal})")
    elif request.policy.is_loan and request.principal == 0:
        errors.append("principal must be greater than zero for a loan")

    for name in ("periodic_flat_fee", "upfront_fee"):
        value = getattr(request, name)
        if not math.isfinite(value) or value < 0:
            errors.append(f"{name} must be a finite, non-negative number")

    if not math.isfinite(request.periodic_contribution):
        errors.append("periodic_contribution must be a finite number")

    return errors


def compute_annuity(request: ScheduleRequest) -> ScheduleOutcome:
    """Fixed-installment loan ledger."""
    return _run(request, Policy.ANNUITY, _annuity_periods)


def compute_linear(request: ScheduleRequest) -> ScheduleOutcome:
    """Differentiated loan ledger: constant principal share, falling installment."""
    return _run(request, Policy.LINEAR, _linear_periods)


def compute_accrual(request: ScheduleRequest) -> ScheduleOutcome:
    """Deposit/pension/projection ledger with start-of-period contributions."""
    return _run(request, Policy.ACCRUAL, _accrual_periods)


def compute_schedule(request: ScheduleRequest) -> ScheduleOutcome:
    return _COMPUTE[request.policy](request)


def real_values(result: ScheduleResult, annual_rate: float, periods_per_year: int = 12) -> List[float]:
    """Deflate each closing balance by ``(1 + annual_rate) ** years_elapsed``.

    Used by the inflation projection to express nominal balances in
    today's money without re-running the nominal series.
    """
    values: List[float] = []
    for period in result.periods:
        factor = (1 + annual_rate) ** (period.index / periods_per_year)
        values.append(period.closing_balance / factor if factor > 0 else period.closing_balance)
    return values


def _run(
    request: ScheduleRequest,
    policy: Policy,
    build: Callable[[ScheduleRequest], List[PeriodRecord]],
) -> ScheduleOutcome:
    if request.policy is not policy:
        request = request.model_copy(update={"policy": policy})

    errors = validate_request(request)
    if errors:
        logger.info("Rejected %s schedule request: %s", policy.value, "; ".join(errors))
        return ScheduleOutcome(result=None, errors=errors)

    try:
        periods = build(request)
    except OverflowError:
        periods = None

    result = None
    if periods is not None:
        result = ScheduleResult.from_periods(
            policy=policy,
            periods=periods,
            opening_balance=request.principal,
            upfront_fee=request.upfront_fee,
        )

    if result is None or not _is_finite(result):
        errors = [
            f"{policy.value} schedule overflows: rate {request.periodic_rate} over "
            f"{request.period_count} periods exceeds the representable range"
        ]
        logger.info("Rejected %s schedule request: %s", policy.value, errors[0])
        return ScheduleOutcome(result=None, errors=errors)

    return ScheduleOutcome(result=result)


def _is_finite(result: ScheduleResult) -> bool:
    totals = (
        result.total_interest,
        result.total_principal_moved,
        result.total_fees,
        result.total_paid_or_accrued,
        result.final_balance,
    )
    if not all(math.isfinite(value) for value in totals):
        return False
    return all(
        math.isfinite(period.interest) and math.isfinite(period.closing_balance) and math.isfinite(period.payment)
        for period in result.periods
    )


def _annuity_periods(request: ScheduleRequest) -> List[PeriodRecord]:
    rate = request.periodic_rate if request.periodic_rate > 0 else 0.0
    n = request.period_count
    fee = request.periodic_flat_fee
    installment = annuity_payment(request.principal, rate, n)

    balance = float(request.principal)
    periods: List[PeriodRecord] = []

    for index in range(1, n + 1):
        opening = balance
        interest = opening * rate
        principal_paid = installment - interest
        payment = installment

        if index == n:
            # last row absorbs the accumulated floating-point drift
            principal_paid = opening
            payment = principal_paid + interest

        balance = max(0.0, opening - principal_paid)

        periods.append(
            PeriodRecord(
                index=index,
                date=period_date(request.start_date, index, request.period_months),
                opening_balance=opening,
                interest=interest,
                principal_movement=principal_paid,
                fee=fee,
                closing_balance=balance,
                payment=payment + fee,
            )
        )

    return periods


def _linear_periods(request: ScheduleRequest) -> List[PeriodRecord]:
    rate = request.periodic_rate if request.periodic_rate > 0 else 0.0
    n = request.period_count
    fee = request.periodic_flat_fee
    fixed_principal = request.principal / n

    balance = float(request.principal)
    periods: List[PeriodRecord] = []

    for index in range(1, n + 1):
        opening = balance
        interest = opening * rate
        principal_paid = opening if index == n else min(fixed_principal, opening)
        balance = max(0.0, opening - principal_paid)

        periods.append(
            PeriodRecord(
                index=index,
                date=period_date(request.start_date, index, request.period_months),
                opening_balance=opening,
                interest=interest,
                principal_movement=principal_paid,
                fee=fee,
                closing_balance=balance,
                payment=principal_paid + interest + fee,
            )
        )

    return periods


def _accrual_periods(request: ScheduleRequest) -> List[PeriodRecord]:
    rate = request.periodic_rate
    contribution = request.periodic_contribution
    fee = request.periodic_flat_fee

    balance = float(request.principal)
    periods: List[PeriodRecord] = []

    for index in range(1, request.period_count + 1):
        opening = balance
        # 1) contribution at START of period, 2) growth on the whole balance
        balance = (opening + contribution) * (1 + rate)
        growth = balance - opening - contribution

        periods.append(
            PeriodRecord(
                index=index,
                date=period_date(request.start_date, index, request.period_months),
                opening_balance=opening,
                interest=growth,
                principal_movement=contribution,
                fee=fee,
                closing_balance=balance,
                payment=contribution + fee,
            )
        )

    return periods


_COMPUTE: Dict[Policy, Callable[[ScheduleRequest], ScheduleOutcome]] = {
    Policy.ANNUITY: compute_annuity,
    Policy.LINEAR: compute_linear,
    Policy.ACCRUAL: compute_accrual,
}
