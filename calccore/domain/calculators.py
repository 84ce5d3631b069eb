from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from calccore.core.schedule import (
    ScheduleOutcome,
    compute_accrual,
    compute_annuity,
    compute_linear,
    real_values,
)
from calccore.schemas.schedule import Policy, ScheduleRequest, ScheduleResult

DEFAULT_DEPOSIT_TAX_PERCENT = 19.5


class CalculationError(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class Frequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def periods_per_year(self) -> int:
        return {"monthly": 12, "quarterly": 4, "yearly": 1}[self.value]

    @property
    def period_months(self) -> int:
        return 12 // self.periods_per_year


def periodic_rate(annual_percent: float, frequency: Frequency = Frequency.MONTHLY) -> float:
    return annual_percent / 100 / frequency.periods_per_year


def _require(outcome: ScheduleOutcome) -> ScheduleResult:
    if not outcome.ok:
        raise CalculationError(outcome.errors)
    return outcome.result


# -----------------------------
# Loan (credit / mortgage)
# -----------------------------


class LoanInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: float
    annual_rate_percent: float
    term_months: int
    payment_type: Literal["annuity", "linear"] = "annuity"
    start_date: dt.date = Field(default_factory=dt.date.today)
    one_time_fee: float = 0.0
    monthly_fee: float = 0.0
    insurance: float = 0.0


class LoanSummary(BaseModel):
    monthly_payment: float
    monthly_payment_with_fees: float
    average_payment: float
    average_payment_with_fees: float
    overpay: float
    total_fees: float
    total_paid: float


class LoanCalculation(BaseModel):
    summary: LoanSummary
    schedule: ScheduleResult


def loan_schedule(loan: LoanInput) -> LoanCalculation:
    """Monthly loan ledger; monthly fee and insurance ride on top of each installment."""
    request = ScheduleRequest(
        principal=loan.amount,
        periodic_rate=max(periodic_rate(loan.annual_rate_percent), 0.0),
        period_count=loan.term_months,
        policy=Policy(loan.payment_type),
        periodic_flat_fee=loan.monthly_fee + loan.insurance,
        upfront_fee=loan.one_time_fee,
        start_date=loan.start_date,
    )
    compute = compute_annuity if request.policy is Policy.ANNUITY else compute_linear
    result = _require(compute(request))

    first = result.periods[0]
    n = len(result.periods)
    repaid = result.total_principal_moved + result.total_interest

    summary = LoanSummary(
        monthly_payment=first.payment - first.fee,
        monthly_payment_with_fees=first.payment,
        average_payment=repaid / n,
        average_payment_with_fees=(repaid + request.periodic_flat_fee * n) / n,
        overpay=result.total_interest,
        total_fees=result.total_fees,
        total_paid=result.total_paid_or_accrued,
    )
    return LoanCalculation(summary=summary, schedule=result)


class DownPaymentMode(str, Enum):
    AMOUNT = "amount"
    PERCENT = "percent"


class MortgageInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    property_price: float = Field(..., gt=0)
    down_payment: float = 0.0
    down_payment_mode: DownPaymentMode = DownPaymentMode.AMOUNT
    annual_rate_percent: float
    term_months: int
    payment_type: Literal["annuity", "linear"] = "annuity"
    start_date: dt.date = Field(default_factory=dt.date.today)
    one_time_fee: float = 0.0
    monthly_fee: float = 0.0
    insurance: float = 0.0

    @property
    def down_payment_amount(self) -> float:
        if self.down_payment_mode is DownPaymentMode.PERCENT:
            share = min(max(self.down_payment, 0.0), 100.0)
            return self.property_price * share / 100
        return min(max(self.down_payment, 0.0), self.property_price)

    @property
    def loan_amount(self) -> float:
        return max(0.0, self.property_price - self.down_payment_amount)


class MortgageCalculation(LoanCalculation):
    property_price: float
    down_payment: float
    loan_amount: float


def mortgage_schedule(mortgage: MortgageInput) -> MortgageCalculation:
    """Loan on the part of the property price not covered by the down payment."""
    loan = LoanInput(
        amount=mortgage.loan_amount,
        annual_rate_percent=mortgage.annual_rate_percent,
        term_months=mortgage.term_months,
        payment_type=mortgage.payment_type,
        start_date=mortgage.start_date,
        one_time_fee=mortgage.one_time_fee,
        monthly_fee=mortgage.monthly_fee,
        insurance=mortgage.insurance,
    )
    calc = loan_schedule(loan)
    return MortgageCalculation(
        summary=calc.summary,
        schedule=calc.schedule,
        property_price=mortgage.property_price,
        down_payment=mortgage.down_payment_amount,
        loan_amount=loan.amount,
    )


# -----------------------------
# Deposit
# -----------------------------


class DepositInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: float
    annual_rate_percent: float
    term_months: int
    monthly_top_up: float = 0.0
    tax_percent: float = Field(DEFAULT_DEPOSIT_TAX_PERCENT, ge=0, le=100)
    capitalization: bool = True
    start_date: dt.date = Field(default_factory=dt.date.today)


class DepositRow(BaseModel):
    index: int
    date: dt.date
    top_up: float
    gross_interest: float
    tax: float
    net_interest: float
    balance: float


class DepositSummary(BaseModel):
    gross_interest: float
    tax: float
    net_interest: float
    total_top_ups: float
    final_balance: float
    effective_tax_percent: float
    capitalization: bool


class DepositCalculation(BaseModel):
    summary: DepositSummary
    rows: List[DepositRow]
    schedule: ScheduleResult


def deposit_schedule(deposit: DepositInput) -> DepositCalculation:
    """Monthly deposit with tax withheld from interest.

    With capitalization the net interest joins the balance each month;
    without it the balance only grows by top-ups and interest is paid out.
    """
    gross_rate = max(periodic_rate(deposit.annual_rate_percent), 0.0)
    tax_share = deposit.tax_percent / 100
    net_rate = gross_rate * (1 - tax_share)

    request = ScheduleRequest(
        principal=deposit.amount,
        periodic_rate=net_rate if deposit.capitalization else 0.0,
        period_count=deposit.term_months,
        policy=Policy.ACCRUAL,
        periodic_contribution=deposit.monthly_top_up,
        start_date=deposit.start_date,
    )
    result = _require(compute_accrual(request))

    rows: List[DepositRow] = []
    for period in result.periods:
        working = period.opening_balance + period.principal_movement
        gross = working * gross_rate
        tax = gross * tax_share
        rows.append(
            DepositRow(
                index=period.index,
                date=period.date,
                top_up=period.principal_movement,
                gross_interest=gross,
                tax=tax,
                net_interest=gross - tax,
                balance=period.closing_balance,
            )
        )

    summary = DepositSummary(
        gross_interest=sum(row.gross_interest for row in rows),
        tax=sum(row.tax for row in rows),
        net_interest=sum(row.net_interest for row in rows),
        total_top_ups=result.total_principal_moved,
        final_balance=result.final_balance,
        effective_tax_percent=deposit.tax_percent,
        capitalization=deposit.capitalization,
    )
    return DepositCalculation(summary=summary, rows=rows, schedule=result)


# -----------------------------
# Compound interest
# -----------------------------


class CompoundInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: float
    annual_rate_percent: float
    years: int
    monthly_top_up: float = 0.0
    frequency: Frequency = Frequency.MONTHLY
    start_date: dt.date = Field(default_factory=dt.date.today)


class YearSnapshot(BaseModel):
    year: int
    date: dt.date
    contributed: float
    earned: float
    balance: float
    earned_percent: float


class CompoundCalculation(BaseModel):
    final_balance: float
    total_contributed: float
    earned: float
    earned_percent: float
    years: List[YearSnapshot]
    schedule: ScheduleResult


def compound_projection(plan: CompoundInput) -> CompoundCalculation:
    """
    Monthly top-ups are pooled per compounding period and added at its start,
    which is equivalent to adding them month by month and crediting interest
    on the period boundary.
    """
    frequency = plan.frequency
    request = ScheduleRequest(
        principal=plan.amount,
        periodic_rate=max(periodic_rate(plan.annual_rate_percent, frequency), 0.0),
        period_count=plan.years * frequency.periods_per_year,
        policy=Policy.ACCRUAL,
        periodic_contribution=plan.monthly_top_up * frequency.period_months,
        start_date=plan.start_date,
        period_months=frequency.period_months,
    )
    result = _require(compute_accrual(request))

    snapshots: List[YearSnapshot] = []
    contributed = plan.amount
    for period in result.periods:
        contributed += period.principal_movement
        if period.index % frequency.periods_per_year:
            continue
        earned = period.closing_balance - contributed
        snapshots.append(
            YearSnapshot(
                year=period.index // frequency.periods_per_year,
                date=period.date,
                contributed=contributed,
                earned=earned,
                balance=period.closing_balance,
                earned_percent=(earned / contributed * 100) if contributed > 0 else 0.0,
            )
        )

    earned_total = result.final_balance - contributed
    return CompoundCalculation(
        final_balance=result.final_balance,
        total_contributed=contributed,
        earned=earned_total,
        earned_percent=(earned_total / contributed * 100) if contributed > 0 else 0.0,
        years=snapshots,
        schedule=result,
    )


# -----------------------------
# Pension
# -----------------------------


class PensionInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    age_now: int
    retire_age: int
    savings: float = 0.0
    monthly_contribution: float = Field(0.0, ge=0)
    annual_return_percent: float
    start_date: dt.date = Field(default_factory=dt.date.today)


class PensionYear(YearSnapshot):
    age: int


class PensionCalculation(BaseModel):
    years_to_go: int
    final_balance: float
    total_contributed: float
    earned: float
    earned_percent: float
    years: List[PensionYear]
    schedule: ScheduleResult


def pension_projection(plan: PensionInput) -> PensionCalculation:
    if plan.age_now <= 0 or plan.retire_age <= plan.age_now:
        raise CalculationError(
            [f"retire_age must be greater than age_now (got {plan.age_now} -> {plan.retire_age})"]
        )

    years_to_go = plan.retire_age - plan.age_now
    calc = compound_projection(
        CompoundInput(
            amount=plan.savings,
            annual_rate_percent=plan.annual_return_percent,
            years=years_to_go,
            monthly_top_up=plan.monthly_contribution,
            start_date=plan.start_date,
        )
    )
    return PensionCalculation(
        years_to_go=years_to_go,
        final_balance=calc.final_balance,
        total_contributed=calc.total_contributed,
        earned=calc.earned,
        earned_percent=calc.earned_percent,
        years=[PensionYear(age=plan.age_now + snap.year, **snap.model_dump()) for snap in calc.years],
        schedule=calc.schedule,
    )


# -----------------------------
# Inflation
# -----------------------------


class InflationInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: float
    annual_inflation_percent: float = Field(gt=-100)
    years: int
    monthly_top_up: float = 0.0
    start_date: dt.date = Field(default_factory=dt.date.today)


class InflationRow(BaseModel):
    year: int
    date: dt.date
    nominal: float
    real: float
    factor: float
    loss_percent: float


class InflationCalculation(BaseModel):
    final_nominal: float
    final_real: float
    factor: float
    loss_percent: float
    required_nominal: float
    rows: List[InflationRow]


def inflation_projection(plan: InflationInput) -> InflationCalculation:
    """Cash kept under the mattress: nominal savings vs. their value in today's money."""
    annual = plan.annual_inflation_percent / 100
    request = ScheduleRequest(
        principal=plan.amount,
        periodic_rate=0.0,
        period_count=plan.years * 12,
        policy=Policy.ACCRUAL,
        periodic_contribution=plan.monthly_top_up,
        start_date=plan.start_date,
    )
    result = _require(compute_accrual(request))
    try:
        real = real_values(result, annual, periods_per_year=12)
        factor = (1 + annual) ** plan.years
    except OverflowError:
        raise CalculationError([f"inflation of {plan.annual_inflation_percent}% over {plan.years} years overflows"])

    rows: List[InflationRow] = []
    for period, real_value in zip(result.periods, real):
        if period.index % 12:
            continue
        year = period.index // 12
        factor = (1 + annual) ** year
        rows.append(
            InflationRow(
                year=year,
                date=period.date,
                nominal=period.closing_balance,
                real=real_value,
                factor=factor,
                loss_percent=(1 - 1 / factor) * 100,
            )
        )

    return InflationCalculation(
        final_nominal=result.final_balance,
        final_real=real[-1],
        factor=factor,
        loss_percent=(1 - 1 / factor) * 100,
        required_nominal=plan.amount * factor,
        rows=rows,
    )
