"""Data contracts for schedule calculations."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Policy(str, Enum):
    ANNUITY = "annuity"
    LINEAR = "linear"
    ACCRUAL = "accrual"

    @property
    def is_loan(self) -> bool:
        return self is not Policy.ACCRUAL


class ScheduleRequest(BaseModel):
    """Inputs required to compute a period ledger.

    Range checks live in the engine so that a bad value comes back as an
    explicit error list instead of a raised ``ValidationError``.
    """

    model_config = ConfigDict(extra="forbid")

    principal: float = Field(..., description="Opening balance in home currency.")
    periodic_rate: float = Field(
        ...,
        description="Rate applied once per period, already divided down from the annual rate.",
    )
    period_count: int = Field(..., description="Number of periods to project.")
    policy: Policy
    periodic_contribution: float = Field(
        0.0,
        description="Added to the balance at the start of each period (accrual only).",
    )
    periodic_flat_fee: float = Field(
        0.0,
        description="Service/insurance add-on reported on each period, outside the interest math.",
    )
    upfront_fee: float = Field(0.0, description="One-off fee, reported but not amortized.")
    start_date: dt.date = Field(default_factory=dt.date.today)
    period_months: int = Field(1, ge=1, le=12, description="Calendar months per period.")


class PeriodRecord(BaseModel):
    """Single row of the ledger.

    ``principal_movement`` reduces the balance for loan policies and is the
    contribution paid in for the accrual policy.
    """

    model_config = ConfigDict(extra="forbid")

    index: int = Field(..., ge=1)
    date: dt.date
    opening_balance: float
    interest: float
    principal_movement: float
    fee: float
    closing_balance: float
    payment: float


class ScheduleResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    policy: Policy
    periods: List[PeriodRecord]
    total_interest: float
    total_principal_moved: float
    total_fees: float
    total_paid_or_accrued: float
    final_balance: float

    @classmethod
    def from_periods(
        cls,
        policy: Policy,
        periods: List[PeriodRecord],
        opening_balance: float,
        upfront_fee: float = 0.0,
    ) -> "ScheduleResult":
        """Sum the ledger once; totals are never recomputed afterwards."""
        total_interest = sum(period.interest for period in periods)
        total_principal = sum(period.principal_movement for period in periods)
        total_fees = upfront_fee + sum(period.fee for period in periods)
        final_balance = periods[-1].closing_balance if periods else opening_balance
        return cls(
            policy=policy,
            periods=periods,
            total_interest=total_interest,
            total_principal_moved=total_principal,
            total_fees=total_fees,
            total_paid_or_accrued=total_principal + total_interest + total_fees,
            final_balance=final_balance,
        )


class ScheduleError(BaseModel):
    """Response body for a request the engine rejected."""

    error: List[str]
