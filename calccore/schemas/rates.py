"""Data contracts for exchange rates and conversions."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RefreshOutcome(str, Enum):
    FRESH = "fresh"
    STALE_FALLBACK = "stale_fallback"
    UNAVAILABLE = "unavailable"


class RateQuote(BaseModel):
    """One row of the exchange endpoint payload (NBU JSON shape)."""

    model_config = ConfigDict(extra="ignore")

    cc: str
    rate: float
    exchangedate: str = ""
    txt: Optional[str] = None

    @field_validator("cc")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class RateSnapshot(BaseModel):
    """Cached reading: ``units_per_home`` home-currency units buy one ``code``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    units_per_home: float = Field(..., gt=0)
    as_of: str = ""
    fetched_at: datetime


class RefreshReport(BaseModel):
    outcomes: Dict[str, RefreshOutcome]
    fetched: bool = False

    @property
    def all_fresh(self) -> bool:
        return all(outcome is RefreshOutcome.FRESH for outcome in self.outcomes.values())


class ConvertedAmount(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: float
    from_code: str
    to_code: str
    stale: bool = False


class RateUnavailable(BaseModel):
    """No usable snapshot for the listed non-home codes."""

    model_config = ConfigDict(extra="forbid")

    codes: List[str]
    available: bool = False


class HomeFallback(BaseModel):
    """Display amount after trying to leave the home currency."""

    amount: float
    code: str
    fell_back: bool = False
    notice: Optional[str] = None


class RateStatusEntry(BaseModel):
    code: str
    status: RefreshOutcome
    units_per_home: Optional[float] = None
    as_of: Optional[str] = None
    fetched_at: Optional[datetime] = None
