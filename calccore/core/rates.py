"""Exchange-rate cache with a freshness window and stale fallback.

Rates are "home units per 1 foreign unit", so the home currency acts as the
only pivot: ``amount * rate(from) / rate(to)``.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from calccore.exceptions import RateSourceError
from calccore.schemas.rates import (
    ConvertedAmount,
    HomeFallback,
    RateQuote,
    RateSnapshot,
    RateStatusEntry,
    RateUnavailable,
    RefreshOutcome,
    RefreshReport,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=12)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateConverter:
    """Owns the snapshot map for its tracked codes and is its only writer.

    ``refresh`` builds new snapshots outside of the map and swaps them in per
    code, so ``convert`` keeps reading the previous values while a fetch is in
    flight. Racing refreshes resolve last-writer-wins.
    """

    def __init__(
        self,
        fetch: Callable[[], Sequence[RateQuote]],
        codes: Iterable[str] = ("USD", "EUR"),
        home: str = "UAH",
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.home = home.strip().upper()
        self.codes = [code.strip().upper() for code in codes if code.strip().upper() != self.home]
        self.ttl = ttl
        self._fetch = fetch
        self._clock = clock
        self._snapshots: Dict[str, RateSnapshot] = {}

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def refresh(self, now: Optional[datetime] = None, force: bool = False) -> RefreshReport:
        now = now or self._clock()
        current = self._snapshots

        if not force and self.codes and all(self._is_fresh(current.get(code), now) for code in self.codes):
            return RefreshReport(outcomes={code: RefreshOutcome.FRESH for code in self.codes})

        try:
            quotes = self._fetch()
        except RateSourceError as e:
            outcomes = {code: self._fallback(code, current) for code in self.codes}
            logger.warning("Rate refresh failed, serving cached snapshots: %s (%s)", e, _describe(outcomes))
            return RefreshReport(outcomes=outcomes, fetched=True)

        usable = {
            quote.cc: quote
            for quote in quotes
            if math.isfinite(quote.rate) and quote.rate > 0
        }

        fresh: Dict[str, RateSnapshot] = {}
        outcomes: Dict[str, RefreshOutcome] = {}
        for code in self.codes:
            quote = usable.get(code)
            if quote is None:
                outcomes[code] = self._fallback(code, current)
                continue
            fresh[code] = RateSnapshot(
                code=code,
                units_per_home=quote.rate,
                as_of=quote.exchangedate,
                fetched_at=now,
            )
            outcomes[code] = RefreshOutcome.FRESH

        merged = dict(self._snapshots)
        merged.update(fresh)
        self._snapshots = merged

        if all(outcome is RefreshOutcome.FRESH for outcome in outcomes.values()):
            logger.info("Rates refreshed: %s", _describe(outcomes))
        else:
            logger.warning("Rates refreshed with gaps: %s", _describe(outcomes))
        return RefreshReport(outcomes=outcomes, fetched=True)

    def load(self, snapshots: Iterable[RateSnapshot]) -> None:
        """Seed the cache, e.g. from a previously saved set of snapshots."""
        merged = dict(self._snapshots)
        for snapshot in snapshots:
            merged[snapshot.code.upper()] = snapshot
        self._snapshots = merged

    def snapshot(self, code: str) -> Optional[RateSnapshot]:
        return self._snapshots.get(code.strip().upper())

    def status(self, now: Optional[datetime] = None) -> List[RateStatusEntry]:
        now = now or self._clock()
        current = self._snapshots
        entries: List[RateStatusEntry] = []
        for code in self.codes:
            snapshot = current.get(code)
            if snapshot is None:
                entries.append(RateStatusEntry(code=code, status=RefreshOutcome.UNAVAILABLE))
                continue
            entries.append(
                RateStatusEntry(
                    code=code,
                    status=RefreshOutcome.FRESH if self._is_fresh(snapshot, now) else RefreshOutcome.STALE_FALLBACK,
                    units_per_home=snapshot.units_per_home,
                    as_of=snapshot.as_of,
                    fetched_at=snapshot.fetched_at,
                )
            )
        return entries

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def convert(
        self,
        amount: float,
        from_code: str,
        to_code: str,
        now: Optional[datetime] = None,
    ) -> Union[ConvertedAmount, RateUnavailable]:
        source = from_code.strip().upper()
        target = to_code.strip().upper()

        if source == target:
            return ConvertedAmount(amount=amount, from_code=source, to_code=target)

        current = self._snapshots
        missing = [code for code in (source, target) if code != self.home and code not in current]
        if missing:
            return RateUnavailable(codes=missing)

        home_amount = amount * self._rate(source, current)
        converted = home_amount / self._rate(target, current)

        now = now or self._clock()
        stale = any(
            not self._is_fresh(current[code], now)
            for code in (source, target)
            if code != self.home
        )
        return ConvertedAmount(amount=converted, from_code=source, to_code=target, stale=stale)

    def convert_or_home(self, amount: float, to_code: str) -> HomeFallback:
        """Re-express a home amount for display, keeping the home figure if no rate is ready."""
        outcome = self.convert(amount, self.home, to_code)
        if isinstance(outcome, RateUnavailable):
            return HomeFallback(
                amount=amount,
                code=self.home,
                fell_back=True,
                notice=f"Exchange rates not loaded yet. Using {self.home}.",
            )
        return HomeFallback(amount=outcome.amount, code=outcome.to_code)

    # ------------------------------------------------------------------

    def _rate(self, code: str, snapshots: Dict[str, RateSnapshot]) -> float:
        if code == self.home:
            return 1.0
        return snapshots[code].units_per_home

    def _is_fresh(self, snapshot: Optional[RateSnapshot], now: datetime) -> bool:
        if snapshot is None:
            return False
        return now - snapshot.fetched_at < self.ttl

    @staticmethod
    def _fallback(code: str, snapshots: Dict[str, RateSnapshot]) -> RefreshOutcome:
        if code in snapshots:
            return RefreshOutcome.STALE_FALLBACK
        return RefreshOutcome.UNAVAILABLE


def _describe(outcomes: Dict[str, RefreshOutcome]) -> str:
    return ", ".join(f"{code}={outcome.value}" for code, outcome in outcomes.items())
