"""CSV serialization of a schedule ledger."""

from __future__ import annotations

import csv
import io
from typing import Callable, Optional

from calccore.schemas.schedule import ScheduleResult

SCHEDULE_COLUMNS = ["No", "Date", "Payment", "Interest", "Principal", "Fees", "Balance"]


def schedule_to_csv(
    result: ScheduleResult,
    convert: Optional[Callable[[float], float]] = None,
    date_format: str = "%Y-%m-%d",
) -> str:
    """Render ``result.periods`` in order, one row per period.

    ``convert`` re-expresses each money cell (e.g. into a display currency).
    """
    money = convert or (lambda value: value)
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(SCHEDULE_COLUMNS)
    for period in result.periods:
        writer.writerow(
            [
                period.index,
                period.date.strftime(date_format),
                f"{money(period.payment):.2f}",
                f"{money(period.interest):.2f}",
                f"{money(period.principal_movement):.2f}",
                f"{money(period.fee):.2f}",
                f"{money(period.closing_balance):.2f}",
            ]
        )
    return buffer.getvalue()
