"""
metrics/churn.py

Cross-period churn resolution over the rows of a single upload.

Every row is paired with the row of the immediately preceding calendar month
under the same scope. Only rows from the same upload are consulted: when the
previous month is absent from the file, no churn is produced for that month
even if an earlier report holds it.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from app.domain.clinic_metrics import MetricComputation, RawMetricRow, scope_key
from metrics.formulas import churn_rate

RepeatIndex = dict[tuple[int, int, str], float]


def previous_month(year: int, month: int) -> tuple[int, int]:
    """Return the calendar month before ``(year, month)``; January wraps to December."""
    if month == 1:
        return (year - 1, 12)
    return (year, month - 1)


def build_repeat_index(rows: Sequence[RawMetricRow]) -> RepeatIndex:
    """
    Map ``(year, month, scope_key)`` to the repeat-client count.

    Duplicate keys resolve to the last row in document order.
    """
    index: RepeatIndex = {}
    for row in rows:
        index[(row.year, row.month, scope_key(row.scope))] = row.repeat_clients
    return index


def resolve_churn(
    rows: Sequence[RawMetricRow],
) -> Iterator[tuple[RawMetricRow, MetricComputation]]:
    """
    Yield ``(row, churn)`` for every row with a positive predecessor count.
    """
    index = build_repeat_index(rows)
    for row in rows:
        prev_year, prev_month = previous_month(row.year, row.month)
        previous_repeat = index.get((prev_year, prev_month, scope_key(row.scope)))
        if previous_repeat is None:
            continue
        computation = churn_rate(
            previous_repeat=previous_repeat,
            current_repeat=row.repeat_clients,
        )
        if computation is not None:
            yield row, computation
