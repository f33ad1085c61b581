"""
metrics/formulas.py

Clinic metric formula implementations.

Formulas
--------
Return rate        = repeat_clients / all_clients * 100
Repeat-visit rate  = (new_clients + continue_clients) / new_clients
Churn rate         = max(0, previous_repeat - current_repeat) / previous_repeat * 100

A zero denominator produces a value of 0.0 so every stored metric is a
renderable number. Churn is the exception: without a positive previous
repeat count there is no churn row at all.
"""

from __future__ import annotations

from app.domain.clinic_metrics import MetricComputation, MetricKey, RawMetricRow
from metrics.base import BaseMetricFormula, safe_ratio

_PERCENT = 100.0


class ReturnRateFormula(BaseMetricFormula):
    """
    Share of all booked clients who are returning clients, in percent.
    """

    metric_key = MetricKey.RETURN_RATE

    def calculate(self, row: RawMetricRow) -> MetricComputation:
        numerator = row.repeat_clients
        denominator = row.all_clients
        return MetricComputation(
            metric_key=self.metric_key,
            numerator=numerator,
            denominator=denominator,
            value=safe_ratio(numerator, denominator, scale=_PERCENT),
        )


class RepeatVisitRateFormula(BaseMetricFormula):
    """
    Visits per newly booked client, as a plain ratio.

    The denominator is the count of *new* clients, not all clients.
    """

    metric_key = MetricKey.REPEAT_VISIT_RATE

    def calculate(self, row: RawMetricRow) -> MetricComputation:
        numerator = row.new_clients + row.continue_clients
        denominator = row.new_clients
        return MetricComputation(
            metric_key=self.metric_key,
            numerator=numerator,
            denominator=denominator,
            value=safe_ratio(numerator, denominator),
        )


class ChurnRateFormula:
    """
    Fraction of the previous month's repeat clients not retained, in percent.

    Operates on a pair of repeat counts rather than a single row, so it does
    not implement :class:`BaseMetricFormula`.
    """

    metric_key = MetricKey.CHURN_RATE

    def calculate(
        self,
        *,
        previous_repeat: float,
        current_repeat: float,
    ) -> MetricComputation | None:
        """
        Return the churn triple, or ``None`` when ``previous_repeat <= 0``.
        """
        if previous_repeat <= 0:
            return None
        numerator = max(0.0, previous_repeat - current_repeat)
        denominator = previous_repeat
        return MetricComputation(
            metric_key=self.metric_key,
            numerator=numerator,
            denominator=denominator,
            value=safe_ratio(numerator, denominator, scale=_PERCENT),
        )


# ---------------------------------------------------------------------------
# Formula registry
# ---------------------------------------------------------------------------

ROW_FORMULAS: dict[str, BaseMetricFormula] = {
    MetricKey.RETURN_RATE: ReturnRateFormula(),
    MetricKey.REPEAT_VISIT_RATE: RepeatVisitRateFormula(),
}


def return_rate(row: RawMetricRow) -> MetricComputation:
    return ROW_FORMULAS[MetricKey.RETURN_RATE].calculate(row)


def repeat_visit_rate(row: RawMetricRow) -> MetricComputation:
    return ROW_FORMULAS[MetricKey.REPEAT_VISIT_RATE].calculate(row)


def churn_rate(*, previous_repeat: float, current_repeat: float) -> MetricComputation | None:
    return ChurnRateFormula().calculate(
        previous_repeat=previous_repeat,
        current_repeat=current_repeat,
    )
