"""
metrics/base.py

Abstract base class for all clinic metric formula implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.clinic_metrics import MetricComputation, RawMetricRow


class BaseMetricFormula(ABC):
    """
    Contract for single-row metric formulas.

    Subclasses receive one :class:`RawMetricRow` and return the
    ``(numerator, denominator, value)`` triple for their metric kind.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`calculate`.
    """

    metric_key: str

    @abstractmethod
    def calculate(self, row: RawMetricRow) -> MetricComputation:
        """
        Compute the metric for *row*.

        Parameters
        ----------
        row:
            Extracted client counts for one period and scope.

        Returns
        -------
        MetricComputation
            Triple for :attr:`metric_key`. A zero denominator yields a
            value of ``0.0``.
        """


def safe_ratio(numerator: float, denominator: float, *, scale: float = 1.0) -> float:
    """Return ``numerator / denominator * scale``, or ``0.0`` when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * scale
