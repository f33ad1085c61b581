"""
app/services/change_notifier.py

Hook point for signalling that stored metrics changed for some months.

The ingestion service calls the notifier after a successful commit; what a
notifier does with the signal (cache invalidation, pushing to clients) is
outside the ingestion flow.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Protocol

logger = logging.getLogger(__name__)


class ChangeNotifier(Protocol):
    """
    Receives the ``(year, month)`` pairs touched by one ingestion.
    """

    def on_periods_changed(
        self,
        *,
        report_id: uuid.UUID,
        periods: Sequence[tuple[int, int]],
    ) -> None:
        ...


class NoOpChangeNotifier:
    def on_periods_changed(
        self,
        *,
        report_id: uuid.UUID,
        periods: Sequence[tuple[int, int]],
    ) -> None:
        return None


class LoggingChangeNotifier:
    """
    Default notifier: records the invalidation signal in the application log.
    """

    def on_periods_changed(
        self,
        *,
        report_id: uuid.UUID,
        periods: Sequence[tuple[int, int]],
    ) -> None:
        logger.info(
            "Metrics changed report_id=%s periods=%s",
            report_id,
            ", ".join(f"{year}-{month:02d}" for year, month in periods),
        )
