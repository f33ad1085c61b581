"""
app/services/report_ingestion_service.py

Service layer for Excel report ingestion.

One upload runs through:

    1. WorkbookParser        — bytes → RawMetricRow list (no side effects)
    2. content hash          — SHA-256 of the exact bytes, the report identity
    3. snapshot decision     — new report / orphan repair / extend / no-op
    4. metric derivation     — return rate, repeat-visit rate, churn
    5. persistence           — periods, categories, metric values, one transaction
    6. change notification   — touched (year, month) pairs, after commit

Snapshot decision
-----------------
- No report for the hash          → create it and write every metric kind.
- Report exists without periods   → left over by a failed ingestion; delete
                                    it and ingest from scratch.
- Report exists with periods      → write only the metric kinds that have no
                                    row under the report yet. When none are
                                    missing the upload is a duplicate.

A unique violation on report creation means another request committed the
same content first. The transaction is rolled back and the decision is
re-run against the now-visible report.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from collections.abc import Iterable, Sequence
from functools import lru_cache

from sqlalchemy.exc import SQLAlchemyError

from app.config import get_report_ingestion_settings
from app.domain.clinic_metrics import (
    ALL_METRIC_KEYS,
    CategoryScope,
    IngestionResult,
    MetricComputation,
    MetricKey,
    RawMetricRow,
)
from app.parsers.workbook_parser import WorkbookParseError, WorkbookParser
from app.services.change_notifier import ChangeNotifier, LoggingChangeNotifier
from db.repositories.errors import ReportAlreadyExistsError, ReportRepositoryError
from db.repositories.types import (
    CategoryUpsert,
    MetricValueInsert,
    PeriodUpsert,
    ReportStore,
)
from metrics.churn import resolve_churn
from metrics.formulas import ROW_FORMULAS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class EmptyExtractionError(WorkbookParseError):
    """
    Raised when a workbook parses but contains no recognizable periods.
    """


class IngestionPersistenceError(RuntimeError):
    """
    Raised when parsed rows cannot be persisted.
    """


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def compute_file_hash(content: bytes) -> str:
    """Hex SHA-256 of the uploaded bytes."""
    return hashlib.sha256(content).hexdigest()


def compute_metrics(
    rows: Sequence[RawMetricRow],
    metric_keys: Iterable[str],
) -> list[tuple[RawMetricRow, MetricComputation]]:
    """
    Evaluate the requested metric kinds over every row of one upload.
    """
    computed: list[tuple[RawMetricRow, MetricComputation]] = []
    for metric_key in metric_keys:
        formula = ROW_FORMULAS.get(metric_key)
        if formula is not None:
            computed.extend((row, formula.calculate(row)) for row in rows)
        elif metric_key == MetricKey.CHURN_RATE:
            computed.extend(resolve_churn(rows))
    return computed


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ReportIngestionService:
    """
    Coordinates workbook parsing, snapshot deduplication, metric derivation,
    and persistence.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        metric_batch_size: int = 1000,
        parser: WorkbookParser | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        self._max_attempts = max(1, max_attempts)
        self._metric_batch_size = max(1, metric_batch_size)
        self._parser = parser or WorkbookParser()
        self._notifier = notifier or LoggingChangeNotifier()

    def ingest_report(
        self,
        *,
        content: bytes,
        filename: str,
        store: ReportStore,
    ) -> IngestionResult:
        """
        Ingest one uploaded workbook.

        Args:
            content:   Raw workbook bytes.
            filename:  Display name of the uploaded file.
            store:     Persistence collaborator (caller owns its lifecycle).

        Raises:
            SchemaMismatchError:        A year sheet lacks a required column.
            WorkbookFormatError:        The bytes are not a workbook.
            EmptyExtractionError:       No period rows were found.
            IngestionPersistenceError:  The transaction failed and was rolled back.
        """
        rows = self._parser.parse(content)
        if not rows:
            raise EmptyExtractionError("No recognizable periods or data found in the workbook.")

        file_hash = compute_file_hash(content)
        result: IngestionResult | None = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                with store.transaction():
                    result = self._ingest_once(
                        store=store,
                        rows=rows,
                        file_hash=file_hash,
                        filename=filename,
                    )
                break
            except ReportAlreadyExistsError:
                logger.warning(
                    "Concurrent report creation detected hash=%s attempt=%d/%d; re-reading",
                    file_hash[:12],
                    attempt,
                    self._max_attempts,
                )
            except (SQLAlchemyError, ReportRepositoryError) as exc:
                logger.error(
                    "Report persistence failed hash=%s filename=%r: %s",
                    file_hash[:12],
                    filename,
                    exc,
                )
                raise IngestionPersistenceError("Failed to persist report data.") from exc

        if result is None:
            raise IngestionPersistenceError(
                "Report could not be stored after repeated concurrent-upload conflicts."
            )

        logger.info(
            "Report ingested report_id=%s filename=%r deduped=%s updated=%s "
            "metrics_written=%d periods=%d",
            result.report_id,
            filename,
            result.deduped,
            result.updated,
            result.metrics_written,
            len(result.touched_periods),
        )

        if not result.deduped and result.touched_periods:
            self._notify(result)

        return result

    # ------------------------------------------------------------------
    # Ingestion internals
    # ------------------------------------------------------------------

    def _ingest_once(
        self,
        *,
        store: ReportStore,
        rows: Sequence[RawMetricRow],
        file_hash: str,
        filename: str,
    ) -> IngestionResult:
        report = store.find_report_by_hash(file_hash)

        if report is not None and not store.find_periods_by_report(report.id):
            logger.warning(
                "Repairing orphaned report report_id=%s hash=%s: no periods stored",
                report.id,
                file_hash[:12],
            )
            store.delete_report(report.id)
            report = None

        if report is None:
            report = store.create_report(filename=filename, file_hash=file_hash)
            missing = ALL_METRIC_KEYS
            updated = False
        else:
            present = store.metric_kinds_present(report.id)
            missing = tuple(key for key in ALL_METRIC_KEYS if key not in present)
            if not missing:
                return IngestionResult(report_id=report.id, deduped=True)
            updated = True
            logger.info(
                "Extending report report_id=%s with metric kinds %s",
                report.id,
                ", ".join(missing),
            )

        written, touched = self._write_snapshot(
            store=store,
            report_id=report.id,
            rows=rows,
            metric_keys=missing,
        )
        return IngestionResult(
            report_id=report.id,
            deduped=False,
            updated=updated,
            touched_periods=touched,
            metrics_written=written,
        )

    def _write_snapshot(
        self,
        *,
        store: ReportStore,
        report_id: uuid.UUID,
        rows: Sequence[RawMetricRow],
        metric_keys: Sequence[str],
    ) -> tuple[int, list[tuple[int, int]]]:
        """
        Upsert periods and categories, then insert the requested metric kinds.

        The same pipeline serves first ingestion and extension; existing
        periods, categories and metric rows are matched, never duplicated.
        """
        period_payloads: dict[tuple[int, int], PeriodUpsert] = {}
        category_payloads: dict[tuple[int, str], CategoryUpsert] = {}
        for row in rows:
            period_payloads[row.year_month] = PeriodUpsert(
                year=row.year,
                month=row.month,
                period_key=row.period_key,
            )
            if isinstance(row.scope, CategoryScope):
                category_payloads[(row.scope.code, row.scope.name)] = CategoryUpsert(
                    code=row.scope.code,
                    name=row.scope.name,
                )

        periods = store.upsert_periods(report_id, list(period_payloads.values()))
        period_ids = {(period.year, period.month): period.id for period in periods}

        categories = store.upsert_categories(list(category_payloads.values()))
        category_ids = {(category.code, category.name): category.id for category in categories}

        # Last write wins for repeated (period, scope, metric) keys.
        inserts: dict[tuple[uuid.UUID, uuid.UUID | None, str], MetricValueInsert] = {}
        for row, computation in compute_metrics(rows, metric_keys):
            period_id = period_ids.get(row.year_month)
            if period_id is None:
                raise IngestionPersistenceError(
                    f"Period {row.period_key} was not resolved for report {report_id}."
                )
            category_id: uuid.UUID | None = None
            if isinstance(row.scope, CategoryScope):
                category_id = category_ids.get((row.scope.code, row.scope.name))
                if category_id is None:
                    raise IngestionPersistenceError(
                        f"Category {row.scope.code}, {row.scope.name} was not resolved."
                    )
            insert = MetricValueInsert(
                period_id=period_id,
                category_id=category_id,
                metric_key=computation.metric_key,
                numerator=computation.numerator,
                denominator=computation.denominator,
                value=computation.value,
            )
            inserts[insert.identity] = insert

        written = store.insert_metric_values(
            list(inserts.values()),
            batch_size=self._metric_batch_size,
        )
        return written, sorted(period_payloads)

    def _notify(self, result: IngestionResult) -> None:
        # Notification is best-effort; the committed ingestion stands.
        try:
            self._notifier.on_periods_changed(
                report_id=result.report_id,
                periods=result.touched_periods,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Change notification failed report_id=%s: %s",
                result.report_id,
                exc,
            )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_report_ingestion_service() -> ReportIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """
    settings = get_report_ingestion_settings()
    return ReportIngestionService(
        max_attempts=settings.max_attempts,
        metric_batch_size=settings.metric_batch_size,
    )
