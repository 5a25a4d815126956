# ============================================================================
# File: ingestion/coordinator.py
# Description: Blue/green refresh coordinator
# ============================================================================
"""
Refresh Coordinator - reloads the inactive blue/green table and promotes it.

The source dataset has no stable record identifier, so there is no upsert.
Instead two identical tables alternate: every cycle fully reloads whichever
table is *not* currently serving reads and, only once that load has
committed, stamps it with the current time. The active table is simply the
one with the later ``last_updated``; activity is derived, never stored, so
"both active" or "neither active" cannot be represented.

Cycle states:
    IDLE -> FETCHING -> LOADING -> PROMOTING -> IDLE    (success)
    IDLE -> FETCHING/LOADING -> FAILED -> IDLE          (failure, no promotion)

Concurrency:
- Readers call ``last_updated_table()`` / ``active_table()`` at any time,
  from any thread. Both descriptors are read and replaced under one lock, so
  a reader sees either the pre-promotion pair or the post-promotion pair.
- Only one cycle runs at a time; a second request raises
  ``RefreshInProgressError`` (or is skipped by ``try_refresh()``).
"""

from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, Dict, Any, List, Optional, Sequence, Tuple
import asyncio
import logging
import threading
import time

from ingestion.base import RowSource, DatasetLoader
from ingestion.transformers.record_mapper import RecordMapper
from models.base import RefreshState, RefreshStatus
from schemas.record import Record
from schemas.refresh import RefreshResult
from core.exceptions import (
    ConfigurationError,
    EmptyDatasetError,
    ExtractionError,
    LoadError,
    RefreshInProgressError,
    RetryableError,
)

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class TableDescriptor:
    """One of the two alternating tables and the time of its last full load"""

    name: str
    last_updated: datetime = EPOCH

    @property
    def has_data(self) -> bool:
        return self.last_updated > EPOCH

    def with_last_updated(self, last_updated: datetime) -> "TableDescriptor":
        return replace(self, last_updated=last_updated)


@dataclass(frozen=True)
class ActiveTable:
    """
    Snapshot answer to "which table should a reader query".

    ``has_data`` is False until the first successful cycle; the name is then
    only the tie-break default and the table holds nothing authoritative.
    """

    name: str
    last_updated: datetime
    has_data: bool


def _pick_active(blue: TableDescriptor, green: TableDescriptor) -> TableDescriptor:
    # Ties only happen before any load (both at EPOCH); blue wins them.
    if green.last_updated > blue.last_updated:
        return green
    return blue


class RefreshCoordinator:
    """
    Owns the blue/green descriptor pair and drives refresh cycles.

    Responsibilities:
    - Decide which table is active and which is the reload target
    - Fetch every configured source, map rows, discard unparseable ones
    - Bulk load the inactive table through the DatasetLoader
    - Promote the freshly loaded table only after the load committed
    - Keep a short in-memory history of cycle outcomes
    """

    def __init__(
        self,
        blue_table: str,
        green_table: str,
        sources: Sequence[str],
        fetcher: RowSource,
        loader: DatasetLoader,
        mapper: Optional[RecordMapper] = None,
        logger: Optional[logging.Logger] = None,
        history_size: int = 20,
        clock: Optional[Callable[[], datetime]] = None
    ):
        if not blue_table or not green_table or blue_table == green_table:
            raise ConfigurationError(
                "Blue and green tables must be two different names",
                context={"blue_table": blue_table, "green_table": green_table}
            )

        self.sources = list(sources)
        self.fetcher = fetcher
        self.loader = loader
        self.mapper = mapper or RecordMapper()
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._tables_lock = threading.Lock()
        self._blue = TableDescriptor(name=blue_table)
        self._green = TableDescriptor(name=green_table)

        self._state = RefreshState.IDLE
        self._running = False
        self._current_task: Optional[asyncio.Task] = None
        self._history: Deque[RefreshResult] = deque(maxlen=history_size)

    @classmethod
    def from_settings(cls, settings, engine, fetcher: Optional[RowSource] = None) -> "RefreshCoordinator":
        """Wire the production fetcher and loader from validated settings"""
        from ingestion.extractors.csv_extractor import CSVFetcher
        from ingestion.loaders.table_loader import TableLoader

        return cls(
            blue_table=settings.BLUE_TABLE,
            green_table=settings.GREEN_TABLE,
            sources=settings.require_sources(),
            fetcher=fetcher or CSVFetcher(
                timeout=settings.HTTP_TIMEOUT,
                max_retries=settings.HTTP_RETRIES,
                retry_delay=settings.HTTP_RETRY_DELAY
            ),
            loader=TableLoader(engine, batch_size=settings.ETL_BATCH_SIZE),
            history_size=settings.REFRESH_HISTORY_SIZE,
        )

    # ------------------------------------------------------------------
    # Reader-side queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    def tables(self) -> Tuple[TableDescriptor, TableDescriptor]:
        """Consistent (blue, green) snapshot"""
        with self._tables_lock:
            return self._blue, self._green

    def snapshot(self) -> Tuple[TableDescriptor, TableDescriptor, ActiveTable]:
        """(blue, green, active) taken from one consistent pair"""
        blue, green = self.tables()
        active = _pick_active(blue, green)
        return blue, green, ActiveTable(
            name=active.name,
            last_updated=active.last_updated,
            has_data=active.has_data
        )

    def active_table(self) -> ActiveTable:
        return self.snapshot()[2]

    def last_updated_table(self) -> str:
        """
        Name of the most recently loaded table.

        Returns blue before any load; check ``active_table().has_data`` to
        tell that apart from blue holding real data.
        """
        return self.active_table().name

    def inactive_table(self) -> TableDescriptor:
        blue, green = self.tables()
        return green if _pick_active(blue, green) is blue else blue

    def history(self) -> List[RefreshResult]:
        """Most recent cycle results, newest last"""
        return list(self._history)

    @property
    def last_result(self) -> Optional[RefreshResult]:
        return self._history[-1] if self._history else None

    def stats(self) -> Dict[str, Any]:
        history = self.history()
        successes = [r for r in history if r.succeeded]
        failures = [r for r in history if not r.succeeded]
        return {
            "total_cycles": len(history),
            "successful_cycles": len(successes),
            "failed_cycles": len(failures),
            "last_success_at": successes[-1].completed_at if successes else None,
            "last_failure_at": failures[-1].completed_at if failures else None,
            "avg_duration_seconds": (
                sum(r.duration_seconds for r in successes) / len(successes)
                if successes else None
            ),
        }

    # ------------------------------------------------------------------
    # Refresh cycle
    # ------------------------------------------------------------------

    async def try_refresh(self) -> Optional[RefreshResult]:
        """Run a cycle unless one is already in flight (then log and skip)"""
        if self._running:
            self.logger.warning(
                "Refresh already in progress; skipping this trigger",
                extra={"state": self._state.value}
            )
            return None
        return await self.refresh()

    async def refresh(self) -> RefreshResult:
        """
        Run one full refresh cycle against the inactive table.

        Fetch and load failures do not raise; they produce a FAILED result and
        leave the active table untouched. Cancellation propagates.

        Raises:
            RefreshInProgressError: If another cycle is running
        """
        if self._running:
            raise RefreshInProgressError(
                "A refresh cycle is already running",
                context={"state": self._state.value}
            )

        self._running = True
        self._current_task = asyncio.current_task()
        try:
            return await self._run_cycle()
        finally:
            self._state = RefreshState.IDLE
            self._current_task = None
            self._running = False

    def cancel(self) -> bool:
        """Cancel the in-flight cycle, if any. The target table is rolled back."""
        task = self._current_task
        if task is None or task.done():
            return False
        self.logger.warning("Cancelling in-flight refresh cycle")
        task.cancel()
        return True

    async def _run_cycle(self) -> RefreshResult:
        started_at = self._clock()
        started = time.perf_counter()
        target = self.inactive_table()

        counters: Dict[str, Any] = {
            "rows_fetched": 0,
            "records_loaded": 0,
            "records_discarded": 0,
            "rows_per_source": {},
        }

        self.logger.info(
            f"Starting refresh cycle into {target.name}",
            extra={"target_table": target.name, "sources": len(self.sources)}
        )

        try:
            # --------------------------------------------------
            # FETCHING
            # --------------------------------------------------
            self._state = RefreshState.FETCHING
            records = await self._fetch_all(counters)

            if not records:
                raise EmptyDatasetError(
                    "Refresh produced no valid records",
                    context={
                        "rows_fetched": counters["rows_fetched"],
                        "records_discarded": counters["records_discarded"]
                    }
                )

            # --------------------------------------------------
            # LOADING
            # --------------------------------------------------
            self._state = RefreshState.LOADING
            counters["records_loaded"] = await self.loader.load(target.name, records)

            # --------------------------------------------------
            # PROMOTING
            # --------------------------------------------------
            self._state = RefreshState.PROMOTING
            promoted_at = self._promote(target.name)

            self.logger.info(
                f"Promoted {target.name} to active table",
                extra={
                    "active_table": target.name,
                    "last_updated": promoted_at.isoformat(),
                    "records_loaded": counters["records_loaded"]
                }
            )
            result = self._result(RefreshStatus.SUCCESS, target, started_at, started, counters,
                                  promoted_at=promoted_at)

        except (ExtractionError, LoadError) as e:
            self._state = RefreshState.FAILED
            self.logger.error(
                f"Refresh cycle failed: {e.message}",
                extra={
                    "error_context": e.to_dict(),
                    "target_table": target.name,
                    "retryable": isinstance(e, RetryableError)
                }
            )
            result = self._result(RefreshStatus.FAILED, target, started_at, started, counters, error=e)

        except asyncio.CancelledError:
            self._state = RefreshState.FAILED
            self.logger.warning(
                f"Refresh cycle into {target.name} cancelled; active table unchanged",
                extra={"target_table": target.name}
            )
            raise

        except Exception as e:
            self._state = RefreshState.FAILED
            self.logger.exception(
                "Unexpected error in refresh cycle",
                extra={"target_table": target.name}
            )
            result = self._result(RefreshStatus.FAILED, target, started_at, started, counters, error=e)

        self._history.append(result)
        self.logger.info(
            f"Refresh cycle finished: {result.status.value}",
            extra={"refresh": result.summary()}
        )
        return result

    async def _fetch_all(self, counters: Dict[str, Any]) -> List[Record]:
        """Fetch and map every source; any fetch error aborts the cycle"""
        records: List[Record] = []

        for url in self.sources:
            rows = await self.fetcher.fetch_rows(url)

            # First row is the header
            data_rows = rows[1:]
            discarded = 0

            for row in data_rows:
                record = self.mapper.map(row, self.logger)
                if record.is_empty:
                    discarded += 1
                    continue
                records.append(record)

            counters["rows_fetched"] += len(data_rows)
            counters["records_discarded"] += discarded
            counters["rows_per_source"][url] = len(data_rows)

            if discarded:
                self.logger.warning(
                    f"Discarded {discarded} unparseable rows from {url}",
                    extra={"url": url, "records_discarded": discarded}
                )
            self.logger.info(
                f"Mapped {len(data_rows) - discarded} records from {url}",
                extra={"url": url, "rows": len(data_rows)}
            )

        return records

    def _promote(self, table_name: str) -> datetime:
        """
        Stamp ``table_name`` as freshly loaded. This single write is the swap.

        The new timestamp is kept strictly later than the other table's so the
        promoted table always wins, even if the wall clock stepped backwards.
        """
        with self._tables_lock:
            now = self._clock()
            if table_name == self._blue.name:
                promoted_at = max(now, self._green.last_updated + timedelta(microseconds=1))
                self._blue = self._blue.with_last_updated(promoted_at)
            else:
                promoted_at = max(now, self._blue.last_updated + timedelta(microseconds=1))
                self._green = self._green.with_last_updated(promoted_at)
        return promoted_at

    def _result(
        self,
        status: RefreshStatus,
        target: TableDescriptor,
        started_at: datetime,
        started: float,
        counters: Dict[str, Any],
        promoted_at: Optional[datetime] = None,
        error: Optional[Exception] = None
    ) -> RefreshResult:
        return RefreshResult(
            status=status,
            target_table=target.name,
            started_at=started_at,
            completed_at=self._clock(),
            duration_seconds=time.perf_counter() - started,
            rows_fetched=counters["rows_fetched"],
            records_loaded=counters["records_loaded"] if status == RefreshStatus.SUCCESS else 0,
            records_discarded=counters["records_discarded"],
            rows_per_source=dict(counters["rows_per_source"]),
            promoted_at=promoted_at,
            error_type=type(error).__name__ if error else None,
            error_message=getattr(error, "message", str(error)) if error else None,
        )
