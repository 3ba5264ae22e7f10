# Hey future me - this is THE background worker of songshelf! It owns the scan schedule:
#
#   IDLE ──tick/trigger──► SCANNING ──walk done──► ENRICHING ──► IDLE
#     └──────────────────────────── stop() ───────────────────────► STOPPED
#
# Single-flight: only ONE pass runs at a time. The guard is a plain non-blocking lock
# acquire - atomic, no check-then-set race. A second trigger while a pass is running is a
# logged no-op, never an error for the caller.
#
# Cancellation is cooperative: stop() sets an event the scanner checks between files and
# the enrichment checks between songs. The file in flight always finishes, so no half-written
# sidecar or row is left behind.
"""Library scan worker: scheduled scan + enrichment passes."""

import asyncio
import contextlib
import logging
import threading
import time
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from songshelf.application.services.library_enrichment_service import LibraryEnrichmentService
from songshelf.application.services.library_scanner_service import (
    LibraryScannerService,
    ScanPassStats,
)
from songshelf.domain.exceptions import ScanAlreadyRunningError
from songshelf.infrastructure.observability import log_operation, log_worker_health
from songshelf.infrastructure.observability.logging import scan_correlation

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    """Lifecycle state of the scan worker."""

    IDLE = "idle"
    SCANNING = "scanning"
    ENRICHING = "enriching"
    STOPPED = "stopped"


class LibraryScanWorker:
    """Run library scan passes on a fixed interval and on demand."""

    def __init__(
        self,
        scanner: LibraryScannerService,
        enrichment: LibraryEnrichmentService,
        interval_minutes: int = 5,
        scan_on_startup: bool = False,
    ) -> None:
        """Initialize worker.

        Args:
            scanner: Library scanner service
            enrichment: Enrichment service for missing lyrics/covers
            interval_minutes: Minutes between scheduled passes
            scan_on_startup: Run a pass immediately after start()
        """
        self.scanner = scanner
        self.enrichment = enrichment
        self.interval_seconds = interval_minutes * 60
        self.scan_on_startup = scan_on_startup

        self._pass_lock = threading.Lock()
        self._stop_event = asyncio.Event()
        self._state = ScanState.IDLE
        self._task: asyncio.Task[None] | None = None

        self._started_at: float | None = None
        self._last_run_at: datetime | None = None
        self._last_run_stats: ScanPassStats | None = None
        self._cycles_completed = 0
        self._errors_total = 0

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def is_scanning(self) -> bool:
        """True while a pass (scan or enrichment phase) is in flight."""
        return self._pass_lock.locked()

    @property
    def is_running(self) -> bool:
        """True while the scheduling loop is alive."""
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the scheduling loop."""
        if self.is_running:
            logger.warning("LibraryScanWorker is already running")
            return

        self._stop_event.clear()
        self._state = ScanState.IDLE
        self._started_at = time.monotonic()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            f"LibraryScanWorker started (interval: {self.interval_seconds}s, "
            f"scan_on_startup: {self.scan_on_startup})"
        )

    async def stop(self, timeout: float = 10.0) -> None:
        """Request cooperative cancellation and wait for the loop to finish.

        The file being processed completes first. If the pass doesn't wind down
        within timeout seconds the task is cancelled hard.
        """
        self._stop_event.set()
        if self._task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
            except TimeoutError:
                logger.warning(f"LibraryScanWorker did not stop within {timeout}s, cancelling")
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task
            self._task = None
        self._state = ScanState.STOPPED
        logger.info("LibraryScanWorker stopped")

    async def trigger_scan(self) -> ScanPassStats | None:
        """Run one pass now unless one is already running.

        Returns:
            Pass statistics, or None when the trigger was rejected
        """
        try:
            return await self.run_pass()
        except ScanAlreadyRunningError as e:
            logger.info(f"{e.message}, ignoring trigger")
            return None

    async def run_pass(self) -> ScanPassStats:
        """Run one scan + enrichment pass.

        Raises:
            ScanAlreadyRunningError: If another pass holds the guard
        """
        if not self._pass_lock.acquire(blocking=False):
            raise ScanAlreadyRunningError()

        try:
            # Own correlation id per pass, the caller's id comes back afterwards.
            with scan_correlation():
                return await self._execute_pass()
        except Exception:
            self._errors_total += 1
            raise
        finally:
            self._state = ScanState.STOPPED if self._stop_event.is_set() else ScanState.IDLE
            self._pass_lock.release()

    async def _execute_pass(self) -> ScanPassStats:
        stats = ScanPassStats()
        self._state = ScanState.SCANNING
        async with log_operation(logger, "library_scan", root=str(self.scanner.music_path)):
            records = await self.scanner.scan_library(stats, should_stop=self._should_stop)

            if not self._should_stop():
                self._state = ScanState.ENRICHING
                await self.enrichment.enrich_records(records, stats, should_stop=self._should_stop)

        stats.cancelled = stats.cancelled or self._should_stop()
        self._last_run_at = datetime.now(UTC)
        self._last_run_stats = stats
        self._cycles_completed += 1
        logger.info(
            f"Library pass complete: {stats.files_seen} files, {stats.inserted} new, "
            f"{stats.updated} updated, {stats.skipped} skipped, {stats.errors} errors, "
            f"{stats.lyrics_enriched} lyrics / {stats.covers_enriched} covers enriched"
        )
        log_worker_health(
            logger,
            "library_scan",
            cycles_completed=self._cycles_completed,
            errors_total=self._errors_total,
            uptime_seconds=self._uptime(),
            extra_stats=stats.to_dict(),
        )
        return stats

    def get_status(self) -> dict[str, Any]:
        """Get worker status for monitoring.

        Returns:
            Dict with state, schedule and last pass stats
        """
        return {
            "name": "Library Scan Worker",
            "running": self.is_running,
            "state": self._state.value,
            "scanning": self.is_scanning,
            "interval_seconds": self.interval_seconds,
            "cycles_completed": self._cycles_completed,
            "errors_total": self._errors_total,
            "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
            "last_run_stats": self._last_run_stats.to_dict() if self._last_run_stats else None,
        }

    def _should_stop(self) -> bool:
        return self._stop_event.is_set()

    def _uptime(self) -> float:
        return time.monotonic() - self._started_at if self._started_at is not None else 0.0

    async def _run_loop(self) -> None:
        """Main worker loop: optional startup pass, then one pass per interval."""
        if self.scan_on_startup:
            await self._safe_pass()

        while not self._stop_event.is_set():
            # Interruptible sleep: stop() wakes us immediately.
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            if self._stop_event.is_set():
                break
            await self._safe_pass()

    async def _safe_pass(self) -> None:
        try:
            await self.trigger_scan()
        except Exception as e:
            # The loop must survive a failed pass, the next tick tries again.
            logger.error(f"Library scan pass failed: {e}", exc_info=True)
