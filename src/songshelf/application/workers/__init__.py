"""Background workers."""

from songshelf.application.workers.library_scan_worker import LibraryScanWorker, ScanState

__all__ = ["LibraryScanWorker", "ScanState"]
