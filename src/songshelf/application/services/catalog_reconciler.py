"""Keep one catalog row per audio file: decide skip, insert or update."""

import logging

from songshelf.domain.entities import ReconcileOutcome, ScanRecord, SongScanState
from songshelf.domain.exceptions import DuplicateEntityException
from songshelf.infrastructure.persistence import Database, SongRepository, with_db_retry

logger = logging.getLogger(__name__)


# Hey future me, the decision table (per file, per pass):
#
#   no row                      → INSERT  (play_count 0, created_at = updated_at = now)
#   row.is_deleted              → SKIP    (admin removed it, never resurrect)
#   row.is_collect              → SKIP    (lyrics + cover done, nothing to gain)
#   row exists, not collected   → UPDATE  (tags may have been fixed, sidecars may have appeared)
#
# The lookup and the write are two separate statements on purpose - the catalog is shared
# with the serving layer and we never hold a transaction across a file. The price is the
# insert race: if the row appears in between, the unique constraint catches it and we report
# ALREADY_EXISTS instead of failing.
class CatalogReconciler:
    """Reconcile scan records against the songs table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @with_db_retry()
    async def lookup(self, relative_path: str) -> SongScanState | None:
        """Fetch the skip/update flags for a file, None when it's not catalogued yet."""
        async with self._db.session_scope() as session:
            return await SongRepository(session).get_scan_state(relative_path)

    @staticmethod
    def should_skip(state: SongScanState | None) -> bool:
        """True when the file must not be re-extracted this pass."""
        return state is not None and (state.is_deleted or state.is_collect)

    async def reconcile(
        self, record: ScanRecord, state: SongScanState | None
    ) -> ReconcileOutcome:
        """
        Write one scan record to the catalog.

        Args:
            record: Resolved metadata for the file
            state: Result of lookup() for the same relative path

        Returns:
            What happened to the row
        """
        if self.should_skip(state):
            return ReconcileOutcome.SKIPPED

        if state is None:
            try:
                song_id = await self._insert(record)
            except DuplicateEntityException:
                logger.info(f"Song already catalogued, nothing to insert: {record.relative_path}")
                return ReconcileOutcome.ALREADY_EXISTS
            logger.debug(f"Inserted song {song_id}: {record.relative_path}")
            return ReconcileOutcome.INSERTED

        if not await self._update(state.id, record):
            logger.info(f"Song changed during the scan (deleted or collected), left alone: {record.relative_path}")
            return ReconcileOutcome.SKIPPED
        logger.debug(f"Updated song {state.id}: {record.relative_path}")
        return ReconcileOutcome.UPDATED

    async def apply_sidecars(self, record: ScanRecord) -> bool:
        """Store sidecar paths found during enrichment (update only, never inserts).

        Returns:
            True if a catalog row was changed
        """
        changed = await self._update_sidecars(record)
        if not changed:
            logger.debug(f"No catalog row to enrich for {record.relative_path}")
        return changed > 0

    @with_db_retry()
    async def _insert(self, record: ScanRecord) -> int:
        async with self._db.session_scope() as session:
            return await SongRepository(session).insert_scanned(record)

    @with_db_retry()
    async def _update(self, song_id: int, record: ScanRecord) -> int:
        async with self._db.session_scope() as session:
            return await SongRepository(session).update_scanned(song_id, record)

    @with_db_retry()
    async def _update_sidecars(self, record: ScanRecord) -> int:
        async with self._db.session_scope() as session:
            return await SongRepository(session).update_sidecars(
                record.relative_path,
                record.lyrics_path,
                record.cover_path,
            )
