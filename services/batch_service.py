"""
Grouped writes against Supabase.

A WriteBatch collects row writes for several tables and sends one upsert
per table, in the order tables were first touched. PostgREST only makes
each statement atomic, so a failure part way leaves earlier tables
written; callers rely on deterministic ids so that committing the same
batch again converges to the same rows.
"""

from typing import Any
import structlog

from exceptions import BatchCommitError

logger = structlog.get_logger(__name__)


class WriteBatch:
    """
    Upserts grouped by table.

    Usage:
        batch = WriteBatch(db)
        batch.set("projects", {"id": "ACME_KITCHEN", ...}, merge=True)
        batch.set("pieces", {"id": "ws_ABC123", ...})
        counts = batch.commit()
    """

    def __init__(self, db):
        self.db = db
        # (table, merge) -> {row id: row}; dicts keep first-touch order
        self._writes: dict[tuple[str, bool], dict[str, dict[str, Any]]] = {}
        self._committed = False

    def set(self, table: str, row: dict[str, Any], merge: bool = False) -> "WriteBatch":
        """
        Queue a full-row write keyed by ``row["id"]``.

        A later write of the same id in the same table replaces the earlier
        one. With ``merge=True`` rows that already exist are left untouched.
        """
        if self._committed:
            raise RuntimeError("WriteBatch already committed")
        self._writes.setdefault((table, merge), {})[row["id"]] = row
        return self

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._writes.values())

    @property
    def tables(self) -> list[str]:
        return [table for table, _ in self._writes]

    def commit(self) -> dict[str, int]:
        """
        Send every queued write.

        Returns:
            Rows written per table

        Raises:
            BatchCommitError: A statement failed; ``details.applied_tables``
                lists the tables already written
        """
        counts: dict[str, int] = {}
        applied: list[str] = []

        logger.info("write_batch_committing", tables=self.tables, rows=len(self))

        for (table, merge), rows in self._writes.items():
            try:
                self.db.table(table).upsert(
                    list(rows.values()),
                    on_conflict="id",
                    ignore_duplicates=merge,
                ).execute()
            except Exception as e:
                logger.error(
                    "write_batch_failed",
                    table=table,
                    applied_tables=applied,
                    error=str(e),
                )
                raise BatchCommitError(table, str(e), applied)

            applied.append(table)
            counts[table] = counts.get(table, 0) + len(rows)

        self._committed = True
        logger.info("write_batch_committed", counts=counts)

        return counts
