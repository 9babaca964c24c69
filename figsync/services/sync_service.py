"""
Collection import pipeline.

Handles a full import request:
1. Reconcile records against the catalog and the user's collection
2. Insert ready rows (and synthesized orders) in one transaction
3. Queue unknown catalog items for external lookup
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sqlalchemy.orm import Session

from figsync.core.logging import get_context_logger
from figsync.schemas.sync import ImportRecord, JobStatusRecord
from figsync.services.collection_writer import insert_collection_and_orders
from figsync.services.exceptions import DispatchError
from figsync.services.jobs import JobDispatcher, JobStatusTracker
from figsync.services.reconciliation import Reconciler, new_id

STATUS_QUEUED = "Job added to queue."
STATUS_ALL_SYNCED = (
    "All items already synced to your collection. "
    "If you want to add duplicates, use Collection/Order Sync."
)
STATUS_NO_LOOKUP = "Sync completed - All items already in database, no lookup needed"


@dataclass
class SyncResult:
    inserted_count: int
    external_lookup_ids: list[int]
    job_id: str | None
    status: str

    @property
    def is_finished(self) -> bool:
        return self.job_id is None


class SyncService:
    """Reconciles an import batch, persists what it can and dispatches the rest."""

    def __init__(
        self,
        db: Session,
        dispatcher: JobDispatcher,
        tracker: JobStatusTracker,
        source: str = "mfc",
        id_factory: Callable[[], str] = new_id,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.tracker = tracker
        self.reconciler = Reconciler(db, source=source, id_factory=id_factory)

    def reconcile_and_dispatch(self, records: Sequence[ImportRecord], user_id: str) -> SyncResult:
        """
        Run the import pipeline for one batch.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: a lookup query failed; nothing written.
            CollectionWriteError: the insert failed and was rolled back.
            DispatchError: rows were saved (see ``inserted_count``) but the
                lookup job could not be queued or tracked.
        """
        logger = get_context_logger(__name__, user_id=user_id, batch_size=len(records))

        result = self.reconciler.reconcile(records, user_id)

        inserted_count = 0
        if result.ready_to_insert:
            inserted_count = insert_collection_and_orders(
                self.db, result.ready_to_insert, result.orders_to_insert
            )

        external_lookup_ids = list(
            dict.fromkeys(record.item_external_id for record in result.needs_external_lookup)
        )

        job_id = None
        if result.needs_external_lookup:
            try:
                job_id = self.dispatcher.dispatch(result.needs_external_lookup, user_id)
            except DispatchError as e:
                e.inserted_count = inserted_count
                logger.error(
                    f"Saved {inserted_count} items but lookup dispatch failed: {e}",
                    extra={"extra_fields": {"job_id": e.job_id}},
                )
                raise

        if job_id:
            status = STATUS_QUEUED
        elif inserted_count == 0:
            status = STATUS_ALL_SYNCED
        else:
            status = STATUS_NO_LOOKUP

        logger.info(
            "Import processed",
            extra={
                "extra_fields": {
                    "inserted": inserted_count,
                    "orders": len(result.orders_to_insert),
                    "skipped": len(result.skipped_positions),
                    "lookup": len(result.needs_external_lookup),
                    "job_id": job_id,
                }
            },
        )

        return SyncResult(
            inserted_count=inserted_count,
            external_lookup_ids=external_lookup_ids,
            job_id=job_id,
            status=status,
        )

    def get_job_status(self, job_id: str) -> JobStatusRecord:
        """Raises JobNotFoundError when no status record exists."""
        return self.tracker.get(job_id)
