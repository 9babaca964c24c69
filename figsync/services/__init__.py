from figsync.services import sync_service
from figsync.services.catalog import (
    LatestReleases,
    MatchedItem,
    get_owned_item_ids,
    match_catalog_items,
    resolve_latest_releases,
)
from figsync.services.collection_writer import insert_collection_and_orders
from figsync.services.csv_parser import CollectionCSVParser, parse_collection_csv
from figsync.services.dates import sanitize_date
from figsync.services.defaults import default_price, default_score
from figsync.services.jobs import JobDispatcher, JobStatusTracker
from figsync.services.orders import OrderPayload, synthesize_orders
from figsync.services.reconciliation import (
    CollectionEntryPayload,
    ReconciliationResult,
    Reconciler,
)
from figsync.services.sync_service import SyncResult, SyncService

__all__ = [
    "sync_service",
    # CSV parsing
    "CollectionCSVParser",
    "parse_collection_csv",
    # Normalization and defaults
    "sanitize_date",
    "default_score",
    "default_price",
    # Catalog lookups
    "MatchedItem",
    "LatestReleases",
    "match_catalog_items",
    "get_owned_item_ids",
    "resolve_latest_releases",
    # Reconciliation
    "OrderPayload",
    "synthesize_orders",
    "CollectionEntryPayload",
    "ReconciliationResult",
    "Reconciler",
    "insert_collection_and_orders",
    # Dispatch
    "JobDispatcher",
    "JobStatusTracker",
    "SyncService",
    "SyncResult",
]
