"""
Pytest configuration and fixtures for figsync tests.
"""

import itertools
import os
from datetime import date, datetime
from typing import Any, Callable, Generator

# Keep the application engine off the production database during tests
os.environ.setdefault("DATABASE_URL", "sqlite:///./figsync_test.db")

import pytest
import redis
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import figsync.models  # noqa: F401
from figsync.api.deps import get_job_queue, get_rate_limiter, get_status_store
from figsync.core.database import Base, get_db
from figsync.core.rate_limit import SyncRateLimiter
from figsync.main import app
from figsync.models.item import Item, ItemRelease
from figsync.schemas.sync import ImportRecord
from figsync.services.exceptions import JobQueueError, StatusStoreError
from figsync.services.jobs import JobDispatcher, JobStatusTracker
from figsync.services.sync_service import SyncService

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


class FakeJobQueue:
    """In-memory job queue."""

    def __init__(self):
        self.jobs: dict[str, dict[str, Any]] = {}
        self.fail = False
        self._ids = itertools.count(1)

    def enqueue(self, payload: dict[str, Any]) -> str:
        if self.fail:
            raise JobQueueError("Failed to queue CSV sync job")
        job_id = f"job-{next(self._ids)}"
        self.jobs[job_id] = payload
        return job_id


class FakeStatusStore:
    """In-memory key-value store that remembers TTLs instead of expiring."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail_writes = False
        self.fail_reads = False

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        if self.fail_writes:
            raise StatusStoreError(f"Failed to write {key}")
        self.values[key] = value
        self.ttls[key] = ttl_seconds

    def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise StatusStoreError(f"Failed to read {key}")
        return self.values.get(key)

    def expire(self, key: str) -> None:
        self.values.pop(key, None)
        self.ttls.pop(key, None)


class FakeSortedSetRedis:
    """The slice of the Redis sorted-set API the rate limiter uses."""

    def __init__(self):
        self.sets: dict[str, dict[str, float]] = {}
        self.expiry: dict[str, int] = {}
        self.fail = False

    def pipeline(self) -> "FakePipeline":
        return FakePipeline(self)

    def zrange(self, key: str, start: int, end: int, withscores: bool = False) -> list:
        if self.fail:
            raise redis.ConnectionError("Redis unavailable")
        members = sorted(self.sets.get(key, {}).items(), key=lambda item: item[1])
        sliced = members[start : None if end == -1 else end + 1]
        return sliced if withscores else [member for member, _ in sliced]


class FakePipeline:
    def __init__(self, client: FakeSortedSetRedis):
        self.client = client
        self.commands: list[Callable[[], Any]] = []

    def zremrangebyscore(self, key: str, low: float, high: float) -> None:
        def run():
            members = self.client.sets.setdefault(key, {})
            doomed = [m for m, score in members.items() if low <= score <= high]
            for member in doomed:
                del members[member]
            return len(doomed)

        self.commands.append(run)

    def zcard(self, key: str) -> None:
        self.commands.append(lambda: len(self.client.sets.get(key, {})))

    def zadd(self, key: str, mapping: dict[str, float]) -> None:
        def run():
            self.client.sets.setdefault(key, {}).update(mapping)
            return len(mapping)

        self.commands.append(run)

    def expire(self, key: str, seconds: int) -> None:
        def run():
            self.client.expiry[key] = seconds
            return True

        self.commands.append(run)

    def execute(self) -> list:
        if self.client.fail:
            raise redis.ConnectionError("Redis unavailable")
        return [command() for command in self.commands]

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_queue() -> FakeJobQueue:
    return FakeJobQueue()


@pytest.fixture
def fake_store() -> FakeStatusStore:
    return FakeStatusStore()


@pytest.fixture
def fake_redis() -> FakeSortedSetRedis:
    return FakeSortedSetRedis()


@pytest.fixture
def rate_limiter(fake_redis: FakeSortedSetRedis) -> SyncRateLimiter:
    """Generous limiter so ordinary API tests never hit it."""
    return SyncRateLimiter(fake_redis, max_requests=1000, window_seconds=3600)


@pytest.fixture
def tracker(fake_store: FakeStatusStore) -> JobStatusTracker:
    return JobStatusTracker(
        fake_store,
        ttl_seconds=600,
        completed_ttl_seconds=3600,
        clock=lambda: datetime(2024, 5, 1, 12, 0, 0),
    )


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Deterministic id generator."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def sync_service(
    db: Session,
    fake_queue: FakeJobQueue,
    tracker: JobStatusTracker,
    id_factory: Callable[[], str],
) -> SyncService:
    return SyncService(db, JobDispatcher(fake_queue, tracker), tracker, id_factory=id_factory)


@pytest.fixture(scope="function")
def client(
    db: Session,
    fake_queue: FakeJobQueue,
    fake_store: FakeStatusStore,
    rate_limiter: SyncRateLimiter,
) -> Generator[TestClient, None, None]:
    """Create a test client with database and infrastructure overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_job_queue] = lambda: fake_queue
    app.dependency_overrides[get_status_store] = lambda: fake_store
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"X-User-Id": USER_ID}


@pytest.fixture
def catalog(db: Session) -> dict[int, Item]:
    """Catalog items keyed by external id, with releases for some of them."""
    items = [
        Item(external_id=1001, source="mfc", title="Rem 1/7 Crystal Dress", category="Prepainted"),
        Item(external_id=1002, source="mfc", title="Saber Alter Nendoroid", category="Action/Dolls"),
        Item(external_id=1003, source="mfc", title="Miku Racing 2023", category="Prepainted"),
        # Same external id in another namespace must never match
        Item(external_id=2001, source="custom", title="Custom Garage Kit"),
    ]
    db.add_all(items)
    db.flush()

    db.add_all(
        [
            ItemRelease(item_id=items[0].id, release_date=date(2022, 3, 1), type="original"),
            ItemRelease(item_id=items[0].id, release_date=date(2023, 8, 1), type="rerelease"),
            ItemRelease(item_id=items[1].id, release_date=date(2021, 11, 1), type="original"),
        ]
    )
    db.commit()

    return {item.external_id: item for item in items if item.source == "mfc"}


@pytest.fixture
def make_record() -> Callable[..., ImportRecord]:
    """Build an ImportRecord with sensible defaults."""

    def _make(**overrides: Any) -> ImportRecord:
        fields: dict[str, Any] = {
            "item_external_id": 1001,
            "status": "Owned",
            "count": 1,
            "score": "8.0",
            "payment_date": "2023-01-10",
            "shipping_date": "2023-02-01",
            "collecting_date": "2023-02-10",
            "price": "15800.00",
            "shop": "AmiAmi",
            "shipping_method": "EMS",
            "note": "",
        }
        fields.update(overrides)
        return ImportRecord(**fields)

    return _make
