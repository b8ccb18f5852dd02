"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from concrete_orders.database import create_db_engine, create_session_factory, init_db
from concrete_orders.store import OrderStore
from concrete_orders.services.duplicate_guard import DuplicateGuard
from concrete_orders.services.ingestion import IngestionService
from concrete_orders.services.line_reply import LineReplyService
from concrete_orders.services.sheets_sync import SheetsSyncService, SyncResult
from concrete_orders.services.service_factory import clear_all_service_caches


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = datetime(2026, 1, 21, 8, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


@pytest.fixture
def single_item_message() -> str:
    """One product, concrete total on a grand-total line."""
    return (
        "21/01/69\n"
        "โรง4 สั่งคอนกรีต\n"
        "A42-L-Wall-H200\n"
        "Counterfort 8 ตัว\n"
        "จำนวนปูน=0.7คิว\n"
        "รวมทั้งหมด = 0.7 คิว"
    )


@pytest.fixture
def two_item_message() -> str:
    """Two products on one line sharing one concrete total."""
    return (
        "20/1/2026\n"
        "โรง2 สั่งคอนกรีต\n"
        "A35-FZC-F60 จำนวน 6 ชิ้น A35-FZC-F35 จำนวน 6 ชิ้น \n"
        "จำนวนคอนกรีต=0.25 คิว\n"
        "พี่สมชาย"
    )


@pytest.fixture(autouse=True)
def reset_service_singletons():
    """Drop cached service instances between tests."""
    yield
    clear_all_service_caches()


@pytest.fixture
def clock() -> FakeClock:
    """Clock shared by the store under test."""
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock) -> OrderStore:
    """OrderStore on a fresh SQLite file."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'orders.db'}")
    init_db(engine)
    yield OrderStore(create_session_factory(engine), clock=clock)
    engine.dispose()


@pytest.fixture
def guard(store) -> DuplicateGuard:
    """Duplicate guard with default windows."""
    return DuplicateGuard(store)


@pytest.fixture
def ingestion(store, guard) -> IngestionService:
    """Ingestion service wired to the test store."""
    return IngestionService(store, guard)


@pytest.fixture
def sync_service() -> MagicMock:
    """Sheets sync stand-in."""
    mock = MagicMock(spec=SheetsSyncService)
    mock.sync_unsynced.return_value = SyncResult(synced=0)
    return mock


@pytest.fixture
def reply_service() -> MagicMock:
    """LINE reply client stand-in."""
    return MagicMock(spec=LineReplyService)


@pytest.fixture
def client(store, ingestion, sync_service, reply_service):
    """Create FastAPI test client bound to the test store."""
    from concrete_orders.main import app
    from concrete_orders.api.dependencies import (
        get_ingestion_dependency,
        get_line_reply_dependency,
        get_sheets_sync_dependency,
        get_store_dependency,
    )

    app.dependency_overrides[get_store_dependency] = lambda: store
    app.dependency_overrides[get_ingestion_dependency] = lambda: ingestion
    app.dependency_overrides[get_sheets_sync_dependency] = lambda: sync_service
    app.dependency_overrides[get_line_reply_dependency] = lambda: reply_service
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
