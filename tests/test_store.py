"""
Tests for BulkJobStore persistence and conditional updates.
"""

import pytest

from bulk_outreach.database import init_database
from bulk_outreach.database.connection import DatabaseConfig, DatabaseManager
from bulk_outreach.database.models import JobStatus
from bulk_outreach.errors import ConflictError, JobNotFoundError, StoreError

pytestmark = [pytest.mark.db]


def create(store, **overrides):
    fields = dict(
        sender_url="https://sender.example.com",
        sender_what_we_do="Invoice automation",
        sender_intent="Book a demo",
        style_slug="the-one-liner",
        prospects_data='{"schema_version": 1, "prospects": []}',
        total_prospects=0,
    )
    fields.update(overrides)
    return store.create_job(**fields)


def test_create_and_get_job(store):
    job = create(store, total_prospects=4)

    loaded = store.get_job(job.id)

    assert loaded.id == job.id
    assert loaded.status == JobStatus.PENDING
    assert loaded.version == 1
    assert loaded.total_prospects == 4
    assert loaded.remaining_count == 4
    assert loaded.created_at is not None
    assert not loaded.is_terminal


def test_get_missing_job_raises_not_found(store):
    with pytest.raises(JobNotFoundError) as exc_info:
        store.get_job("does-not-exist")
    assert exc_info.value.status_code == 404
    assert exc_info.value.payload["error"]["details"] == {"job_id": "does-not-exist"}


def test_update_bumps_version(store):
    job = create(store)

    updated = store.update_job(job.id, job.version, status=JobStatus.PROCESSING, processed_count=2)

    assert updated.version == job.version + 1
    assert updated.status == JobStatus.PROCESSING
    assert updated.processed_count == 2
    assert updated.updated_at >= job.updated_at


def test_stale_version_raises_conflict(store):
    job = create(store)
    store.update_job(job.id, job.version, status=JobStatus.PROCESSING)

    with pytest.raises(ConflictError) as exc_info:
        store.update_job(job.id, job.version, status=JobStatus.CANCELLED)

    assert exc_info.value.status_code == 409
    assert exc_info.value.details["current_version"] == job.version + 1
    assert store.get_job(job.id).status == JobStatus.PROCESSING


def test_update_missing_job_raises_not_found(store):
    with pytest.raises(JobNotFoundError):
        store.update_job("missing", 1, status=JobStatus.CANCELLED)


def test_update_rejects_unknown_columns(store):
    job = create(store)
    with pytest.raises(ValueError):
        store.update_job(job.id, job.version, version=99)


def test_list_jobs_newest_first_with_filter(store):
    first = create(store)
    second = create(store)
    store.update_job(first.id, first.version, status=JobStatus.CANCELLED)

    assert {job.id for job in store.list_jobs()} == {first.id, second.id}
    assert [job.id for job in store.list_jobs(status=JobStatus.CANCELLED)] == [first.id]
    assert len(store.list_jobs(limit=1)) == 1


def test_database_failure_is_wrapped_as_store_error(store, db_manager):
    db_manager.engine.dispose()
    with db_manager.engine.begin() as connection:
        connection.exec_driver_sql("DROP TABLE bulk_jobs")

    with pytest.raises(StoreError):
        store.get_job("anything")


def test_init_database_creates_tables(tmp_path):
    manager = DatabaseManager(DatabaseConfig(url=f"sqlite:///{tmp_path / 'init.db'}"))
    try:
        ok, message = init_database(manager)
        assert ok, message
        assert manager.get_table_names() == ["bulk_jobs"]
        assert manager.test_connection() == (True, None)
    finally:
        manager.close()


def test_postgres_config_requires_password(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DB_PASSWORD", "")

    config = DatabaseConfig()

    assert config.database_url.startswith("postgresql://")
    assert config.validate_config() == (False, "DB_PASSWORD is required")
    assert not config.is_sqlite
