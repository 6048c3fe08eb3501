"""
Segment Ledger Tests

Contract tests run against both ledgers (SQLite and in-memory):
- Insert / get / update / delete
- Ordering of list queries
- Compare-and-set status transitions
- Stuck upload recovery

To run these tests:
    pytest tests/storage/test_segment_ledger.py -v
"""

from dataclasses import replace

import pytest

from storage.constants import UploadStatus
from storage.implementations.sqlite_ledger import SQLiteLedger
from storage.interfaces.ledger_interface import StorageError

# =============================================================================
# ROW OPERATIONS
# =============================================================================


@pytest.mark.unit
def test_insert_and_get(ledger, make_segment):
    """
    Test inserting a segment and reading it back.

    Should:
    - Return an equal segment
    - Keep the path as a Path object
    """
    segment = make_segment(size=250)
    ledger.insert(segment)

    stored = ledger.get(segment.id)

    assert stored is not None
    assert stored.file_name == segment.file_name
    assert stored.file_path == segment.file_path
    assert stored.file_size_bytes == 250
    assert stored.recorded_at == segment.recorded_at
    assert stored.upload_status == UploadStatus.PENDING
    assert ledger.count() == 1


@pytest.mark.unit
def test_get_unknown_id_returns_none(ledger):
    assert ledger.get("does-not-exist") is None


@pytest.mark.unit
def test_insert_same_id_replaces_row(ledger, make_segment):
    """
    Test that insert behaves as an upsert.

    A second insert with the same id replaces the row instead of failing.
    """
    segment = make_segment(size=100)
    ledger.insert(segment)
    ledger.insert(replace(segment, file_size_bytes=999))

    assert ledger.count() == 1
    assert ledger.get(segment.id).file_size_bytes == 999


@pytest.mark.unit
def test_update_existing_row(ledger, make_segment):
    segment = make_segment()
    ledger.insert(segment)

    ledger.update(replace(segment, last_error="boom", retry_count=2))

    stored = ledger.get(segment.id)
    assert stored.last_error == "boom"
    assert stored.retry_count == 2


@pytest.mark.unit
def test_update_missing_row_raises(ledger, make_segment):
    """Updating a row that was never inserted raises StorageError."""
    with pytest.raises(StorageError):
        ledger.update(make_segment())


@pytest.mark.unit
def test_delete(ledger, make_segment):
    """
    Test deleting rows.

    Should:
    - Return True when a row was removed
    - Return False for an unknown id
    """
    segment = make_segment()
    ledger.insert(segment)

    assert ledger.delete(segment.id) is True
    assert ledger.get(segment.id) is None
    assert ledger.delete(segment.id) is False


@pytest.mark.unit
def test_delete_skips_excluded_status(ledger, make_segment):
    """
    Test the status-guarded delete.

    Should:
    - Leave a row whose current status is excluded
    - Remove it once its status is no longer excluded
    """
    segment = make_segment()
    ledger.insert(segment)
    ledger.transition_status(segment.id, UploadStatus.PENDING, UploadStatus.UPLOADING)

    assert ledger.delete(segment.id, exclude_statuses=[UploadStatus.UPLOADING]) is False
    assert ledger.get(segment.id) is not None

    ledger.transition_status(segment.id, UploadStatus.UPLOADING, UploadStatus.PENDING)

    assert ledger.delete(segment.id, exclude_statuses=[UploadStatus.UPLOADING]) is True
    assert ledger.get(segment.id) is None


@pytest.mark.unit
def test_returned_rows_are_copies(memory_ledger, make_segment):
    """Mutating a returned segment does not change the stored row."""
    segment = make_segment()
    memory_ledger.insert(segment)

    copy = memory_ledger.get(segment.id)
    copy.upload_status = UploadStatus.FAILED

    assert memory_ledger.get(segment.id).upload_status == UploadStatus.PENDING


# =============================================================================
# QUERIES
# =============================================================================


@pytest.mark.unit
def test_list_segments_ordering(ledger, make_segment):
    """
    Test list ordering by recorded_at.

    Newest first for display, oldest first when requested.
    """
    middle = make_segment(minutes=5)
    oldest = make_segment(minutes=0)
    newest = make_segment(minutes=10)
    for segment in (middle, oldest, newest):
        ledger.insert(segment)

    newest_first = [s.id for s in ledger.list_segments()]
    oldest_first = [s.id for s in ledger.list_segments(newest_first=False)]

    assert newest_first == [newest.id, middle.id, oldest.id]
    assert oldest_first == [oldest.id, middle.id, newest.id]
    assert len(ledger.list_segments(limit=2)) == 2


@pytest.mark.unit
def test_list_by_status_oldest_first_with_limit(ledger, make_segment):
    pending_late = make_segment(minutes=20)
    pending_early = make_segment(minutes=1)
    skipped = make_segment(minutes=0, status=UploadStatus.SKIPPED)
    for segment in (pending_late, pending_early, skipped):
        ledger.insert(segment)

    pending = ledger.list_by_status(UploadStatus.PENDING)
    limited = ledger.list_by_status(UploadStatus.PENDING, limit=1)

    assert [s.id for s in pending] == [pending_early.id, pending_late.id]
    assert [s.id for s in limited] == [pending_early.id]


@pytest.mark.unit
def test_oldest_respects_excluded_statuses(ledger, make_segment):
    """
    Test oldest() skipping protected statuses.

    The oldest row is mid-upload, so the next one is returned.
    """
    first = make_segment(minutes=0)
    second = make_segment(minutes=1, status=UploadStatus.SKIPPED)
    ledger.insert(first)
    ledger.insert(second)
    ledger.transition_status(first.id, UploadStatus.PENDING, UploadStatus.UPLOADING)

    assert ledger.oldest().id == first.id
    assert ledger.oldest(exclude_statuses=(UploadStatus.UPLOADING,)).id == second.id


@pytest.mark.unit
def test_oldest_on_empty_ledger(ledger):
    assert ledger.oldest() is None


@pytest.mark.unit
def test_total_size(ledger, make_segment):
    ledger.insert(make_segment(size=100))
    ledger.insert(make_segment(size=250))

    assert ledger.total_size() == 350


# =============================================================================
# ATOMIC STATUS OPERATIONS
# =============================================================================


@pytest.mark.unit
def test_transition_status_compare_and_set(ledger, make_segment):
    """
    Test compare-and-set semantics.

    Should:
    - Change the row when the expected status matches
    - Refuse (return False) when it does not
    """
    segment = make_segment()
    ledger.insert(segment)

    assert ledger.transition_status(
        segment.id, UploadStatus.PENDING, UploadStatus.UPLOADING
    )
    # Second claim loses the race
    assert not ledger.transition_status(
        segment.id, UploadStatus.PENDING, UploadStatus.UPLOADING
    )
    assert ledger.get(segment.id).upload_status == UploadStatus.UPLOADING


@pytest.mark.unit
def test_transition_status_increments_retry_and_stores_error(ledger, make_segment):
    segment = make_segment(retry_count=1)
    ledger.insert(segment)
    ledger.transition_status(segment.id, UploadStatus.PENDING, UploadStatus.UPLOADING)

    changed = ledger.transition_status(
        segment.id,
        UploadStatus.UPLOADING,
        UploadStatus.PENDING,
        error="network: offline",
        increment_retry=True,
    )

    stored = ledger.get(segment.id)
    assert changed
    assert stored.upload_status == UploadStatus.PENDING
    assert stored.retry_count == 2
    assert stored.last_error == "network: offline"


@pytest.mark.unit
@pytest.mark.parametrize(
    "from_status,to_status",
    [
        (UploadStatus.COMPLETED, UploadStatus.PENDING),
        (UploadStatus.FAILED, UploadStatus.PENDING),
        (UploadStatus.SKIPPED, UploadStatus.PENDING),
        (UploadStatus.PENDING, UploadStatus.COMPLETED),
    ],
)
def test_transition_status_rejects_illegal_edges(ledger, make_segment, from_status, to_status):
    """Edges outside the allowed table raise ValueError."""
    segment = make_segment()
    ledger.insert(segment)

    with pytest.raises(ValueError):
        ledger.transition_status(segment.id, from_status, to_status)


@pytest.mark.unit
def test_transition_status_unknown_row(ledger):
    assert not ledger.transition_status(
        "missing", UploadStatus.PENDING, UploadStatus.UPLOADING
    )


@pytest.mark.unit
def test_mark_uploaded(ledger, make_segment):
    """
    Test completing an upload.

    Should:
    - Only succeed from UPLOADING
    - Store URL and clear last_error
    """
    segment = make_segment()
    ledger.insert(segment)

    assert not ledger.mark_uploaded(segment.id, "https://example.com/v")

    ledger.transition_status(
        segment.id, UploadStatus.PENDING, UploadStatus.UPLOADING, error="old error"
    )
    assert ledger.mark_uploaded(segment.id, "https://example.com/v")

    stored = ledger.get(segment.id)
    assert stored.upload_status == UploadStatus.COMPLETED
    assert stored.remote_url == "https://example.com/v"
    assert stored.uploaded_at is not None
    assert stored.last_error is None


@pytest.mark.unit
def test_reset_stuck_uploads_keeps_retry_count(ledger, make_segment):
    """
    Test crash recovery of UPLOADING rows.

    retry_count is not incremented by the reset.
    """
    stuck = make_segment(retry_count=2)
    other = make_segment()
    ledger.insert(stuck)
    ledger.insert(other)
    ledger.transition_status(stuck.id, UploadStatus.PENDING, UploadStatus.UPLOADING)

    assert ledger.reset_stuck_uploads() == 1

    stored = ledger.get(stuck.id)
    assert stored.upload_status == UploadStatus.PENDING
    assert stored.retry_count == 2
    assert ledger.reset_stuck_uploads() == 0


# =============================================================================
# SQLITE SPECIFICS
# =============================================================================


@pytest.mark.integration
def test_sqlite_creates_database_file(temp_storage_dir):
    ledger = SQLiteLedger(temp_storage_dir, db_name="ledger.db")

    assert (temp_storage_dir / "ledger.db").exists()
    ledger.close()


@pytest.mark.integration
def test_sqlite_persists_across_instances(temp_storage_dir, make_segment):
    """Rows written by one instance are visible after reopening."""
    segment = make_segment(status=UploadStatus.SKIPPED)

    first = SQLiteLedger(temp_storage_dir)
    first.insert(segment)
    first.close()

    second = SQLiteLedger(temp_storage_dir)
    stored = second.get(segment.id)
    second.close()

    assert stored is not None
    assert stored.upload_status == UploadStatus.SKIPPED


@pytest.mark.unit
def test_memory_ledger_simulated_write_failure(memory_ledger, make_segment):
    memory_ledger.simulate_write_failure()

    with pytest.raises(StorageError):
        memory_ledger.insert(make_segment())
