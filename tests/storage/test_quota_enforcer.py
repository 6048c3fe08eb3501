"""
Quota Enforcer Tests

Tests for oldest-first eviction against a simulated disk:
- Nothing happens below the threshold
- Oldest segments go first, files and rows together
- Segments mid-upload are never evicted

To run these tests:
    pytest tests/storage/test_quota_enforcer.py -v
"""

import pytest

from storage.constants import UploadStatus

# =============================================================================
# EVICTION
# =============================================================================


@pytest.mark.unit
def test_below_threshold_deletes_nothing(
    storage_controller, quota_enforcer, make_segment, simulated_disk
):
    """Usage under the limit leaves the ledger untouched."""
    storage_controller.save_segment(make_segment(size=100))
    simulated_disk.baseline = 500  # 60% used

    assert quota_enforcer.enforce(max_storage_percent=90) == 0
    assert storage_controller.ledger.count() == 1


@pytest.mark.unit
def test_evicts_oldest_until_under_threshold(
    storage_controller, quota_enforcer, make_segment, simulated_disk, evicted_tracker
):
    """
    Test eviction order and stop condition.

    Disk: 1000 bytes, 600 baseline + three 100-byte segments = 90%.
    Limit 80% needs two evictions (90 -> 80 -> 70).

    Should:
    - Delete the two oldest segments
    - Remove their files
    - Keep the newest
    """
    simulated_disk.baseline = 600
    oldest = make_segment(minutes=0, size=100)
    middle = make_segment(minutes=1, size=100)
    newest = make_segment(minutes=2, size=100)
    for segment in (newest, oldest, middle):
        storage_controller.save_segment(segment)

    deleted = quota_enforcer.enforce(max_storage_percent=80)

    assert deleted == 2
    assert [s.id for s in evicted_tracker] == [oldest.id, middle.id]
    assert not oldest.file_path.exists()
    assert not middle.file_path.exists()
    assert newest.file_path.exists()
    assert storage_controller.get_segment(newest.id) is not None


@pytest.mark.unit
def test_threshold_is_strict(storage_controller, quota_enforcer, make_segment, simulated_disk):
    """Usage exactly at the limit still triggers eviction."""
    simulated_disk.baseline = 800
    storage_controller.save_segment(make_segment(size=100))  # 90%

    assert quota_enforcer.enforce(max_storage_percent=90) == 1


@pytest.mark.unit
def test_uploading_segments_are_protected(
    storage_controller, quota_enforcer, make_segment, simulated_disk, evicted_tracker
):
    """
    Test that a segment mid-upload is skipped.

    The oldest segment is UPLOADING, so the next oldest goes instead.
    """
    simulated_disk.baseline = 750
    uploading = make_segment(minutes=0, size=100)
    skipped = make_segment(minutes=1, size=100, status=UploadStatus.SKIPPED)
    storage_controller.save_segment(uploading)
    storage_controller.save_segment(skipped)
    storage_controller.ledger.transition_status(
        uploading.id, UploadStatus.PENDING, UploadStatus.UPLOADING
    )

    quota_enforcer.enforce(max_storage_percent=90)

    assert [s.id for s in evicted_tracker] == [skipped.id]
    assert uploading.file_path.exists()
    assert storage_controller.get_segment(uploading.id) is not None


@pytest.mark.unit
def test_segment_claimed_after_selection_is_not_evicted(
    storage_controller, quota_enforcer, make_segment, simulated_disk, evicted_tracker,
    monkeypatch,
):
    """
    Test an upload pass claiming the eviction candidate between read and delete.

    Should:
    - Keep the claimed segment's file and row
    - Evict the next oldest segment instead
    """
    simulated_disk.baseline = 750
    claimed = make_segment(minutes=0, size=100)
    other = make_segment(minutes=1, size=100)
    storage_controller.save_segment(claimed)
    storage_controller.save_segment(other)

    ledger = storage_controller.ledger
    real_oldest = ledger.oldest

    def oldest_then_claimed(exclude_statuses=()):
        segment = real_oldest(exclude_statuses=exclude_statuses)
        if segment is not None and segment.id == claimed.id:
            ledger.transition_status(
                claimed.id, UploadStatus.PENDING, UploadStatus.UPLOADING
            )
        return segment

    monkeypatch.setattr(ledger, "oldest", oldest_then_claimed)

    deleted = quota_enforcer.enforce(max_storage_percent=90)

    assert deleted == 1
    assert [s.id for s in evicted_tracker] == [other.id]
    assert claimed.file_path.exists()
    assert ledger.get(claimed.id).upload_status == UploadStatus.UPLOADING


@pytest.mark.unit
def test_only_candidate_claimed_after_selection_evicts_nothing(
    storage_controller, quota_enforcer, make_segment, simulated_disk, monkeypatch
):
    simulated_disk.baseline = 850
    claimed = make_segment(size=100)
    storage_controller.save_segment(claimed)

    ledger = storage_controller.ledger
    real_oldest = ledger.oldest

    def oldest_then_claimed(exclude_statuses=()):
        segment = real_oldest(exclude_statuses=exclude_statuses)
        if segment is not None:
            ledger.force_status(segment.id, UploadStatus.UPLOADING)
        return segment

    monkeypatch.setattr(ledger, "oldest", oldest_then_claimed)

    assert quota_enforcer.enforce(max_storage_percent=90) == 0
    assert claimed.file_path.exists()
    assert ledger.count() == 1


@pytest.mark.unit
def test_stops_when_nothing_evictable(
    storage_controller, quota_enforcer, make_segment, simulated_disk
):
    """
    Test a disk full of non-ledger data.

    Should delete every segment, then stop instead of looping forever.
    """
    simulated_disk.baseline = 990
    storage_controller.save_segment(make_segment(size=5))

    assert quota_enforcer.enforce(max_storage_percent=50) == 1
    assert storage_controller.ledger.count() == 0


@pytest.mark.unit
def test_eviction_callback_errors_are_contained(
    storage_controller, quota_enforcer, make_segment, simulated_disk
):
    def broken_callback(segment):
        raise RuntimeError("subscriber bug")

    quota_enforcer.on_segment_evicted = broken_callback
    simulated_disk.baseline = 900
    storage_controller.save_segment(make_segment(size=100))

    assert quota_enforcer.enforce(max_storage_percent=90) == 1
