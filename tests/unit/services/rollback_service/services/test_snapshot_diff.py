# tests/unit/services/rollback_service/services/test_snapshot_diff.py
from src.services.rollback_service.app.services.version_store import compute_snapshot_diff


def test_diff_reports_added_removed_and_changed_keys():
    old = {"format": "pdf", "frequency": "weekly", "legacy_footer": True}
    new = {"format": "csv", "frequency": "weekly", "timezone": "UTC"}

    diff = compute_snapshot_diff(old, new, 3, 4)

    assert diff.from_version == 3
    assert diff.to_version == 4
    assert diff.added == {"timezone": "UTC"}
    assert diff.removed == {"legacy_footer": True}
    assert set(diff.changed) == {"format"}
    assert diff.changed["format"].old_value == "pdf"
    assert diff.changed["format"].new_value == "csv"


def test_diff_lists_report_members_added_and_removed():
    old = {"recipients": ["a@example.com", "b@example.com"]}
    new = {"recipients": ["b@example.com", "c@example.com"]}

    change = compute_snapshot_diff(old, new, 1, 2).changed["recipients"]

    assert change.items_added == ["c@example.com"]
    assert change.items_removed == ["a@example.com"]


def test_identical_snapshots_produce_empty_diff():
    snapshot = {"format": "pdf", "recipients": ["a@example.com"]}

    assert compute_snapshot_diff(snapshot, dict(snapshot), 1, 2).is_empty


def test_non_mapping_snapshots_compare_whole_value():
    diff = compute_snapshot_diff("v1-blob", "v2-blob", 1, 2)

    assert diff.changed["value"].old_value == "v1-blob"
    assert diff.changed["value"].new_value == "v2-blob"
    assert not diff.added and not diff.removed
