"""Tests for the pending classification store."""

import json

import pytest

from mail_triage.exceptions import PendingStoreError
from mail_triage.triage.models import Category, Classification
from mail_triage.triage.store import PendingStore


def _classification(email_id, category="OTHER", confidence=0.9, subject="Hi"):
    """An OTHER or IMMEDIATE_ARCHIVE classification."""
    if category == "IMMEDIATE_ARCHIVE":
        summary = "Receipt, nothing to do."
    else:
        summary = {"subject": subject, "people": "a@example.com", "synopsis": "S", "reason": "R"}
    return Classification.model_validate({
        "email_id": email_id,
        "category": category,
        "confidence": confidence,
        "from": "a@example.com",
        "subject": subject,
        "meta_summary": summary,
    })


@pytest.fixture
def store(tmp_path):
    return PendingStore(tmp_path / "triage" / "pending.json")


def _read(store):
    return json.loads(store.path.read_text())


def test_load_missing_returns_none(store):
    assert store.load() is None


def test_merge_creates_document(store):
    added = store.merge([_classification("a"), _classification("b", "IMMEDIATE_ARCHIVE")])
    assert added == 2
    data = _read(store)
    assert data["total_emails"] == 2
    assert data["by_category"] == {"OTHER": 1, "IMMEDIATE_ARCHIVE": 1}
    assert [e["email_id"] for e in data["emails"]] == ["a", "b"]
    assert data["emails"][0]["from"] == "a@example.com"
    assert "last_updated" in data


def test_merge_is_idempotent(store):
    batch = [_classification("a"), _classification("b")]
    store.merge(batch)
    before = _read(store)
    assert store.merge(batch) == 0
    assert _read(store) == before


def test_merge_appends_only_new_ids(store):
    store.merge([_classification("a"), _classification("b")])
    added = store.merge([_classification("b"), _classification("c", "IMMEDIATE_ARCHIVE")])
    assert added == 1
    document = store.load()
    assert [c.email_id for c in document.emails] == ["a", "b", "c"]
    assert document.total_emails == 3
    assert sum(document.by_category.values()) == document.total_emails


def test_merge_never_overwrites_existing_entry(store):
    store.merge([_classification("a", subject="First")])
    store.merge([_classification("a", subject="Second", confidence=0.99)])
    stored = store.load().emails[0]
    assert stored.subject == "First"
    assert stored.confidence == 0.9


def test_new_document_dedupes_batch(store):
    added = store.merge([
        _classification("a", subject="First"),
        _classification("a", subject="Second"),
    ])
    assert added == 1
    assert store.load().emails[0].subject == "Second"


def test_corrupt_file_is_overwritten_on_merge(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json")
    assert store.merge([_classification("a")]) == 1
    assert _read(store)["total_emails"] == 1


def test_corrupt_file_on_read_raises(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text('{"emails": "nope"}')
    with pytest.raises(PendingStoreError, match="Unreadable pending store"):
        store.read_category("OTHER")


def test_write_leaves_no_temp_files(store):
    store.merge([_classification("a")])
    store.merge([_classification("b")])
    assert [p.name for p in store.path.parent.iterdir()] == ["pending.json"]


def test_read_category_slices_in_order(store):
    store.merge(
        [_classification(f"o{i}") for i in range(7)]
        + [_classification("x", "IMMEDIATE_ARCHIVE")]
    )
    first = store.read_category(Category.OTHER, offset=0, limit=5)
    assert [c.email_id for c in first["emails"]] == ["o0", "o1", "o2", "o3", "o4"]
    assert first["total_in_category"] == 7
    assert first["has_more"] is True
    assert first["next_offset"] == 5

    second = store.read_category("OTHER", offset=first["next_offset"], limit=5)
    assert [c.email_id for c in second["emails"]] == ["o5", "o6"]
    assert second["has_more"] is False
    assert second["next_offset"] is None


def test_read_category_clamps_limit(store):
    store.merge([_classification(f"o{i}") for i in range(30)])
    page = store.read_category("OTHER", limit=50)
    assert len(page["emails"]) == 20
    assert page["next_offset"] == 20
    assert len(store.read_category("OTHER", limit=0)["emails"]) == 1


def test_read_category_offset_past_end(store):
    store.merge([_classification("a")])
    page = store.read_category("OTHER", offset=10)
    assert page["emails"] == []
    assert page["has_more"] is False
    assert page["next_offset"] is None


def test_read_category_missing_store(store):
    page = store.read_category("ACTION_REQUIRED")
    assert page == {"emails": [], "total_in_category": 0, "has_more": False, "next_offset": None}
