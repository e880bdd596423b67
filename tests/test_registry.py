import pytest

from conftest import make_asset
from services.models import COMPLETED, ERROR, LOADING, FileHandle


def test_add_appends_in_input_order(registry):
    out = registry.add([make_asset("a.jpg"), make_asset("b.jpg")])
    assert [a.id for a in out] == ["a.jpg", "b.jpg"]
    out = registry.add([make_asset("c.jpg")])
    assert [a.id for a in out] == ["a.jpg", "b.jpg", "c.jpg"]


def test_duplicate_identity_is_ignored(registry):
    original = make_asset("a.jpg", marketplace="Adobe Stock", title="kept")
    registry.add([original])
    out = registry.add([make_asset("a.jpg", marketplace="Shutterstock"), make_asset("b.jpg")])
    assert len(out) == 2
    assert registry.get("a.jpg") is original
    assert registry.get("a.jpg").marketplace == "Adobe Stock"
    assert registry.get("a.jpg").title == "kept"


def test_duplicates_within_one_add_keep_first(registry):
    registry.add([make_asset("a.jpg", title="first"), make_asset("a.jpg", title="second")])
    assert len(registry) == 1
    assert registry.get("a.jpg").title == "first"


def test_add_files_creates_pending_assets(registry):
    registry.add_files([FileHandle(name="x.png", content_type="image/png", size=3)], "Alamy")
    asset = registry.get("x.png")
    assert asset.status == "pending"
    assert asset.marketplace == "Alamy"
    assert asset.file.size == 3
    assert (asset.title, asset.description, asset.keywords) == ("", "", "")
    assert asset.error_message is None


def test_update_merges_and_replaces_copy(registry):
    registry.add([make_asset("a.jpg")])
    before = registry.snapshot()
    updated = registry.update("a.jpg", status=LOADING)
    assert updated.status == LOADING
    assert registry.get("a.jpg").status == LOADING
    assert before[0].status == "pending"


def test_update_missing_identity_is_noop(registry):
    registry.add([make_asset("a.jpg")])
    assert registry.update("missing.jpg", status=COMPLETED) is None
    assert len(registry) == 1


def test_edit_changes_content_but_never_status(registry):
    registry.add([make_asset("a.jpg", status=ERROR, error_message="x")])
    edited = registry.edit("a.jpg", title="New", keywords=None)
    assert edited.title == "New"
    assert edited.keywords == ""
    assert edited.status == ERROR
    assert edited.error_message == "x"


def test_edit_rejects_non_content_fields(registry):
    registry.add([make_asset("a.jpg")])
    with pytest.raises(ValueError):
        registry.edit("a.jpg", status=COMPLETED)


def test_status_helpers(registry):
    registry.add([make_asset("a.jpg"), make_asset("b.jpg", status=COMPLETED)])
    assert registry.has_pending()
    assert registry.has_completed()
    assert [a.id for a in registry.pending()] == ["a.jpg"]
    assert [a.id for a in registry.completed()] == ["b.jpg"]
    assert "a.jpg" in registry


def test_clear_discards_everything(registry):
    registry.add([make_asset("a.jpg")])
    registry.clear()
    assert len(registry) == 0
    assert not registry.has_pending()
