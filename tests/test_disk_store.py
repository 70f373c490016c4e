import json
from datetime import datetime, timedelta, timezone

from PIL import Image

from cliptrail.database import DiskStore
from cliptrail.models import ClipboardRecord, FileReferencePayload, ImagePayload, TextPayload
from cliptrail.services import HistoryCache

from conftest import BASE_TIME, make_record, make_text


def test_save_and_load_roundtrip(store):
    record = make_text("hello", tag="greeting")
    assert store.save(record)

    loaded = store.load(record.id)
    assert loaded == record
    assert isinstance(loaded.payload, TextPayload)
    assert loaded.version == 1


def test_list_recent_orders_by_created_at_not_write_order(store):
    older = make_text("older", seconds=1)
    newest = make_text("newest", seconds=3)
    middle = make_text("middle", seconds=2)
    for record in (newest, older, middle):
        store.save(record)

    assert [r.payload.text for r in store.list_recent(10)] == ["newest", "middle", "older"]
    assert [r.payload.text for r in store.list_recent(1, offset=1)] == ["middle"]
    assert store.list_recent(0) == []


def test_equal_timestamps_break_ties_by_id(store):
    records = [make_record(TextPayload(text=str(i)), BASE_TIME) for i in range(4)]
    for record in records:
        store.save(record)

    expected = sorted((r.id for r in records), reverse=True)
    assert [r.id for r in store.list_recent(10)] == expected


def test_list_before_is_strict(store):
    records = [make_text(f"r{i}", seconds=i) for i in range(5)]
    for record in records:
        store.save(record)

    page = store.list_before(records[3].created_at, 10)
    assert [r.payload.text for r in page] == ["r2", "r1", "r0"]
    assert [r.payload.text for r in store.list_before(records[3].created_at, 2)] == ["r2", "r1"]
    assert store.list_before(records[0].created_at, 10) == []


def test_corrupt_file_is_skipped(store, storage_dir):
    good = make_text("good")
    store.save(good)
    (storage_dir / "broken.json").write_text("{not json", encoding="utf-8")
    (storage_dir / "wrong-shape.json").write_text('{"id": 3}', encoding="utf-8")

    assert [r.id for r in store.list_recent(10)] == [good.id]


def test_pinned_mirror_follows_pin_state(store, storage_dir):
    record = make_text("keep me")
    store.save(record.with_pinned(True))
    mirror = storage_dir / "Pinned" / f"{record.id}.json"

    assert mirror.exists()
    assert [r.id for r in store.list_pinned()] == [record.id]
    # pinned records stay out of the unpinned listing
    assert store.list_recent(10) == []
    assert [r.id for r in store.list_recent(10, include_pinned=True)] == [record.id]

    store.save(record.with_pinned(False))
    assert not mirror.exists()
    assert store.list_pinned() == []
    assert [r.id for r in store.list_recent(10)] == [record.id]


def test_delete_image_removes_staged_bitmap(store, file_manager):
    staged = file_manager.stage_image(Image.new("RGB", (2, 2), "blue"))
    record = ClipboardRecord.image(str(staged))
    store.save(record)

    assert store.delete(record.id)
    assert not staged.exists()
    assert store.load(record.id) is None


def test_delete_file_reference_keeps_target(store, tmp_path):
    target = tmp_path / "report.pdf"
    target.write_bytes(b"%PDF-1.4")
    record = ClipboardRecord.file_reference(str(target))
    store.save(record.with_pinned(True))

    assert store.delete(record.id)
    assert target.exists()
    assert store.list_pinned() == []
    assert store.load(record.id) is None


def test_delete_rejects_path_like_ids(store, storage_dir):
    outside = storage_dir.parent / "outside.json"
    outside.write_text("{}", encoding="utf-8")

    assert store.delete("../outside") is False
    assert store.delete("") is False
    assert outside.exists()


def test_delete_all(store, storage_dir, file_manager):
    staged = file_manager.stage_image(Image.new("RGB", (2, 2), "green"))
    store.save(ClipboardRecord.image(str(staged)))
    store.save(make_text("a"))
    store.save(make_text("b", seconds=1).with_pinned(True))

    store.delete_all()

    assert store.list_recent(10, include_pinned=True) == []
    assert store.list_pinned() == []
    assert (storage_dir / "Pinned").is_dir()
    assert file_manager.base_dir.is_dir()
    assert not staged.exists()


def test_list_older_than(store):
    old = make_text("old")
    recent = make_text("recent", seconds=3600)
    store.save(old)
    store.save(recent)
    store.save(make_text("old pinned").with_pinned(True))

    cutoff = BASE_TIME + timedelta(minutes=30)
    assert [r.id for r in store.list_older_than(cutoff)] == [old.id]


def test_check_consistency_reports_missing_root_record(store, storage_dir):
    record = make_text("pinned").with_pinned(True)
    store.save(record)
    # simulate a crash between the two writes of a pin
    (storage_dir / f"{record.id}.json").unlink()

    assert store.check_consistency() == [record.id]


def test_check_consistency_reports_diverged_mirror(store, storage_dir):
    record = make_text("pinned").with_pinned(True)
    store.save(record)
    assert store.check_consistency() == []

    # root rewritten with a new tag but the mirror left behind
    retagged = record.with_tag("work")
    (storage_dir / f"{record.id}.json").write_text(retagged.model_dump_json(), encoding="utf-8")

    assert store.check_consistency() == [record.id]
    assert store.list_pinned()[0].tag is None
    assert store.load(record.id).tag == "work"

    # a subsequent save reconciles the two copies
    store.save(retagged)
    assert store.check_consistency() == []


def test_records_survive_a_new_store_instance(store, storage_dir):
    record = ClipboardRecord.file_reference("/tmp/notes.txt")
    store.save(record)

    reopened = DiskStore(storage_dir)
    loaded = reopened.load(record.id)
    assert isinstance(loaded.payload, FileReferencePayload)
    assert loaded.payload.file_name == "notes.txt"
    assert loaded.payload.file_extension == "txt"
    assert not isinstance(loaded.payload, ImagePayload)


def test_timestamp_without_offset_does_not_break_listing(store, storage_dir, clipboard):
    first = make_text("first", seconds=1)
    second = make_text("second", seconds=2)
    store.save(first)
    store.save(second)
    legacy = {
        "id": "i_legacy",
        "created_at": "2025-12-01T10:00:00",
        "payload": {"kind": "text", "text": "legacy"},
    }
    (storage_dir / "i_legacy.json").write_text(json.dumps(legacy), encoding="utf-8")

    listed = store.list_recent(10)
    assert [r.payload.text for r in listed] == ["second", "first", "legacy"]
    assert listed[-1].created_at == datetime(2025, 12, 1, 10, 0, tzinfo=timezone.utc)
    assert listed[-1].version == 1

    cache = HistoryCache(store, clipboard)
    cache.load_initial()
    assert [r.payload.text for r in cache.unpinned_items] == ["second", "first", "legacy"]
