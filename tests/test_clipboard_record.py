import pytest
from pydantic import ValidationError

from cliptrail.models import ClipboardKind, ClipboardRecord, FileReferencePayload, ImagePayload, TextPayload
from cliptrail.models.clipboard_record import next_timestamp


def test_constructors_assign_ids_and_kinds():
    text = ClipboardRecord.text("hi")
    image = ClipboardRecord.image("/tmp/x.png")
    file_ref = ClipboardRecord.file_reference("/tmp/archive.tar.gz")

    assert text.id.startswith("i_")
    assert len({text.id, image.id, file_ref.id}) == 3
    assert (text.kind, image.kind, file_ref.kind) == (
        ClipboardKind.TEXT, ClipboardKind.IMAGE, ClipboardKind.FILE_REFERENCE)
    assert file_ref.payload.file_name == "archive.tar.gz"
    assert file_ref.payload.file_extension == "gz"
    assert not text.pinned and text.tag is None


def test_timestamps_strictly_increase():
    stamps = [next_timestamp() for _ in range(200)]
    assert all(a < b for a, b in zip(stamps, stamps[1:]))
    assert stamps[0].tzinfo is not None


def test_records_are_immutable():
    record = ClipboardRecord.text("fixed")
    with pytest.raises(ValidationError):
        record.pinned = True

    pinned = record.with_pinned(True)
    assert pinned.pinned and not record.pinned
    assert pinned.id == record.id


def test_preview_text_is_truncated():
    record = ClipboardRecord.text("x" * 250)
    assert record.preview_text == "x" * 100
    assert ClipboardRecord.image("/tmp/x.png").preview_text == ""


def test_payload_kind_discriminates_on_load():
    record = ClipboardRecord.file_reference("/tmp/a.txt")
    restored = ClipboardRecord.model_validate_json(record.model_dump_json())

    assert isinstance(restored.payload, FileReferencePayload)
    assert not isinstance(restored.payload, (TextPayload, ImagePayload))
    assert restored == record


def test_unknown_kind_is_rejected():
    data = ClipboardRecord.text("hi").model_dump(mode="json")
    data["payload"] = {"kind": "audio", "text": "hi"}
    with pytest.raises(ValidationError):
        ClipboardRecord.model_validate(data)
