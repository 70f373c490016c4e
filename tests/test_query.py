import pytest

from cliptrail.models import FileReferencePayload, ImagePayload
from cliptrail.services.query import filter_records, matches

from conftest import make_record, make_text


@pytest.mark.parametrize("query", ["", "   ", None])
def test_blank_query_matches_everything(query):
    assert matches(make_text("anything"), query)
    assert matches(make_record(ImagePayload(image_path="/tmp/x.png")), query)


def test_text_match_is_case_insensitive_substring():
    record = make_text("Hello World")
    assert matches(record, "hello")
    assert matches(record, "O WO")
    assert not matches(record, "planet")


def test_tag_match_wins():
    record = make_text("body", tag="Greeting")
    assert matches(record, "greet")
    assert matches(record, "bod")


def test_file_reference_matches_name_and_extension_only():
    record = make_record(FileReferencePayload.from_path("/home/docs/Budget.XLSX"))
    assert matches(record, "budget")
    assert matches(record, "xlsx")
    assert not matches(record, "docs")


def test_image_matches_formatted_timestamp_only():
    record = make_record(ImagePayload(image_path="/tmp/screenshot.png"))
    stamp = record.formatted_timestamp

    assert matches(record, stamp.split(",")[0])
    assert matches(record, stamp.upper())
    assert not matches(record, "screenshot")


def test_filter_records_keeps_order():
    records = [make_text("alpha"), make_text("beta"), make_text("alphabet")]
    assert [r.payload.text for r in filter_records(records, "alpha")] == ["alpha", "alphabet"]
