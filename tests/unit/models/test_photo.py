"""
Unit tests for PhotoRecord and the tag models.
"""

import json
from datetime import UTC, datetime

import pytest

from posinglib.models.photo import (
    CountedChildTag,
    LegacyChildTag,
    PhotoRecord,
    TagMetadata,
    change_child_count,
    derive_children_tags,
    parse_children,
    serialize_children,
    toggle_child_tag,
)


class TestParseChildren:
    """Test cases for decoding stored child tags."""

    def test_counted_objects(self):
        """Test current-shape child tags."""
        children = parse_children([{"id": "kid", "count": 2}, {"id": "newborn"}])

        assert children == (CountedChildTag("kid", 2), CountedChildTag("newborn", 1))

    def test_json_text(self):
        """Test child tags stored as JSON text."""
        assert parse_children('[{"id": "teen", "count": 3}]') == (CountedChildTag("teen", 3),)

    def test_bare_strings_are_legacy(self):
        """Test legacy bare age-group ids."""
        assert parse_children(["toddler", "kid"]) == (LegacyChildTag("toddler"), LegacyChildTag("kid"))

    def test_empty_list_is_counted_shape(self):
        """Test an empty children list does not fall back to children_tags."""
        assert parse_children([], ["kid"]) == ()

    def test_missing_children_uses_tags(self):
        """Test records that only carry children_tags."""
        assert parse_children(None, '["newborn"]') == (LegacyChildTag("newborn"),)

    def test_nothing_stored(self):
        """Test records with no child information."""
        assert parse_children(None, None) == ()

    def test_serialize_keeps_both_shapes(self):
        """Test stored shape for counted and legacy tags."""
        children = (CountedChildTag("kid", 2), LegacyChildTag("toddler"))

        assert serialize_children(children) == [{"id": "kid", "count": 2}, "toddler"]
        assert derive_children_tags(children) == ["kid", "toddler"]


class TestChildTagEditing:
    """Test cases for toggling and counting child tags."""

    def test_toggle_adds_and_removes(self):
        children = toggle_child_tag([], "kid")
        assert children == [CountedChildTag("kid", 1)]

        assert toggle_child_tag(children, "kid") == []

    def test_change_count_floors_at_one(self):
        children = [CountedChildTag("kid", 2), CountedChildTag("teen", 1)]

        assert change_child_count(children, "kid", 1) == [CountedChildTag("kid", 3), CountedChildTag("teen", 1)]
        assert change_child_count(children, "teen", -1) == children


class TestTagMetadata:
    """Test cases for TagMetadata."""

    def test_defaults(self):
        """Test default tag values of a new upload batch."""
        tags = TagMetadata()

        assert tags.head_count == 3
        assert tags.grandparents == "none"
        assert tags.parents == "both"
        assert tags.children == []
        assert tags.pet_count == 0
        assert tags.validate() == []

    def test_pet_toggle_and_count(self):
        tags = TagMetadata()

        tags.toggle_pet()
        assert tags.pet_count == 1

        tags.change_pet_count(2)
        assert tags.pet_count == 3

        tags.change_pet_count(-10)
        assert tags.pet_count == 1

        tags.toggle_pet()
        assert tags.pet_count == 0

    def test_validate_reports_problems(self):
        tags = TagMetadata(
            head_count=0,
            grandparents="cousin",
            parents="uncle",
            children=[CountedChildTag("infant", 0)],
            pet_count=-1,
        )

        problems = tags.validate()

        assert len(problems) == 6

    def test_to_fields_derives_children_tags(self):
        tags = TagMetadata(children=[CountedChildTag("kid", 2), CountedChildTag("newborn", 1)])

        fields = tags.to_fields()

        assert fields["children_tags"] == ["kid", "newborn"]
        assert fields["children"] == [CountedChildTag("kid", 2), CountedChildTag("newborn", 1)]

    def test_from_record_migrates_legacy_children(self, test_data_factory):
        """Test that editing a legacy record produces counted tags."""
        record = test_data_factory.create_record(
            children=(test_data_factory.legacy("toddler"), test_data_factory.counted("kid", 2)),
            memo="창가 역광",
        )

        tags = TagMetadata.from_record(record)

        assert tags.children == [CountedChildTag("toddler", 1), CountedChildTag("kid", 2)]
        assert tags.memo == "창가 역광"

    def test_from_record_fills_missing_values(self, test_data_factory):
        record = test_data_factory.create_record(head_count=0, parents="")

        tags = TagMetadata.from_record(record)

        assert tags.head_count == 1
        assert tags.parents == "none"


class TestPhotoRecord:
    """Test cases for PhotoRecord."""

    def test_to_dict_and_from_dict(self, test_data_factory):
        """Test a record survives the database dictionary shape."""
        record = test_data_factory.create_record(
            children=(test_data_factory.counted("kid", 2),), pet_count=1, is_favorite=True
        )

        data = record.to_dict()
        restored = PhotoRecord.from_dict(data)

        assert json.loads(data["children"]) == [{"id": "kid", "count": 2}]
        assert restored == record

    def test_from_dict_defaults(self):
        """Test partial documents get default tag values."""
        record = PhotoRecord.from_dict({"id": "r1", "children": '["kid"]'})

        assert record.head_count == 0
        assert record.grandparents == "none"
        assert record.parents == "none"
        assert record.children == (LegacyChildTag("kid"),)
        assert record.children_tags == ["kid"]
        assert record.has_legacy_children is True
        assert record.is_favorite is False

    def test_naive_timestamp_gets_utc(self):
        record = PhotoRecord.from_dict({"id": "r1", "created_at": datetime(2024, 5, 1, 9, 30)})

        assert record.created_at == datetime(2024, 5, 1, 9, 30, tzinfo=UTC)

    @pytest.mark.parametrize("created_at", ["2024-05-01T09:30:00+00:00", "2024-05-01T09:30:00"])
    def test_iso_timestamp(self, created_at):
        record = PhotoRecord.from_dict({"id": "r1", "created_at": created_at})

        assert record.created_at == datetime(2024, 5, 1, 9, 30, tzinfo=UTC)
