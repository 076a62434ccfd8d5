"""Tests for foreign tag escaping and message records."""

import pytest

from message_dump_parser.extraction import MessageRecord, escape_close_tag, escape_open_tag


class TestEscaping:
    """Tests for tag reconstruction."""

    def test_open_tag_without_attributes(self):
        """Test a bare start tag."""
        assert escape_open_tag("script") == "&lt;script&gt;"

    def test_open_tag_with_attributes(self):
        """Test that attributes are written in order with double quotes."""
        assert escape_open_tag("a", (("href", "x"), ("id", "1"))) == '&lt;a href="x" id="1"&gt;'

    def test_attribute_values_not_escaped(self):
        """Test that quotes and angle brackets in values are kept as is."""
        assert escape_open_tag("a", [("title", 'say "hi" > bye')]) == (
            '&lt;a title="say "hi" > bye"&gt;'
        )

    def test_close_tag(self):
        """Test an end tag."""
        assert escape_close_tag("Message") == "&lt;/Message&gt;"


class TestMessageRecord:
    """Tests for MessageRecord."""

    def test_mapping_behaviour(self):
        """Test read-only mapping access."""
        record = MessageRecord([("From", "a@b.c"), ("Message", "Hi")])

        assert record["From"] == "a@b.c"
        assert len(record) == 2
        assert list(record) == ["From", "Message"]
        assert record.get("Date") is None

    def test_accessors(self):
        """Test sender and body shortcuts."""
        record = MessageRecord({"From": "a@b.c", "Message": "Hi"})
        assert record.sender == "a@b.c"
        assert record.body == "Hi"
        assert MessageRecord().sender is None

    def test_equality_and_hash(self):
        """Test comparison with dicts and use as a dict key."""
        record = MessageRecord({"From": "a"})

        assert record == {"From": "a"}
        assert record == MessageRecord({"From": "a"})
        assert record != {"From": "b"}
        assert hash(record) == hash(MessageRecord({"From": "a"}))

    def test_immutable(self):
        """Test that records cannot be modified."""
        record = MessageRecord({"From": "a"})
        with pytest.raises(TypeError):
            record["From"] = "b"
        with pytest.raises(AttributeError):
            record.extra = 1

    def test_to_dict_is_a_copy(self):
        """Test that to_dict returns an independent dict."""
        record = MessageRecord({"From": "a"})
        data = record.to_dict()
        data["From"] = "b"

        assert record["From"] == "a"

    def test_repr(self):
        """Test the representation."""
        assert repr(MessageRecord({"From": "a"})) == "MessageRecord({'From': 'a'})"
