"""Tests for the built-in incremental XML tokenizer."""

import pytest

from message_dump_parser.tokenization import (
    CloseTag,
    EndOfStream,
    EventKind,
    OpenTag,
    Text,
    TokenError,
    TokenPosition,
    TokenizerState,
    XMLTokenizer,
    tokenize,
)


def simplify(events):
    """Project events to comparable tuples, merging adjacent text events."""
    simplified = []
    for event in events:
        if isinstance(event, Text):
            if simplified and simplified[-1][0] == "text":
                simplified[-1] = ("text", simplified[-1][1] + event.content)
            else:
                simplified.append(("text", event.content))
        elif isinstance(event, OpenTag):
            simplified.append(("open", event.name, event.attributes))
        elif isinstance(event, CloseTag):
            simplified.append(("close", event.name))
        elif isinstance(event, TokenError):
            simplified.append(("error", event.reason))
        else:
            simplified.append(("end",))
    return simplified


class TestTokenPosition:
    """Tests for TokenPosition."""

    def test_position_validation(self):
        """Test that invalid positions are rejected."""
        with pytest.raises(ValueError, match="Line number must be >= 1"):
            TokenPosition(line=0, column=1, offset=0)
        with pytest.raises(ValueError, match="Column number must be >= 1"):
            TokenPosition(line=1, column=0, offset=0)
        with pytest.raises(ValueError, match="Offset must be >= 0"):
            TokenPosition(line=1, column=1, offset=-1)

    def test_to_dict(self):
        """Test position serialization."""
        assert TokenPosition(2, 3, 6).to_dict() == {"line": 2, "column": 3, "offset": 6}


class TestTokenEvents:
    """Tests for token event types."""

    def test_event_kinds(self):
        """Test that each event exposes its kind."""
        assert OpenTag("a").kind is EventKind.OPEN_TAG
        assert CloseTag("a").kind is EventKind.CLOSE_TAG
        assert Text("x").kind is EventKind.TEXT
        assert TokenError("bad").kind is EventKind.TOKEN_ERROR
        assert EndOfStream().kind is EventKind.END_OF_STREAM

    def test_open_tag_attributes_from_mapping(self):
        """Test that mapping attributes are frozen in insertion order."""
        tag = OpenTag("a", {"href": "x", "id": "1"})
        assert tag.attributes == (("href", "x"), ("id", "1"))

    def test_empty_tag_name_rejected(self):
        """Test that tags need a name."""
        with pytest.raises(ValueError):
            OpenTag("")
        with pytest.raises(ValueError):
            CloseTag("")


class TestXMLTokenizer:
    """Tests for complete documents."""

    def test_simple_document(self):
        """Test tags and text of a message dump."""
        events = tokenize(
            "<FileDump><Message><From>a@b.c</From></Message></FileDump>"
        )

        assert simplify(events) == [
            ("open", "FileDump", ()),
            ("open", "Message", ()),
            ("open", "From", ()),
            ("text", "a@b.c"),
            ("close", "From"),
            ("close", "Message"),
            ("close", "FileDump"),
            ("end",),
        ]

    def test_attributes_in_document_order(self):
        """Test double and single quoted attributes."""
        events = tokenize("<a href=\"x\" id='1' title = \"t\">")
        assert events[0].attributes == (("href", "x"), ("id", "1"), ("title", "t"))

    def test_self_closing_tag(self):
        """Test that an empty-element tag produces open and close events."""
        events = tokenize('<br class="x"/>')
        assert simplify(events) == [
            ("open", "br", (("class", "x"),)),
            ("close", "br"),
            ("end",),
        ]

    def test_text_is_verbatim(self):
        """Test that entity references and stray '>' are not interpreted."""
        events = tokenize("<a>x &amp; y &lt; z > w</a>")
        assert ("text", "x &amp; y &lt; z > w") in simplify(events)

    def test_whitespace_in_end_tag(self):
        """Test whitespace before the closing '>' of an end tag."""
        events = tokenize("<a></a >")
        assert simplify(events)[1] == ("close", "a")

    def test_comments_processing_instructions_and_doctype_skipped(self):
        """Test that non-element markup produces no events."""
        events = tokenize(
            "<?xml version='1.0'?><!DOCTYPE FileDump><!-- note --><a><!--x-->b</a>"
        )
        assert simplify(events) == [
            ("open", "a", ()),
            ("text", "b"),
            ("close", "a"),
            ("end",),
        ]

    def test_cdata_reported_as_text(self):
        """Test that CDATA content is reported as text without markup."""
        events = tokenize("<a><![CDATA[x<b>y]]></a>")
        assert ("text", "x<b>y") in simplify(events)

    def test_empty_input(self):
        """Test that empty input only ends the stream."""
        events = tokenize("")
        assert events == [EndOfStream(position=TokenPosition(1, 1, 0))]

    def test_positions(self):
        """Test line, column and offset tracking."""
        events = tokenize("<a>\n  <b>")
        open_b = [event for event in events if isinstance(event, OpenTag)][1]
        assert open_b.position == TokenPosition(line=2, column=3, offset=6)


class TestIncrementalFeeding:
    """Tests for chunked input."""

    DOCUMENT = (
        '<?xml version="1.0"?>\n<FileDump>\n'
        '  <Message><From>Joe.doe@gmail.com</From>'
        '<Message>Hi <b class="x">Jane</b><!-- c --><![CDATA[<i>]]></Message></Message>\n'
        '</FileDump>\n'
    )

    @pytest.mark.parametrize("chunk_size", [1, 2, 3, 7, 64])
    def test_chunk_boundaries_do_not_change_events(self, chunk_size):
        """Test that any chunking yields the same events as one chunk."""
        chunks = [
            self.DOCUMENT[i:i + chunk_size]
            for i in range(0, len(self.DOCUMENT), chunk_size)
        ]
        tokenizer = XMLTokenizer()

        events = list(tokenizer.tokenize_stream(chunks))

        assert simplify(events) == simplify(tokenize(self.DOCUMENT))

    def test_pending_text_flushed_per_chunk(self):
        """Test that text at the end of a chunk is reported immediately."""
        tokenizer = XMLTokenizer()
        tokenizer.feed("<a>")
        assert tokenizer.feed("partial") == [Text("partial", position=TokenPosition(1, 4, 3))]

    def test_feed_after_close_raises(self):
        """Test that a closed tokenizer refuses input."""
        tokenizer = XMLTokenizer()
        tokenizer.close()
        with pytest.raises(RuntimeError, match="closed"):
            tokenizer.feed("<a>")

    def test_reset_allows_reuse(self):
        """Test that reset starts a new document."""
        tokenizer = XMLTokenizer()
        tokenizer.feed("<a")
        tokenizer.close()
        tokenizer.reset()

        assert tokenizer.state is TokenizerState.TEXT_CONTENT
        assert simplify(tokenizer.feed("<b>")) == [("open", "b", ())]


class TestTokenErrors:
    """Tests for malformed tag syntax."""

    @pytest.mark.parametrize("document,reason", [
        ('<a x="1" x="2">', "Duplicate attribute 'x'"),
        ("<a x=1>", "Unquoted value for attribute 'x'"),
        ('<a x="<">', "'<' in value of attribute 'x'"),
        ('<a x="1"y="2">', "Missing whitespace after attribute 'x'"),
        ("<a x>", "Attribute 'x' has no value"),
        ("< a>", "Invalid character ' ' after '<'"),
        ("</ a>", "Invalid character ' ' after '</'"),
        ("<a/ >", "Expected '>' after '/' in tag 'a'"),
        ("<a b='1' %>", "Invalid character '%' in tag 'a'"),
    ])
    def test_malformed_tags(self, document, reason):
        """Test that malformed tags end the stream with one token error."""
        events = tokenize(document)

        errors = [event for event in events if isinstance(event, TokenError)]
        assert len(errors) == 1
        assert errors[0].reason == reason
        assert events[-1] is errors[0]

    def test_unexpected_end_of_input(self):
        """Test that input ending inside a tag is a token error."""
        events = tokenize("<FileDump><Mess")
        assert events[-1] == TokenError(
            "Unexpected end of input in tag_name",
            position=TokenPosition(1, 11, 10),
        )

    def test_error_position(self):
        """Test that the error points at the offending character."""
        events = tokenize("< a>")
        assert events[-1].position == TokenPosition(line=1, column=2, offset=1)

    def test_no_events_after_failure(self):
        """Test that a failed tokenizer ignores further input."""
        tokenizer = XMLTokenizer()
        events = tokenizer.feed("<a x=1>")

        assert tokenizer.failed
        assert isinstance(events[-1], TokenError)
        assert tokenizer.feed("<b>") == []
        assert tokenizer.close() == []
