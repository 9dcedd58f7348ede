"""Tests for content types and the event channel."""
import pytest

from notekeep.config import config
from notekeep.content_types import (
    CONTENT_TYPES,
    TITLE_LENGTH,
    MarkdownContent,
    TiptapContent,
    get_content_from_data,
    register_content_type,
)
from notekeep.events import EventChannel


class TestTiptapContent:
    """Tests for HTML bodies."""

    def test_blocks_become_lines(self):
        content = TiptapContent("<h1>Title</h1><p>First <b>bold</b> line</p><ul><li>a</li><li>b</li></ul>")
        assert content.lines == ["Title", "First bold line", "a", "b"]
        assert content.to_title() == "Title"
        assert content.to_headline() == "Title First bold line a b"
        assert not content.is_empty()

    def test_line_breaks_and_entities(self):
        content = TiptapContent("<p>one<br>two &amp; three</p>")
        assert content.lines == ["one", "two & three"]

    def test_scripts_and_styles_ignored(self):
        content = TiptapContent("<style>p{}</style><script>alert(1)</script><p>shown</p>")
        assert content.to_text() == "shown"

    @pytest.mark.parametrize("data", ["", "<p></p>", "<p>   </p><br/>", None, 42])
    def test_empty_bodies(self, data):
        content = TiptapContent(data)
        assert content.is_empty()
        assert content.to_title() == ""
        assert content.to_headline() == ""

    def test_title_truncated(self):
        content = TiptapContent("<p>" + "x" * 500 + "</p>")
        assert len(content.to_title()) == TITLE_LENGTH

    def test_headline_follows_config(self, monkeypatch):
        monkeypatch.setattr(config, "headline_length", 5)
        assert TiptapContent("<p>abc</p><p>def</p>").to_headline() == "abc d"


class TestMarkdownContent:
    """Tests for markdown bodies."""

    def test_heading_becomes_title(self):
        content = MarkdownContent("# Groceries\n\n- milk\n- eggs\n")
        assert content.to_title() == "Groceries"
        assert content.to_headline() == "Groceries - milk - eggs"

    def test_frontmatter_title(self):
        content = MarkdownContent("---\ntitle: From metadata\ntags: [a]\n---\nBody text\n")
        assert content.to_title() == "From metadata"
        assert content.to_headline() == "Body text"
        assert not content.is_empty()

    def test_frontmatter_title_alone_is_not_empty(self):
        assert not MarkdownContent("---\ntitle: Only\n---\n").is_empty()

    def test_blank_markdown_is_empty(self):
        assert MarkdownContent("\n   \n").is_empty()
        assert MarkdownContent("").to_title() == ""


class TestRegistry:
    """Tests for content type lookup."""

    def test_known_types(self):
        assert isinstance(get_content_from_data("tiptap", "<p>x</p>"), TiptapContent)
        assert isinstance(get_content_from_data("markdown", "x"), MarkdownContent)

    def test_unknown_type(self):
        assert get_content_from_data("docx", "x") is None

    def test_register_content_type(self, monkeypatch):
        monkeypatch.setattr("notekeep.content_types.CONTENT_TYPES", dict(CONTENT_TYPES))

        class PlainText:
            def __init__(self, data):
                self.data = data

            def is_empty(self):
                return not self.data.strip()

            def to_title(self):
                return self.data.split("\n")[0]

            def to_headline(self):
                return self.data

        register_content_type("plain", PlainText)
        content = get_content_from_data("plain", "hello\nworld")
        assert content.to_title() == "hello"
        assert "plain" not in CONTENT_TYPES


class TestEventChannel:
    """Tests for the notification channel."""

    def test_publish_and_unsubscribe(self):
        channel = EventChannel()
        received = []
        unsubscribe = channel.subscribe("notes:removeEmptyNote", received.append)

        channel.publish("notes:removeEmptyNote", "n1")
        channel.publish("other", "n2")
        unsubscribe()
        channel.publish("notes:removeEmptyNote", "n3")

        assert received == ["n1"]

    def test_failing_handler_does_not_stop_others(self):
        channel = EventChannel()
        received = []

        def broken(payload):
            raise RuntimeError("handler bug")

        channel.subscribe("evt", broken)
        channel.subscribe("evt", received.append)
        channel.publish("evt", 1)

        assert received == [1]
