"""Content types: turn a stored body into title, headline and emptiness.

A content type is looked up by its string tag. Each one wraps a body
payload in a ``ContentView`` exposing ``is_empty()``, ``to_title()`` and
``to_headline()``. New types are added with ``register_content_type``.
"""
import logging
import re
from html.parser import HTMLParser
from typing import Any, Callable, Dict, List, Optional, Protocol

import frontmatter

from notekeep.config import config

logger = logging.getLogger(__name__)

# Titles derived from content are cut at this length
TITLE_LENGTH = 100

_WHITESPACE = re.compile(r"\s+")
_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+")

# Tags that end a line of text
BLOCK_TAGS = {
    "address", "article", "blockquote", "br", "dd", "div", "dl", "dt",
    "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5", "h6",
    "header", "hr", "li", "ol", "p", "pre", "section", "table", "td", "th",
    "tr", "ul",
}
SKIPPED_TAGS = {"script", "style", "head", "title"}


class ContentView(Protocol):
    def is_empty(self) -> bool:
        ...

    def to_title(self) -> str:
        ...

    def to_headline(self) -> str:
        ...


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _truncate(text: str, length: int) -> str:
    return text if len(text) <= length else text[:length].rstrip()


class _TextExtractor(HTMLParser):
    """Collects the visible text of an HTML fragment, one entry per block."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.lines: List[str] = []
        self._current: List[str] = []
        self._skip_depth = 0

    def _flush(self) -> None:
        line = _collapse("".join(self._current))
        if line:
            self.lines.append(line)
        self._current = []

    def handle_starttag(self, tag, attrs):
        if tag in SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag in BLOCK_TAGS:
            self._flush()

    def handle_startendtag(self, tag, attrs):
        if tag in BLOCK_TAGS:
            self._flush()

    def handle_endtag(self, tag):
        if tag in SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in BLOCK_TAGS:
            self._flush()

    def handle_data(self, data):
        if not self._skip_depth:
            self._current.append(data)

    def close(self):
        super().close()
        self._flush()


class TiptapContent:
    """HTML produced by the tiptap rich-text editor."""

    def __init__(self, data: Any):
        self.data = data if isinstance(data, str) else ""
        extractor = _TextExtractor()
        extractor.feed(self.data)
        extractor.close()
        self.lines = extractor.lines

    def to_text(self) -> str:
        return "\n".join(self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def to_title(self) -> str:
        return _truncate(self.lines[0], TITLE_LENGTH) if self.lines else ""

    def to_headline(self) -> str:
        return _truncate(" ".join(self.lines), config.headline_length)


class MarkdownContent:
    """Markdown text, optionally with a YAML frontmatter block.

    A ``title`` key in the frontmatter names the note; otherwise the first
    line of the body does, with any heading marker removed.
    """

    def __init__(self, data: Any):
        self.data = data if isinstance(data, str) else ""
        post = frontmatter.loads(self.data)
        self.metadata = post.metadata
        self.lines = [
            _collapse(_HEADING.sub("", line))
            for line in post.content.splitlines()
            if line.strip()
        ]
        self.lines = [line for line in self.lines if line]

    def to_text(self) -> str:
        return "\n".join(self.lines)

    def is_empty(self) -> bool:
        return not self.lines and not str(self.metadata.get("title") or "").strip()

    def to_title(self) -> str:
        title = str(self.metadata.get("title") or "").strip()
        if title:
            return _truncate(_collapse(title), TITLE_LENGTH)
        return _truncate(self.lines[0], TITLE_LENGTH) if self.lines else ""

    def to_headline(self) -> str:
        return _truncate(" ".join(self.lines), config.headline_length)


CONTENT_TYPES: Dict[str, Callable[[Any], ContentView]] = {
    "tiptap": TiptapContent,
    "markdown": MarkdownContent,
}


def register_content_type(name: str, factory: Callable[[Any], ContentView]) -> None:
    """Make a content type available under ``name``, replacing any previous one."""
    CONTENT_TYPES[name] = factory
    logger.debug(f"Registered content type '{name}'")


def get_content_from_data(content_type: str, data: Any) -> Optional[ContentView]:
    """Build the view for a body, or None when ``content_type`` is unknown."""
    factory = CONTENT_TYPES.get(content_type)
    if factory is None:
        return None
    return factory(data)
