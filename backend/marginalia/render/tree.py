"""
Document tree capability used by the render-side highlight algorithms.

The canonical text extractor, offset mapper and mark applier only need a
linear sequence of text nodes over a tree plus a few mutations. ``TextTree``
names that capability; ``SoupTextTree`` provides it over a BeautifulSoup
parse of rendered HTML so the algorithms run without a browser.
"""

from typing import Any, Iterator, Protocol

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from ..marker_constants import (
    BLOCK_TAGS,
    HIGHLIGHT_ID_ATTR,
    MARK_CLASS,
    MARK_TAG,
    STALE_MARK_CLASS,
    STALE_TITLE,
)


class TextTree(Protocol):
    """Linear text-node sequence over a tree, with highlight mark mutations."""

    def iter_text_nodes(self) -> Iterator[Any]:
        """Yield every text node in document order, marked or not."""
        ...

    def text_of(self, node: Any) -> str: ...

    def is_inside_mark(self, node: Any) -> bool: ...

    def replace_with_mark(
        self,
        node: Any,
        local_start: int,
        local_end: int,
        highlight_id: str,
        is_stale: bool = False,
    ) -> Any:
        """Split ``node`` into before / mark / after and return the mark."""
        ...

    def unwrap_marks(self) -> int:
        """Replace every mark with a plain text node and return how many."""
        ...

    def normalize(self) -> None:
        """Merge adjacent text nodes and drop empty ones."""
        ...

    def find_marks(self, highlight_id: str | None = None) -> list[Any]: ...

    def block_ancestor(self, node: Any) -> Any | None: ...


def _is_text(node: Any) -> bool:
    # Comments, CDATA, doctypes and processing instructions are not text
    return isinstance(node, NavigableString) and not isinstance(
        node, PreformattedString
    )


def _is_mark(tag: Any) -> bool:
    return (
        isinstance(tag, Tag)
        and tag.name == MARK_TAG
        and MARK_CLASS in (tag.get("class") or [])
    )


class SoupTextTree:
    """
    ``TextTree`` over a BeautifulSoup document.

    The root is the element whose text is addressed by offsets: the
    ``.content`` element when the HTML has one, otherwise the whole parse.

    Note: BeautifulSoup strings compare equal by value, so nodes are always
    matched by identity.
    """

    def __init__(self, soup: BeautifulSoup, root: Tag | None = None):
        self.soup = soup
        self.root = root if root is not None else soup

    @classmethod
    def from_html(cls, html: str, root_selector: str = ".content") -> "SoupTextTree":
        soup = BeautifulSoup(html, "html.parser")
        root = soup.select_one(root_selector) if root_selector else None
        return cls(soup, root)

    def to_html(self) -> str:
        return str(self.soup)

    def iter_text_nodes(self) -> Iterator[NavigableString]:
        # Materialize first so callers may mutate while iterating
        return iter([node for node in self.root.descendants if _is_text(node)])

    def text_of(self, node: NavigableString) -> str:
        return str(node)

    def is_inside_mark(self, node: NavigableString) -> bool:
        for parent in node.parents:
            if parent is self.root:
                return False
            if _is_mark(parent):
                return True
        return False

    def replace_with_mark(
        self,
        node: NavigableString,
        local_start: int,
        local_end: int,
        highlight_id: str,
        is_stale: bool = False,
    ) -> Tag:
        if node.parent is None:
            raise ValueError("Text node has no parent")

        text = str(node)
        before = text[:local_start]
        highlighted = text[local_start:local_end]
        after = text[local_end:]

        mark = self.soup.new_tag(MARK_TAG)
        mark["class"] = [MARK_CLASS, STALE_MARK_CLASS] if is_stale else [MARK_CLASS]
        mark[HIGHLIGHT_ID_ATTR] = highlight_id
        if is_stale:
            mark["title"] = STALE_TITLE
        mark.string = highlighted

        parts: list[Any] = []
        if before:
            parts.append(NavigableString(before))
        parts.append(mark)
        if after:
            parts.append(NavigableString(after))

        node.replace_with(*parts)
        return mark

    def unwrap_marks(self) -> int:
        marks = self.find_marks()
        for mark in marks:
            mark.replace_with(NavigableString(mark.get_text()))
        return len(marks)

    def normalize(self) -> None:
        for tag in [self.root, *self.root.find_all(True)]:
            previous = None
            for child in list(tag.contents):
                if not _is_text(child):
                    previous = None
                    continue
                if not str(child):
                    child.extract()
                    continue
                if previous is None:
                    previous = child
                    continue
                merged = NavigableString(str(previous) + str(child))
                previous.replace_with(merged)
                child.extract()
                previous = merged

    def find_marks(self, highlight_id: str | None = None) -> list[Tag]:
        marks = [tag for tag in self.root.find_all(MARK_TAG) if _is_mark(tag)]
        if highlight_id is None:
            return marks
        return [mark for mark in marks if mark.get(HIGHLIGHT_ID_ATTR) == highlight_id]

    def block_ancestor(self, node: Any) -> Tag | None:
        current = node if isinstance(node, Tag) else node.parent
        while current is not None and current is not self.root:
            if current.name in BLOCK_TAGS:
                return current
            current = current.parent
        return None
