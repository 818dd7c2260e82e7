"""
Markdown to HTML rendering.

Raw inline HTML is enabled so highlight markers injected into the source
reach the output unescaped. Typographic replacements stay off: they would
make the rendered text differ from the source text users select from.

Code is the exception to passthrough: markdown-it escapes everything inside
inline code spans, fenced blocks and indented blocks. ``find_code_regions``
locates those regions in the source so callers can keep markers out of them,
and ``render(..., tag_code_regions=True)`` labels the matching output
elements so marks can be added to them after rendering.
"""

import re
from dataclasses import dataclass
from typing import Iterator

from markdown_it import MarkdownIt
from markdown_it.token import Token

CODE_REGION_ATTR = "data-code-region"

# A backtick run, content, and a closing run of the same length
_CODE_SPAN = re.compile(r"(?<!`)(`+)(?!`)(.+?)(?<!`)\1(?!`)", re.DOTALL)


@dataclass(frozen=True)
class CodeRegion:
    """Source span of one code element, numbered in document order"""

    ordinal: int
    start_offset: int
    end_offset: int

    def intersects(self, start_offset: int, end_offset: int) -> bool:
        return start_offset < self.end_offset and end_offset > self.start_offset


def _code_tokens(tokens: list[Token]) -> Iterator[tuple[Token, Token | None]]:
    """Yield code tokens in output order, each with its enclosing inline token."""
    for token in tokens:
        if token.type in ("fence", "code_block"):
            yield token, None
        elif token.type == "inline" and token.children:
            for child in token.children:
                if child.type == "code_inline":
                    yield child, token


def _span_content(raw: str) -> str:
    # CommonMark code span normalization
    content = raw.replace("\r\n", " ").replace("\n", " ")
    if len(content) > 1 and content[0] == " " and content[-1] == " " and content.strip():
        content = content[1:-1]
    return content


class _LineIndex:
    def __init__(self, source: str):
        self.length = len(source)
        self.starts = [0] + [m.end() for m in re.finditer("\n", source)]

    def offset(self, line: int) -> int:
        return self.starts[line] if line < len(self.starts) else self.length


class MarkdownRenderer:
    """Converts Markdown source to an HTML fragment."""

    def __init__(self) -> None:
        self._md = (
            MarkdownIt("commonmark", {"html": True, "typographer": False})
            .enable("table")
            .enable("strikethrough")
        )

    def render(self, source: str, tag_code_regions: bool = False) -> str:
        """
        Render ``source`` to HTML.

        Args:
            source (str): Markdown text
            tag_code_regions (bool): Put ``data-code-region="<ordinal>"`` on
                every code element, numbered like ``find_code_regions``
        """
        if not tag_code_regions:
            return self._md.render(source)

        env: dict = {}
        tokens = self._md.parse(source, env)
        for ordinal, (token, _) in enumerate(_code_tokens(tokens)):
            token.attrSet(CODE_REGION_ATTR, str(ordinal))
        return self._md.renderer.render(tokens, self._md.options, env)

    def find_code_regions(self, source: str) -> list[CodeRegion]:
        """
        Locate the source span of every code element.

        Fenced blocks cover their content lines, indented blocks their lines,
        and inline spans the text between their backtick runs. A code token
        whose span cannot be located is left out but keeps its ordinal.
        """
        lines = _LineIndex(source)
        regions = []
        inline_cursors: dict[int, int] = {}

        for ordinal, (token, parent) in enumerate(_code_tokens(self._md.parse(source))):
            if token.type == "fence" and token.map:
                first = token.map[0] + 1
                line_count = token.content.count("\n")
                if token.content and not token.content.endswith("\n"):
                    line_count += 1
                start = lines.offset(first)
                end = lines.offset(first + line_count)
                regions.append(CodeRegion(ordinal, start, end))
            elif token.type == "code_block" and token.map:
                regions.append(
                    CodeRegion(
                        ordinal, lines.offset(token.map[0]), lines.offset(token.map[1])
                    )
                )
            elif parent is not None:
                block_start, block_end = (
                    (lines.offset(parent.map[0]), lines.offset(parent.map[1]))
                    if parent.map
                    else (0, len(source))
                )
                cursor = inline_cursors.get(id(parent), block_start)
                for match in _CODE_SPAN.finditer(source, cursor, block_end):
                    if _span_content(match.group(2)) == token.content:
                        regions.append(
                            CodeRegion(ordinal, match.start(2), match.end(2))
                        )
                        inline_cursors[id(parent)] = match.end()
                        break

        return regions
