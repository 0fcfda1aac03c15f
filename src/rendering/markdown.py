"""Markdown to HTML transform used for every ingested document.

markdown-it-py (CommonMark, raw HTML disabled) with GFM tables and
strikethrough, stable heading ids from the mdit-py-plugins anchors plugin,
and two table-of-contents augmentations:

- a nested outline of all headings prepended to the body
  (<ol class="toc-level toc-level-1">...)
- a heading named "Table of Contents" gets its section replaced by a list
  linking to every heading after that section.

render_markdown never raises: malformed input degrades to an escaped <pre>.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from loguru import logger
from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.anchors import anchors_plugin

from core.errors import TransformError

TOC_HEADING_RE = re.compile(r"^table[ -]of[ -]contents?$", re.IGNORECASE)


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    anchor: str


@dataclass
class _OutlineItem:
    heading: Heading
    children: List["_OutlineItem"] = field(default_factory=list)


def _build_parser() -> MarkdownIt:
    md = MarkdownIt("commonmark", {"html": False}).enable(["table", "strikethrough"])
    md.use(anchors_plugin, min_level=1, max_level=6)
    return md


_MD = _build_parser()


def _inline_text(token: Token) -> str:
    # Same text the anchors plugin slugifies
    return "".join(
        child.content for child in (token.children or []) if child.type in ("text", "code_inline")
    )


def _headings_with_index(tokens: Sequence[Token]) -> List[Tuple[int, Heading]]:
    out: List[Tuple[int, Heading]] = []
    for idx, token in enumerate(tokens):
        if token.type != "heading_open":
            continue
        anchor = token.attrGet("id")
        if not anchor:
            continue
        text = _inline_text(tokens[idx + 1]) if idx + 1 < len(tokens) else ""
        out.append((idx, Heading(level=int(token.tag[1]), text=text, anchor=str(anchor))))
    return out


def _outline(headings: Sequence[Heading]) -> List[_OutlineItem]:
    # Nest by level; a deeper heading hangs off the closest shallower one.
    roots: List[_OutlineItem] = []
    stack: List[_OutlineItem] = []
    for heading in headings:
        item = _OutlineItem(heading)
        while stack and stack[-1].heading.level >= heading.level:
            stack.pop()
        (stack[-1].children if stack else roots).append(item)
        stack.append(item)
    return roots


def _outline_html(items: Sequence[_OutlineItem], depth: int = 1) -> str:
    parts = [f'<ol class="toc-level toc-level-{depth}">']
    for item in items:
        h = item.heading
        parts.append(
            f'<li class="toc-item toc-item-h{h.level}">'
            f'<a class="toc-link toc-link-h{h.level}" href="#{html.escape(h.anchor)}">'
            f"{html.escape(h.text)}</a>"
        )
        if item.children:
            parts.append(_outline_html(item.children, depth + 1))
        parts.append("</li>")
    parts.append("</ol>")
    return "".join(parts)


def _section_list_html(items: Sequence[_OutlineItem]) -> str:
    parts = ["<ul>\n"]
    for item in items:
        h = item.heading
        parts.append(f'<li><a href="#{html.escape(h.anchor)}">{html.escape(h.text)}</a>')
        if item.children:
            parts.append("\n" + _section_list_html(item.children))
        parts.append("</li>\n")
    parts.append("</ul>\n")
    return "".join(parts)


def _fill_toc_section(
    tokens: List[Token], indexed: Sequence[Tuple[int, Heading]]
) -> Tuple[List[Token], List[Heading]]:
    """Replace the "Table of Contents" section body with a link list.

    Returns the new token stream and the headings still present in it;
    headings nested inside the replaced section are gone from both.
    """
    headings = [h for _, h in indexed]
    toc = next(((i, h) for i, h in indexed if TOC_HEADING_RE.match(h.text.strip())), None)
    if toc is None:
        return tokens, headings

    toc_idx, toc_heading = toc
    # heading_open, inline, heading_close
    section_start = toc_idx + 3
    section_end = len(tokens)
    for i, h in indexed:
        if i > toc_idx and h.level <= toc_heading.level:
            section_end = i
            break

    after = [h for i, h in indexed if i >= section_end]
    if not after:
        return tokens, headings

    listing = Token("html_block", "", 0, content=_section_list_html(_outline(after)))
    kept = [h for i, h in indexed if i < section_start or i >= section_end]
    return tokens[:section_start] + [listing] + tokens[section_end:], kept


def _parse(text: str) -> Tuple[List[Token], dict, List[Heading]]:
    env: dict = {}
    tokens = _MD.parse(text or "", env)
    tokens, headings = _fill_toc_section(tokens, _headings_with_index(tokens))
    return tokens, env, headings


def render_markdown_strict(text: str) -> str:
    """Render markdown to HTML, raising TransformError on failure."""
    try:
        tokens, env, headings = _parse(text)
        body = _MD.renderer.render(tokens, _MD.options, env)
    except Exception as e:
        raise TransformError(f"Failed to render markdown: {e}") from e

    if not headings:
        return body
    return _outline_html(_outline(headings)) + "\n" + body


def render_markdown(text: str) -> str:
    """Best-effort render: never raises."""
    try:
        return render_markdown_strict(text)
    except TransformError as e:
        logger.warning("Markdown render degraded to plain text: {}", e)
        return f"<pre>{html.escape(text or '')}</pre>\n"


def extract_headings(text: str) -> List[Heading]:
    """Headings (level, text, anchor) of the rendered body, in document order."""
    _, _, headings = _parse(text)
    return headings
