"""
Markdown to HTML for digests.

The digest prose uses a small markdown subset. This module is the only
place it gets converted, for both the emailed digest and the dashboard.
"""

import html
import re

HEADER = re.compile(r"^(#{1,3})\s+(.*)$")
BULLET = re.compile(r"^\s*[-*]\s+(.*)$")
NUMBERED = re.compile(r"^\s*\d+[.)]\s+(.*)$")
RULE = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$")

LINK = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
BOLD = re.compile(r"\*\*(.+?)\*\*")
ITALIC = re.compile(r"(?<![\*\w])\*(?!\s)(.+?)(?<!\s)\*(?![\*\w])")
CODE = re.compile(r"`([^`]+)`")

SAFE_SCHEMES = ("http://", "https://", "mailto:")


def _link(match: re.Match) -> str:
    label, url = match.group(1), match.group(2)
    if not url.lower().startswith(SAFE_SCHEMES):
        return label
    return f'<a href="{url.replace(chr(34), "&quot;")}">{label}</a>'


def render_inline(text: str) -> str:
    """Render inline markup on one line of already-escaped text."""
    text = CODE.sub(r"<code>\1</code>", text)
    text = LINK.sub(_link, text)
    text = BOLD.sub(r"<strong>\1</strong>", text)
    return ITALIC.sub(r"<em>\1</em>", text)


def render_markdown(markdown: str) -> str:
    """
    Convert digest markdown to an HTML fragment.

    Supports # to ### headers, **bold**, *italic*, `code`, [links](url),
    - and 1. lists, --- rules, paragraphs, and two-space line breaks.
    Raw HTML in the input is escaped.
    """
    if not markdown:
        return ""

    blocks: list[str] = []
    paragraph: list[str] = []
    list_tag: str | None = None
    items: list[str] = []

    def flush_paragraph():
        if paragraph:
            blocks.append("<p>" + "".join(paragraph).removesuffix("<br>") + "</p>")
            paragraph.clear()

    def flush_list():
        nonlocal list_tag
        if list_tag:
            blocks.append(f"<{list_tag}>" + "".join(f"<li>{i}</li>" for i in items) + f"</{list_tag}>")
            items.clear()
            list_tag = None

    for raw_line in markdown.replace("\r\n", "\n").split("\n"):
        hard_break = raw_line.endswith("  ")
        line = html.escape(raw_line.rstrip(), quote=False)

        if not line.strip():
            flush_paragraph()
            flush_list()
            continue

        if RULE.match(line):
            flush_paragraph()
            flush_list()
            blocks.append("<hr>")
            continue

        header = HEADER.match(line)
        if header:
            flush_paragraph()
            flush_list()
            level = len(header.group(1))
            blocks.append(f"<h{level}>{render_inline(header.group(2).strip())}</h{level}>")
            continue

        bullet = BULLET.match(line)
        numbered = NUMBERED.match(line) if not bullet else None
        if bullet or numbered:
            flush_paragraph()
            tag = "ul" if bullet else "ol"
            if list_tag != tag:
                flush_list()
                list_tag = tag
            items.append(render_inline((bullet or numbered).group(1).strip()))
            continue

        flush_list()
        if paragraph and not paragraph[-1].endswith("<br>"):
            paragraph.append(" ")
        paragraph.append(render_inline(line.strip()))
        if hard_break:
            paragraph.append("<br>")

    flush_paragraph()
    flush_list()
    return "\n".join(blocks)
