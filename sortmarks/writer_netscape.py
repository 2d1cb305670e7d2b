from __future__ import annotations

import html
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .log import get_logger
from .tree import chrome_to_unix_seconds

log = get_logger(__name__)

INDENT = "  "

_LONE_SURROGATE_RE = re.compile(r"[\ud800-\udfff]")


def _escape(value: Any) -> str:
    # & < > and double quotes only; single quotes pass through.
    text = _LONE_SURROGATE_RE.sub("\ufffd", str(value or ""))
    return html.escape(text, quote=False).replace('"', "&quot;")


def _date_attr(attr: str, value: Any) -> str:
    secs = chrome_to_unix_seconds(value)
    return f' {attr}="{secs}"' if secs else ""


def _render_node(lines: List[str], node: Dict[str, Any], level: int) -> None:
    indent = INDENT * level
    if node.get("type") == "url":
        add_date = _date_attr("ADD_DATE", node.get("date_added"))
        lines.append(f'{indent}<DT><A HREF="{_escape(node.get("url"))}"{add_date}>{_escape(node.get("name"))}</A>')
        return

    attrs = _date_attr("ADD_DATE", node.get("date_added")) + _date_attr("LAST_MODIFIED", node.get("date_modified"))
    lines.append(f"{indent}<DT><H3{attrs}>{_escape(node.get('name'))}</H3>")
    lines.append(f"{indent}<DL><p>")
    for child in node.get("children") or []:
        if isinstance(child, dict):
            _render_node(lines, child, level + 1)
    lines.append(f"{indent}</DL><p>")


def render_netscape_html(nodes: Sequence[Dict[str, Any]], title: str = "Bookmarks") -> str:
    """Render Chromium bookmark nodes as a Netscape Bookmark HTML document.

    Browsers import this format directly, which makes it the sync-safe way
    to hand a sorted tree back to a signed-in profile.
    """
    lines: List[str] = []
    lines.append("<!DOCTYPE NETSCAPE-Bookmark-file-1>")
    lines.append('<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">')
    lines.append(f"<TITLE>{_escape(title)}</TITLE>")
    lines.append(f"<H1>{_escape(title)}</H1>")
    lines.append("<DL><p>")
    for node in nodes:
        _render_node(lines, node, 1)
    lines.append("</DL><p>")
    return "\n".join(lines) + "\n"


def write_netscape_html(out_path: Path, nodes: Sequence[Dict[str, Any]], title: str = "Bookmarks") -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(render_netscape_html(nodes, title), encoding="utf-8")
    log.info("Wrote bookmarks HTML export: %s", out_path)
