from __future__ import annotations

import re
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import CategoryNode
from .model import FolderTree

# Chromium stores times as microseconds since 1601-01-01 UTC.
EPOCH_OFFSET_MICROSECONDS = 11_644_473_600_000_000

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def to_chrome_timestamp(unix_millis: int) -> str:
    return str(int(unix_millis) * 1000 + EPOCH_OFFSET_MICROSECONDS)


def chrome_now() -> str:
    return to_chrome_timestamp(int(time.time() * 1000))


def chrome_to_unix_seconds(value: Any) -> Optional[int]:
    """Chromium timestamp -> Unix seconds; None for zero, pre-1970 or garbage."""
    raw = str(value if value is not None else "0").strip()
    if not raw or raw == "0":
        return None
    try:
        micros = int(raw)
    except ValueError:
        return None
    unix_micros = micros - EPOCH_OFFSET_MICROSECONDS
    if unix_micros <= 0:
        return None
    return unix_micros // 1_000_000


def _node_id(node: Dict[str, Any]) -> Optional[int]:
    m = _LEADING_INT_RE.match(str(node.get("id") or ""))
    return int(m.group(1)) if m else None


def max_node_id(document: Dict[str, Any]) -> int:
    """Largest integer id anywhere under ``roots`` (0 when there is none)."""
    best = 0
    stack: List[Any] = list((document.get("roots") or {}).values())
    while stack:
        node = stack.pop()
        if not isinstance(node, dict):
            continue
        nid = _node_id(node)
        if nid is not None and nid > best:
            best = nid
        children = node.get("children")
        if isinstance(children, list):
            stack.extend(children)
    return best


class IdGenerator:
    """Monotonic node ids for one run, always above the document's current maximum."""

    def __init__(self, start: int = 0):
        self.last = int(start)

    @classmethod
    def for_document(cls, document: Dict[str, Any]) -> "IdGenerator":
        return cls(max_node_id(document))

    def next(self) -> str:
        self.last += 1
        return str(self.last)


def ensure_path(tree: FolderTree, folder_path: Sequence[str]) -> FolderTree:
    node = tree
    for name in folder_path:
        node = node.get_or_create(name)
    return node


def add_configured_folders(tree: FolderTree, categories: Iterable[CategoryNode], prefix: Sequence[str] = ()) -> None:
    for category in categories:
        current = list(prefix) + [category.name]
        ensure_path(tree, current)
        add_configured_folders(tree, category.children, current)


def sort_bookmarks(tree: FolderTree) -> None:
    # list.sort is stable, so equal names keep collection order.
    tree.bookmarks.sort(key=lambda r: r.name.lower())
    for child in tree.folders.values():
        sort_bookmarks(child)


def make_folder(name: str, children: List[Dict[str, Any]], ids: IdGenerator, now: str) -> Dict[str, Any]:
    return {
        "type": "folder",
        "name": name,
        "id": ids.next(),
        "guid": str(uuid.uuid4()),
        "date_added": now,
        "date_last_used": "0",
        "date_modified": now,
        "children": children,
    }


def sanitize_bookmark(node: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(node)
    if not out.get("type"):
        out["type"] = "url"
    if not out.get("guid") and out["type"] == "url":
        out["guid"] = str(uuid.uuid4())
    if not out.get("date_last_used"):
        out["date_last_used"] = "0"
    return out


def lower_tree(tree: FolderTree, ids: IdGenerator, now: str) -> List[Dict[str, Any]]:
    """Turn a FolderTree into Chromium nodes: folders first, then bookmarks."""
    out: List[Dict[str, Any]] = []
    for name, sub in tree.folders.items():
        children = lower_tree(sub, ids, now)
        out.append(make_folder(name, children, ids, now))
    for record in tree.bookmarks:
        out.append(sanitize_bookmark(record.node))
    return out

