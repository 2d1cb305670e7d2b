from __future__ import annotations

import hashlib
import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import CANONICAL_ROOTS, ConfigError, strip_bom, validate_root_names
from .log import get_logger
from .model import BookmarkRecord

log = get_logger(__name__)

CHECKSUM_TYPE_URL = "url"
CHECKSUM_TYPE_FOLDER = "folder"
ACCOUNT_BOOKMARKS_FILENAME = "accountbookmarks"

_LONE_SURROGATE_RE = re.compile(r"[\ud800-\udfff]")


def parse_bookmarks_text(text: str, *, source: str = "<bookmarks>") -> Dict[str, Any]:
    try:
        data = json.loads(strip_bom(text))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Could not parse bookmarks file {source}: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("roots"), dict):
        raise ConfigError(f"Bookmarks file {source} has no 'roots' object")
    return data


def read_bookmarks_file(path: Path) -> Tuple[str, Dict[str, Any]]:
    """Return the raw file text (kept verbatim for the backup) and the parsed document."""
    try:
        raw = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigError(f"Bookmarks file {path} is not valid UTF-8: {e}") from e
    return raw, parse_bookmarks_text(raw, source=str(path))


def is_account_bookmarks(path: Path) -> bool:
    return path.name.lower() == ACCOUNT_BOOKMARKS_FILENAME


def _collect(node: Dict[str, Any], out: List[BookmarkRecord], root_name: str, source_path: List[str]) -> None:
    children = node.get("children")
    if not isinstance(children, list):
        return
    for child in children:
        if not isinstance(child, dict):
            continue
        kind = child.get("type")
        if kind == "url":
            out.append(BookmarkRecord(node=child, root_name=root_name, source_path=list(source_path)))
        elif kind == "folder":
            _collect(child, out, root_name, source_path + [str(child.get("name") or "")])


def collect_bookmarks(document: Dict[str, Any], source_roots: Sequence[str]) -> List[BookmarkRecord]:
    roots = document.get("roots") or {}
    out: List[BookmarkRecord] = []
    for root_name in source_roots:
        node = roots.get(root_name)
        if not isinstance(node, dict):
            log.debug("Source root %s not present in document; skipping", root_name)
            continue
        _collect(node, out, root_name, [])
    return out


def require_destination_root(document: Dict[str, Any], destination_root: str) -> None:
    roots = document.get("roots")
    if not isinstance(roots, dict) or not isinstance(roots.get(destination_root), dict):
        raise ConfigError(f"Destination root '{destination_root}' was not found in Bookmarks file.")


def set_root_children(root: Dict[str, Any], children: List[Dict[str, Any]], now: str) -> None:
    root["children"] = children
    root["date_modified"] = now


def assemble_document(
    document: Dict[str, Any],
    *,
    destination_children: List[Dict[str, Any]],
    source_roots: Sequence[str],
    destination_root: str,
    now: str,
) -> None:
    """Splice the rebuilt tree into ``document`` in place.

    Root names and the presence of the destination root are checked before
    anything is touched, so a ConfigError leaves ``document`` unchanged.
    """
    validate_root_names(list(source_roots), destination_root)
    require_destination_root(document, destination_root)
    roots = document["roots"]

    set_root_children(roots[destination_root], destination_children, now)
    for root_name in source_roots:
        if root_name == destination_root:
            continue
        node = roots.get(root_name)
        if isinstance(node, dict):
            set_root_children(node, [], now)


def _update_checksum(md5, node: Any) -> None:
    if not isinstance(node, dict):
        return
    node_type = CHECKSUM_TYPE_FOLDER if node.get("type") == "folder" else CHECKSUM_TYPE_URL
    md5.update(str(node.get("id") or "").encode("utf-8", "replace"))
    # Chromium hashes titles as raw UTF-16 code units, unpaired halves included.
    md5.update(str(node.get("name") or "").encode("utf-16-le", "surrogatepass"))
    md5.update(node_type.encode("utf-8"))
    if node_type == CHECKSUM_TYPE_URL:
        md5.update(str(node.get("url") or "").encode("utf-8", "replace"))
        return
    children = node.get("children")
    if isinstance(children, list):
        for child in children:
            _update_checksum(md5, child)


def compute_checksum(document: Dict[str, Any]) -> str:
    md5 = hashlib.md5()
    roots = document.get("roots") or {}
    for root_name in CANONICAL_ROOTS:
        node = roots.get(root_name)
        if node:
            _update_checksum(md5, node)
    return md5.hexdigest().lower()


def backup_path_for(bookmarks_path: Path, backup_dir: Path, when: Optional[datetime] = None) -> Path:
    ts = (when or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return backup_dir / f"{bookmarks_path.name}.{ts}.backup.json"


def write_backup(raw_text: str, bookmarks_path: Path, backup_dir: Path, when: Optional[datetime] = None) -> Path:
    backup_dir.mkdir(parents=True, exist_ok=True)
    dest = backup_path_for(bookmarks_path, backup_dir, when)
    dest.write_text(raw_text, encoding="utf-8")
    log.info("Backed up %s -> %s", bookmarks_path, dest)
    return dest


def dump_bookmarks_text(document: Dict[str, Any]) -> str:
    text = json.dumps(document, indent=2, ensure_ascii=False)
    # Unpaired surrogates cannot be encoded as UTF-8; keep them as JSON escapes.
    return _LONE_SURROGATE_RE.sub(lambda m: "\\u%04x" % ord(m.group()), text)


def write_bookmarks_file(path: Path, document: Dict[str, Any]) -> None:
    document["checksum"] = compute_checksum(document)
    path.write_text(dump_bookmarks_text(document), encoding="utf-8")
    log.info("Wrote bookmarks file: %s (checksum=%s)", path, document["checksum"])
