"""In-memory sort engine.

``plan_sort`` reads the parsed document and the rule config and builds the
new destination tree without touching either. ``apply_plan`` is the single
step that mutates the document.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .chrome_store import assemble_document, collect_bookmarks, require_destination_root
from .classify import classify_bookmarks, summarize_stats
from .config import SorterConfig
from .log import get_logger
from .model import FolderTree
from .tree import IdGenerator, add_configured_folders, chrome_now, lower_tree, make_folder, sort_bookmarks

log = get_logger(__name__)


@dataclass
class SortPlan:
    destination_children: List[Dict[str, Any]]
    stats: Counter
    total: int
    source_roots: List[str]
    destination_root: str
    organized_folder_name: str
    now: str
    folder_count: int = 0

    def summary(self):
        return summarize_stats(self.stats)

    @property
    def destination_label(self) -> str:
        if self.organized_folder_name:
            return f"{self.destination_root}/{self.organized_folder_name}"
        return self.destination_root


def wrap_organized(
    children: List[Dict[str, Any]],
    organized_folder_name: str,
    ids: IdGenerator,
    now: str,
) -> List[Dict[str, Any]]:
    name = (organized_folder_name or "").strip()
    if not name:
        return children
    return [make_folder(name, children, ids, now)]


def plan_sort(document: Dict[str, Any], config: SorterConfig, *, now: Optional[str] = None) -> SortPlan:
    config.validate_roots()
    require_destination_root(document, config.destination_root)
    now = now or chrome_now()

    records = collect_bookmarks(document, config.source_roots)
    log.info("Collected %d bookmarks from roots: %s", len(records), ", ".join(config.source_roots))

    tree = FolderTree()
    if config.include_empty_folders:
        add_configured_folders(tree, config.categories)

    stats = classify_bookmarks(records, config.categories, config.default_path, tree)
    sort_bookmarks(tree)

    ids = IdGenerator.for_document(document)
    log.debug("Minting node ids above %d", ids.last)
    children = lower_tree(tree, ids, now)
    destination_children = wrap_organized(children, config.organized_folder_name, ids, now)

    return SortPlan(
        destination_children=destination_children,
        stats=stats,
        total=len(records),
        source_roots=list(config.source_roots),
        destination_root=config.destination_root,
        organized_folder_name=config.organized_folder_name,
        now=now,
        folder_count=sum(1 for _ in tree.iter_paths()),
    )


def apply_plan(document: Dict[str, Any], plan: SortPlan) -> None:
    assemble_document(
        document,
        destination_children=plan.destination_children,
        source_roots=plan.source_roots,
        destination_root=plan.destination_root,
        now=plan.now,
    )
