from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_PATH, CategoryNode
from .log import get_logger
from .matcher import PATH_SEPARATOR, CompiledMatch, Fields, compile_spec, derive_fields, matches_compiled
from .model import BookmarkRecord, FolderTree
from .tree import ensure_path

log = get_logger(__name__)


@dataclass(frozen=True)
class _CompiledCategory:
    name: str
    match: Optional[CompiledMatch]
    children: Tuple["_CompiledCategory", ...]


def _compile_category(node: CategoryNode) -> _CompiledCategory:
    return _CompiledCategory(
        name=node.name,
        match=compile_spec(node.match) if node.match is not None else None,
        children=tuple(_compile_category(c) for c in node.children),
    )


def _resolve_node(node: _CompiledCategory, fields: Fields, prefix: List[str]) -> Optional[List[str]]:
    current = prefix + [node.name]
    # Deeper rules win: children are tried before this node's own rule.
    for child in node.children:
        found = _resolve_node(child, fields, current)
        if found is not None:
            return found
    if node.match is not None and matches_compiled(node.match, fields):
        return current
    return None


class CategoryResolver:
    """Category forest with every rule compiled once."""

    def __init__(self, categories: Sequence[CategoryNode]):
        self._roots = tuple(_compile_category(c) for c in categories)

    def resolve(self, record: BookmarkRecord) -> Optional[List[str]]:
        fields = derive_fields(record)
        for root in self._roots:
            found = _resolve_node(root, fields, [])
            if found is not None:
                return found
        return None


def resolve(categories: Sequence[CategoryNode], record: BookmarkRecord) -> Optional[List[str]]:
    return CategoryResolver(categories).resolve(record)


def path_key(path: Sequence[str]) -> str:
    return PATH_SEPARATOR.join(path)


def classify_bookmarks(
    records: Iterable[BookmarkRecord],
    categories: Sequence[CategoryNode],
    default_path: Sequence[str],
    tree: FolderTree,
) -> Counter:
    """Place every record into ``tree``; returns per-path counts keyed by ``"A > B"``."""
    resolver = CategoryResolver(categories)
    fallback = list(default_path) or list(DEFAULT_PATH)
    stats: Counter = Counter()
    unmatched = 0
    for record in records:
        path = resolver.resolve(record)
        if path is None:
            path = fallback
            unmatched += 1
        ensure_path(tree, path).bookmarks.append(record)
        stats[path_key(path)] += 1
    if unmatched:
        log.debug("%d bookmarks matched no category; using %s", unmatched, path_key(fallback))
    return stats


def summarize_stats(stats: Counter) -> List[Tuple[str, int]]:
    # Stable sort keeps first-seen order among equal counts.
    return sorted(stats.items(), key=lambda kv: -kv[1])
