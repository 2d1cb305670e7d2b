from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class BookmarkRecord:
    node: Dict[str, Any]
    root_name: str
    source_path: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return str(self.node.get("name") or "")

    @property
    def url(self) -> str:
        return str(self.node.get("url") or "")


@dataclass
class FolderTree:
    folders: Dict[str, "FolderTree"] = field(default_factory=dict)
    bookmarks: List[BookmarkRecord] = field(default_factory=list)

    def get_or_create(self, name: str) -> "FolderTree":
        if name not in self.folders:
            self.folders[name] = FolderTree()
        return self.folders[name]

    def iter_paths(self, prefix: List[str] | None = None):
        """Yield (path, subtree) for every folder, pre-order."""
        base = list(prefix or [])
        for name, child in self.folders.items():
            path = base + [name]
            yield path, child
            yield from child.iter_paths(path)
