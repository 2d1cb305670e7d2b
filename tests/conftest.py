import sys
from pathlib import Path

import pytest

# Allow `import sortmarks` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))


def url_node(name, url, id_, **extra):
    node = {
        "type": "url",
        "name": name,
        "url": url,
        "id": str(id_),
        "guid": f"guid-{id_}",
        "date_added": "13300000000000000",
        "date_last_used": "0",
    }
    node.update(extra)
    return node


def folder_node(name, id_, children):
    return {"type": "folder", "name": name, "id": str(id_), "children": list(children)}


@pytest.fixture
def chrome_doc():
    """A small Chromium Bookmarks document spread over all three roots."""
    return {
        "checksum": "stale",
        "roots": {
            "bookmark_bar": folder_node(
                "Bookmarks bar",
                1,
                [
                    url_node("Zeta repo", "https://github.com/x/zeta", 5),
                    folder_node(
                        "Work",
                        6,
                        [
                            url_node("alpha docs", "https://docs.python.org/3/", 7),
                            url_node("Evil", "https://notgithub.com/evil-github.com", 8),
                        ],
                    ),
                ],
            ),
            "other": folder_node(
                "Other bookmarks",
                2,
                [url_node("News", "https://news.ycombinator.com/", 40)],
            ),
            "synced": folder_node("Mobile bookmarks", 3, []),
        },
        "version": 1,
    }
