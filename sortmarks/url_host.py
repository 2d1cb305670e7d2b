from __future__ import annotations

from urllib.parse import urlsplit


def host_of(url: str) -> str:
    """Lowercased hostname of an absolute URL, or "" when there is none."""
    try:
        host = urlsplit(url or "").hostname
    except ValueError:
        return ""
    return (host or "").lower()


def normalize_domain(domain: str) -> str:
    d = (domain or "").strip().lower()
    if d.startswith("."):
        d = d[1:]
    return d


def host_matches_domain(host: str, domain: str) -> bool:
    # Anchored on label boundaries: "notgithub.com" is not under "github.com".
    d = normalize_domain(domain)
    if not d or not host:
        return False
    return host == d or host.endswith("." + d)
