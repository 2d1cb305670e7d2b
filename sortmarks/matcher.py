"""Evaluate one category's match rules against one bookmark.

Rules are compiled once per run (:func:`compile_spec`). Patterns that fail to
compile are dropped from their family, so a typo in one regex does not
disable the rest of the rule. A family left with no usable pattern is not
evaluated at all.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple

from .config import MatchSpec
from .log import get_logger
from .model import BookmarkRecord
from .url_host import host_matches_domain, host_of, normalize_domain

log = get_logger(__name__)

PATH_SEPARATOR = " > "


@dataclass(frozen=True)
class Fields:
    name: str
    url: str
    both: str
    host: str
    path_text: str
    root_name: str


@dataclass(frozen=True)
class CompiledMatch:
    mode: str
    keywords: Tuple[str, ...] = ()
    name_contains: Tuple[str, ...] = ()
    url_contains: Tuple[str, ...] = ()
    domains: Tuple[str, ...] = ()
    regex: Tuple[Pattern[str], ...] = ()
    path_contains: Tuple[str, ...] = ()
    path_regex: Tuple[Pattern[str], ...] = ()
    roots: Tuple[str, ...] = ()
    exclude_keywords: Tuple[str, ...] = ()
    exclude_name_contains: Tuple[str, ...] = ()
    exclude_url_contains: Tuple[str, ...] = ()
    exclude_domains: Tuple[str, ...] = ()
    exclude_path_contains: Tuple[str, ...] = ()
    exclude_path_regex: Tuple[Pattern[str], ...] = ()
    exclude_regex: Tuple[Pattern[str], ...] = ()


def derive_fields(record: BookmarkRecord) -> Fields:
    name = record.name.lower()
    url = record.url.lower()
    return Fields(
        name=name,
        url=url,
        both=f"{name} {url}".strip(),
        host=host_of(record.url),
        path_text=PATH_SEPARATOR.join(str(p) for p in record.source_path).lower(),
        root_name=(record.root_name or "").lower(),
    )


def _tokens(values: Sequence[str]) -> Tuple[str, ...]:
    return tuple(v.lower() for v in values if v)


def _domains(values: Sequence[str]) -> Tuple[str, ...]:
    return tuple(d for d in (normalize_domain(v) for v in values) if d)


def _compile_pattern(pattern: str) -> Optional[Pattern[str]]:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        log.debug("Ignoring invalid pattern %r: %s", pattern, e)
        return None


def _patterns(values: Sequence[str]) -> Tuple[Pattern[str], ...]:
    compiled = (_compile_pattern(v) for v in values if v)
    return tuple(p for p in compiled if p is not None)


def compile_spec(spec: MatchSpec) -> CompiledMatch:
    return CompiledMatch(
        mode=spec.mode,
        keywords=_tokens(spec.keywords),
        name_contains=_tokens(spec.name_contains),
        url_contains=_tokens(spec.url_contains),
        domains=_domains(spec.domains),
        regex=_patterns(spec.regex),
        path_contains=_tokens(spec.path_contains),
        path_regex=_patterns(spec.path_regex),
        roots=_tokens(spec.roots),
        exclude_keywords=_tokens(spec.exclude_keywords),
        exclude_name_contains=_tokens(spec.exclude_name_contains),
        exclude_url_contains=_tokens(spec.exclude_url_contains),
        exclude_domains=_domains(spec.exclude_domains),
        exclude_path_contains=_tokens(spec.exclude_path_contains),
        exclude_path_regex=_patterns(spec.exclude_path_regex),
        exclude_regex=_patterns(spec.exclude_regex),
    )


def _any_in(tokens: Sequence[str], text: str) -> bool:
    return any(t in text for t in tokens)


def _any_search(patterns: Sequence[Pattern[str]], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def _any_domain(domains: Sequence[str], host: str) -> bool:
    return any(host_matches_domain(host, d) for d in domains)


def _excluded(c: CompiledMatch, f: Fields) -> bool:
    return (
        _any_in(c.exclude_keywords, f.both)
        or _any_in(c.exclude_name_contains, f.name)
        or _any_in(c.exclude_url_contains, f.url)
        or _any_domain(c.exclude_domains, f.host)
        or _any_in(c.exclude_path_contains, f.path_text)
        or _any_search(c.exclude_path_regex, f.path_text)
        or _any_search(c.exclude_regex, f.both)
    )


def _inclusion_checks(c: CompiledMatch, f: Fields) -> List[bool]:
    checks: List[bool] = []
    if c.keywords:
        checks.append(_any_in(c.keywords, f.both))
    if c.name_contains:
        checks.append(_any_in(c.name_contains, f.name))
    if c.url_contains:
        checks.append(_any_in(c.url_contains, f.url))
    if c.domains:
        checks.append(_any_domain(c.domains, f.host))
    if c.regex:
        checks.append(_any_search(c.regex, f.both))
    if c.path_contains:
        checks.append(_any_in(c.path_contains, f.path_text))
    if c.path_regex:
        checks.append(_any_search(c.path_regex, f.path_text))
    if c.roots:
        checks.append(f.root_name in c.roots)
    return checks


def matches_compiled(compiled: CompiledMatch, fields: Fields) -> bool:
    if _excluded(compiled, fields):
        return False
    checks = _inclusion_checks(compiled, fields)
    if not checks:
        return False
    if compiled.mode == "all":
        return all(checks)
    return any(checks)


def matches(spec: Optional[MatchSpec], record: BookmarkRecord, fields: Optional[Fields] = None) -> bool:
    if spec is None:
        return False
    return matches_compiled(compile_spec(spec), fields or derive_fields(record))
