import pytest

from sortmarks.config import MatchSpec
from sortmarks.matcher import compile_spec, derive_fields, matches
from sortmarks.model import BookmarkRecord
from sortmarks.url_host import host_matches_domain, host_of


def _rec(name="", url="", root="bookmark_bar", path=()):
    return BookmarkRecord(node={"type": "url", "name": name, "url": url}, root_name=root, source_path=list(path))


def _rule(**kw):
    return MatchSpec.model_validate(kw)


def test_empty_rule_never_matches():
    assert matches(_rule(), _rec("anything", "https://example.com/")) is False
    assert matches(None, _rec("anything", "https://example.com/")) is False


def test_rule_with_only_exclusions_never_matches():
    rule = _rule(excludeKeywords=["nothing-here"])
    assert matches(rule, _rec("github", "https://github.com/")) is False


def test_domain_match_is_anchored_on_host():
    rule = _rule(domains=["github.com"])
    assert matches(rule, _rec("repo", "https://github.com/x/y")) is True
    assert matches(rule, _rec("gist", "https://gist.github.com/abc")) is True
    assert matches(rule, _rec("evil", "https://notgithub.com/evil-github.com")) is False


def test_domain_leading_dot_is_stripped():
    assert matches(_rule(domains=[".github.com"]), _rec("repo", "https://api.github.com/")) is True


def test_unparseable_url_has_empty_host_and_never_matches_domains():
    assert host_of("not a url") == ""
    assert host_of("http://[::1") == ""
    assert matches(_rule(domains=["github.com"]), _rec("x", "http://[::1")) is False


def test_host_matches_domain_rejects_empty_inputs():
    assert host_matches_domain("", "github.com") is False
    assert host_matches_domain("github.com", "") is False
    assert host_matches_domain("github.com", ".") is False


def test_keywords_search_name_and_url_case_insensitively():
    rule = _rule(keywords=["PYTHON"])
    assert matches(rule, _rec("Python docs", "https://example.com")) is True
    assert matches(rule, _rec("Docs", "https://python.org")) is True
    assert matches(rule, _rec("Docs", "https://example.com")) is False


def test_name_and_url_contains_are_field_specific():
    assert matches(_rule(nameContains=["recipe"]), _rec("Best Recipe", "https://a.example")) is True
    assert matches(_rule(nameContains=["recipe"]), _rec("Food", "https://recipe.example")) is False
    assert matches(_rule(urlContains=["/blog/"]), _rec("x", "https://a.example/BLOG/post")) is True


def test_path_and_root_predicates():
    rec = _rec("Guide", "https://a.example", root="other", path=["Work", "Reading List"])
    assert derive_fields(rec).path_text == "work > reading list"
    assert matches(_rule(pathContains=["reading list"]), rec) is True
    assert matches(_rule(pathRegex=[r"^work >"]), rec) is True
    assert matches(_rule(roots=["OTHER"]), rec) is True
    assert matches(_rule(roots=["bookmark_bar"]), rec) is False


def test_any_exclusion_vetoes_regardless_of_mode():
    rec = _rec("GitHub pricing", "https://github.com/pricing")
    for mode in ("any", "all"):
        assert matches(_rule(domains=["github.com"], excludeKeywords=["pricing"], mode=mode), rec) is False
        assert matches(_rule(domains=["github.com"], excludeDomains=["github.com"], mode=mode), rec) is False
        assert matches(_rule(domains=["github.com"], excludeRegex=[r"pric\w+"], mode=mode), rec) is False
        assert matches(_rule(domains=["github.com"], excludeUrlContains=["/pricing"], mode=mode), rec) is False
        assert matches(_rule(domains=["github.com"], excludeNameContains=["pricing"], mode=mode), rec) is False


def test_path_exclusions_veto():
    rec = _rec("Guide", "https://github.com/", path=["Archive"])
    assert matches(_rule(domains=["github.com"], excludePathContains=["archive"]), rec) is False
    assert matches(_rule(domains=["github.com"], excludePathRegex=["^arch"]), rec) is False


def test_mode_all_requires_every_family():
    rec = _rec("Python tutorial", "https://realpython.com/intro")
    assert matches(_rule(domains=["realpython.com"], nameContains=["tutorial"], mode="all"), rec) is True
    assert matches(_rule(domains=["realpython.com"], nameContains=["recipe"], mode="all"), rec) is False
    assert matches(_rule(domains=["realpython.com"], nameContains=["recipe"], mode="any"), rec) is True


def test_unknown_mode_behaves_as_any():
    rule = _rule(domains=["realpython.com"], nameContains=["recipe"], mode="sometimes")
    assert rule.mode == "any"
    assert matches(rule, _rec("Python tutorial", "https://realpython.com/intro")) is True


def test_invalid_regex_is_dropped_not_fatal():
    rule = _rule(regex=["([unclosed", "python"])
    assert len(compile_spec(rule).regex) == 1
    assert matches(rule, _rec("Python", "https://a.example")) is True


def test_family_with_only_invalid_regex_is_not_evaluated():
    rec = _rec("Python", "https://realpython.com/")
    rule = _rule(regex=["([unclosed"], domains=["realpython.com"], mode="all")
    assert matches(rule, rec) is True
    assert matches(_rule(regex=["([unclosed"]), rec) is False


@pytest.mark.parametrize("value", ["github.com", ["github.com"]])
def test_single_string_is_accepted_as_one_entry(value):
    assert matches(_rule(domains=value), _rec("repo", "https://github.com/")) is True
