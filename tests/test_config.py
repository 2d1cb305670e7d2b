import json
from pathlib import Path

import pytest

from sortmarks.config import ConfigError, Settings, load_settings, load_sorter_config, parse_sorter_config


def test_sorter_config_defaults():
    cfg = parse_sorter_config({})
    assert cfg.source_roots == ["bookmark_bar", "other", "synced"]
    assert cfg.destination_root == "bookmark_bar"
    assert cfg.organized_folder_name == "Organized"
    assert cfg.include_empty_folders is True
    assert cfg.default_path == ["Uncategorized"]
    assert cfg.categories == []


def test_sorter_config_empty_lists_and_nulls_fall_back():
    cfg = parse_sorter_config(
        {"sourceRoots": [], "defaultPath": [], "organizedFolderName": None, "includeEmptyFolders": None}
    )
    assert cfg.source_roots == ["bookmark_bar", "other", "synced"]
    assert cfg.default_path == ["Uncategorized"]
    assert cfg.organized_folder_name == "Organized"
    assert cfg.include_empty_folders is True


def test_sorter_config_reads_camel_case_nested_rules():
    cfg = parse_sorter_config(
        {
            "organizedFolderName": " Sorted ",
            "categories": [
                {
                    "name": "Dev",
                    "match": {"nameContains": ["repo"], "excludePathRegex": ["^old"], "mode": "ALL"},
                    "children": [{"name": "Gists"}],
                }
            ],
        }
    )
    assert cfg.organized_folder_name == "Sorted"
    dev = cfg.categories[0]
    assert dev.match.name_contains == ["repo"]
    assert dev.match.exclude_path_regex == ["^old"]
    assert dev.match.mode == "all"
    assert dev.children[0].name == "Gists"
    assert dev.children[0].match is None


def test_load_sorter_config_strips_bom_and_validates_roots(tmp_path: Path):
    p = tmp_path / "rules.json"
    p.write_text("\ufeff" + json.dumps({"destinationRoot": "other"}), encoding="utf-8")
    assert load_sorter_config(p).destination_root == "other"

    p.write_text(json.dumps({"sourceRoots": ["bookmark_bar", "mobile"]}), encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid source root 'mobile'"):
        load_sorter_config(p)


def test_load_sorter_config_accepts_yaml(tmp_path: Path):
    p = tmp_path / "rules.yaml"
    p.write_text("categories:\n  - name: Dev\n    match:\n      domains: [github.com]\n", encoding="utf-8")
    cfg = load_sorter_config(p)
    assert cfg.categories[0].match.domains == ["github.com"]


@pytest.mark.parametrize("text", ["{broken", "[1, 2]", '{"categories": [{"match": {}}]}'])
def test_load_sorter_config_errors_are_config_errors(tmp_path: Path, text):
    p = tmp_path / "rules.json"
    p.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_sorter_config(p)


def test_with_destination_overrides_without_mutating():
    cfg = parse_sorter_config({})
    other = cfg.with_destination("synced")
    assert other.destination_root == "synced"
    assert cfg.destination_root == "bookmark_bar"
    assert cfg.with_destination(None) is cfg


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SORTMARKS_BACKUP_DIR", "/tmp/bk")
    monkeypatch.setenv("SORTMARKS_NO_COLOR", "yes")
    monkeypatch.delenv("SORTMARKS_LOG_LEVEL", raising=False)
    s = Settings.from_env()
    assert s.backup_dir == "/tmp/bk"
    assert s.no_color is True
    assert s.log_level == "INFO"


def test_settings_file_overrides_env(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("SORTMARKS_EXPORT_TITLE", "From env")
    p = tmp_path / "settings.yaml"
    p.write_text("export_title: From file\nunknown_key: 1\n", encoding="utf-8")
    s = load_settings(str(p))
    assert s.export_title == "From file"
    assert not hasattr(s, "unknown_key")


def test_load_sorter_config_rejects_invalid_utf8(tmp_path: Path):
    p = tmp_path / "rules.json"
    p.write_bytes(b'{"defaultPath": ["\xff\xfe"]}')
    with pytest.raises(ConfigError, match="not valid UTF-8"):
        load_sorter_config(p)
