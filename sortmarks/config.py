from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CANONICAL_ROOTS = ("bookmark_bar", "other", "synced")
DEFAULT_ORGANIZED_FOLDER = "Organized"
DEFAULT_PATH = ["Uncategorized"]


class ConfigError(ValueError):
    """Fatal configuration or input-document problem; nothing has been written."""


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


@dataclass
class Settings:
    # Files
    config_path: str = "bookmark-sorter.config.json"
    backup_dir: str = "backups"

    # Export
    export_title: str = "Bookmarks"

    # Logging / UX
    log_level: str = "INFO"
    no_color: bool = False

    @staticmethod
    def from_env() -> "Settings":
        s = Settings()
        s.config_path = _env_str("SORTMARKS_CONFIG", s.config_path)
        s.backup_dir = _env_str("SORTMARKS_BACKUP_DIR", s.backup_dir)
        s.export_title = _env_str("SORTMARKS_EXPORT_TITLE", s.export_title)
        s.log_level = _env_str("SORTMARKS_LOG_LEVEL", s.log_level)
        s.no_color = _env_bool("SORTMARKS_NO_COLOR", s.no_color)
        return s

    @staticmethod
    def from_file(path: Path) -> "Settings":
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (UnicodeDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Invalid settings file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping")
        s = Settings.from_env()
        for k, v in data.items():
            if hasattr(s, k):
                setattr(s, k, v)
        return s


def load_settings(settings_path: Optional[str]) -> Settings:
    if settings_path:
        return Settings.from_file(Path(settings_path))
    return Settings.from_env()


def _as_list(v: Any) -> Any:
    if v is None:
        return []
    if isinstance(v, str):
        return [v]
    return v


class MatchSpec(BaseModel):
    """Inclusion/exclusion rule bundle attached to one category."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    keywords: List[str] = Field(default_factory=list)
    name_contains: List[str] = Field(default_factory=list, alias="nameContains")
    url_contains: List[str] = Field(default_factory=list, alias="urlContains")
    domains: List[str] = Field(default_factory=list)
    regex: List[str] = Field(default_factory=list)
    path_contains: List[str] = Field(default_factory=list, alias="pathContains")
    path_regex: List[str] = Field(default_factory=list, alias="pathRegex")
    roots: List[str] = Field(default_factory=list)

    exclude_keywords: List[str] = Field(default_factory=list, alias="excludeKeywords")
    exclude_name_contains: List[str] = Field(default_factory=list, alias="excludeNameContains")
    exclude_url_contains: List[str] = Field(default_factory=list, alias="excludeUrlContains")
    exclude_domains: List[str] = Field(default_factory=list, alias="excludeDomains")
    exclude_path_contains: List[str] = Field(default_factory=list, alias="excludePathContains")
    exclude_path_regex: List[str] = Field(default_factory=list, alias="excludePathRegex")
    exclude_regex: List[str] = Field(default_factory=list, alias="excludeRegex")

    mode: str = "any"

    @field_validator(
        "keywords",
        "name_contains",
        "url_contains",
        "domains",
        "regex",
        "path_contains",
        "path_regex",
        "roots",
        "exclude_keywords",
        "exclude_name_contains",
        "exclude_url_contains",
        "exclude_domains",
        "exclude_path_contains",
        "exclude_path_regex",
        "exclude_regex",
        mode="before",
    )
    @classmethod
    def _listify(cls, v: Any) -> Any:
        return _as_list(v)

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, v: Any) -> str:
        return "all" if str(v or "").strip().lower() == "all" else "any"


class CategoryNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str
    match: Optional[MatchSpec] = None
    children: List["CategoryNode"] = Field(default_factory=list)

    @field_validator("children", mode="before")
    @classmethod
    def _children_list(cls, v: Any) -> Any:
        return [] if v is None else v


class SorterConfig(BaseModel):
    """Rule configuration: where to read from, where to write, and how to sort."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    source_roots: List[str] = Field(default_factory=lambda: list(CANONICAL_ROOTS), alias="sourceRoots")
    destination_root: str = Field("bookmark_bar", alias="destinationRoot")
    organized_folder_name: str = Field(DEFAULT_ORGANIZED_FOLDER, alias="organizedFolderName")
    include_empty_folders: bool = Field(True, alias="includeEmptyFolders")
    default_path: List[str] = Field(default_factory=lambda: list(DEFAULT_PATH), alias="defaultPath")
    categories: List[CategoryNode] = Field(default_factory=list)

    @field_validator("source_roots", mode="before")
    @classmethod
    def _default_roots(cls, v: Any) -> Any:
        v = _as_list(v)
        return v if v else list(CANONICAL_ROOTS)

    @field_validator("destination_root", mode="before")
    @classmethod
    def _default_destination(cls, v: Any) -> Any:
        return v or "bookmark_bar"

    @field_validator("organized_folder_name", mode="before")
    @classmethod
    def _organized_name(cls, v: Any) -> Any:
        if v is None:
            return DEFAULT_ORGANIZED_FOLDER
        return str(v).strip()

    @field_validator("include_empty_folders", mode="before")
    @classmethod
    def _include_empty(cls, v: Any) -> Any:
        return True if v is None else v

    @field_validator("default_path", mode="before")
    @classmethod
    def _default_path(cls, v: Any) -> Any:
        v = _as_list(v)
        return v if v else list(DEFAULT_PATH)

    @field_validator("categories", mode="before")
    @classmethod
    def _categories_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def with_destination(self, destination_root: Optional[str]) -> "SorterConfig":
        if not destination_root:
            return self
        return self.model_copy(update={"destination_root": destination_root})

    def validate_roots(self) -> None:
        validate_root_names(self.source_roots, self.destination_root)


def validate_root_names(source_roots: List[str], destination_root: str) -> None:
    expected = ", ".join(CANONICAL_ROOTS)
    for root in source_roots:
        if root not in CANONICAL_ROOTS:
            raise ConfigError(f"Invalid source root '{root}'. Expected one of: {expected}")
    if destination_root not in CANONICAL_ROOTS:
        raise ConfigError(f"Invalid destination root '{destination_root}'. Expected one of: {expected}")


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith("\ufeff") else text


def parse_sorter_config(data: Any) -> SorterConfig:
    if not isinstance(data, dict):
        raise ConfigError("Sorter config must be a JSON object")
    try:
        return SorterConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid sorter config: {e}") from e


def load_sorter_config(path: Path) -> SorterConfig:
    """Read a rule config file (JSON, or YAML for .yaml/.yml) and validate it."""
    try:
        text = strip_bom(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid UTF-8: {e}") from e
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not parse config {path}: {e}") from e
    cfg = parse_sorter_config(data)
    cfg.validate_roots()
    return cfg
