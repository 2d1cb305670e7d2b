from __future__ import annotations

import argparse
import time
from pathlib import Path
from typing import List

from . import __version__
from .chrome_store import is_account_bookmarks, read_bookmarks_file, write_backup, write_bookmarks_file
from .config import ConfigError, Settings, load_settings, load_sorter_config
from .log import LogConfig, get_logger, setup_logging
from .sorter import SortPlan, apply_plan, plan_sort
from .writer_netscape import write_netscape_html

log = get_logger(__name__)


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="sortmarks",
        description="Rule-based sorter for Chromium Bookmarks files.",
    )
    p.add_argument("-V", "--version", action="version", version=f"sortmarks {__version__}")
    p.add_argument("--settings", default=None, help="YAML settings file (optional). Env vars override defaults.")
    sub = p.add_subparsers(dest="cmd", required=True)

    srt = sub.add_parser("sort", help="Sort a Bookmarks file into the configured folder hierarchy.")
    srt.add_argument("--bookmarks-file", required=True, help="Path to a Chromium Bookmarks or AccountBookmarks file.")
    srt.add_argument("--config", default=None, help="Sorter rules (JSON, or YAML by extension).")
    srt.add_argument("--destination-root", default=None, help="Override destination root (bookmark_bar | other | synced).")
    mode = srt.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", action="store_true", help="Show planned changes only (default).")
    mode.add_argument("--apply", action="store_true", help="Write changes to the bookmarks file after a backup.")
    srt.add_argument("--export-html", default=None, help="Also write the sorted tree as importable Netscape HTML.")
    srt.add_argument("--backup-dir", default=None, help="Backup folder (default: backups).")
    srt.add_argument(
        "--allow-account-apply",
        action="store_true",
        help="Allow --apply on an AccountBookmarks file (bypasses browser sync).",
    )
    srt.add_argument("--log-level", default=None, help="DEBUG/INFO/WARN/ERROR (overrides env/settings).")
    srt.add_argument("--no-color", action="store_true", help="Disable colored logging.")

    args = p.parse_args(argv)
    try:
        cfg = load_settings(args.settings)
    except (ConfigError, OSError) as e:
        setup_logging(LogConfig())
        log.error("Error: %s", e)
        return 2
    if args.log_level:
        cfg.log_level = args.log_level
    if args.no_color:
        cfg.no_color = True
    if args.config:
        cfg.config_path = args.config
    if args.backup_dir:
        cfg.backup_dir = args.backup_dir
    setup_logging(LogConfig(level=cfg.log_level, no_color=cfg.no_color))

    if args.cmd == "sort":
        return _cmd_sort(args, cfg)
    return 2


def _cmd_sort(args, cfg: Settings) -> int:
    t0 = time.time()
    bookmarks_path = Path(args.bookmarks_file).resolve()
    config_path = Path(cfg.config_path).resolve()

    if args.apply and is_account_bookmarks(bookmarks_path) and not args.allow_account_apply:
        log.error(
            "Refusing direct write to AccountBookmarks. Use --export-html and import it in the browser, "
            "or pass --allow-account-apply to override."
        )
        return 2

    try:
        sorter_cfg = load_sorter_config(config_path).with_destination(args.destination_root)
        sorter_cfg.validate_roots()
        raw, document = read_bookmarks_file(bookmarks_path)
        plan = plan_sort(document, sorter_cfg)
    except ConfigError as e:
        log.error("Error: %s", e)
        return 2
    except OSError as e:
        log.error("Error: could not read input: %s", e)
        return 2

    log.info("Bookmarks file: %s", bookmarks_path)
    log.info("Config file:    %s", config_path)
    log.info("Mode:           %s", "APPLY (write changes)" if args.apply else "DRY RUN (no write)")
    log.info("Source roots:   %s", ", ".join(plan.source_roots))
    log.info("Destination:    %s", plan.destination_label)
    _report(plan)

    if args.export_html:
        export_path = Path(args.export_html).resolve()
        try:
            write_netscape_html(export_path, plan.destination_children, title=cfg.export_title)
        except OSError as e:
            log.error("Error: failed to write HTML export %s: %s", export_path, e)
            return 2

    if not args.apply:
        if args.export_html:
            log.info("Export complete. Import the HTML from the browser's bookmark manager.")
        else:
            log.info("Dry run complete. Re-run with --apply after closing the browser.")
        return 0

    # The backup is the only way back; nothing is overwritten unless it exists.
    try:
        backup = write_backup(raw, bookmarks_path, Path(cfg.backup_dir).resolve())
    except OSError as e:
        log.error("Error: backup failed, bookmarks file left untouched: %s", e)
        return 2

    try:
        apply_plan(document, plan)
        write_bookmarks_file(bookmarks_path, document)
    except ConfigError as e:
        log.error("Error: %s", e)
        return 2
    except OSError as e:
        log.error("Error: failed to write %s (backup at %s): %s", bookmarks_path, backup, e)
        return 2

    log.info("Bookmarks updated in %d ms.", int((time.time() - t0) * 1000))
    return 0


def _report(plan: SortPlan) -> None:
    log.info("Classified %d bookmarks into %d folders.", plan.total, plan.folder_count)
    for key, count in plan.summary():
        log.info("  %4d  %s", count, key)
