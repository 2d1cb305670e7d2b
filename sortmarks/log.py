from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass

from rich.logging import RichHandler

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    no_color: bool = False


def setup_logging(cfg: LogConfig) -> None:
    level = getattr(logging, cfg.level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    if _use_rich(cfg):
        handler: logging.Handler = RichHandler(
            rich_tracebacks=True,
            show_time=False,
            show_level=True,
            show_path=False,
            markup=False,
        )
        fmt = "%(message)s"
    else:
        handler = logging.StreamHandler()
        fmt = PLAIN_FORMAT

    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)


def _use_rich(cfg: LogConfig) -> bool:
    if cfg.no_color or os.getenv("NO_COLOR") is not None:
        return False
    return sys.stderr.isatty()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
