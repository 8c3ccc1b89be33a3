"""
Logging for FundSplit.

Every subsystem logs under the ``fundsplit`` namespace (``fundsplit.engine``,
``fundsplit.auction.house``, ``fundsplit.storage.sqlite``...). Console output
is colored through colorlog; a plain-text copy can be written to
``<log_dir>/fundsplit.log``.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional

import colorlog


ROOT_NAME = "fundsplit"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


class FundSplitLogger:
    """Owns the handlers installed on the ``fundsplit`` logger."""

    _configured = False
    log_file: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
        subsystem_levels: Optional[Dict[str, int]] = None,
    ):
        """
        (Re)configure FundSplit logging.

        Args:
            level: Level for the console and file handlers
            log_dir: Directory for fundsplit.log (default ./logs)
            log_to_file: Also write records to fundsplit.log
            subsystem_levels: Per-subsystem overrides, e.g. {"journal": logging.WARNING}

        Calling again replaces the handlers installed by a previous call.
        """
        root = logging.getLogger(ROOT_NAME)
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(level)

        console = colorlog.StreamHandler(sys.stdout)
        console.setFormatter(colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
            datefmt=DATE_FORMAT,
            log_colors=LEVEL_COLORS,
        ))
        root.addHandler(console)

        cls.log_file = None
        if log_to_file:
            directory = Path(log_dir) if log_dir else Path("logs")
            directory.mkdir(parents=True, exist_ok=True)
            cls.log_file = directory / "fundsplit.log"
            file_handler = logging.FileHandler(cls.log_file)
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
                datefmt=DATE_FORMAT,
            ))
            root.addHandler(file_handler)

        for name, sub_level in (subsystem_levels or {}).items():
            logging.getLogger(f"{ROOT_NAME}.{name}").setLevel(sub_level)

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Logger for subsystem ``name``; installs defaults on first use."""
        if not cls._configured:
            cls.setup()
        return logging.getLogger(f"{ROOT_NAME}.{name}")


def get_logger(name: str) -> logging.Logger:
    return FundSplitLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
    subsystem_levels: Optional[Dict[str, int]] = None,
):
    """Setup logging configuration"""
    FundSplitLogger.setup(
        level=level,
        log_dir=log_dir,
        log_to_file=log_to_file,
        subsystem_levels=subsystem_levels,
    )
