"""Logging configuration for the vocabsync reconciliation engine."""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path

import config


def setup_logger(
    name: str = "vocabsync",
    log_file: str | None = None,
    level: int = logging.INFO,
    logs_dir: Path = config.LOGS_DIR,
) -> logging.Logger:
    """
    Set up and return a configured logger.

    Args:
        name: Logger name
        log_file: Optional specific log file name. If None, generates timestamp-based name.
        level: Logging level
        logs_dir: Directory that receives the log file

    Returns:
        Configured logger instance
    """
    logs_dir.mkdir(parents=True, exist_ok=True)

    if log_file is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = f"run_{timestamp}.log"

    log_path = logs_dir / log_file

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_formatter = logging.Formatter("%(message)s")

    # File handler - captures everything
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(file_formatter)
    logger.addHandler(file_handler)

    # Console handler - for user-facing output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    logger.debug(f"Log file: {log_path}")

    return logger


def get_logger(name: str = "vocabsync") -> logging.Logger:
    """
    Get an existing logger by name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def setup_import_logger(source: Path) -> logging.Logger:
    """Set up logger for a batch import with an import-specific log file."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = f"import_{source.stem}_{timestamp}.log"
    return setup_logger(log_file=log_file)


def format_event(tag: str, message: str, **meta) -> str:
    """
    Render a tagged log line with optional JSON metadata.

    Example:
        format_event("RECONCILE", "Lookup", trace_id="abc", found=True)
        -> '[RECONCILE] Lookup {"trace_id": "abc", "found": true}'
    """
    meta = {k: v for k, v in meta.items() if v is not None}
    line = f"[{tag}] {message}"
    if meta:
        line += " " + json.dumps(meta, ensure_ascii=False, default=str)
    return line
