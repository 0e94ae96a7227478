"""Engine logging: one file-backed ``guessr`` logger with size-bounded history.

Messages are ``EVENT_NAME key=value`` lines. Selection hot paths log at
DEBUG, so long simulations at DEBUG level can grow the file quickly; it is
trimmed to the newest ``log_max_lines`` lines once it passes
``log_truncate_threshold``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from guessr.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"


def truncate_log_file(
    path: str | None = None,
    max_lines: int | None = None,
    threshold: int | None = None,
) -> int:
    """Keep only the newest lines of an oversized log file.

    Args:
        path: Log file (defaults to settings.log_file)
        max_lines: Lines kept after truncation (defaults to settings.log_max_lines)
        threshold: Line count that triggers truncation (defaults to settings.log_truncate_threshold)

    Returns:
        Number of lines dropped (0 when the file is missing or small enough)
    """
    log_path = Path(path or settings.log_file)
    max_lines = max_lines or settings.log_max_lines
    threshold = threshold or settings.log_truncate_threshold

    if not log_path.exists():
        return 0

    try:
        lines = log_path.read_text(encoding="utf-8").splitlines(keepends=True)
        if len(lines) <= threshold:
            return 0

        kept = lines[-max_lines:]
        temp_path = log_path.with_suffix(log_path.suffix + ".tmp")
        temp_path.write_text("".join(kept), encoding="utf-8")
        temp_path.replace(log_path)
    except OSError as e:
        print(f"LOG_ROTATION_ERROR path={log_path}: {e}")
        return 0

    print(f"LOG_ROTATION path={log_path} dropped={len(lines) - len(kept)} kept={len(kept)}")
    return len(lines) - len(kept)


def configure_logging() -> logging.Logger:
    """Attach the file handler to the ``guessr`` logger (idempotent)."""
    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    truncate_log_file(str(log_path))

    logger = logging.getLogger("guessr")
    logger.setLevel(settings.log_level)
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        logger.addHandler(handler)
    return logger


log = configure_logging()
