"""Logging for job-watch: one rotating log file per stage plus stdout."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Libraries that log every request or job tick at INFO
NOISY_LOGGERS = ("urllib3", "apscheduler.executors.default", "apscheduler.scheduler")


def setup_logging(log_dir: str = "logs", level: Optional[int] = None, stage: str = "dev") -> logging.Logger:
    """Attach file and console handlers to the job_watch logger tree.

    Without an explicit level, dev logs at DEBUG and production at INFO.
    """
    if level is None:
        level = logging.INFO if stage == "production" else logging.DEBUG

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("job_watch")
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(
        log_path / f"job_watch.{stage}.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Console stays at INFO even in dev; the file keeps the fetch-level detail
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(max(level, logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
