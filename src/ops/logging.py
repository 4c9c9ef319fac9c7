"""
Logging setup.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request access lines would drown out catch messages when a control
# panel polls /api/status.
NOISY_LOGGERS = ("uvicorn.access",)


def setup_logging(log_path: str, log_level: str, quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """Log to ``log_path`` and stderr at ``log_level`` (e.g. "INFO")."""
    log_dir = os.path.dirname(log_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
    )

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
