"""
Plain-text counter file.

Broadcast overlay software (e.g. an OBS text source) polls this file, so it
always holds just the current count and is rewritten in full on every change.
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import Optional


class CountFileSink:
    """Writes the current count to a text file."""

    def __init__(self, path: str):
        self.path = path
        self._last_written: Optional[int] = None

    @property
    def last_written(self) -> Optional[int]:
        return self._last_written

    def initialize(self) -> bool:
        """Create the file holding 0."""
        ok = self.write(0)
        if ok:
            logging.info(f"Counter file initialized: {self.path}")
        return ok

    def write(self, count: int) -> bool:
        """
        Replace the file contents with ``count``.

        Returns False (after logging) if the file cannot be written; the
        caller's in-memory count is unaffected.
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".count-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(str(count))
                os.replace(tmp_path, self.path)
            except OSError:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            logging.error(f"Failed to write count to {self.path}: {e}")
            return False

        self._last_written = count
        return True

    def read(self) -> Optional[int]:
        """Read back the stored count (None if missing or unreadable)."""
        try:
            with open(self.path, "r") as f:
                return int(f.read().strip() or 0)
        except (OSError, ValueError):
            return None
