"""
State file writer for the client.

Overwrites a JSON file with the latest corrected snapshot after every
successful poll, giving dashboards and scripts a cheap way to read the
current controller state without touching the serial port.

The file is replaced atomically (write to a temp file, then rename), so a
reader never sees a half-written document.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-110)

TODO:
- None
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rover.src.models import Snapshot


class StateFileWriter:
    """Writes the latest snapshot to a JSON file.

    Args:
        path: Filesystem path for the state JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def write(self, snapshot: Snapshot) -> None:
        """Replace the state file with *snapshot* as pretty-printed JSON."""
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(snapshot.model_dump_json(indent=2))
        os.replace(tmp, self.path)

    def __repr__(self) -> str:
        return f"StateFileWriter({self.path})"
