"""
Version descriptor (`.info` file) serialization.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .config import FILE_MODE
from .errors import OutputWriteError
from .utils import write_file


def format_time(moment: datetime) -> str:
    """Format a timestamp as UTC RFC 3339 with trailing fractional zeros trimmed.

    Naive datetimes are taken to be UTC already.

    Examples:
        2024-05-01T12:00:00Z, 2024-05-01T12:00:00.5Z
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += f".{moment.microsecond:06d}".rstrip("0")
    return text + "Z"


@dataclass(frozen=True)
class Descriptor:
    """The `{"Version", "Time"}` record published next to each module version."""

    version: str
    time: datetime

    def to_dict(self) -> dict[str, str]:
        return {"Version": self.version, "Time": format_time(self.time)}

    def to_json(self) -> bytes:
        """Serialize as compact JSON terminated by a single newline."""
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8") + b"\n"


def write_descriptor(path: Path, version: str, now: datetime | None = None) -> Descriptor:
    """Write the `.info` descriptor for `version` to `path`.

    Args:
        path: Target `.info` file.
        version: Published version.
        now: Publish time; defaults to the current UTC time.

    Returns:
        The descriptor that was written.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    descriptor = Descriptor(version=version, time=now or datetime.now(timezone.utc))
    try:
        write_file(path, descriptor.to_json(), FILE_MODE)
    except OSError as e:
        raise OutputWriteError(f"write {path}: {e}") from e
    return descriptor
