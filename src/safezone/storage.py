"""Segment file naming and directories."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime


def timestamp_slug(dt: datetime | None = None) -> str:
    now = dt or datetime.now()
    return now.strftime("%Y-%m-%d--%H%M%S")


def build_segment_basename(index: int, dt: datetime | None = None) -> str:
    return f"{timestamp_slug(dt)}--segment-{index:04d}"


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def resolve_segment_dir(segment_dir: str | None = None) -> str:
    """Return a writable directory for capture segments.

    Without an explicit directory, segments go to ``safezone-segments``
    under the system temp dir.
    """
    root = segment_dir or os.path.join(tempfile.gettempdir(), "safezone-segments")
    ensure_dir(root)
    return root
