import os
from datetime import datetime

from safezone.storage import build_segment_basename, resolve_segment_dir, timestamp_slug


def test_timestamp_slug_format():
    slug = timestamp_slug(datetime(2026, 1, 13, 9, 5, 7))
    assert slug == "2026-01-13--090507"


def test_build_segment_basename():
    name = build_segment_basename(3, datetime(2026, 1, 13, 9, 5, 7))
    assert name.startswith("2026-01-13--")
    assert name.endswith("segment-0003")


def test_resolve_segment_dir_creates_directory(tmp_path):
    target = tmp_path / "segments"
    assert resolve_segment_dir(str(target)) == str(target)
    assert os.path.isdir(target)
