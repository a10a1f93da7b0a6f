"""Single-segment capture lifecycle."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime
from typing import Any, Optional, Protocol

from .errors import DeviceBusy, PermissionDenied
from .models import CaptureSegment
from .storage import build_segment_basename, resolve_segment_dir

logger = logging.getLogger("safezone")


class CaptureBackend(Protocol):
    def request_permission(self) -> bool: ...

    def start(self, path: str) -> Any: ...

    def stop(self, handle: Any) -> None: ...


class CaptureSession:
    """Owns at most one open capture segment.

    ``close`` detaches the segment before any await, so concurrent callers
    never finalize the same handle twice; ``settle`` waits out an open or
    close that is still running. Preventing ``open`` while an
    earlier segment is still being classified is up to the caller.
    """

    def __init__(self, backend: CaptureBackend, segment_dir: Optional[str] = None) -> None:
        self._backend = backend
        self._segment_dir = segment_dir
        self._segment: Optional[CaptureSegment] = None
        self._opening = False
        self._opened: Optional[asyncio.Event] = None
        self._closed: Optional[asyncio.Event] = None
        self._granted = False
        self._count = 0

    @property
    def is_open(self) -> bool:
        return self._segment is not None or self._opening

    async def request_permission(self) -> bool:
        self._granted = bool(await asyncio.to_thread(self._backend.request_permission))
        return self._granted

    async def open(self) -> CaptureSegment:
        if self.is_open:
            raise DeviceBusy("A capture segment is already open.")
        self._opening = True
        opened = self._opened = asyncio.Event()
        try:
            if not self._granted and not await self.request_permission():
                raise PermissionDenied("Microphone permission was not granted.")
            self._count += 1
            now = datetime.now()
            path = os.path.join(
                resolve_segment_dir(self._segment_dir),
                f"{build_segment_basename(self._count, now)}.wav",
            )
            handle = await asyncio.to_thread(self._backend.start, path)
            self._segment = CaptureSegment(path=path, created_at=now, handle=handle)
        finally:
            self._opening = False
            self._opened = None
            opened.set()
        logger.debug("Capture opened: %s", path)
        return self._segment

    async def settle(self) -> None:
        """Wait until no ``open`` or ``close`` is in flight."""
        while True:
            pending = self._opened or self._closed
            if pending is None:
                return
            await pending.wait()

    async def close(self) -> Optional[CaptureSegment]:
        segment, self._segment = self._segment, None
        if segment is None:
            return None
        handle, segment.handle = segment.handle, None
        closed = self._closed = asyncio.Event()
        try:
            await asyncio.to_thread(self._backend.stop, handle)
        except Exception:
            segment.release()
            raise
        finally:
            self._closed = None
            closed.set()
        logger.debug("Capture closed: %s", segment.path)
        return segment
