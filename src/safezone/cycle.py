"""Periodic capture -> classify -> recapture loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

from .capture import CaptureSession
from .lexicon import TriggerLexicon
from .models import CaptureSegment, CycleState

logger = logging.getLogger("safezone")

MatchHandler = Callable[[str, str], Awaitable[None]]
AbortHandler = Callable[[BaseException], Awaitable[None]]


class Classifier(Protocol):
    async def classify(self, segment: CaptureSegment) -> str: ...


class _Run:
    """Cancellation token for one start()..stop() span."""

    def __init__(self, run_id: int) -> None:
        self.run_id = run_id
        self.cancelled = False
        self._stopped = asyncio.Event()

    def cancel(self) -> None:
        self.cancelled = True
        self._stopped.set()

    async def sleep(self, seconds: float) -> bool:
        """Wait one period; True means the run was cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return self.cancelled
        return True


class AnalysisCycle:
    """Serialized capture segments analyzed every ``period_seconds``.

    Each tick closes the open segment, classifies it, and either hands a
    trigger match to ``on_match`` (leaving the cycle suspended) or opens
    the next segment. Ticks never overlap: the next period only starts
    after the previous tick finished or was cancelled.
    """

    def __init__(
        self,
        session: CaptureSession,
        classifier: Classifier,
        lexicon: TriggerLexicon,
        on_match: MatchHandler,
        on_abort: Optional[AbortHandler] = None,
        period_seconds: float = 5.0,
        classify_timeout_seconds: float = 15.0,
    ) -> None:
        self.session = session
        self.classifier = classifier
        self.lexicon = lexicon
        self.period_seconds = period_seconds
        self.classify_timeout_seconds = classify_timeout_seconds
        self.state = CycleState.IDLE
        self.tick_count = 0
        self._on_match = on_match
        self._on_abort = on_abort
        self._run: Optional[_Run] = None
        self._run_id = 0
        self._task: Optional[asyncio.Task] = None
        self._start_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._run is not None and not self._run.cancelled

    @property
    def run_id(self) -> int:
        return self._run_id

    async def start(self) -> None:
        if self.running:
            return
        self._run_id += 1
        run = _Run(self._run_id)
        self._run = run
        async with self._start_lock:
            previous = self._task
            if (
                previous is not None
                and previous is not asyncio.current_task()
                and not previous.done()
            ):
                await asyncio.wait([previous])
            if run.cancelled:
                return
            try:
                await self.session.open()
            except Exception:
                self._finish(run)
                raise
            if run.cancelled:
                await self._discard_open_segment()
                return
            self.state = CycleState.CAPTURING
            self._task = asyncio.create_task(self._loop(run))
        logger.info("Analysis cycle started (every %.1fs)", self.period_seconds)

    async def stop(self) -> None:
        run, self._run = self._run, None
        if run is not None:
            run.cancel()
            logger.info("Analysis cycle stopped")
        self.state = CycleState.IDLE
        await self.session.settle()
        await self._discard_open_segment()
        await self.session.settle()

    def suspend(self) -> None:
        if self._run is not None:
            self.state = CycleState.SUSPENDED

    async def wait_closed(self) -> None:
        if self._task is not None and not self._task.done():
            await asyncio.wait([self._task])

    def _finish(self, run: _Run) -> None:
        if self._run is run:
            self._run = None
            self.state = CycleState.IDLE

    def _set_state(self, run: _Run, state: CycleState) -> None:
        if self._run is run:
            self.state = state

    async def _discard_open_segment(self) -> None:
        segment = await self.session.close()
        if segment is not None:
            segment.release()
            logger.debug("Discarded unclassified segment %s", segment.path)

    async def _loop(self, run: _Run) -> None:
        try:
            while not run.cancelled:
                if await run.sleep(self.period_seconds):
                    break
                if not await self._tick(run):
                    break
        except Exception as exc:
            logger.exception("Analysis cycle aborted")
            await self._abort(run, exc)

    async def _tick(self, run: _Run) -> bool:
        self.tick_count += 1
        segment = await self.session.close()
        if segment is None:
            if not run.cancelled:
                await self._abort(run, RuntimeError("Capture segment missing at tick."))
            return False
        try:
            if run.cancelled:
                return False
            self._set_state(run, CycleState.CLASSIFYING)
            text = await self._classify(segment)
        finally:
            segment.release()

        if run.cancelled:
            logger.debug("Discarding classification result from a stopped cycle")
            return False

        word = self.lexicon.matches(text)
        if word is not None:
            logger.info("Trigger word detected: %s", word)
            self._set_state(run, CycleState.SUSPENDED)
            await self._on_match(word, text)
            return False

        await self.session.open()
        if run.cancelled:
            await self._discard_open_segment()
            return False
        self._set_state(run, CycleState.CAPTURING)
        return True

    async def _classify(self, segment: CaptureSegment) -> str:
        try:
            text = await asyncio.wait_for(
                self.classifier.classify(segment),
                timeout=self.classify_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Classification timed out after %.1fs", self.classify_timeout_seconds
            )
            return ""
        except Exception as exc:
            logger.warning("Classification failed: %s", exc)
            return ""
        logger.debug("Transcript: %r", text)
        return text or ""

    async def _abort(self, run: _Run, exc: BaseException) -> None:
        if self._run is not run:
            return
        self._run = None
        run.cancel()
        self.state = CycleState.IDLE
        try:
            await self._discard_open_segment()
        except Exception:
            logger.exception("Failed to release capture after abort")
        if self._on_abort is not None:
            await self._on_abort(exc)
