"""Feature and listening gates around the trigger engine."""

from __future__ import annotations

import logging
from typing import Optional

from .capture import CaptureSession
from .cycle import AnalysisCycle, Classifier
from .errors import MissingContact, SafeZoneError
from .escalation import EscalationPipeline
from .lexicon import TriggerLexicon
from .models import CycleState, EmergencyContact, EscalationReport, GateState

logger = logging.getLogger("safezone")


class FeatureController:
    """State machine over the feature gate, the listening gate and the cycle.

    ``listening`` is only ever true while ``feature_enabled`` is. Every
    transition that turns listening off bumps ``_generation``; a pending
    ``toggle_listening(True)`` re-checks it after each await and gives up
    when it changed underneath.
    """

    def __init__(
        self,
        session: CaptureSession,
        classifier: Classifier,
        lexicon: TriggerLexicon,
        pipeline: EscalationPipeline,
        period_seconds: float = 5.0,
        classify_timeout_seconds: float = 15.0,
    ) -> None:
        self.session = session
        self.lexicon = lexicon
        self.pipeline = pipeline
        self.cycle = AnalysisCycle(
            session,
            classifier,
            lexicon,
            on_match=self._on_match,
            on_abort=self._on_cycle_abort,
            period_seconds=period_seconds,
            classify_timeout_seconds=classify_timeout_seconds,
        )
        self.gate = GateState()
        self.contact: Optional[EmergencyContact] = None
        self.last_report: Optional[EscalationReport] = None
        self._generation = 0

    @property
    def feature_enabled(self) -> bool:
        return self.gate.feature_enabled

    @property
    def listening(self) -> bool:
        return self.gate.listening

    @property
    def cycle_state(self) -> CycleState:
        return self.cycle.state

    def select_contact(self, contact: EmergencyContact) -> None:
        self.contact = contact
        logger.info("Emergency contact set: %s", contact.name)

    async def toggle_feature(self, enabled: bool) -> None:
        if enabled:
            self.gate = GateState(feature_enabled=True, listening=self.gate.listening)
            logger.info("Voice trigger feature enabled")
            return
        self._generation += 1
        self.gate = GateState(feature_enabled=False, listening=False)
        await self.cycle.stop()
        logger.info("Voice trigger feature disabled")

    async def toggle_listening(self, enabled: bool) -> bool:
        """Turn listening on or off; returns the resulting listening flag.

        Raises MissingContact when listening is requested without a contact.
        """
        if not enabled:
            await self._stop_listening("listening disabled")
            return False
        if not self.gate.feature_enabled:
            logger.info("Listening request ignored: feature disabled")
            return False
        if self.contact is None:
            raise MissingContact("Set an emergency contact before enabling voice trigger.")
        if self.gate.listening:
            return True

        generation = self._generation
        if not await self.session.request_permission():
            logger.warning("Microphone permission denied")
            return False
        if generation != self._generation or not self.gate.feature_enabled:
            return False
        try:
            await self.cycle.start()
        except SafeZoneError as exc:
            logger.warning("Could not start listening: %s", exc)
            return False
        except Exception:
            logger.exception("Capture failed to start")
            return False
        if generation != self._generation or not self.gate.feature_enabled:
            return False
        self.gate = GateState(feature_enabled=True, listening=True)
        logger.info("Listening for trigger words: %s", ", ".join(self.lexicon.words()))
        return True

    async def focus_lost(self) -> None:
        await self._stop_listening("focus lost")

    async def teardown(self) -> None:
        await self._stop_listening("teardown")
        await self.cycle.wait_closed()

    async def _stop_listening(self, reason: str) -> None:
        self._generation += 1
        was_listening = self.gate.listening
        self.gate = GateState(feature_enabled=self.gate.feature_enabled, listening=False)
        await self.cycle.stop()
        if was_listening:
            logger.info("Listening stopped (%s)", reason)

    async def _on_match(self, word: str, text: str) -> None:
        run_id = self.cycle.run_id
        contact = self.contact
        if contact is None:
            logger.error("Trigger %r heard without an emergency contact", word)
            await self._stop_listening("missing contact")
            return

        async def _complete(report: EscalationReport) -> None:
            self.last_report = report
            if self.cycle.run_id != run_id:
                logger.debug("Ignoring escalation completion from a superseded cycle")
                return
            await self._stop_listening("escalation complete")

        await self.pipeline.run(word, contact, cycle=self.cycle, on_complete=_complete)

    async def _on_cycle_abort(self, exc: BaseException) -> None:
        logger.warning("Listening stopped after cycle failure: %s", exc)
        await self._stop_listening("cycle aborted")
