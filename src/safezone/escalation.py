"""Alert escalation after a trigger word is heard."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

from .location import LocationProvider
from .models import EmergencyContact, EscalationReport, Position

logger = logging.getLogger("safezone")

LOCATION_UNAVAILABLE = "Unable to share my location"

CompletionHandler = Callable[[EscalationReport], Awaitable[None]]


class Notifier(Protocol):
    async def notify(self, message: str, contact: EmergencyContact) -> None: ...


class Suspendable(Protocol):
    def suspend(self) -> None: ...


def format_location(position: Optional[Position]) -> str:
    if position is None:
        return LOCATION_UNAVAILABLE
    return (
        "My current location: "
        f"https://maps.google.com/maps?q={position.latitude},{position.longitude}"
    )


def compose_alert(location_text: str) -> str:
    return f"I'm in danger, I need help! {location_text}"


class EscalationPipeline:
    """Locate, compose and notify; always ends with ``on_complete``.

    Location problems fall back to a placeholder; notifier errors and
    timeouts are recorded on the report, so completion is reached on every path.
    """

    def __init__(
        self,
        location: LocationProvider,
        notifier: Notifier,
        location_timeout_seconds: float = 10.0,
        notify_timeout_seconds: float = 30.0,
    ) -> None:
        self.location = location
        self.notifier = notifier
        self.location_timeout_seconds = location_timeout_seconds
        self.notify_timeout_seconds = notify_timeout_seconds

    async def run(
        self,
        trigger: str,
        contact: EmergencyContact,
        cycle: Optional[Suspendable] = None,
        on_complete: Optional[CompletionHandler] = None,
    ) -> EscalationReport:
        if cycle is not None:
            cycle.suspend()
        report = EscalationReport(
            trigger=trigger,
            message=compose_alert(LOCATION_UNAVAILABLE),
            location_text=LOCATION_UNAVAILABLE,
            contact=contact,
        )
        try:
            report.location_text = await self.locate()
            report.message = compose_alert(report.location_text)
            try:
                await asyncio.wait_for(
                    self.notifier.notify(report.message, contact),
                    timeout=self.notify_timeout_seconds,
                )
                report.notified = True
            except asyncio.TimeoutError:
                report.error = (
                    f"Notification timed out after {self.notify_timeout_seconds:.1f}s"
                )
                logger.warning(report.error)
            except Exception as exc:
                report.error = str(exc)
                logger.exception("Emergency notification failed")
            logger.info(
                "Escalation for %r sent to %s (notified=%s)",
                trigger,
                contact.name,
                report.notified,
            )
        finally:
            if on_complete is not None:
                await on_complete(report)
        return report

    async def locate(self) -> str:
        async def _fetch() -> Optional[Position]:
            if not await self.location.request_permission():
                logger.warning("Location permission denied")
                return None
            return await self.location.get_current_position()

        try:
            position = await asyncio.wait_for(
                _fetch(), timeout=self.location_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Location lookup timed out after %.1fs", self.location_timeout_seconds
            )
            return LOCATION_UNAVAILABLE
        except Exception as exc:
            logger.warning("Location unavailable: %s", exc)
            return LOCATION_UNAVAILABLE
        return format_location(position)
