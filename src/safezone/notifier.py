"""Spoken announcement and alert confirmation."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .models import EmergencyContact

logger = logging.getLogger("safezone")

ANNOUNCEMENT = "SOS triggered! Sending emergency alert."


def speak(text: str) -> None:
    try:
        import pyttsx3
    except Exception as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pyttsx3 is required for spoken announcements.") from exc

    engine = pyttsx3.init()
    engine.say(text)
    engine.runAndWait()


def format_confirmation(message: str, contact: EmergencyContact) -> str:
    return f'Emergency message "{message}" would be sent to {contact.name} ({contact.phone})'


def _print_confirmation(text: str) -> None:
    logger.info(text)
    print(text)


class SpeechNotifier:
    def __init__(
        self,
        announce: bool = True,
        confirm: Optional[Callable[[str], None]] = None,
        speaker: Callable[[str], None] = speak,
    ) -> None:
        self.announce = announce
        self.confirm = confirm or _print_confirmation
        self.speaker = speaker

    async def notify(self, message: str, contact: EmergencyContact) -> None:
        if self.announce:
            try:
                await asyncio.to_thread(self.speaker, ANNOUNCEMENT)
            except Exception as exc:
                logger.warning("Announcement failed: %s", exc)
        self.confirm(format_confirmation(message, contact))
