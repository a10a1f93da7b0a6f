"""Data models for SafeZone."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

logger = logging.getLogger("safezone")


@dataclass(frozen=True)
class EmergencyContact:
    id: str
    name: str
    phone: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EmergencyContact":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            phone=str(data.get("phone", "")),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone}


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class GateState:
    feature_enabled: bool = False
    listening: bool = False


class CycleState(Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    CLASSIFYING = "classifying"
    SUSPENDED = "suspended"


@dataclass
class CaptureSegment:
    """A finished (or in-progress) capture written to ``path``.

    The backend handle is cleared when the session finalizes the segment,
    so it can only be stopped once. ``release`` drops the audio file.
    """

    path: str
    created_at: datetime = field(default_factory=datetime.now)
    handle: Any = None
    released: bool = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.debug("Segment cleanup failed for %s: %s", self.path, exc)


@dataclass
class EscalationReport:
    trigger: str
    message: str
    location_text: str
    contact: EmergencyContact
    notified: bool = False
    error: Optional[str] = None
