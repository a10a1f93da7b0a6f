"""Location providers used when composing an alert."""

from __future__ import annotations

from typing import Optional, Protocol

from .models import Position


class LocationProvider(Protocol):
    async def request_permission(self) -> bool: ...

    async def get_current_position(self) -> Optional[Position]: ...


class FixedLocationProvider:
    """Reports a configured position; denies access when none is set."""

    def __init__(self, latitude: Optional[float] = None, longitude: Optional[float] = None) -> None:
        self.latitude = latitude
        self.longitude = longitude

    async def request_permission(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    async def get_current_position(self) -> Optional[Position]:
        if self.latitude is None or self.longitude is None:
            return None
        return Position(latitude=float(self.latitude), longitude=float(self.longitude))
