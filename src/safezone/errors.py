"""Error types raised by the trigger engine."""

from __future__ import annotations


class SafeZoneError(Exception):
    """Base class for trigger engine errors."""


class PermissionDenied(SafeZoneError):
    """Microphone or location access was not granted."""


class DeviceBusy(SafeZoneError):
    """A capture segment is already open on the session."""


class ClassificationFailure(SafeZoneError):
    """The transcription service failed on a segment."""


class MissingContact(SafeZoneError):
    """Listening was requested before an emergency contact was selected."""
