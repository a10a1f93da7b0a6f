"""Configuration handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional
import yaml

from .lexicon import DEFAULT_TRIGGER_WORDS
from .models import EmergencyContact


@dataclass
class CaptureConfig:
    sample_rate_hz: int = 16000
    channels: int = 1
    device_name: Optional[str] = None
    segment_dir: Optional[str] = None


@dataclass
class CycleConfig:
    period_seconds: float = 5.0
    classify_timeout_seconds: float = 15.0


@dataclass
class ClassifierConfig:
    whisper_model: str = "tiny"
    language: Optional[str] = None
    device: Optional[str] = None
    compute_type: Optional[str] = None


@dataclass
class LocationConfig:
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timeout_seconds: float = 10.0


@dataclass
class Config:
    trigger_words: List[str] = field(default_factory=lambda: list(DEFAULT_TRIGGER_WORDS))
    emergency_contact: Optional[EmergencyContact] = None
    announce: bool = True
    notify_timeout_seconds: float = 30.0
    log_dir: str = "logs"
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    cycle: CycleConfig = field(default_factory=CycleConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    location: LocationConfig = field(default_factory=LocationConfig)


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    capture = CaptureConfig(**(data.get("capture") or {}))
    cycle = CycleConfig(**(data.get("cycle") or {}))
    classifier = ClassifierConfig(**(data.get("classifier") or {}))
    location = LocationConfig(**(data.get("location") or {}))

    contact = None
    if data.get("emergency_contact"):
        contact = EmergencyContact.from_dict(data["emergency_contact"])

    words = data.get("trigger_words")
    if words is None:
        words = list(DEFAULT_TRIGGER_WORDS)

    return Config(
        trigger_words=[str(w) for w in words],
        emergency_contact=contact,
        announce=bool(data.get("announce", True)),
        notify_timeout_seconds=float(data.get("notify_timeout_seconds", 30.0)),
        log_dir=data.get("log_dir", "logs"),
        capture=capture,
        cycle=cycle,
        classifier=classifier,
        location=location,
    )


def save_config(path: str, config: Config) -> None:
    data = {
        "trigger_words": list(config.trigger_words),
        "emergency_contact": (
            config.emergency_contact.to_dict() if config.emergency_contact else None
        ),
        "announce": config.announce,
        "notify_timeout_seconds": config.notify_timeout_seconds,
        "log_dir": config.log_dir,
        "capture": {
            "sample_rate_hz": config.capture.sample_rate_hz,
            "channels": config.capture.channels,
            "device_name": config.capture.device_name,
            "segment_dir": config.capture.segment_dir,
        },
        "cycle": {
            "period_seconds": config.cycle.period_seconds,
            "classify_timeout_seconds": config.cycle.classify_timeout_seconds,
        },
        "classifier": {
            "whisper_model": config.classifier.whisper_model,
            "language": config.classifier.language,
            "device": config.classifier.device,
            "compute_type": config.classifier.compute_type,
        },
        "location": {
            "latitude": config.location.latitude,
            "longitude": config.location.longitude,
            "timeout_seconds": config.location.timeout_seconds,
        },
    }
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)
