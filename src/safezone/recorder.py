"""Microphone access through sounddevice."""

from __future__ import annotations

import logging
import threading
import wave
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger("safezone")


def list_input_devices() -> List[Dict[str, Any]]:
    try:
        import sounddevice as sd
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise RuntimeError("sounddevice is required for device detection.") from exc

    devices = sd.query_devices()
    return [d for d in devices if d.get("max_input_channels", 0) > 0]


def select_preferred_device(
    candidates: List[Dict[str, Any]],
    prefer_name: Optional[str] = None,
) -> Dict[str, Any]:
    if not candidates:
        raise RuntimeError("No input devices found.")
    if prefer_name:
        preferred = [
            d for d in candidates if prefer_name.lower() in d.get("name", "").lower()
        ]
        if preferred:
            return preferred[0]
    return candidates[0]


def find_input_device(prefer_name: Optional[str] = None) -> dict:
    candidates = list_input_devices()
    return select_preferred_device(candidates, prefer_name=prefer_name)


@dataclass
class StreamHandle:
    stream: Any
    writer: Any
    frames_written: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock)


class SoundDeviceBackend:
    """Writes one 16-bit WAV file per capture segment."""

    def __init__(
        self,
        sample_rate_hz: int = 16000,
        channels: int = 1,
        device_name: Optional[str] = None,
    ) -> None:
        self.sample_rate_hz = sample_rate_hz
        self.channels = channels
        self.device_name = device_name

    def request_permission(self) -> bool:
        try:
            device = find_input_device(self.device_name)
        except RuntimeError as exc:
            logger.warning("Microphone unavailable: %s", exc)
            return False
        logger.debug("Using input device %s", device.get("name"))
        return True

    def start(self, path: str) -> StreamHandle:
        try:
            import sounddevice as sd
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise RuntimeError("sounddevice is required for recording.") from exc

        try:
            import numpy as np
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise RuntimeError("numpy is required for recording.") from exc

        device = find_input_device(self.device_name)
        writer = wave.open(path, "wb")
        writer.setnchannels(self.channels)
        writer.setsampwidth(2)
        writer.setframerate(self.sample_rate_hz)
        handle = StreamHandle(stream=None, writer=writer)

        def _callback(indata, _frames, _time, status):
            if status:
                logger.debug("Capture status: %s", status)
            data = indata
            if data.dtype != np.int16:
                data = data.astype(np.int16)
            with handle.lock:
                if handle.writer is None:
                    return
                handle.writer.writeframes(data.tobytes())
                handle.frames_written += _frames

        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate_hz,
                channels=self.channels,
                dtype="int16",
                device=device.get("index"),
                callback=_callback,
            )
            stream.start()
        except Exception:
            writer.close()
            raise
        handle.stream = stream
        return handle

    def stop(self, handle: StreamHandle) -> None:
        try:
            handle.stream.stop()
            handle.stream.close()
        finally:
            with handle.lock:
                writer, handle.writer = handle.writer, None
            if writer is not None:
                writer.close()
        logger.debug(
            "Segment closed after %.1fs",
            handle.frames_written / float(self.sample_rate_hz),
        )
