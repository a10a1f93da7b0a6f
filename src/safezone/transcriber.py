"""Transcription with Faster-Whisper."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, List, Optional

from .errors import ClassificationFailure
from .models import CaptureSegment

logger = logging.getLogger("safezone")


def load_model(
    model_name: str = "tiny",
    device: str | None = None,
    compute_type: str | None = None,
) -> Any:
    try:
        from faster_whisper import WhisperModel
    except Exception as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "faster-whisper is required for transcription."
        ) from exc

    kwargs = {}
    if device:
        kwargs["device"] = device
    if compute_type:
        kwargs["compute_type"] = compute_type
    return WhisperModel(model_name, **kwargs)


def transcribe_text(model: Any, audio_path: str, language: str | None = None) -> str:
    segments, _info = model.transcribe(audio_path, language=language)
    parts: List[str] = []
    for seg in segments:
        text = seg.text.strip()
        if text:
            parts.append(text)
    return " ".join(parts)


class WhisperClassifier:
    """Turns capture segments into text; the model loads on first use."""

    def __init__(
        self,
        model_name: str = "tiny",
        language: Optional[str] = None,
        device: Optional[str] = None,
        compute_type: Optional[str] = None,
    ) -> None:
        self.model_name = model_name
        self.language = language
        self.device = device
        self.compute_type = compute_type
        self._model = None
        self._lock = threading.Lock()

    def _transcribe(self, audio_path: str) -> str:
        with self._lock:
            if self._model is None:
                logger.info("Loading Whisper model %s", self.model_name)
                self._model = load_model(
                    self.model_name, device=self.device, compute_type=self.compute_type
                )
            model = self._model
        return transcribe_text(model, audio_path, language=self.language)

    async def classify(self, segment: CaptureSegment) -> str:
        try:
            return await asyncio.to_thread(self._transcribe, segment.path)
        except Exception as exc:
            raise ClassificationFailure(f"Transcription failed: {exc}") from exc
