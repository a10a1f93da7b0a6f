"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os

from .capture import CaptureSession
from .config import Config, load_config, save_config
from .controller import FeatureController
from .errors import MissingContact
from .escalation import EscalationPipeline
from .lexicon import TriggerLexicon
from .location import FixedLocationProvider
from .logging_utils import setup_logging
from .notifier import SpeechNotifier
from .recorder import SoundDeviceBackend, list_input_devices
from .transcriber import WhisperClassifier, load_model, transcribe_text

DEFAULT_CONFIG = "safezone_config.yml"


def _load(path: str) -> Config:
    if os.path.exists(path):
        return load_config(path)
    return Config()


def build_controller(cfg: Config, notifier=None, classifier=None) -> FeatureController:
    backend = SoundDeviceBackend(
        sample_rate_hz=cfg.capture.sample_rate_hz,
        channels=cfg.capture.channels,
        device_name=cfg.capture.device_name,
    )
    session = CaptureSession(backend, segment_dir=cfg.capture.segment_dir)
    if classifier is None:
        classifier = WhisperClassifier(
            model_name=cfg.classifier.whisper_model,
            language=cfg.classifier.language,
            device=cfg.classifier.device,
            compute_type=cfg.classifier.compute_type,
        )
    pipeline = EscalationPipeline(
        FixedLocationProvider(cfg.location.latitude, cfg.location.longitude),
        notifier or SpeechNotifier(announce=cfg.announce),
        location_timeout_seconds=cfg.location.timeout_seconds,
        notify_timeout_seconds=cfg.notify_timeout_seconds,
    )
    controller = FeatureController(
        session,
        classifier,
        TriggerLexicon(cfg.trigger_words),
        pipeline,
        period_seconds=cfg.cycle.period_seconds,
        classify_timeout_seconds=cfg.cycle.classify_timeout_seconds,
    )
    if cfg.emergency_contact is not None:
        controller.select_contact(cfg.emergency_contact)
    return controller


async def run_listener(controller: FeatureController, poll_seconds: float = 0.5) -> int:
    await controller.toggle_feature(True)
    try:
        if not await controller.toggle_listening(True):
            print("Microphone unavailable; not listening.")
            return 1
    except MissingContact as exc:
        print(str(exc))
        return 1

    print("Listening for: " + ", ".join(controller.lexicon.words()))
    try:
        while controller.listening:
            await asyncio.sleep(poll_seconds)
    finally:
        await controller.teardown()

    report = controller.last_report
    if report is None:
        return 0
    print(f"Trigger: {report.trigger}")
    print(f"Message: {report.message}")
    return 0 if report.notified else 1


def main() -> int:
    parser = argparse.ArgumentParser(prog="safezone")
    sub = parser.add_subparsers(dest="command")

    devices_cmd = sub.add_parser("devices")
    devices_cmd.add_argument("--match", help="Filter device names by substring.")

    listen_cmd = sub.add_parser("listen")
    listen_cmd.add_argument("--config", default=DEFAULT_CONFIG, help="Config.")
    listen_cmd.add_argument("--debug", action="store_true", help="Debug logging.")

    classify_cmd = sub.add_parser("classify")
    classify_cmd.add_argument("audio_path", help="Path to audio file.")
    classify_cmd.add_argument("--config", default=DEFAULT_CONFIG, help="Config.")

    triggers_cmd = sub.add_parser("triggers")
    triggers_cmd.add_argument("action", choices=["list", "add", "remove"])
    triggers_cmd.add_argument("word", nargs="?", help="Trigger word or phrase.")
    triggers_cmd.add_argument("--config", default=DEFAULT_CONFIG, help="Config.")

    args = parser.parse_args()
    if args.command == "devices":
        devices = list_input_devices()
        if args.match:
            devices = [
                d for d in devices if args.match.lower() in d.get("name", "").lower()
            ]
        for device in devices:
            name = device.get("name", "Unknown")
            index = device.get("index", "?")
            channels = device.get("max_input_channels", 0)
            print(f"[{index}] {name} (inputs: {channels})")
        return 0

    if args.command == "listen":
        cfg = _load(args.config)
        setup_logging(
            cfg.log_dir,
            level=logging.DEBUG if args.debug else logging.INFO,
            console=True,
        )
        controller = build_controller(cfg)
        try:
            return asyncio.run(run_listener(controller))
        except KeyboardInterrupt:
            print("Stopped.")
            return 0

    if args.command == "classify":
        cfg = _load(args.config)
        model = load_model(
            cfg.classifier.whisper_model,
            device=cfg.classifier.device,
            compute_type=cfg.classifier.compute_type,
        )
        text = transcribe_text(model, args.audio_path, language=cfg.classifier.language)
        word = TriggerLexicon(cfg.trigger_words).matches(text)
        print(f"Transcript: {text}")
        print(f"Trigger: {word or '(none)'}")
        return 0

    if args.command == "triggers":
        cfg = _load(args.config)
        lexicon = TriggerLexicon(cfg.trigger_words)
        if args.action in ("add", "remove"):
            if not args.word:
                print("A trigger word is required.")
                return 1
            changed = lexicon.add(args.word) if args.action == "add" else lexicon.remove(args.word)
            if changed:
                cfg.trigger_words = lexicon.words()
                save_config(args.config, cfg)
        for word in lexicon.words():
            print(word)
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
