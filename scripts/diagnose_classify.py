import argparse
import os
import sys
import time

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from safezone.lexicon import DEFAULT_TRIGGER_WORDS, TriggerLexicon
from safezone.transcriber import load_model, transcribe_text


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("audio_path", help="Path to audio file to classify.")
    parser.add_argument("--model", default="tiny", help="Whisper model name.")
    parser.add_argument("--language", help="Language code (e.g., en).")
    parser.add_argument("--device", help="Device preference (cpu/cuda).")
    parser.add_argument("--compute-type", help="Compute type (int8/float16).")
    parser.add_argument(
        "--trigger",
        action="append",
        help="Trigger word (repeatable). Defaults to help/emergency/sos.",
    )
    args = parser.parse_args()

    lexicon = TriggerLexicon(args.trigger or DEFAULT_TRIGGER_WORDS)

    started = time.time()
    model = load_model(args.model, device=args.device, compute_type=args.compute_type)
    loaded = time.time()
    text = transcribe_text(model, args.audio_path, language=args.language)
    elapsed = time.time() - loaded
    print(f"Model load: {loaded - started:.2f}s")
    print(f"Transcribe: {elapsed:.2f}s")
    print(f"Transcript: {text}")
    print(f"Trigger: {lexicon.matches(text) or '(none)'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
