import argparse
import os
import sys
import threading
import time

import numpy as np

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import sounddevice as sd

from safezone.recorder import find_input_device


def _describe_device(info: dict) -> None:
    print(f"Input device: {info.get('name', '')}")
    print(f"Index: {info.get('index', '')}")
    print(f"Max input channels: {info.get('max_input_channels', 0)}")
    print(f"Default sample rate: {info.get('default_samplerate', '')}")


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--device", help="Device name substring.")
    parser.add_argument("--seconds", type=float, default=5.0, help="Test duration.")
    parser.add_argument("--rate", type=int, default=16000, help="Sample rate.")
    args = parser.parse_args()

    info = find_input_device(args.device)
    _describe_device(info)

    levels = {"rms": 0.0, "peak": 0.0}
    lock = threading.Lock()

    def _callback(indata, _frames, _time, status):
        if status:
            return
        data = indata.astype("float32") / 32768.0
        with lock:
            levels["rms"] = float(np.sqrt(np.mean(data**2)))
            levels["peak"] = float(np.max(np.abs(data)))

    stream = sd.InputStream(
        samplerate=args.rate,
        channels=1,
        dtype="int16",
        device=info.get("index"),
        callback=_callback,
    )
    stream.start()
    print("Speak now... press Ctrl+C to stop early.")

    end = time.time() + args.seconds
    try:
        while time.time() < end:
            with lock:
                rms, peak = levels["rms"], levels["peak"]
            print(f"RMS {rms:.3f} | Peak {peak:.3f}")
            time.sleep(0.5)
    finally:
        stream.stop()
        stream.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
