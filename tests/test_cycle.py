import asyncio
import os
import time

from safezone.capture import CaptureSession
from safezone.cycle import AnalysisCycle
from safezone.lexicon import TriggerLexicon
from safezone.models import CycleState


class FakeBackend:
    def __init__(self, fail_on_start=None):
        self.fail_on_start = fail_on_start
        self.started = []
        self.open_count = 0
        self.max_open = 0

    def request_permission(self):
        return True

    def start(self, path):
        if self.fail_on_start is not None and len(self.started) + 1 >= self.fail_on_start:
            raise OSError("input overflow")
        with open(path, "wb") as handle:
            handle.write(b"RIFF")
        self.started.append(path)
        self.open_count += 1
        self.max_open = max(self.max_open, self.open_count)
        return path

    def stop(self, handle):
        self.open_count -= 1


class SlowReopenBackend(FakeBackend):
    def __init__(self):
        super().__init__()
        self.reopening = False

    def start(self, path):
        if self.started:
            self.reopening = True
            time.sleep(0.2)
        return super().start(path)


class ScriptedClassifier:
    def __init__(self, results=(), delay=0.0):
        self.results = list(results)
        self.delay = delay
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def classify(self, segment):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            result = self.results.pop(0) if self.results else ""
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.in_flight -= 1


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


def make_cycle(tmp_path, classifier, backend=None, matches=None, aborts=None, **kwargs):
    backend = backend or FakeBackend()
    matches = matches if matches is not None else []
    aborts = aborts if aborts is not None else []

    async def on_match(word, text):
        matches.append((word, text))

    async def on_abort(exc):
        aborts.append(exc)

    kwargs.setdefault("period_seconds", 0.01)
    kwargs.setdefault("classify_timeout_seconds", 1.0)
    cycle = AnalysisCycle(
        CaptureSession(backend, segment_dir=str(tmp_path)),
        classifier,
        TriggerLexicon(["help", "sos"]),
        on_match=on_match,
        on_abort=on_abort,
        **kwargs,
    )
    return cycle, backend


def test_no_match_reopens_capture_until_stopped(tmp_path):
    classifier = ScriptedClassifier(["nothing here", "still quiet", "hello"])
    cycle, backend = make_cycle(tmp_path, classifier)

    async def scenario():
        await cycle.start()
        assert cycle.state is CycleState.CAPTURING
        await wait_until(lambda: classifier.calls >= 3)
        await cycle.stop()
        await cycle.wait_closed()

    asyncio.run(scenario())
    assert cycle.state is CycleState.IDLE
    assert backend.open_count == 0
    assert backend.max_open == 1
    assert len(backend.started) >= 3
    assert os.listdir(tmp_path) == []


def test_match_suspends_cycle_and_reports_word(tmp_path):
    classifier = ScriptedClassifier(["please HELP me"])
    matches = []
    cycle, backend = make_cycle(tmp_path, classifier, matches=matches)

    async def scenario():
        await cycle.start()
        await wait_until(lambda: matches)
        await cycle.wait_closed()
        state = cycle.state
        await cycle.stop()
        return state

    state = asyncio.run(scenario())
    assert state is CycleState.SUSPENDED
    assert matches == [("help", "please HELP me")]
    assert len(backend.started) == 1
    assert backend.open_count == 0
    assert cycle.state is CycleState.IDLE


def test_classification_error_is_treated_as_no_match(tmp_path):
    classifier = ScriptedClassifier([ConnectionError("offline"), "sos sos"])
    matches = []
    cycle, _backend = make_cycle(tmp_path, classifier, matches=matches)

    async def scenario():
        await cycle.start()
        await wait_until(lambda: matches)
        await cycle.stop()

    asyncio.run(scenario())
    assert classifier.calls == 2
    assert matches == [("sos", "sos sos")]


def test_timeouts_never_overlap_ticks(tmp_path):
    classifier = ScriptedClassifier(["help"] * 5, delay=0.2)
    matches = []
    cycle, backend = make_cycle(
        tmp_path, classifier, matches=matches, classify_timeout_seconds=0.02
    )

    async def scenario():
        await cycle.start()
        await wait_until(lambda: classifier.calls >= 3)
        await cycle.stop()
        await cycle.wait_closed()

    asyncio.run(scenario())
    assert matches == []
    assert classifier.max_in_flight == 1
    assert backend.max_open == 1
    assert backend.open_count == 0


def test_stop_during_classification_discards_result(tmp_path):
    classifier = ScriptedClassifier(["help"], delay=0.05)
    matches = []
    cycle, backend = make_cycle(tmp_path, classifier, matches=matches)

    async def scenario():
        await cycle.start()
        await wait_until(lambda: classifier.in_flight == 1)
        await cycle.stop()
        assert cycle.state is CycleState.IDLE
        await cycle.wait_closed()

    asyncio.run(scenario())
    assert matches == []
    assert len(backend.started) == 1
    assert backend.open_count == 0
    assert cycle.state is CycleState.IDLE


def test_start_is_idempotent(tmp_path):
    cycle, backend = make_cycle(tmp_path, ScriptedClassifier(), period_seconds=10.0)

    async def scenario():
        await cycle.start()
        await cycle.start()
        assert cycle.running
        await cycle.stop()

    asyncio.run(scenario())
    assert len(backend.started) == 1
    assert not cycle.running


def test_restart_waits_for_previous_tick(tmp_path):
    classifier = ScriptedClassifier(["quiet", "quiet", "quiet"], delay=0.05)
    cycle, backend = make_cycle(tmp_path, classifier)

    async def scenario():
        await cycle.start()
        await wait_until(lambda: classifier.in_flight == 1)
        await cycle.stop()
        await cycle.start()
        assert classifier.in_flight == 0
        await cycle.stop()
        await cycle.wait_closed()

    asyncio.run(scenario())
    assert backend.max_open == 1
    assert backend.open_count == 0


def test_capture_failure_aborts_cycle(tmp_path):
    aborts = []
    cycle, backend = make_cycle(
        tmp_path,
        ScriptedClassifier(["nothing"]),
        backend=FakeBackend(fail_on_start=2),
        aborts=aborts,
    )

    async def scenario():
        await cycle.start()
        await wait_until(lambda: aborts)
        await cycle.wait_closed()

    asyncio.run(scenario())
    assert isinstance(aborts[0], OSError)
    assert cycle.state is CycleState.IDLE
    assert not cycle.running
    assert backend.open_count == 0


def test_stop_waits_for_capture_being_opened(tmp_path):
    backend = SlowReopenBackend()
    cycle, _backend = make_cycle(tmp_path, ScriptedClassifier(["quiet"]), backend=backend)

    async def scenario():
        await cycle.start()
        await wait_until(lambda: backend.reopening)
        await cycle.stop()
        return cycle.session.is_open, cycle.state, backend.open_count

    is_open, state, open_count = asyncio.run(scenario())
    assert not is_open
    assert state is CycleState.IDLE
    assert open_count == 0
    assert len(backend.started) == 2
    assert os.listdir(tmp_path) == []


def test_missing_segment_at_tick_aborts_cycle(tmp_path):
    aborts = []
    cycle, backend = make_cycle(
        tmp_path, ScriptedClassifier(), aborts=aborts, period_seconds=0.05
    )

    async def scenario():
        await cycle.start()
        segment = await cycle.session.close()
        segment.release()
        await cycle.wait_closed()

    asyncio.run(scenario())
    assert len(aborts) == 1
    assert not cycle.running
    assert cycle.state is CycleState.IDLE
    assert backend.open_count == 0
