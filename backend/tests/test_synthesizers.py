import asyncio

from eyesonyou.services.speech_queue import SpeechQueue
from eyesonyou.services.synthesizers import LogSynthesizer, Pyttsx3Synthesizer


class FakeVoiceEngine:
    """Stands in for a pyttsx3 engine: every utterance completes at once."""

    def __init__(self):
        self.props = {}
        self.said = []
        self._callback = None
        self._pending = []

    def setProperty(self, name, value):
        self.props[name] = value

    def connect(self, topic, callback):
        assert topic == "finished-utterance"
        self._callback = callback

    def say(self, text, name):
        self.said.append(text)
        self._pending.append(name)

    def runAndWait(self):
        while self._pending:
            self._callback(self._pending.pop(0), True)

    def stop(self):
        pass


def _no_audio_driver():
    raise RuntimeError("no audio driver")


def run_queue(synth, scenario):
    async def _main():
        queue = SpeechQueue(synth, grace_s=0.01)
        events = []
        queue.add_listener(lambda kind, utt: events.append((kind, utt.text if utt else None)))
        queue.start()
        try:
            await scenario(queue, events)
        finally:
            await queue.close()
            await synth.close()

    asyncio.run(_main())


def test_engine_init_failure_reports_failed_and_queue_recovers():
    synth = Pyttsx3Synthesizer(engine_factory=_no_audio_driver)

    async def scenario(queue, events):
        queue.enqueue("A")
        queue.enqueue("B")
        await asyncio.sleep(0.3)
        assert synth.dead
        assert queue.state == "IDLE"
        assert queue.pending() == []
        assert ("failed", "A") in events
        assert ("failed", "B") in events

        # Warnings are not blocked by a dead voice
        assert queue.enqueue_warning("Wall detected 80 centimeters ahead") is not None
        await asyncio.sleep(0.1)
        assert queue.state == "IDLE"

    run_queue(synth, scenario)


def test_engine_finishes_utterances_in_order():
    engine = FakeVoiceEngine()
    synth = Pyttsx3Synthesizer(rate_wpm=150, volume=0.5, engine_factory=lambda: engine)

    async def scenario(queue, events):
        queue.enqueue("A")
        queue.enqueue("B")
        await asyncio.sleep(0.3)
        assert engine.said == ["A", "B"]
        assert engine.props == {"rate": 150, "volume": 0.5}
        assert ("finished", "B") in events
        assert events[-1] == ("idle", None)

    run_queue(synth, scenario)


def test_log_synthesizer_duration_estimate():
    synth = LogSynthesizer(rate_wpm=120, min_duration_s=0.3)
    assert synth.estimate_duration("Hi") == 0.5
    assert synth.estimate_duration("one two three four") == 2.0
