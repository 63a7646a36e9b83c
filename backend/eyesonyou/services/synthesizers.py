from __future__ import annotations

import asyncio
import logging
import queue
import threading
from typing import Any, Callable, Optional

from eyesonyou.config import settings
from eyesonyou.schemas.speech import SpeechEvent, Utterance

logger = logging.getLogger("eyesonyou.synth")

SpeechSink = Callable[[SpeechEvent], None]


class SpeechSynthesizer:
    """Interface to the external text-to-speech collaborator.

    speak() and cancel() are called from the engine loop. Completion is
    reported through the bound sink, which is safe to call from any thread.
    """

    def __init__(self):
        self._sink: Optional[SpeechSink] = None

    def bind(self, sink: SpeechSink) -> None:
        self._sink = sink

    def _report(self, kind: str, utterance_id: str, error: Optional[str] = None) -> None:
        if self._sink is None:
            logger.warning("Synthesizer has no sink; dropped %s for %s", kind, utterance_id)
            return
        self._sink(SpeechEvent(kind=kind, utterance_id=utterance_id, error=error))

    def speak(self, utterance: Utterance) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class LogSynthesizer(SpeechSynthesizer):
    """Writes utterances to the log and reports them finished after a
    duration estimated from the word count.

    Used by default, in tests and wherever no audio device is available.
    """

    def __init__(self, rate_wpm: Optional[int] = None, min_duration_s: float = 0.3):
        super().__init__()
        self.rate_wpm = rate_wpm or settings.speech_rate_wpm
        self.min_duration_s = min_duration_s
        self._handle: Optional[asyncio.TimerHandle] = None
        self._current: Optional[Utterance] = None

    def estimate_duration(self, text: str) -> float:
        words = max(1, len(text.split()))
        return max(self.min_duration_s, words * 60.0 / self.rate_wpm)

    def speak(self, utterance: Utterance) -> None:
        logger.info("  >> VOICE: %s", utterance.text)
        loop = asyncio.get_running_loop()
        self._current = utterance
        self._handle = loop.call_later(
            self.estimate_duration(utterance.text), self._finish, utterance.id
        )

    def _finish(self, utterance_id: str) -> None:
        self._handle = None
        self._current = None
        self._report("finished", utterance_id)

    def cancel(self) -> None:
        if self._handle is None or self._current is None:
            return
        self._handle.cancel()
        utterance_id = self._current.id
        self._handle = None
        self._current = None
        self._report("cancelled", utterance_id)


def _pyttsx3_engine():
    import pyttsx3

    return pyttsx3.init()


class Pyttsx3Synthesizer(SpeechSynthesizer):
    """Background TTS thread driving pyttsx3 (install the ``voice`` extra).

    pyttsx3 blocks in runAndWait(), so every utterance is spoken on a
    dedicated worker thread; its callbacks are handed back through the sink.
    If the engine cannot be created (module missing, no audio driver) the
    synthesizer goes dead and reports every utterance as failed, so the
    speech queue keeps moving.
    """

    def __init__(
        self,
        rate_wpm: Optional[int] = None,
        volume: Optional[float] = None,
        engine_factory: Callable[[], Any] = _pyttsx3_engine,
    ):
        super().__init__()
        self.rate_wpm = rate_wpm or settings.speech_rate_wpm
        self.volume = settings.speech_volume if volume is None else volume
        self._engine_factory = engine_factory
        self._q: "queue.Queue[Optional[Utterance]]" = queue.Queue()
        self._engine = None
        self._init_error: Optional[str] = None
        self._cancel_requested = threading.Event()
        self._thread = threading.Thread(target=self._worker, daemon=True, name="TTS")
        self._thread.start()

    @property
    def dead(self) -> bool:
        return self._init_error is not None

    def _worker(self) -> None:
        try:
            eng = self._engine_factory()
            eng.setProperty("rate", self.rate_wpm)
            eng.setProperty("volume", self.volume)
            eng.connect("finished-utterance", self._on_finished)
        except Exception as e:
            self._init_error = f"voice engine unavailable: {e}"
            logger.error("pyttsx3 init failed, speech disabled: %s", e)
            # Anything queued before the failure still gets a report
            while True:
                utt = self._q.get()
                if utt is None:
                    return
                self._report("failed", utt.id, error=self._init_error)

        self._engine = eng
        logger.info("pyttsx3 voice engine ready")

        while True:
            utt = self._q.get()
            if utt is None:
                break
            self._cancel_requested.clear()
            try:
                eng.say(utt.text, utt.id)
                eng.runAndWait()
            except Exception as e:
                logger.warning("pyttsx3 failed on %r: %s", utt.text, e)
                self._report("failed", utt.id, error=str(e))

    def _on_finished(self, name: str, completed: bool) -> None:
        interrupted = self._cancel_requested.is_set() or not completed
        self._report("cancelled" if interrupted else "finished", name)

    def speak(self, utterance: Utterance) -> None:
        if self._init_error is not None:
            self._report("failed", utterance.id, error=self._init_error)
            return
        self._q.put(utterance)

    def cancel(self) -> None:
        self._cancel_requested.set()
        if self._engine is not None:
            self._engine.stop()

    async def close(self) -> None:
        self._q.put(None)
        await asyncio.to_thread(self._thread.join, 2.0)


def build_synthesizer(backend: Optional[str] = None) -> SpeechSynthesizer:
    backend = (backend or settings.speech_backend).lower()
    if backend == "pyttsx3":
        return Pyttsx3Synthesizer()
    if backend != "log":
        logger.warning("Unknown speech backend %r; using log synthesizer", backend)
    return LogSynthesizer()
