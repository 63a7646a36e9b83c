from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from eyesonyou.config import settings
from eyesonyou.schemas.speech import SpeechEvent, SpeechState, SpeechStatus, Utterance, UtteranceKind
from eyesonyou.services.synthesizers import SpeechSynthesizer
from eyesonyou.utils.ids import new_id

logger = logging.getLogger("eyesonyou.speech")

# (kind, utterance) -> None; kinds: started|finished|cancelled|failed|dropped|idle
SpeechListener = Callable[[str, Optional[Utterance]], None]


class SpeechQueue:
    """Single-consumer utterance queue: at most one utterance in flight.

    State lives on the event loop that called start(). Synthesizers report
    completion from any thread through post(); reports travel over an
    asyncio.Queue and are handled on the owning loop by the pump task.
    """

    def __init__(self, synthesizer: SpeechSynthesizer, grace_s: Optional[float] = None):
        self.grace_s = settings.speech_grace_s if grace_s is None else grace_s
        self._synth = synthesizer
        self._synth.bind(self.post)

        self._pending: Deque[Utterance] = deque()
        self._current: Optional[Utterance] = None
        self._listeners: List[SpeechListener] = []

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._events: Optional[asyncio.Queue] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._grace_handle: Optional[asyncio.TimerHandle] = None

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------
    def start(self) -> None:
        """Bind to the running loop and start draining synthesizer events."""
        if self._pump_task and not self._pump_task.done():
            return
        self._loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()
        self._pump_task = asyncio.create_task(self._pump())

    async def close(self) -> None:
        self.stop()
        if self._pump_task:
            self._pump_task.cancel()
            await asyncio.gather(self._pump_task, return_exceptions=True)
            self._pump_task = None

    def add_listener(self, listener: SpeechListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------
    # State
    # ------------------------------------------------------------
    @property
    def state(self) -> SpeechState:
        return "SPEAKING" if self._current is not None else "IDLE"

    @property
    def is_speaking(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> Optional[Utterance]:
        return self._current

    def pending(self) -> List[Utterance]:
        return list(self._pending)

    def status(self) -> SpeechStatus:
        return SpeechStatus(state=self.state, current=self._current, pending=self.pending())

    # ------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------
    def enqueue(self, text: str, kind: UtteranceKind = "instruction") -> Utterance:
        """Append an utterance; starts right away when nothing is playing."""
        utt = Utterance(id=new_id("utt"), text=text, kind=kind)
        self._pending.append(utt)
        self._process_next()
        return utt

    def enqueue_warning(self, text: str) -> Optional[Utterance]:
        """Speak a warning only if the queue is idle; otherwise drop it.

        Warnings are best effort and never wait behind other speech.
        """
        if self.is_speaking:
            logger.info("Speech in progress, obstacle warning skipped: %s", text)
            self._notify("dropped", Utterance(id=new_id("utt"), text=text, kind="warning"))
            return None
        return self.enqueue(text, kind="warning")

    def clear_and_speak_now(self, text: str, kind: UtteranceKind = "announcement") -> Utterance:
        """Drop pending items, interrupt the current utterance, speak text next."""
        self._pending.clear()
        utt = Utterance(id=new_id("utt"), text=text, kind=kind)
        self._pending.append(utt)
        if self.is_speaking:
            # The cancellation report marks us idle and starts utt
            self._synth.cancel()
        else:
            self._process_next()
        return utt

    def stop(self) -> None:
        """Interrupt and clear everything; go idle without a queue-empty notice."""
        self._pending.clear()
        self._cancel_grace()
        if self._current is not None:
            self._synth.cancel()
            self._current = None

    # ------------------------------------------------------------
    # Synthesizer reports
    # ------------------------------------------------------------
    def post(self, event: SpeechEvent) -> None:
        """Thread-safe hand-off of a synthesizer report to the owning loop."""
        if self._loop is None or self._events is None:
            raise RuntimeError("SpeechQueue.start() has not been called")
        self._loop.call_soon_threadsafe(self._events.put_nowait, event)

    async def _pump(self) -> None:
        assert self._events is not None
        while True:
            event = await self._events.get()
            try:
                self.handle_event(event)
            except Exception:
                logger.exception("Failed to handle speech event %s", event.kind)

    def handle_event(self, event: SpeechEvent) -> None:
        """Apply one synthesizer report. Must run on the owning loop."""
        current = self._current
        if current is None or current.id != event.utterance_id:
            logger.debug("Ignoring stale %s report for %s", event.kind, event.utterance_id)
            return

        self._current = None

        if event.kind == "finished":
            self._notify("finished", current)
            self._schedule_grace()
            return

        if event.kind == "failed":
            logger.warning("Speech synthesis failed for %r: %s", current.text, event.error)
        self._notify(event.kind, current)
        # No grace period and no queue-empty notice after an interruption
        self._process_next()

    # ------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------
    def _process_next(self) -> None:
        while self._current is None and self._pending:
            utt = self._pending.popleft()
            self._current = utt
            self._notify("started", utt)
            logger.info("Speaking (%s): %s", utt.kind, utt.text)
            try:
                self._synth.speak(utt)
            except Exception as e:
                logger.warning("Synthesizer rejected %r: %s", utt.text, e)
                self._current = None
                self._notify("failed", utt)

    def _schedule_grace(self) -> None:
        self._cancel_grace()
        if self._loop is None:
            self._after_grace()
            return
        self._grace_handle = self._loop.call_later(self.grace_s, self._after_grace)

    def _cancel_grace(self) -> None:
        if self._grace_handle is not None:
            self._grace_handle.cancel()
            self._grace_handle = None

    def _after_grace(self) -> None:
        self._grace_handle = None
        if self._current is not None:
            return
        if self._pending:
            self._process_next()
        else:
            self._notify("idle", None)

    def _notify(self, kind: str, utt: Optional[Utterance]) -> None:
        for listener in list(self._listeners):
            try:
                listener(kind, utt)
            except Exception:
                logger.exception("Speech listener failed on %s", kind)
