from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set

import httpx
from pydantic import ValidationError

from eyesonyou.config import settings
from eyesonyou.schemas.alerts import AlertDecision
from eyesonyou.schemas.events import WsMessage
from eyesonyou.schemas.geometry import AnchorOut, GeometryEvent
from eyesonyou.schemas.speech import Utterance
from eyesonyou.schemas.toggles import DisplayPreferences, ToggleState
from eyesonyou.services.alert_engine import ProximityAlertEngine
from eyesonyou.services.alert_history import AlertHistoryService
from eyesonyou.services.anchor_registry import AnchorRegistry
from eyesonyou.services.cooldown_gate import CooldownGate
from eyesonyou.services.motion_tracker import MotionTracker
from eyesonyou.services.scan_adapter import ScanAdapter
from eyesonyou.services.speech_queue import SpeechQueue
from eyesonyou.services.synthesizers import SpeechSynthesizer, build_synthesizer
from eyesonyou.utils.time import Clock, monotonic

logger = logging.getLogger("eyesonyou.engine")

Broadcaster = Callable[[Dict[str, Any]], Awaitable[None]]

MAPPING_STARTED_TEXT = (
    "Environment mapping started. You will receive audio warnings about obstacles in your path."
)
MAPPING_ENDED_TEXT = "Environment mapping ended."


class EngineService:
    """Owns the tracking engine and the asyncio tasks that drive it.

    The event loop running open() is the only place registry, tracker and
    speech state are touched. Producers hand work over with submit(); the
    ingest task applies it. A mapping session runs three loops:
    - ingest: geometry events -> registry -> geometry alert check
    - motion: wakes every motion_wake_s, tracks every motion_tick_s
    - scan:   polls the HTTP scan source (only when enabled)
    """

    def __init__(
        self,
        synthesizer: Optional[SpeechSynthesizer] = None,
        clock: Clock = monotonic,
        record_alerts: bool = True,
        scan: Optional[ScanAdapter] = None,
        session_factory: Optional[Callable[[], Any]] = None,
    ):
        self._clock = clock
        self._record_alerts = record_alerts
        # Defaults to db.session.SessionLocal, resolved on first use
        self.session_factory = session_factory

        self.registry = AnchorRegistry(clock=clock)
        self.tracker = MotionTracker()
        self.synthesizer = synthesizer or build_synthesizer()
        self.speech = SpeechQueue(self.synthesizer)
        self.alerts = ProximityAlertEngine(self.speech, CooldownGate(settings.warning_cooldown_s))
        self.history = AlertHistoryService()
        self.scan = scan

        self.registry.add_removal_listener(self.tracker.purge)
        self.registry.add_removal_listener(self._on_anchor_removed)
        self.alerts.add_listener(self._on_alert)
        self.speech.add_listener(self._on_speech)

        self._toggles = ToggleState()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ingest: Optional[asyncio.Queue] = None
        self._stop_flag: Optional[asyncio.Event] = None
        self._tasks: Dict[str, asyncio.Task] = {}
        # Plain flag so submit() can check it from a foreign thread
        self._mapping = False
        self._background: Set[asyncio.Task] = set()
        self._broadcast: Optional[Broadcaster] = None

    def bind_broadcaster(self, broadcaster: Broadcaster) -> None:
        self._broadcast = broadcaster

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------
    async def open(self, toggles: Optional[ToggleState] = None) -> None:
        """Bind to the running loop; the speech queue is live from here on."""
        self._loop = asyncio.get_running_loop()
        self._ingest = asyncio.Queue()
        self.speech.start()
        if toggles is not None:
            self.update_config(toggles)

    @property
    def mapping(self) -> bool:
        return self._mapping

    async def start_mapping(self, announce: Optional[bool] = None) -> None:
        if self._loop is None:
            raise RuntimeError("EngineService.open() has not been called")
        if self.mapping:
            return
        self._mapping = True
        self._stop_flag = asyncio.Event()
        self._ingest = asyncio.Queue()
        self._tasks["ingest"] = asyncio.create_task(self._ingest_loop())
        self._tasks["motion"] = asyncio.create_task(self._motion_loop())
        if settings.scan_source_enabled:
            self.scan = self.scan or ScanAdapter()
            self._tasks["scan"] = asyncio.create_task(self._scan_loop())
        logger.info("Mapping started (%s)", ", ".join(self._tasks))

        if announce is None:
            announce = settings.announce_mode_changes
        if announce:
            self.speech.clear_and_speak_now(MAPPING_STARTED_TEXT)

    async def stop_mapping(self, announce: Optional[bool] = None) -> None:
        """Stop the loops at their next wake and forget every anchor."""
        was_mapping = self._mapping
        self._mapping = False
        if self._stop_flag is not None:
            self._stop_flag.set()
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        # Spatial state is session-only
        self.registry.clear()
        self.tracker.prune([])
        self.alerts.gate.reset()

        if was_mapping:
            logger.info("Mapping stopped")
            if announce is None:
                announce = settings.announce_mode_changes
            if announce:
                self.speech.clear_and_speak_now(MAPPING_ENDED_TEXT)

    async def close(self) -> None:
        await self.stop_mapping(announce=False)
        await self.speech.close()
        await self.synthesizer.close()
        if self.scan is not None:
            await self.scan.close()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ------------------------------------------------------------
    # Configuration (one-directional: display/settings -> engine)
    # ------------------------------------------------------------
    def update_config(self, toggles: ToggleState) -> None:
        self._toggles = toggles
        self.alerts.enabled = toggles.proximity_warnings
        logger.info(
            "Config: proximity_warnings=%s wireframe=%s ripple=%s",
            toggles.proximity_warnings, toggles.wireframe, toggles.ripple,
        )
        self._emit("display", self.display_preferences().model_dump())

    @property
    def toggles(self) -> ToggleState:
        return self._toggles

    def display_preferences(self) -> DisplayPreferences:
        return DisplayPreferences.from_toggles(self._toggles)

    # ------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------
    def submit(self, events: Iterable[GeometryEvent]) -> int:
        """Queue geometry events for the ingest task; safe from any thread."""
        if self._loop is None or self._ingest is None:
            raise RuntimeError("EngineService.open() has not been called")
        events = list(events)
        if not self.mapping:
            logger.debug("Mapping inactive; dropped %d geometry event(s)", len(events))
            return 0
        for ev in events:
            self._loop.call_soon_threadsafe(self._ingest.put_nowait, ev)
        return len(events)

    # ------------------------------------------------------------
    # Units of work (run on the owning loop, never await)
    # ------------------------------------------------------------
    def handle_geometry(self, event: GeometryEvent, now: Optional[float] = None) -> Optional[AlertDecision]:
        now = self._clock() if now is None else now
        anchor = self.registry.apply(event, now)
        if anchor is None:
            return None

        confirmed = self.tracker.observe_shape(anchor.id, anchor.bbox.dimensions, now)
        self._emit("anchor", {"event": event.kind, "anchor": AnchorOut.from_anchor(anchor).model_dump()})
        return self.alerts.on_geometry(anchor, confirmed, now)

    def tick(self, now: Optional[float] = None) -> Optional[AlertDecision]:
        """One motion-tracking pass over every live anchor."""
        now = self._clock() if now is None else now
        anchors = self.registry.snapshot()
        signals = {}
        for a in anchors:
            signals[a.id] = self.tracker.observe(
                a.id, a.world_center, a.bbox.volume, now, dimensions=a.bbox.dimensions
            )
        self.tracker.prune(a.id for a in anchors)
        return self.alerts.on_motion(anchors, signals, now)

    # ------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------
    async def _ingest_loop(self) -> None:
        assert self._ingest is not None and self._stop_flag is not None
        stop = self._stop_flag
        logger.info("Ingest loop started")
        while not stop.is_set():
            try:
                event = await asyncio.wait_for(self._ingest.get(), timeout=settings.motion_wake_s)
            except asyncio.TimeoutError:
                continue
            try:
                self.handle_geometry(event)
            except Exception:
                logger.exception("Failed to apply geometry event for %s", event.anchor_id)
        logger.info("Ingest loop ended")

    async def _motion_loop(self) -> None:
        assert self._stop_flag is not None
        stop = self._stop_flag
        last_check = self._clock()
        logger.info("Motion loop started")
        try:
            while not stop.is_set():
                now = self._clock()
                if now - last_check >= settings.motion_tick_s:
                    last_check = now
                    self.tick(now)
                await asyncio.sleep(settings.motion_wake_s)
        except Exception as e:
            logger.exception("Motion loop crashed: %s", e)
        logger.info("Motion loop ended")

    async def _scan_loop(self) -> None:
        assert self._stop_flag is not None and self.scan is not None
        stop = self._stop_flag
        cursor = 0
        logger.info("Scan loop started: %s", self.scan.base_url)
        while not stop.is_set():
            try:
                payload = await self.scan.get_updates(cursor)
                cursor = int(payload.get("cursor", cursor))
                events = []
                for raw in payload.get("events") or []:
                    try:
                        events.append(GeometryEvent.model_validate(raw))
                    except ValidationError as e:
                        logger.warning("Malformed scan event skipped: %s", e)
                self.submit(events)
            except httpx.HTTPError as e:
                logger.warning("Scan source unavailable: %s", e)
            except Exception as e:
                logger.exception("Scan loop crashed: %s", e)
                break

            try:
                await asyncio.wait_for(stop.wait(), timeout=settings.scan_poll_interval_s)
            except asyncio.TimeoutError:
                pass
        logger.info("Scan loop ended")

    # ------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------
    def _on_anchor_removed(self, anchor_id: str) -> None:
        self._emit("anchor", {"event": "removed", "anchor_id": anchor_id})

    def _on_alert(self, decision: AlertDecision, delivered: bool) -> None:
        if self._record_alerts:
            # IMPORTANT: DB sessions are not thread-safe; one per record.
            if self.session_factory is None:
                from eyesonyou.db.session import SessionLocal

                self.session_factory = SessionLocal
            db = self.session_factory()
            try:
                self.history.add(db, decision, delivered)
                db.commit()
            except Exception as e:
                db.rollback()
                logger.warning("Failed to record alert: %s", e)
            finally:
                db.close()
        self._emit("alert", {**decision.model_dump(), "delivered": delivered})

    def _on_speech(self, kind: str, utt: Optional[Utterance]) -> None:
        self._emit("speech", {"event": kind, "utterance": utt.model_dump() if utt else None})

    def _emit(self, kind: str, data: Dict[str, Any]) -> None:
        if self._broadcast is None or self._loop is None:
            return
        message = WsMessage(kind=kind, data=data).model_dump()
        task = self._loop.create_task(self._broadcast(message))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
