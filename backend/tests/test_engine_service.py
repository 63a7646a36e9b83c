import asyncio

import pytest

from eyesonyou.schemas.geometry import GeometryEvent
from eyesonyou.schemas.toggles import ToggleState
from eyesonyou.services.engine_service import MAPPING_ENDED_TEXT, MAPPING_STARTED_TEXT, EngineService

PERSON = (0.5, 1.7, 0.3)


def event(kind, anchor_id, size=(1.2, 1.0, 0.2), at=(0.0, 0.0, -0.8)):
    w, h, d = size
    x, y, z = at
    return GeometryEvent(
        kind=kind,
        anchor_id=anchor_id,
        bbox={"min": (-w / 2, -h / 2, -d / 2), "max": (w / 2, h / 2, d / 2)},
        world_transform=[[1, 0, 0, x], [0, 1, 0, y], [0, 0, 1, z], [0, 0, 0, 1]],
    )


def run(synth, scenario, toggles=None):
    async def _main():
        svc = EngineService(synthesizer=synth, record_alerts=False)
        await svc.open(toggles or ToggleState())
        try:
            await scenario(svc)
        finally:
            await svc.close()

    asyncio.run(_main())


def test_large_obstacle_warning_then_cooldown(synth):
    async def scenario(svc):
        d = svc.handle_geometry(event("added", "a1"), now=10.0)
        assert d.rule == "LARGE_OBSTACLE"
        assert synth.spoken == ["Obstacle detected 80 centimeters ahead"]
        assert svc.alerts.gate.last_emission == 10.0

        # A second qualifying anchor inside the window stays silent
        assert svc.handle_geometry(event("added", "a2", at=(0.3, 0.0, -0.9)), now=11.0) is None
        assert len(synth.spoken) == 1

        synth.finish()
        await asyncio.sleep(0.5)
        d = svc.handle_geometry(event("updated", "a2", at=(0.0, 0.0, -1.2)), now=13.5)
        assert d.text == "Obstacle detected 120 centimeters ahead"

    run(synth, scenario)


def test_warnings_disabled_by_toggle(synth):
    async def scenario(svc):
        assert svc.handle_geometry(event("added", "a1"), now=0.0) is None
        assert synth.spoken == []
        assert svc.alerts.gate.last_emission is None

    run(synth, scenario, ToggleState(proximity_warnings=False))


def test_update_config_switches_display_and_warnings(synth):
    async def scenario(svc):
        svc.update_config(ToggleState(proximity_warnings=False, wireframe=True, ripple=True))
        prefs = svc.display_preferences()
        assert prefs.triangle_fill_mode == "lines"
        assert prefs.ripple is True
        assert svc.alerts.enabled is False

    run(synth, scenario)


def test_static_human_confirmed_on_tick(synth):
    async def scenario(svc):
        # 3 m away: outside every proximity rule
        assert svc.handle_geometry(event("added", "p1", size=PERSON, at=(0.0, 0.0, -3.0)), now=0.0) is None
        assert svc.tick(now=0.5) is None
        d = svc.tick(now=1.0)
        assert d.rule == "HUMAN_STATIC"
        assert synth.spoken == ["Human detected nearby"]

    run(synth, scenario)


def test_moving_person_reported_on_tick(synth):
    async def scenario(svc):
        svc.registry.apply(event("added", "p1", size=PERSON, at=(0.0, 0.0, -1.9)), now=0.0)
        assert svc.tick(now=0.0) is None
        svc.registry.apply(event("updated", "p1", size=PERSON, at=(0.0, 0.0, -1.6)), now=0.4)
        d = svc.tick(now=0.5)
        assert d.rule == "HUMAN_MOVING"
        assert d.text == "Moving person detected 160 centimeters away"

    run(synth, scenario)


def test_static_clutter_silent_on_tick(synth):
    async def scenario(svc):
        svc.registry.apply(event("added", "a1"), now=0.0)
        assert svc.tick(now=0.5) is None
        assert svc.tick(now=1.0) is None

    run(synth, scenario)


def test_removal_purges_motion_state(synth):
    async def scenario(svc):
        svc.handle_geometry(event("added", "p1", size=PERSON, at=(0.0, 0.0, -3.0)), now=0.0)
        svc.tick(now=0.5)
        assert "p1" in svc.tracker.tracked_ids()
        assert svc.handle_geometry(GeometryEvent(kind="removed", anchor_id="p1"), now=0.6) is None
        assert svc.tracker.tracked_ids() == set()
        assert len(svc.registry) == 0

    run(synth, scenario)


def test_mapping_session_lifecycle(synth):
    async def scenario(svc):
        assert svc.submit([event("added", "a1")]) == 0

        await svc.start_mapping(announce=True)
        assert svc.mapping
        assert synth.spoken == [MAPPING_STARTED_TEXT]

        assert svc.submit([event("added", "w1", size=(2.4, 2.4, 0.1), at=(0.0, 0.0, -4.0))]) == 1
        await asyncio.sleep(0.3)
        assert svc.registry.get("w1").category == "wall"

        await svc.stop_mapping(announce=True)
        await asyncio.sleep(0.01)
        assert not svc.mapping
        assert len(svc.registry) == 0
        assert synth.spoken[-1] == MAPPING_ENDED_TEXT
        assert svc.submit([event("added", "a1")]) == 0

    run(synth, scenario)


def test_engine_requires_open(synth):
    svc = EngineService(synthesizer=synth, record_alerts=False)
    with pytest.raises(RuntimeError):
        svc.submit([])


def test_planar_wall_is_classified_but_never_warned(synth):
    async def scenario(svc):
        assert svc.handle_geometry(event("added", "flat", size=(2.5, 2.5, 0.0)), now=0.0) is None
        assert svc.registry.get("flat").category == "wall"
        assert synth.spoken == []

    run(synth, scenario)


def test_submit_from_worker_thread(synth):
    async def scenario(svc):
        await svc.start_mapping(announce=False)
        wall = event("added", "w1", size=(2.4, 2.4, 0.1), at=(0.0, 0.0, -4.0))
        assert await asyncio.to_thread(svc.submit, [wall]) == 1
        await asyncio.sleep(0.3)
        assert "w1" in svc.registry

        await svc.stop_mapping(announce=False)
        assert await asyncio.to_thread(svc.submit, [wall]) == 0
        assert await asyncio.to_thread(lambda: svc.mapping) is False

    run(synth, scenario)
