import pytest

from eyesonyou.services.motion_tracker import MotionTracker, is_human_shape

PERSON = (0.5, 1.7, 0.3)
CRATE = (1.5, 1.5, 1.5)


def test_first_observation_has_no_motion():
    t = MotionTracker()
    s = t.observe("a", (0.0, 0.0, -2.0), 0.2, now=0.0)
    assert s.score == 0.0
    assert s.kind is None


def test_score_decays_and_accumulates():
    t = MotionTracker()
    t.observe("a", (0.0, 0.0, -2.0), 0.2, now=0.0)
    s = t.observe("a", (0.0, 0.0, -1.8), 0.2, now=0.5)
    assert s.score == pytest.approx(1.0)
    s = t.observe("a", (0.0, 0.0, -1.8), 0.2, now=1.0)
    assert s.score == pytest.approx(0.8)


def test_score_decays_toward_zero_when_still():
    t = MotionTracker()
    t.observe("a", (0.0, 0.0, -2.0), 0.2, now=0.0)
    last = t.observe("a", (0.0, 0.0, -1.4), 0.2, now=0.5).score
    for i in range(2, 40):
        score = t.observe("a", (0.0, 0.0, -1.4), 0.2, now=i * 0.5).score
        assert score <= last
        last = score
    assert last < 1e-3
    assert t.observe("a", (0.0, 0.0, -1.4), 0.2, now=20.0).kind is None


def test_human_sized_mover_is_a_moving_human():
    t = MotionTracker()
    t.observe("a", (0.0, 0.0, -2.0), 0.25, now=0.0)
    s = t.observe("a", (0.0, 0.0, -1.7), 0.25, now=0.5)
    assert s.kind == "MOVING_HUMAN"


def test_large_mover_needs_higher_score():
    t = MotionTracker()
    t.observe("a", (0.0, 0.0, -2.0), 3.4, now=0.0)
    s = t.observe("a", (0.0, 0.0, -1.7), 3.4, now=0.5)
    assert s.kind is None
    s = t.observe("a", (0.0, 0.0, -1.4), 3.4, now=1.0)
    assert s.score > 2.0
    assert s.kind == "MOVING_OBJECT"


def test_volume_is_fixed_on_first_observation():
    t = MotionTracker()
    t.observe("a", (0.0, 0.0, -2.0), 0.25, now=0.0)
    s = t.observe("a", (0.0, 0.0, -1.7), 5.0, now=0.5)
    assert s.volume == 0.25
    assert s.kind == "MOVING_HUMAN"


def test_human_shape_bounds():
    assert is_human_shape(PERSON)
    assert not is_human_shape(CRATE)
    assert not is_human_shape((0.5, 2.2, 0.3))


def test_human_confirmed_after_one_second():
    t = MotionTracker(confirmation_s=1.0)
    assert not t.observe_shape("p", PERSON, 0.0)
    assert not t.observe_shape("p", PERSON, 0.5)
    assert t.observe_shape("p", PERSON, 1.0)
    assert t.is_confirmed("p")


def test_leaving_shape_before_confirmation_restarts_timer():
    t = MotionTracker(confirmation_s=1.0)
    t.observe_shape("p", PERSON, 0.0)
    t.observe_shape("p", CRATE, 0.5)
    assert not t.observe_shape("p", PERSON, 1.0)
    assert t.observe_shape("p", PERSON, 2.0)


def test_confirmation_is_once_per_lifetime():
    t = MotionTracker(confirmation_s=1.0)
    t.observe_shape("p", PERSON, 0.0)
    t.observe_shape("p", PERSON, 1.0)
    assert not t.observe_shape("p", CRATE, 1.5)
    assert t.is_confirmed("p")
    # Back in shape: reported again right away
    assert t.observe_shape("p", PERSON, 1.6)


def test_purge_and_prune():
    t = MotionTracker()
    t.observe("a", (0.0, 0.0, -2.0), 0.2, now=0.0, dimensions=PERSON)
    t.observe("b", (1.0, 0.0, -2.0), 0.2, now=0.0)
    assert t.tracked_ids() == {"a", "b"}
    t.purge("a")
    assert t.tracked_ids() == {"b"}
    t.prune([])
    assert t.tracked_ids() == set()
    assert t.score("b") == 0.0
