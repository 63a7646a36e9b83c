from eyesonyou.policies.alert_rules import evaluate_alerts, to_centimeters
from eyesonyou.schemas.alerts import AlertCandidate


def cand(anchor_id="a", distance=1.0, area=0.5, volume=0.2, label="Obstacle", **kw):
    return AlertCandidate(anchor_id=anchor_id, label=label, distance_m=distance, area_m2=area, volume_m3=volume, **kw)


def test_centimeters_truncate():
    assert to_centimeters(0.8) == 80
    assert to_centimeters(1.999) == 199


def test_large_obstacle_ahead():
    d = evaluate_alerts([cand(distance=0.8, area=1.2, label="Wall")])
    assert d.emit
    assert d.rule == "LARGE_OBSTACLE"
    assert d.text == "Wall detected 80 centimeters ahead"
    assert d.distance_cm == 80


def test_proximity_when_small():
    d = evaluate_alerts([cand(distance=1.25, area=0.3, label="Chair or seat")])
    assert d.rule == "PROXIMITY"
    assert d.text == "Chair or seat detected approximately 125 centimeters away"


def test_large_but_beyond_large_range_falls_back_to_proximity():
    d = evaluate_alerts([cand(distance=1.7, area=3.0, label="Table")])
    assert d.rule == "PROXIMITY"
    assert d.text == "Table detected approximately 170 centimeters away"


def test_too_close_or_too_far_is_silent():
    assert not evaluate_alerts([cand(distance=0.05)]).emit
    assert not evaluate_alerts([cand(distance=2.5)]).emit


def test_zero_volume_never_warns():
    assert not evaluate_alerts([cand(distance=0.5, area=2.0, volume=0.0)]).emit


def test_human_beats_obstacle():
    d = evaluate_alerts([
        cand("wall", distance=0.5, area=4.0, label="Wall"),
        cand("person", distance=1.8, human_confirmed=True),
    ])
    assert d.rule == "HUMAN_STATIC"
    assert d.anchor_id == "person"
    assert d.text == "Human detected nearby"


def test_moving_person():
    d = evaluate_alerts([cand(distance=1.6, motion="MOVING_HUMAN")], include_proximity=False)
    assert d.rule == "HUMAN_MOVING"
    assert d.text == "Moving person detected 160 centimeters away"


def test_moving_object_only_after_proximity_rules():
    cands = [cand("box", distance=1.0, motion="MOVING_OBJECT"), cand("chair", distance=1.2)]
    assert evaluate_alerts(cands).rule == "PROXIMITY"
    d = evaluate_alerts(cands, include_proximity=False)
    assert d.rule == "MOVING_OBJECT"
    assert d.text == "Moving object detected 100 centimeters away"


def test_static_obstacles_silent_without_proximity():
    assert not evaluate_alerts([cand(distance=0.8, area=1.2)], include_proximity=False).emit


def test_nearest_wins_within_rule():
    d = evaluate_alerts([cand("far", distance=1.9), cand("near", distance=0.6)])
    assert d.anchor_id == "near"
