from __future__ import annotations

from typing import Dict

from eyesonyou.schemas.geometry import BoundingBox, Category


# --- Classification parameters (metres) ---
WALL_MIN_WIDTH = 2.0
WALL_MIN_HEIGHT = 2.0
WALL_MAX_DEPTH = 0.5

FLAT_MIN_WIDTH = 1.0
FLAT_MAX_HEIGHT = 0.2
CEILING_MIN_TOP_Y = 2.0

TABLE_HEIGHT_RANGE = (0.7, 1.0)
TABLE_MIN_WIDTH = 0.5
TABLE_MIN_DEPTH = 0.5

SEAT_HEIGHT_RANGE = (0.4, 1.0)
SEAT_MAX_WIDTH = 0.8
SEAT_MAX_DEPTH = 0.8

CATEGORY_LABELS: Dict[str, str] = {
    "wall": "Wall",
    "floor": "Floor",
    "ceiling": "Ceiling",
    "table": "Table",
    "seat": "Chair or seat",
    "window": "Window",
    "door": "Door",
}
DEFAULT_LABEL = "Obstacle"


def classify(bbox: BoundingBox) -> Category:
    """Map a bounding box to a coarse obstacle category.

    Rules are checked in a fixed order and the first match wins. The ceiling
    rule sits behind the floor rule and can never match: any box it accepts
    is already a floor. The order is kept as-is so categories stay stable for
    existing consumers. Flat patches (zero height or depth) classify like
    any other box; a zero-size box falls through to unknown.
    """
    width, height, depth = bbox.dimensions

    if width > WALL_MIN_WIDTH and height > WALL_MIN_HEIGHT and depth < WALL_MAX_DEPTH:
        return "wall"
    if width > FLAT_MIN_WIDTH and height < FLAT_MAX_HEIGHT:
        return "floor"
    if width > FLAT_MIN_WIDTH and height < FLAT_MAX_HEIGHT and bbox.top_y > CEILING_MIN_TOP_Y:
        return "ceiling"
    if TABLE_HEIGHT_RANGE[0] < height < TABLE_HEIGHT_RANGE[1] and width > TABLE_MIN_WIDTH and depth > TABLE_MIN_DEPTH:
        return "table"
    if SEAT_HEIGHT_RANGE[0] < height < SEAT_HEIGHT_RANGE[1] and width < SEAT_MAX_WIDTH and depth < SEAT_MAX_DEPTH:
        return "seat"
    return "unknown"


def label_for(category: Category) -> str:
    return CATEGORY_LABELS.get(category, DEFAULT_LABEL)
