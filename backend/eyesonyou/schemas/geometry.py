from __future__ import annotations

from typing import List, Literal, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, Field, model_validator


Vec3 = Tuple[float, float, float]
Matrix4 = List[List[float]]

Category = Literal["none", "wall", "floor", "ceiling", "table", "seat", "window", "door", "unknown"]
EventKind = Literal["added", "updated", "removed"]


def identity_transform() -> Matrix4:
    return np.eye(4).tolist()


class BoundingBox(BaseModel):
    """Axis-aligned box in anchor-local coordinates (metres)."""

    min: Vec3
    max: Vec3

    @classmethod
    def from_vertices(cls, vertices: Sequence[Sequence[float]]) -> "BoundingBox":
        pts = np.asarray(vertices, dtype=float).reshape(-1, 3)
        return cls(min=tuple(pts.min(axis=0).tolist()), max=tuple(pts.max(axis=0).tolist()))

    @property
    def dimensions(self) -> Vec3:
        d = np.asarray(self.max) - np.asarray(self.min)
        return (float(d[0]), float(d[1]), float(d[2]))

    @property
    def width(self) -> float:
        return self.dimensions[0]

    @property
    def height(self) -> float:
        return self.dimensions[1]

    @property
    def depth(self) -> float:
        return self.dimensions[2]

    @property
    def top_y(self) -> float:
        return float(self.max[1])

    @property
    def center(self) -> Vec3:
        c = (np.asarray(self.min) + np.asarray(self.max)) * 0.5
        return (float(c[0]), float(c[1]), float(c[2]))

    @property
    def volume(self) -> float:
        w, h, d = self.dimensions
        return w * h * d

    @model_validator(mode="after")
    def _check_order(self) -> "BoundingBox":
        if any(lo > hi for lo, hi in zip(self.min, self.max)):
            raise ValueError("bounding box min corner must not exceed max corner")
        return self


class GeometryEvent(BaseModel):
    """One add/update/remove notification from the scan source."""

    kind: EventKind
    anchor_id: str = Field(..., min_length=1)
    bbox: Optional[BoundingBox] = None
    # Raw mesh vertices; used to derive the box when bbox is absent
    vertices: Optional[List[Vec3]] = None
    world_transform: Optional[Matrix4] = None

    @model_validator(mode="after")
    def _check_payload(self) -> "GeometryEvent":
        if self.world_transform is not None:
            m = np.asarray(self.world_transform, dtype=float)
            if m.shape != (4, 4):
                raise ValueError("world_transform must be a 4x4 matrix")
        if self.kind != "removed" and self.bbox is None and not self.vertices:
            raise ValueError(f"{self.kind} event requires bbox or vertices")
        return self

    def bounding_box(self) -> Optional[BoundingBox]:
        if self.bbox is not None:
            return self.bbox
        if self.vertices:
            return BoundingBox.from_vertices(self.vertices)
        return None


class Anchor(BaseModel):
    """A tracked surface patch as held by the registry."""

    id: str
    bbox: BoundingBox
    world_transform: Matrix4 = Field(default_factory=identity_transform)
    category: Category = "unknown"
    label: str = "Obstacle"
    created_at: float
    updated_at: float
    revision: int = 0

    @property
    def world_center(self) -> Vec3:
        cx, cy, cz = self.bbox.center
        w = np.asarray(self.world_transform, dtype=float) @ np.array([cx, cy, cz, 1.0])
        return (float(w[0]), float(w[1]), float(w[2]))

    @property
    def distance_m(self) -> float:
        """Distance of the world-space box center from the observer origin."""
        return float(np.linalg.norm(self.world_center))


class AnchorOut(BaseModel):
    id: str
    category: Category
    label: str
    bbox: BoundingBox
    dimensions: Vec3
    world_center: Vec3
    distance_m: float
    revision: int

    @classmethod
    def from_anchor(cls, a: Anchor) -> "AnchorOut":
        return cls(
            id=a.id,
            category=a.category,
            label=a.label,
            bbox=a.bbox,
            dimensions=a.bbox.dimensions,
            world_center=a.world_center,
            distance_m=a.distance_m,
            revision=a.revision,
        )
