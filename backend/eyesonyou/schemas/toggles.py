from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel


class ToggleState(BaseModel):
    proximity_warnings: bool = True
    wireframe: bool = False
    ripple: bool = False


class ToggleUpdate(BaseModel):
    proximity_warnings: Optional[bool] = None
    wireframe: Optional[bool] = None
    ripple: Optional[bool] = None


class DisplayPreferences(BaseModel):
    """Material settings the mesh renderer applies to every anchor entity."""

    triangle_fill_mode: Literal["fill", "lines"] = "fill"
    ripple: bool = False

    @classmethod
    def from_toggles(cls, toggles: ToggleState) -> "DisplayPreferences":
        return cls(triangle_fill_mode="lines" if toggles.wireframe else "fill", ripple=toggles.ripple)
