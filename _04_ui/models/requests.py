"""Pydantic request models for the Number-BATTLE API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from _04_ui.core.config import HINT_SEARCH_DEPTH, MAX_HINT_SEARCH_DEPTH

SideName = Literal["player", "ai"]
StrengthName = Literal["hard", "normal", "weak", "weakest"]


class NewGameRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    starting_side: SideName = Field(default="player", alias="startingSide")
    cpu_strength: StrengthName | None = Field(default=None, alias="cpuStrength")


class MovePayload(BaseModel):
    """A human move: an attack by hand index or a split into two values."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    type: Literal["attack", "split"]
    from_index: int | None = Field(default=None, ge=0, le=1, alias="fromIndex")
    to_index: int | None = Field(default=None, ge=0, le=1, alias="toIndex")
    values: list[int] | None = Field(default=None, min_length=2, max_length=2)


class AIMoveRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    cpu_strength: StrengthName | None = Field(default=None, alias="cpuStrength")


class HintSearchRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    depth: int = Field(default=HINT_SEARCH_DEPTH, ge=1, le=MAX_HINT_SEARCH_DEPTH)
    side: SideName | None = None
