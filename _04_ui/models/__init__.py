"""Pydantic models for the Number-BATTLE API."""

from _04_ui.models.requests import (
    AIMoveRequest,
    HintSearchRequest,
    MovePayload,
    NewGameRequest,
)

__all__ = [
    "AIMoveRequest",
    "HintSearchRequest",
    "MovePayload",
    "NewGameRequest",
]
