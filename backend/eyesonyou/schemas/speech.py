from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


UtteranceKind = Literal["instruction", "warning", "announcement"]
SpeechState = Literal["IDLE", "SPEAKING"]
SpeechEventKind = Literal["finished", "cancelled", "failed"]


class Utterance(BaseModel):
    id: str
    text: str
    kind: UtteranceKind = "instruction"


class SpeechEvent(BaseModel):
    """Completion report from the synthesizer for one utterance."""

    kind: SpeechEventKind
    utterance_id: str
    error: Optional[str] = None


class SpeechRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)


class SpeechAccepted(BaseModel):
    accepted: bool
    utterance_id: Optional[str] = None


class SpeechStatus(BaseModel):
    state: SpeechState
    current: Optional[Utterance] = None
    pending: List[Utterance] = Field(default_factory=list)
