from __future__ import annotations

from fastapi import APIRouter, Depends

from eyesonyou.auth.jwt import require_role
from eyesonyou.deps import get_engine_svc
from eyesonyou.schemas.speech import SpeechAccepted, SpeechRequest, SpeechStatus
from eyesonyou.services.engine_service import EngineService

router = APIRouter()

_speakers = require_role("device", "caregiver")


@router.get("/speech/status", response_model=SpeechStatus)
async def speech_status(svc: EngineService = Depends(get_engine_svc)):
    return svc.speech.status()


@router.post("/speech/enqueue", response_model=SpeechAccepted)
async def enqueue(body: SpeechRequest, svc: EngineService = Depends(get_engine_svc), user: str | None = Depends(_speakers)):
    utt = svc.speech.enqueue(body.text)
    return SpeechAccepted(accepted=True, utterance_id=utt.id)


@router.post("/speech/warning", response_model=SpeechAccepted)
async def warning(body: SpeechRequest, svc: EngineService = Depends(get_engine_svc), user: str | None = Depends(_speakers)):
    """Best-effort warning: rejected while something is being spoken."""
    utt = svc.speech.enqueue_warning(body.text)
    if utt is None:
        return SpeechAccepted(accepted=False)
    return SpeechAccepted(accepted=True, utterance_id=utt.id)


@router.post("/speech/interrupt", response_model=SpeechAccepted)
async def interrupt(body: SpeechRequest, svc: EngineService = Depends(get_engine_svc), user: str | None = Depends(_speakers)):
    utt = svc.speech.clear_and_speak_now(body.text)
    return SpeechAccepted(accepted=True, utterance_id=utt.id)


@router.post("/speech/stop", response_model=SpeechStatus)
async def stop(svc: EngineService = Depends(get_engine_svc), user: str | None = Depends(_speakers)):
    svc.speech.stop()
    return svc.speech.status()
