from __future__ import annotations

import logging

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from taskwhisper.schemas import AnalyzeRequest
from taskwhisper.services.ai import extract_tasks
from taskwhisper.services.transcription import transcribe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["memos"])


@router.post("/transcribe")
async def transcribe_memo(request: Request, audio: UploadFile | None = File(None)):
    audio_bytes = await audio.read() if audio is not None else b""
    if not audio_bytes:
        return JSONResponse({"success": False, "error": "No audio file provided"}, status_code=400)

    logger.info("Transcription request: %s (%d bytes)", audio.filename, len(audio_bytes))
    result = await run_in_threadpool(
        transcribe, audio_bytes, request.app.state.settings, audio.filename
    )
    return {"success": True, "transcript": result.transcript, "mock": result.mock}


@router.post("/analyze-memo")
async def analyze_memo(request: Request, body: AnalyzeRequest):
    analysis = await run_in_threadpool(extract_tasks, body.transcript, request.app.state.settings)
    return {"success": True, "analysis": analysis.to_dict()}
