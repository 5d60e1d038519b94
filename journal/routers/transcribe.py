"""Transcription relay endpoint used by the dictation client."""

import logging

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import JSONResponse

from journal.models.capture import AudioUpload
from journal.models.transcription import ErrorResponse, TranscriptionResponse
from journal.services import relay

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["transcription"])

_ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 429, 500, 502, 504)
}


@router.post("/transcribe", response_model=TranscriptionResponse, responses=_ERROR_RESPONSES)
async def transcribe(file: UploadFile | None = File(None)):
    """Transcribe one recorded segment (multipart field ``file``)."""
    upload = None
    if file is not None:
        if file.size is not None and file.size > relay.MAX_AUDIO_BYTES:
            return JSONResponse(status_code=400, content={"error": relay.TOO_LARGE_MESSAGE})
        # One byte past the limit is enough for validation to reject it.
        upload = AudioUpload(
            data=await file.read(relay.MAX_AUDIO_BYTES + 1),
            filename=file.filename or "",
            content_type=file.content_type or "",
        )

    try:
        text = await relay.transcribe_upload(upload)
    except relay.RelayError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    except Exception:
        logger.exception("Transcription error")
        return JSONResponse(status_code=500, content={"error": "Failed to transcribe audio"})

    return TranscriptionResponse(text=text)
