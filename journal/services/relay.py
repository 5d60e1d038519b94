"""Transcription relay: validates an uploaded segment and forwards it to OpenAI.

The server-held OPENAI_API_KEY never leaves this module. Every failure is
raised as ``RelayError`` carrying the HTTP status the caller should see.
"""

import asyncio
import logging
import re

import httpx

from journal.config import OPENAI_API_KEY, TRANSCRIBE_TIMEOUT_SECONDS
from journal.models.capture import AudioUpload

logger = logging.getLogger(__name__)

OPENAI_TRANSCRIBE_URL = "https://api.openai.com/v1/audio/transcriptions"
TRANSCRIBE_MODEL = "whisper-1"
TRANSCRIBE_LANGUAGE = "en"

MAX_AUDIO_BYTES = 25 * 1024 * 1024

ALLOWED_CONTENT_TYPES = frozenset({
    "audio/webm",
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/m4a",
    "audio/mp4",
    "audio/ogg",
})
_ALLOWED_SUFFIX = re.compile(r"\.(webm|mp3|wav|m4a|mp4|ogg)$", re.IGNORECASE)

# Names and types the provider decodes without help.
_READY_SUFFIX = re.compile(r"\.(webm|mp3|wav|m4a|mp4|flac|mpeg|mpga|oga|ogg)$", re.IGNORECASE)
_EXTENSION_TYPES = {
    "webm": "audio/webm",
    "mp3": "audio/mpeg",
    "mpeg": "audio/mpeg",
    "mpga": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/m4a",
    "mp4": "audio/mp4",
    "flac": "audio/flac",
    "oga": "audio/ogg",
    "ogg": "audio/ogg",
}
_READY_TYPES = frozenset(_EXTENSION_TYPES.values()) | ALLOWED_CONTENT_TYPES
_TYPE_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/m4a": "m4a",
    "audio/mp4": "mp4",
    "audio/flac": "flac",
    "audio/ogg": "ogg",
}

NO_FILE_MESSAGE = "No audio file provided"
TOO_LARGE_MESSAGE = "Audio file too large. Maximum size is 25MB."
INVALID_FORMAT_MESSAGE = "Invalid audio format. Supported: webm, mp3, wav, m4a, mp4, ogg"
CONFIG_ERROR_MESSAGE = "Server configuration error"
TIMEOUT_MESSAGE = "Transcription request timed out"


class RelayError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _base_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


def validate_upload(upload: AudioUpload) -> None:
    """Reject uploads the provider would refuse, before spending a request."""
    if upload.size > MAX_AUDIO_BYTES:
        raise RelayError(TOO_LARGE_MESSAGE, 400)
    if _base_type(upload.content_type) not in ALLOWED_CONTENT_TYPES and not _ALLOWED_SUFFIX.search(upload.filename):
        raise RelayError(INVALID_FORMAT_MESSAGE, 400)


def prepare_upload(upload: AudioUpload) -> AudioUpload:
    """Re-wrap the bytes under a name and type the provider recognises."""
    declared = _base_type(upload.content_type)
    if declared in _READY_TYPES and _READY_SUFFIX.search(upload.filename):
        return upload

    match = re.search(r"\.(\w+)$", upload.filename)
    extension = match.group(1).lower() if match else ""
    if extension not in _EXTENSION_TYPES:
        extension = _TYPE_EXTENSIONS.get(declared, "webm")

    content_type = upload.content_type if declared in _READY_TYPES else _EXTENSION_TYPES[extension]
    logger.debug(
        "Re-wrapping upload %r (%r) as audio.%s (%s)",
        upload.filename, upload.content_type, extension, content_type,
    )
    return AudioUpload(data=upload.data, filename=f"audio.{extension}", content_type=content_type)


def _make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=TRANSCRIBE_TIMEOUT_SECONDS)


def _upstream_error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return f"Transcription provider error: {resp.status_code}"


async def _post_upstream(upload: AudioUpload) -> str:
    async with _make_client() as client:
        resp = await client.post(
            OPENAI_TRANSCRIBE_URL,
            headers={"Authorization": f"Bearer {OPENAI_API_KEY}"},
            data={"model": TRANSCRIBE_MODEL, "language": TRANSCRIBE_LANGUAGE},
            files={"file": (upload.filename, upload.data, upload.content_type)},
        )

    if resp.is_error:
        message = _upstream_error_message(resp)
        logger.error("OpenAI transcription error %s: %s", resp.status_code, message)
        raise RelayError(message, resp.status_code)

    data = resp.json()
    return data.get("text") or ""


async def transcribe_upload(upload: AudioUpload | None) -> str:
    """Validate, re-wrap and transcribe one audio upload.

    Raises:
        RelayError: with status 400 for invalid input, 500 for missing
            configuration, 502/504 for network failures, or the upstream
            status when the provider rejects the request.
    """
    if upload is None:
        raise RelayError(NO_FILE_MESSAGE, 400)
    validate_upload(upload)

    if not OPENAI_API_KEY:
        logger.error("OPENAI_API_KEY is not set")
        raise RelayError(CONFIG_ERROR_MESSAGE, 500)

    prepared = prepare_upload(upload)
    try:
        text = await asyncio.wait_for(_post_upstream(prepared), timeout=TRANSCRIBE_TIMEOUT_SECONDS)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        logger.error("Transcription timed out: %s", e)
        raise RelayError(TIMEOUT_MESSAGE, 504) from e
    except httpx.RequestError as e:
        logger.error("Transcription provider unreachable: %s", e)
        raise RelayError("Transcription provider unreachable", 502) from e

    logger.info("Transcribed %d bytes of %s: %d chars", prepared.size, prepared.content_type, len(text))
    return text
