"""HTTP client side of the transcription relay."""

import logging

import httpx

from journal.config import RELAY_BASE_URL, TRANSCRIBE_TIMEOUT_SECONDS
from journal.models.capture import AudioUpload

logger = logging.getLogger(__name__)

TRANSCRIBE_PATH = "/api/transcribe"


class TranscriptionFailed(Exception):
    """A single segment could not be transcribed. Never fatal to a recording."""


class RelayTranscriber:
    """Posts segments to ``POST /api/transcribe`` and returns the text.

    Pass ``client`` to reuse a connection pool (or an ASGI transport in
    tests); otherwise one ``httpx.AsyncClient`` is created per call.
    """

    def __init__(
        self,
        base_url: str = RELAY_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = TRANSCRIBE_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = timeout

    async def transcribe(self, upload: AudioUpload) -> str:
        files = {"file": (upload.filename, upload.data, upload.content_type)}
        try:
            if self._client is not None:
                resp = await self._client.post(TRANSCRIBE_PATH, files=files)
            else:
                async with httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout) as client:
                    resp = await client.post(TRANSCRIBE_PATH, files=files)
        except httpx.TimeoutException as e:
            raise TranscriptionFailed("Transcription request timed out") from e
        except httpx.RequestError as e:
            raise TranscriptionFailed(f"Transcription relay unreachable: {e}") from e

        if resp.is_error:
            raise TranscriptionFailed(_error_message(resp))

        data = resp.json()
        return data.get("text") or ""


def _error_message(resp: httpx.Response) -> str:
    try:
        message = resp.json().get("error")
    except (ValueError, AttributeError):
        message = None
    if isinstance(message, str) and message:
        return message
    return f"HTTP error! status: {resp.status_code}"
