"""Segment dispatch: closed segments in, transcript appends out.

Relay calls run as independent tasks so the next segment can record while
earlier ones are still being transcribed. Results reach the sink in the
order the calls complete.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from journal.config import MIN_SEGMENT_BYTES
from journal.models.capture import AudioUpload, ContainerFormat, Segment, TranscriptAppend
from journal.services.media import Transcriber
from journal.services.relay_client import TranscriptionFailed

logger = logging.getLogger(__name__)


class TranscriptSink(Protocol):
    def append_transcript(self, item: TranscriptAppend) -> None:
        ...

    def skip(self, segment_index: int) -> None:
        ...


def build_upload(segment: Segment, container: ContainerFormat) -> AudioUpload:
    return AudioUpload(
        data=segment.blob,
        filename=f"audio.{container.extension}",
        content_type=container.upload_type,
    )


class SegmentDispatcher:
    def __init__(
        self,
        transcriber: Transcriber,
        sink: TranscriptSink,
        on_error: Callable[[str], None] | None = None,
        min_bytes: int = MIN_SEGMENT_BYTES,
    ) -> None:
        self._transcriber = transcriber
        self._sink = sink
        self._on_error = on_error
        self._min_bytes = min_bytes
        self._pending: set[asyncio.Task] = set()
        self.dispatched = 0
        self.discarded = 0

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def submit(self, segment: Segment, container: ContainerFormat) -> asyncio.Task | None:
        """Hand a closed segment to the transcriber without waiting for the result."""
        if not segment.closed:
            raise RuntimeError(f"Segment {segment.index} dispatched before it was closed")

        if segment.size < self._min_bytes:
            logger.debug(
                "Discarding segment %d: %d bytes is below the %d byte minimum",
                segment.index, segment.size, self._min_bytes,
            )
            self.discarded += 1
            self._sink.skip(segment.index)
            return None

        upload = build_upload(segment, container)
        self.dispatched += 1
        logger.debug("Dispatching segment %d (%d bytes, %s)", segment.index, upload.size, upload.content_type)
        task = asyncio.create_task(self._transcribe(segment.index, upload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every relay call dispatched so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _transcribe(self, index: int, upload: AudioUpload) -> None:
        try:
            text = await self._transcriber.transcribe(upload)
        except TranscriptionFailed as e:
            logger.warning("Transcription failed for segment %d: %s", index, e)
            self._sink.skip(index)
            self._report(str(e))
            return
        except Exception as e:
            logger.error("Transcription error for segment %d: %s", index, e)
            self._sink.skip(index)
            self._report("Failed to transcribe audio")
            return

        text = (text or "").strip()
        if not text:
            self._sink.skip(index)
            return
        self._sink.append_transcript(TranscriptAppend(segment_index=index, text=text))

    def _report(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)
