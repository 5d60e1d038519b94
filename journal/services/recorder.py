"""Recording controller for segmented voice dictation.

A ``VoiceRecorder`` keeps one microphone stream open for the lifetime of a
``CaptureSession`` and cuts it into fixed-length segments, each produced by
its own encoder so every segment is a complete, decodable file. Closed
segments go to a ``SegmentDispatcher``; the next segment starts after a short
gap while the session is still active.

Capture failures never propagate to the caller. They end up in ``error``
and put the recorder back to ``idle``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from journal.config import MIN_SEGMENT_BYTES, SEGMENT_DURATION_SECONDS, SEGMENT_GAP_SECONDS
from journal.models.capture import ContainerFormat, RecorderState, Segment
from journal.services.media import (
    PERMISSION_CONSTRAINTS,
    RECORDING_CONSTRAINTS,
    AudioEncoder,
    MediaBackend,
    MediaStream,
    PermissionDeniedError,
    Transcriber,
    UnsupportedContainerError,
    negotiate_container,
    release_stream,
)
from journal.services.segments import SegmentDispatcher, TranscriptSink

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Microphone permission denied. Please allow microphone access and try again."


@dataclass
class CaptureSession:
    """One continuous recording span. Owns ``stream`` exclusively."""

    stream: MediaStream
    container: ContainerFormat
    active: bool = True
    encoder: AudioEncoder | None = None
    segment_count: int = 0
    _stopped: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    async def wait_stopped(self, timeout: float) -> bool:
        """Sleep for ``timeout`` unless the session ends first."""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def end(self) -> None:
        self.active = False
        self._stopped.set()
        if self.encoder is not None:
            _close_encoder(self.encoder)
        release_stream(self.stream)


def _close_encoder(encoder: AudioEncoder) -> None:
    if encoder.state != "inactive":
        encoder.stop()


class VoiceRecorder:
    def __init__(
        self,
        backend: MediaBackend,
        transcriber: Transcriber,
        sink: TranscriptSink,
        segment_duration: float = SEGMENT_DURATION_SECONDS,
        segment_gap: float = SEGMENT_GAP_SECONDS,
        min_segment_bytes: int = MIN_SEGMENT_BYTES,
    ) -> None:
        self._backend = backend
        self._segment_duration = segment_duration
        self._segment_gap = segment_gap
        self._dispatcher = SegmentDispatcher(
            transcriber,
            sink,
            on_error=self._report_segment_error,
            min_bytes=min_segment_bytes,
        )
        self._session: CaptureSession | None = None
        self._loops: set[asyncio.Task] = set()
        self._next_segment_index = 0
        # Bumped by stop() so a start() still awaiting the platform backs out.
        self._generation = 0
        self._capability_error: str | None = None

        self.state = RecorderState.IDLE
        self.error: str | None = None
        self.permission_granted = False

    @property
    def is_recording(self) -> bool:
        return self._session is not None and self._session.active

    @property
    def is_processing(self) -> bool:
        return self._dispatcher.in_flight > 0

    @property
    def dispatcher(self) -> SegmentDispatcher:
        return self._dispatcher

    @property
    def session(self) -> CaptureSession | None:
        return self._session

    async def request_permission(self) -> bool:
        """Trigger the platform permission prompt without keeping the stream."""
        try:
            stream = await self._backend.get_user_media(PERMISSION_CONSTRAINTS)
        except PermissionDeniedError:
            logger.warning("Microphone permission denied")
            self.error = PERMISSION_DENIED_MESSAGE
            self.permission_granted = False
            return False
        except Exception as e:
            logger.error("Failed to access microphone: %s", e)
            self.error = f"Failed to access microphone: {e}"
            self.permission_granted = False
            return False

        release_stream(stream)
        self.permission_granted = True
        self.error = None
        if self.state is RecorderState.IDLE:
            self.state = RecorderState.ARMED
        return True

    async def start(self) -> bool:
        """Open the microphone and begin recording segments.

        Returns True when a session is running afterwards.
        """
        if self._session is not None:
            return True
        if self._capability_error is not None:
            self.error = self._capability_error
            return False

        self.error = None
        generation = self._generation
        if not self.permission_granted and not await self.request_permission():
            return False
        if generation != self._generation:
            logger.info("Recording cancelled before it started")
            return False

        try:
            container = negotiate_container(self._backend.is_type_supported)
        except UnsupportedContainerError as e:
            logger.error("No supported recording container: %s", e)
            self._capability_error = str(e)
            self._fail(str(e))
            return False

        try:
            stream = await self._backend.get_user_media(RECORDING_CONSTRAINTS)
        except Exception as e:
            logger.error("Error starting recording: %s", e)
            self._fail(str(e) or "Failed to start recording")
            return False

        if generation != self._generation:
            logger.info("Recording cancelled before it started")
            release_stream(stream)
            return False

        if self._session is not None:
            # Another start() won the race while the stream was being opened.
            release_stream(stream)
            return True

        session = CaptureSession(stream=stream, container=container)
        self._session = session
        self.state = RecorderState.RECORDING
        logger.info("Recording started (%s, %.1fs segments)", container.mime_type, self._segment_duration)

        task = asyncio.create_task(self._run(session))
        self._loops.add(task)
        task.add_done_callback(self._loops.discard)
        return True

    def stop(self) -> None:
        """End the session. Safe to call at any time."""
        self._generation += 1
        session = self._session
        if session is None:
            return
        self.state = RecorderState.STOPPING
        self._session = None
        session.end()
        self.state = RecorderState.IDLE
        logger.info("Recording stopped after %d segment(s)", session.segment_count)

    async def wait_closed(self) -> None:
        """Wait for segment loops to finish and every relay call to resolve."""
        while self._loops:
            await asyncio.gather(*list(self._loops), return_exceptions=True)
        await self._dispatcher.drain()

    async def _run(self, session: CaptureSession) -> None:
        try:
            while session.active:
                segment = await self._record_segment(session)
                self._dispatcher.submit(segment, session.container)
                if not session.active:
                    break
                if await session.wait_stopped(self._segment_gap):
                    break
        except Exception as e:
            logger.error("Error recording segment: %s", e)
            if self._session is session:
                self._fail(str(e) or "Failed to record segment")
            else:
                session.end()

    async def _record_segment(self, session: CaptureSession) -> Segment:
        segment = Segment(index=self._next_segment_index, mime_type=session.container.mime_type)
        self._next_segment_index += 1
        session.segment_count += 1

        encoder = self._backend.create_encoder(session.stream, session.container.mime_type)
        session.encoder = encoder
        encoder.start()
        deadline = asyncio.get_running_loop().call_later(
            self._segment_duration, _close_encoder, encoder,
        )
        logger.debug("Segment %d recording", segment.index)
        try:
            async for chunk in encoder:
                segment.append(chunk)
        finally:
            deadline.cancel()
            if session.encoder is encoder:
                session.encoder = None

        segment.close()
        logger.debug("Segment %d closed with %d bytes", segment.index, segment.size)
        return segment

    def _report_segment_error(self, message: str) -> None:
        self.error = message

    def _fail(self, message: str) -> None:
        self.error = message
        session = self._session
        self._session = None
        if session is not None:
            session.end()
        self.state = RecorderState.IDLE
