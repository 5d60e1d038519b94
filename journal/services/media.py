"""Ports for the platform media boundary and container negotiation.

A host (browser bridge, desktop audio backend, test fake) implements
``MediaBackend``; the recorder only ever talks to these protocols.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Protocol

from journal.models.capture import AudioUpload, ContainerFormat

# First supported entry wins.
CONTAINER_PREFERENCES = (
    "audio/webm",
    "audio/webm;codecs=opus",
    "audio/ogg;codecs=opus",
    "audio/mp4",
)

UNSUPPORTED_CONTAINER_MESSAGE = "Audio recording not supported on this platform"


class CaptureError(Exception):
    """Base class for capture failures raised by a media backend."""


class PermissionDeniedError(CaptureError):
    """The user (or platform policy) refused microphone access."""


class UnsupportedContainerError(CaptureError):
    def __init__(self, message: str = UNSUPPORTED_CONTAINER_MESSAGE) -> None:
        super().__init__(message)


@dataclass(frozen=True)
class AudioConstraints:
    echo_cancellation: bool = False
    noise_suppression: bool = False
    auto_gain_control: bool = False


# Permission probes ask for plain audio; recording sessions ask for the cleaned-up stream.
PERMISSION_CONSTRAINTS = AudioConstraints()
RECORDING_CONSTRAINTS = AudioConstraints(
    echo_cancellation=True,
    noise_suppression=True,
    auto_gain_control=True,
)


class MediaTrack(Protocol):
    def stop(self) -> None:
        ...


class MediaStream(Protocol):
    def get_tracks(self) -> list[MediaTrack]:
        ...


class AudioEncoder(Protocol):
    """One encoding session over a stream.

    ``state`` is ``"inactive"`` before ``start()`` and after ``stop()``.
    Iterating yields encoded chunks in arrival order and ends once the
    encoder has stopped and flushed its last chunk.
    """

    state: str

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def __aiter__(self) -> AsyncIterator[bytes]:
        ...


class MediaBackend(Protocol):
    async def get_user_media(self, constraints: AudioConstraints) -> MediaStream:
        ...

    def is_type_supported(self, mime_type: str) -> bool:
        ...

    def create_encoder(self, stream: MediaStream, mime_type: str) -> AudioEncoder:
        ...


class Transcriber(Protocol):
    async def transcribe(self, upload: AudioUpload) -> str:
        ...


def container_for(mime_type: str) -> ContainerFormat:
    """Map a recorder MIME type onto the upload name/type pairing."""
    lowered = mime_type.lower()
    if "ogg" in lowered:
        return ContainerFormat(mime_type, "ogg", "audio/ogg")
    if "mp4" in lowered:
        return ContainerFormat(mime_type, "m4a", "audio/m4a")
    return ContainerFormat(mime_type, "webm", "audio/webm")


def negotiate_container(
    is_supported: Callable[[str], bool],
    preferences: tuple[str, ...] = CONTAINER_PREFERENCES,
) -> ContainerFormat:
    for mime_type in preferences:
        if is_supported(mime_type):
            return container_for(mime_type)
    raise UnsupportedContainerError()


def release_stream(stream: MediaStream | None) -> None:
    if stream is None:
        return
    for track in stream.get_tracks():
        track.stop()
