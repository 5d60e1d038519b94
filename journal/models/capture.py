"""Value types shared by the voice capture pipeline and the transcription relay."""

from dataclasses import dataclass, field
from enum import Enum


class RecorderState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    RECORDING = "recording"
    STOPPING = "stopping"


@dataclass(frozen=True)
class ContainerFormat:
    """A recorder container negotiated once per capture session.

    ``mime_type`` is what the recorder is asked to produce; ``extension`` and
    ``upload_type`` describe how finished segments are named when uploaded.
    """

    mime_type: str
    extension: str
    upload_type: str


@dataclass(frozen=True)
class AudioUpload:
    data: bytes
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class Segment:
    """One bounded slice of a capture session.

    Chunks are append-only while the segment is open. ``blob`` only exists
    after ``close()`` has merged them.
    """

    index: int
    mime_type: str
    chunks: list[bytes] = field(default_factory=list)
    _blob: bytes | None = field(default=None, repr=False)

    @property
    def closed(self) -> bool:
        return self._blob is not None

    def append(self, chunk: bytes) -> None:
        if self.closed:
            raise RuntimeError(f"Segment {self.index} is closed")
        if chunk:
            self.chunks.append(chunk)

    def close(self) -> bytes:
        if self._blob is None:
            self._blob = b"".join(self.chunks)
        return self._blob

    @property
    def blob(self) -> bytes:
        if self._blob is None:
            raise RuntimeError(f"Segment {self.index} has not been closed")
        return self._blob

    @property
    def size(self) -> int:
        return len(self.blob)


@dataclass(frozen=True)
class TranscriptAppend:
    segment_index: int
    text: str
    separator: str = " "

    def render(self) -> str:
        return self.text + self.separator
