"""Transcript sinks: the document being composed and an optional ordering stage."""

import asyncio
import logging

from journal.models.capture import TranscriptAppend
from journal.services.segments import TranscriptSink

logger = logging.getLogger(__name__)


class ComposeBuffer:
    """Text of the entry being composed.

    Keystrokes and transcript appends both land here. Appends arrive in
    relay-completion order, so a slow early segment can land after a later
    one.
    """

    def __init__(self, text: str = "") -> None:
        self.text = text

    def insert(self, text: str) -> None:
        self.text += text

    def replace(self, text: str) -> None:
        self.text = text

    def clear(self) -> None:
        self.text = ""

    def append_transcript(self, item: TranscriptAppend) -> None:
        self.text += item.render()

    def skip(self, segment_index: int) -> None:
        pass

    def content(self) -> str:
        """Text ready to be saved as an entry."""
        return self.text.strip()


class OrderedTranscriptBuffer:
    """Releases transcript appends to ``sink`` in segment order.

    Every segment index must eventually be either appended or skipped. If the
    next expected index is still missing ``grace_seconds`` after a later one
    arrived, the gap is abandoned and held text is released. Text for an
    abandoned index that turns up afterwards is passed straight through.
    """

    def __init__(self, sink: TranscriptSink, grace_seconds: float = 10.0, first_index: int = 0) -> None:
        self._sink = sink
        self._grace_seconds = grace_seconds
        self._next = first_index
        self._held: dict[int, TranscriptAppend | None] = {}
        self._timer: asyncio.TimerHandle | None = None

    @property
    def held(self) -> int:
        return sum(1 for item in self._held.values() if item is not None)

    def append_transcript(self, item: TranscriptAppend) -> None:
        if item.segment_index < self._next:
            self._sink.append_transcript(item)
            return
        self._held[item.segment_index] = item
        self._release()

    def skip(self, segment_index: int) -> None:
        if segment_index < self._next:
            return
        self._held[segment_index] = None
        self._release()

    def flush(self) -> None:
        """Release everything held, in order, regardless of gaps."""
        self._cancel_timer()
        for index in sorted(self._held):
            item = self._held.pop(index)
            self._next = index + 1
            if item is not None:
                self._sink.append_transcript(item)
            else:
                self._sink.skip(index)

    def _release(self) -> None:
        advanced = False
        while self._next in self._held:
            item = self._held.pop(self._next)
            self._next += 1
            advanced = True
            if item is not None:
                self._sink.append_transcript(item)
            else:
                self._sink.skip(self._next - 1)

        if advanced or not self._held:
            self._cancel_timer()
        if self._held and self._timer is None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self._grace_seconds, self._abandon_gap)

    def _abandon_gap(self) -> None:
        self._timer = None
        if not self._held:
            return
        logger.warning(
            "Segment %d still missing after %.1fs, releasing held transcript text",
            self._next, self._grace_seconds,
        )
        self._next = min(self._held)
        self._release()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
