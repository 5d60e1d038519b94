"""Tests for capture value types and container negotiation."""

import pytest

from journal.models.capture import Segment, TranscriptAppend
from journal.services.media import (
    UNSUPPORTED_CONTAINER_MESSAGE,
    UnsupportedContainerError,
    container_for,
    negotiate_container,
)


class TestSegment:
    def test_blob_is_chunks_in_arrival_order(self):
        segment = Segment(index=0, mime_type="audio/webm")
        for chunk in (b"\x1a\x45", b"header", b"", b"frame-1", b"frame-2"):
            segment.append(chunk)
        assert segment.close() == b"\x1a\x45headerframe-1frame-2"
        assert segment.blob == b"".join(segment.chunks)
        assert segment.size == len(b"\x1a\x45headerframe-1frame-2")

    def test_empty_chunks_are_ignored(self):
        segment = Segment(index=3, mime_type="audio/webm")
        segment.append(b"")
        segment.append(b"a")
        assert segment.chunks == [b"a"]

    def test_blob_unavailable_before_close(self):
        segment = Segment(index=0, mime_type="audio/webm")
        segment.append(b"abc")
        assert segment.closed is False
        with pytest.raises(RuntimeError, match="not been closed"):
            _ = segment.blob

    def test_append_after_close_rejected(self):
        segment = Segment(index=1, mime_type="audio/webm")
        segment.close()
        with pytest.raises(RuntimeError, match="closed"):
            segment.append(b"late")

    def test_close_is_stable(self):
        segment = Segment(index=0, mime_type="audio/webm")
        segment.append(b"x")
        assert segment.close() is segment.close()


def test_transcript_append_render():
    assert TranscriptAppend(segment_index=2, text="hello there").render() == "hello there "


class TestContainers:
    def test_webm_preferred(self):
        container = negotiate_container(lambda mime: True)
        assert container.mime_type == "audio/webm"
        assert container.extension == "webm"
        assert container.upload_type == "audio/webm"

    def test_falls_through_to_opus_webm(self):
        container = negotiate_container(lambda mime: mime == "audio/webm;codecs=opus")
        assert container.mime_type == "audio/webm;codecs=opus"
        assert container.extension == "webm"

    def test_ogg(self):
        supported = {"audio/ogg;codecs=opus", "audio/mp4"}
        container = negotiate_container(supported.__contains__)
        assert container.mime_type == "audio/ogg;codecs=opus"
        assert (container.extension, container.upload_type) == ("ogg", "audio/ogg")

    def test_mp4_uploads_as_m4a(self):
        container = negotiate_container(lambda mime: mime == "audio/mp4")
        assert (container.extension, container.upload_type) == ("m4a", "audio/m4a")

    def test_nothing_supported(self):
        with pytest.raises(UnsupportedContainerError, match=UNSUPPORTED_CONTAINER_MESSAGE):
            negotiate_container(lambda mime: False)

    def test_unknown_type_defaults_to_webm(self):
        assert container_for("audio/x-custom").extension == "webm"
