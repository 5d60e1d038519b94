import asyncio
import os

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

# In-memory DB and no upstream credentials for tests
os.environ["OPENAI_API_KEY"] = ""
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["DATABASE_URL"] = ""
os.environ["SITE_URL"] = ""
os.environ["AUTH_EXPOSE_LOGIN_LINKS"] = "true"

from journal.database import close_db, init_db
from journal.main import app
from journal.services.media import PermissionDeniedError


@pytest_asyncio.fixture
async def db():
    """Provide a fresh in-memory database for each test."""
    import journal.database as db_mod

    if db_mod._db is not None:
        await db_mod._db.close()
    db_mod._db = None

    # Override module-level config directly (avoids fragile importlib.reload)
    db_mod.DATABASE_PATH = ":memory:"
    db_mod.DATABASE_URL = ""

    await init_db()
    database = await db_mod.get_db()
    yield database
    await close_db()


@pytest.fixture
def client(db):
    """Provide a synchronous TestClient for HTTP endpoint tests."""
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(db):
    """Provide an async httpx client for async HTTP tests."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def auth_client(async_client):
    """An async client carrying a session cookie for alice@example.com."""
    resp = await async_client.post("/auth/login", json={"email": "alice@example.com"})
    callback_url = resp.json()["callback_url"]
    callback = await async_client.get(callback_url)
    assert callback.status_code == 303
    yield async_client


# --- Fake media boundary for the voice pipeline ---


class FakeTrack:
    def __init__(self) -> None:
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeStream:
    def __init__(self, constraints) -> None:
        self.constraints = constraints
        self.tracks = [FakeTrack()]

    def get_tracks(self):
        return list(self.tracks)


class FakeEncoder:
    """Emits its scripted chunks as soon as it starts, then waits to be stopped."""

    def __init__(self, stream, mime_type, chunks) -> None:
        self.stream = stream
        self.mime_type = mime_type
        self.chunks = list(chunks)
        self.state = "inactive"
        self._queue: asyncio.Queue = asyncio.Queue()

    def start(self) -> None:
        self.state = "recording"
        for chunk in self.chunks:
            self._queue.put_nowait(chunk)

    def stop(self) -> None:
        if self.state == "inactive":
            return
        self.state = "inactive"
        self._queue.put_nowait(None)

    async def __aiter__(self):
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            yield chunk


def marker_chunks(index: int) -> list[bytes]:
    """Two 600-byte chunks filled with a byte identifying the segment (1-based)."""
    marker = bytes([index + 1])
    return [marker * 600, marker * 600]


class FakeMediaBackend:
    def __init__(self, supported=("audio/webm",), segment_chunks=marker_chunks) -> None:
        self.supported = set(supported)
        self.segment_chunks = segment_chunks
        self.deny = False
        self.fail_with: Exception | None = None
        self.fail_encoder_after: int | None = None
        # While set, get_user_media waits for the event before opening a stream.
        self.hold: asyncio.Event | None = None
        self.waiting = 0
        self.streams: list[FakeStream] = []
        self.encoders: list[FakeEncoder] = []

    async def get_user_media(self, constraints):
        if self.deny:
            raise PermissionDeniedError("Permission denied")
        if self.hold is not None:
            self.waiting += 1
            try:
                await self.hold.wait()
            finally:
                self.waiting -= 1
        if self.fail_with is not None:
            raise self.fail_with
        stream = FakeStream(constraints)
        self.streams.append(stream)
        return stream

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in self.supported

    def create_encoder(self, stream, mime_type):
        if self.fail_encoder_after is not None and len(self.encoders) >= self.fail_encoder_after:
            raise RuntimeError("encoder unavailable")
        encoder = FakeEncoder(stream, mime_type, self.segment_chunks(len(self.encoders)))
        self.encoders.append(encoder)
        return encoder

    @property
    def open_tracks(self) -> int:
        return sum(1 for stream in self.streams for track in stream.tracks if not track.stopped)


class FakeTranscriber:
    """Returns "segment N" for the segment whose marker byte is N.

    ``gates[N]`` holds a call until the event is set; ``results[N]`` overrides
    the text or, if it is an exception, raises it.
    """

    def __init__(self) -> None:
        self.uploads = []
        self.gates: dict[int, asyncio.Event] = {}
        self.results: dict[int, object] = {}

    async def transcribe(self, upload):
        self.uploads.append(upload)
        marker = upload.data[0]
        gate = self.gates.get(marker)
        if gate is not None:
            await gate.wait()
        result = self.results.get(marker, f"segment {marker}")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def media_backend():
    return FakeMediaBackend()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def wait_until():
    async def _wait_until(predicate, timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait_until


@pytest.fixture
def backend_factory():
    """Build a FakeMediaBackend with custom container support or chunk scripts."""
    return FakeMediaBackend
