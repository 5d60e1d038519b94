import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.responses import RedirectResponse

from journal.config import LOG_LEVEL
from journal.database import close_db, init_db
from journal.models.user import User
from journal.routers import auth, entries, transcribe
from journal.services.auth import optional_user

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Voice Journal...")
    await init_db()
    logger.info("Database initialized")
    yield
    await close_db()
    logger.info("Voice Journal shut down")


app = FastAPI(
    title="Voice Journal",
    description="Personal journal with segmented voice dictation",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(auth.router)
app.include_router(entries.router)
app.include_router(transcribe.router)


@app.get("/")
async def home(user: User | None = Depends(optional_user)):
    if user is None:
        return RedirectResponse("/auth/login", status_code=307)
    return {"user": user.email, "entries": "/api/entries"}
