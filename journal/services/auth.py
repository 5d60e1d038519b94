"""Passwordless e-mail login: single-use codes exchanged for session tokens."""

import logging
import secrets
import uuid
from datetime import UTC, datetime, timedelta

from fastapi import HTTPException, Request

from journal.config import LOGIN_CODE_TTL_SECONDS, SESSION_COOKIE_NAME
from journal.database import DatabaseAdapter, get_db
from journal.models.user import User

logger = logging.getLogger(__name__)


async def get_or_create_user(db: DatabaseAdapter, email: str) -> User:
    row = await db.fetch_one("SELECT id, email, created_at FROM users WHERE email = ?", (email,))
    if row:
        return User(id=row["id"], email=row["email"], created_at=row["created_at"])

    user = User(id=str(uuid.uuid4()), email=email, created_at=datetime.now(UTC).isoformat())
    await db.execute(
        "INSERT INTO users (id, email, created_at) VALUES (?, ?, ?)",
        (user.id, user.email, user.created_at),
    )
    await db.commit()
    logger.info("Created user %s", user.id)
    return user


async def issue_login_code(db: DatabaseAdapter, user: User) -> str:
    code = secrets.token_urlsafe(24)
    expires_at = datetime.now(UTC) + timedelta(seconds=LOGIN_CODE_TTL_SECONDS)
    await db.execute(
        "INSERT INTO login_codes (code, user_id, expires_at) VALUES (?, ?, ?)",
        (code, user.id, expires_at.isoformat()),
    )
    await db.commit()
    return code


async def exchange_code_for_session(db: DatabaseAdapter, code: str) -> str | None:
    """Consume a login code. Returns a new session token, or None if the code is unusable."""
    row = await db.fetch_one(
        "SELECT user_id, expires_at, used FROM login_codes WHERE code = ?",
        (code,),
    )
    if not row:
        logger.warning("Unknown login code")
        return None
    if row["used"]:
        logger.warning("Login code already used")
        return None
    if datetime.fromisoformat(row["expires_at"]) < datetime.now(UTC):
        logger.warning("Login code expired")
        return None

    # A concurrent exchange of the same code changes no rows here.
    claimed = await db.execute("UPDATE login_codes SET used = 1 WHERE code = ? AND used = 0", (code,))
    if not claimed:
        logger.warning("Login code already used")
        return None
    token = secrets.token_urlsafe(32)
    await db.execute(
        "INSERT INTO sessions (token, user_id, created_at) VALUES (?, ?, ?)",
        (token, row["user_id"], datetime.now(UTC).isoformat()),
    )
    await db.commit()
    return token


async def get_session_user(db: DatabaseAdapter, token: str) -> User | None:
    row = await db.fetch_one(
        "SELECT u.id, u.email, u.created_at FROM sessions s"
        " JOIN users u ON u.id = s.user_id WHERE s.token = ?",
        (token,),
    )
    if not row:
        return None
    return User(id=row["id"], email=row["email"], created_at=row["created_at"])


async def revoke_session(db: DatabaseAdapter, token: str) -> None:
    await db.execute("DELETE FROM sessions WHERE token = ?", (token,))
    await db.commit()


def session_token(request: Request) -> str | None:
    """Session token from the cookie, or from an ``Authorization: Bearer`` header."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def optional_user(request: Request) -> User | None:
    token = session_token(request)
    if not token:
        return None
    db = await get_db()
    return await get_session_user(db, token)


async def current_user(request: Request) -> User:
    """FastAPI dependency: the authenticated user, or 401."""
    user = await optional_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return user
