"""Login, callback and session endpoints.

Login is passwordless: ``POST /auth/login`` issues a single-use code and the
link to ``/auth/callback`` exchanges it for a session cookie.
"""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from journal.config import AUTH_EXPOSE_LOGIN_LINKS, ENVIRONMENT, SESSION_COOKIE_NAME, SITE_URL
from journal.database import get_db
from journal.models.user import LoginRequest, LoginResponse, User
from journal.services import auth

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

LOGIN_PAGE = """<!doctype html>
<html><head><title>Sign in</title></head>
<body>
  <h1>Sign in to your journal</h1>
  <form id="login">
    <input type="email" name="email" placeholder="you@example.com" required>
    <button type="submit">Send sign-in link</button>
  </form>
  <p id="status"></p>
  <script>
    document.getElementById("login").addEventListener("submit", async (e) => {
      e.preventDefault();
      const email = new FormData(e.target).get("email");
      const resp = await fetch("/auth/login", {
        method: "POST",
        headers: {"Content-Type": "application/json"},
        body: JSON.stringify({email}),
      });
      document.getElementById("status").textContent =
        resp.ok ? "Check your inbox for a sign-in link." : "Could not send a sign-in link.";
    });
  </script>
</body></html>
"""

AUTH_CODE_ERROR_PAGE = """<!doctype html>
<html><head><title>Sign-in failed</title></head>
<body>
  <h1>Sign-in link invalid</h1>
  <p>The link has expired or was already used. <a href="/auth/login">Request a new one.</a></p>
</body></html>
"""


def site_origin(request: Request) -> str:
    """Public origin for links and redirects.

    SITE_URL wins. Otherwise, outside development, the proxy's
    x-forwarded-host/x-forwarded-proto are trusted over the request URL.
    """
    if SITE_URL:
        url = SITE_URL if SITE_URL.startswith("http") else f"https://{SITE_URL}"
        return url.rstrip("/")

    forwarded_host = request.headers.get("x-forwarded-host")
    if ENVIRONMENT != "development" and forwarded_host:
        forwarded_proto = request.headers.get("x-forwarded-proto") or "https"
        return f"{forwarded_proto}://{forwarded_host}"
    return f"{request.url.scheme}://{request.url.netloc}"


@router.get("/login", response_class=HTMLResponse)
async def login_page():
    return LOGIN_PAGE


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request):
    """Issue a sign-in link for ``body.email``, creating the user on first login."""
    db = await get_db()
    user = await auth.get_or_create_user(db, body.email)
    code = await auth.issue_login_code(db, user)
    callback_url = f"{site_origin(request)}/auth/callback?{urlencode({'code': code})}"
    # No mail transport here; the link is logged for delivery by the operator.
    logger.info("Sign-in link for user %s: %s", user.id, callback_url)

    if AUTH_EXPOSE_LOGIN_LINKS:
        return LoginResponse(status="sent", callback_url=callback_url)
    return LoginResponse(status="sent")


@router.get("/callback")
async def callback(request: Request, code: str | None = None, next: str = "/"):
    origin = site_origin(request)

    if code:
        db = await get_db()
        token = await auth.exchange_code_for_session(db, code)
        if token:
            redirect_path = next if next.startswith("/") else f"/{next}"
            response = RedirectResponse(f"{origin}{redirect_path}", status_code=303)
            response.set_cookie(
                SESSION_COOKIE_NAME,
                token,
                httponly=True,
                samesite="lax",
                secure=origin.startswith("https://"),
            )
            return response

    return RedirectResponse(f"{origin}/auth/auth-code-error", status_code=303)


@router.get("/auth-code-error", response_class=HTMLResponse)
async def auth_code_error():
    return AUTH_CODE_ERROR_PAGE


@router.post("/logout")
async def logout(request: Request):
    token = auth.session_token(request)
    if token:
        db = await get_db()
        await auth.revoke_session(db, token)
    response = RedirectResponse("/auth/login", status_code=303)
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


@router.get("/me", response_model=User)
async def me(user: User = Depends(auth.current_user)):
    return user
