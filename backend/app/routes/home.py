"""
Posts API Backend: Welcome Page and Google Sign-In
===================================================

What:  The two HTML pages and the OAuth2 authorization-code flow.
How:
    GET /         Welcome page with a "Sign in with Google" link.
    GET /auth     Generates a random state, stores it in a short-lived
                  cookie and redirects to Google's consent screen.
    GET /oauth    Google redirects here with ?code&state. The state must
                  match the cookie; the code is exchanged for an ID token,
                  the token is verified, the user record is created on first
                  sign-in, and the browser is sent to /profile with the token
                  in an HttpOnly cookie.
    GET /profile  Shows the JWT (to paste into API clients as a bearer token)
                  and the user's subject id.

Templates are rendered with Jinja2 from app/templates.
"""

import logging
import secrets
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from app.dependencies import (
    get_oauth_client,
    get_token_verifier,
    get_user_service,
)
from app.exceptions import AuthenticationError
from app.services.auth_service import TokenVerifier
from app.services.oauth_service import GoogleOAuthClient
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sign-in"], include_in_schema=False)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

STATE_COOKIE = "oauth_state"
TOKEN_COOKIE = "id_token"
# Google ID tokens live for one hour
TOKEN_COOKIE_MAX_AGE = 3600
STATE_COOKIE_MAX_AGE = 600


@router.get("/", response_class=HTMLResponse)
async def welcome(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "index.html", {"auth_url": request.url_for("start_sign_in")})


@router.get("/auth")
async def start_sign_in(
    request: Request,
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
) -> RedirectResponse:
    state = secrets.token_urlsafe(32)
    response = RedirectResponse(oauth.authorization_url(state), status_code=302)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=request.url.scheme == "https",
        samesite="lax",
    )
    return response


@router.get("/oauth")
async def finish_sign_in(
    request: Request,
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    oauth_state: Optional[str] = Cookie(default=None),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
    verifier: TokenVerifier = Depends(get_token_verifier),
    users: UserService = Depends(get_user_service),
) -> RedirectResponse:
    if error:
        raise AuthenticationError("consent denied", context={"error": error})
    if not code:
        raise AuthenticationError("missing authorization code")
    if not state or not oauth_state or not secrets.compare_digest(state, oauth_state):
        raise AuthenticationError("state mismatch")

    id_token = await oauth.exchange_code(code)
    claims = await verifier.verify(id_token)
    user, created = await users.ensure_user(claims)
    logger.info("User %s signed in (first sign-in: %s)", user.id, created)

    response = RedirectResponse(request.url_for("profile"), status_code=302)
    response.delete_cookie(STATE_COOKIE)
    response.set_cookie(
        TOKEN_COOKIE,
        id_token,
        max_age=TOKEN_COOKIE_MAX_AGE,
        httponly=True,
        secure=request.url.scheme == "https",
        samesite="lax",
    )
    return response


@router.get("/profile", response_class=HTMLResponse)
async def profile(
    request: Request,
    id_token: Optional[str] = Cookie(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
    users: UserService = Depends(get_user_service),
):
    if not id_token:
        return RedirectResponse(request.url_for("welcome"), status_code=302)

    claims = await verifier.verify(id_token)
    user = await users.find_by_subject(claims["sub"])
    return templates.TemplateResponse(
        request,
        "profile.html",
        {"jwt": id_token, "subject": claims["sub"], "user": user},
    )
