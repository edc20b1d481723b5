"""
Session token transport for the HTTP layer.

Two interchangeable ways of telling which Session a request belongs to:

- CookieSessionBinding: a raw ``session_id`` cookie issued on first contact
  (``HttpOnly; SameSite=Lax; Path=/``).
- SignedSessionBinding: the token lives inside Starlette's signed
  ``SessionMiddleware`` cookie, keyed by SESSION_SECRET.

Either way the token is only an index into the shared SessionStore; the
conversation itself never travels to the client.
"""

import logging
from uuid import uuid4

from fastapi import Request, Response


logger = logging.getLogger(__name__)

SESSION_COOKIE = "session_id"


def new_session_token() -> str:
    return str(uuid4())


class CookieSessionBinding:
    """Session token carried in a plain HttpOnly cookie."""

    name = "cookie"

    def token_for(self, request: Request, response: Response) -> str:
        token = request.cookies.get(SESSION_COOKIE)
        if not token:
            token = new_session_token()
            response.set_cookie(
                SESSION_COOKIE,
                token,
                path="/",
                httponly=True,
                samesite="lax",
            )
            logger.debug("[SESSION] issued new session cookie")
        return token


class SignedSessionBinding:
    """Session token carried inside the framework's signed session cookie.

    Requires ``starlette.middleware.sessions.SessionMiddleware`` to be
    installed on the app (see runtime/api/server.py).
    """

    name = "signed"

    def token_for(self, request: Request, response: Response) -> str:
        token = request.session.get(SESSION_COOKIE)
        if not token:
            token = new_session_token()
            request.session[SESSION_COOKIE] = token
            logger.debug("[SESSION] issued new signed session")
        return token


def binding_for(backend: str):
    if backend == "signed":
        return SignedSessionBinding()
    return CookieSessionBinding()
