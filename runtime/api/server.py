"""
FastAPI application entry point for the call relay.

Responsibilities:
- create the FastAPI app (CORS, optional signed sessions, error envelope)
- construct shared singletons (SessionStore, upstream clients, CallAgent)
- include call-related routes under /api

Run locally with:

    uvicorn runtime.api.server:app --port 3005
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from configs.settings import Settings, settings as default_settings
from core.api.chat_client import ChatClient
from core.api.speech_client import SpeechClient
from core.api.transcription_client import TranscriptionClient
from exceptions.exceptions import CallRelayError
from runtime.agents.call_agent import CallAgent
from runtime.logging_setup import configure_logging
from runtime.store.log_store import LogStore
from runtime.store.session_store import SessionStore
from .session_binding import binding_for
from . import call_routes


logger = logging.getLogger(__name__)

# Any local dev server (vite, CRA, ...) may call the API with credentials.
LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CallRelayError)
    async def _call_relay_error(request: Request, exc: CallRelayError) -> JSONResponse:
        resp = JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message},
        )
        for cookie in exc.set_cookies:
            resp.headers.append("set-cookie", cookie)
        return resp

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request"},
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("[API] Unexpected error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc) or "Server error"},
        )


def create_app(
    settings: Optional[Settings] = None,
    *,
    chat_client: Optional[ChatClient] = None,
    speech_client: Optional[SpeechClient] = None,
    transcription_client: Optional[TranscriptionClient] = None,
    session_store: Optional[SessionStore] = None,
) -> FastAPI:
    """Build the app; any collaborator can be injected (tests do)."""
    settings = settings or default_settings
    configure_logging(settings.log_level)
    logger.info("[API] env loaded: %s", settings.credential_summary())

    # ---------------------------------------------------------------------------
    # Shared singletons
    # ---------------------------------------------------------------------------

    # Session storage: bounded in-memory map, nothing survives a restart.
    session_store = session_store or SessionStore(
        max_entries=settings.session_max_entries,
        ttl_seconds=settings.session_ttl_seconds,
    )

    chat_client = chat_client or ChatClient.from_settings(settings)
    speech_client = speech_client or SpeechClient.from_settings(settings)
    transcription_client = transcription_client or TranscriptionClient.from_settings(settings)

    # Main relay used by the /api routes.
    call_agent = CallAgent(
        session_store=session_store,
        chat_client=chat_client,
        speech_client=speech_client,
        log_store=LogStore(),
    )

    # ---------------------------------------------------------------------------
    # FastAPI app + route registration
    # ---------------------------------------------------------------------------

    app = FastAPI(title="Persona Call Relay")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin] if settings.cors_origin else [],
        allow_origin_regex=LOCAL_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.session_backend == "signed":
        app.add_middleware(
            SessionMiddleware,
            secret_key=settings.session_secret,
            same_site="lax",
            https_only=False,
        )

    _register_error_handlers(app)

    # Initialize the router module with our shared objects, then include it.
    call_routes.init_routes(
        session_store=session_store,
        call_agent=call_agent,
        transcription_client=transcription_client,
        session_binding=binding_for(settings.session_backend),
    )
    app.include_router(call_routes.router, prefix="/api")

    logger.info(
        "[API] ready on port %s (sessions=%s)",
        settings.port,
        settings.session_backend,
    )
    return app


app = create_app()
