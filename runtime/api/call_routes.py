"""HTTP routes for the call relay.

Exposes endpoints like:

- POST /api/select_character   -> pick a persona, get its opening line
- POST /api/send_message       -> one caller message in, one persona reply out
- POST /api/reset_conversation -> hang up and forget the conversation
- POST /api/transcribe         -> base64 audio in, text out
- GET  /api/characters         -> public roster
- GET  /api/health             -> liveness probe

Errors raised by the relay (CallRelayError subclasses) are rendered by the
exception handlers registered in runtime/api/server.py as
``{"success": false, "error": ...}`` with the matching status code.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, Response
from typing import Optional

from core.api.transcription_client import TranscriptionClient
from core.characters.registry import list_characters
from exceptions.exceptions import CallRelayError, EmptyMessage
from ..agents.call_agent import CallAgent
from ..models.api_models import (
    CharactersResponse,
    SelectCharacterRequest,
    SelectCharacterResponse,
    SendMessageRequest,
    SendMessageResponse,
    SuccessResponse,
    TranscribeRequest,
    TranscribeResponse,
)
from ..models.session_models import Session
from ..store.session_store import SessionStore


logger = logging.getLogger(__name__)

# Router for all call-related endpoints
router = APIRouter()


# Module-level references, to be initialized by the server.
_SESSION_STORE: Optional[SessionStore] = None
_CALL_AGENT: Optional[CallAgent] = None
_TRANSCRIPTION_CLIENT: Optional[TranscriptionClient] = None
_SESSION_BINDING = None


def init_routes(
    session_store: SessionStore,
    call_agent: CallAgent,
    transcription_client: TranscriptionClient,
    session_binding,
) -> None:
    """Initialize module-level references used by the route handlers."""
    global _SESSION_STORE, _CALL_AGENT, _TRANSCRIPTION_CLIENT, _SESSION_BINDING
    _SESSION_STORE = session_store
    _CALL_AGENT = call_agent
    _TRANSCRIPTION_CLIENT = transcription_client
    _SESSION_BINDING = session_binding


def _require_call_agent() -> CallAgent:
    if _CALL_AGENT is None:
        raise HTTPException(
            status_code=500,
            detail="CallAgent is not configured on the server.",
        )
    return _CALL_AGENT


def _require_transcription_client() -> TranscriptionClient:
    if _TRANSCRIPTION_CLIENT is None:
        raise HTTPException(
            status_code=500,
            detail="TranscriptionClient is not configured on the server.",
        )
    return _TRANSCRIPTION_CLIENT


def _current_session(request: Request, response: Response) -> Session:
    """Resolve (or create) the caller's Session from the request cookies."""
    if _SESSION_STORE is None or _SESSION_BINDING is None:
        raise HTTPException(
            status_code=500,
            detail="SessionStore is not configured on the server.",
        )
    token = _SESSION_BINDING.token_for(request, response)
    return _SESSION_STORE.get_or_create(token)


def _keep_session_cookie(error: CallRelayError, response: Response) -> None:
    """Hand a freshly issued session cookie to the error response."""
    error.set_cookies = response.headers.getlist("set-cookie")


async def _select(character_id: Optional[str], request: Request, response: Response) -> SelectCharacterResponse:
    agent = _require_call_agent()
    character_id = (character_id or "").strip()
    try:
        session = _current_session(request, response)
        result = await agent.select(session, character_id)
    except CallRelayError as e:
        logger.warning(
            "[CALL] select_character failed character=%r status=%s reason=%r",
            character_id,
            e.status_code,
            e.message,
        )
        _keep_session_cookie(e, response)
        raise

    return SelectCharacterResponse(
        character=result.character.public(),
        initial_message=result.initial_message,
        initial_audio=result.initial_audio,
    )


# --------------------------------------------------------
# Call lifecycle
# --------------------------------------------------------

@router.post("/select_character", response_model=SelectCharacterResponse)
async def select_character(
    request: Request,
    response: Response,
    body: Optional[SelectCharacterRequest] = None,
) -> SelectCharacterResponse:
    """Select a persona, clear the conversation and fetch its greeting.

    The greeting and its audio are best effort: either may be null while
    the selection itself still succeeds.
    """
    return await _select(body.character if body else None, request, response)


@router.get("/select_character", response_model=SelectCharacterResponse)
async def select_character_query(
    request: Request,
    response: Response,
    character: Optional[str] = None,
    id: Optional[str] = None,
) -> SelectCharacterResponse:
    """Query-string flavour of select_character (``?character=`` or ``?id=``)."""
    return await _select(character or id, request, response)


@router.post("/send_message", response_model=SendMessageResponse)
async def send_message(
    request: Request,
    response: Response,
    body: Optional[SendMessageRequest] = None,
) -> SendMessageResponse:
    """Relay one caller message to the selected persona.

    Logs the failing status and reason whenever the relay raises, which is
    the quickest way to correlate a client-side 4xx/5xx with its cause.
    """
    agent = _require_call_agent()
    body = body or SendMessageRequest()
    try:
        session = _current_session(request, response)
        result = await agent.send(session, body.message, fallback_character=body.character)
    except CallRelayError as e:
        logger.warning(
            "[CALL] send_message failed character=%r status=%s reason=%r",
            body.character,
            e.status_code,
            e.message,
        )
        _keep_session_cookie(e, response)
        raise

    return SendMessageResponse(
        response=result.response,
        end_call=result.end_call,
        audio=result.audio,
    )


@router.post("/reset_conversation", response_model=SuccessResponse)
async def reset_conversation(request: Request, response: Response) -> SuccessResponse:
    agent = _require_call_agent()
    session = _current_session(request, response)
    await agent.reset(session)
    return SuccessResponse()


# --------------------------------------------------------
# Speech-to-text
# --------------------------------------------------------

@router.post("/transcribe", response_model=TranscribeResponse)
async def transcribe(body: Optional[TranscribeRequest] = None) -> TranscribeResponse:
    """Transcribe a base64 audio clip recorded in the browser."""
    client = _require_transcription_client()
    body = body or TranscribeRequest()
    try:
        client.require_credentials()
        audio = (body.audio or "").strip()
        if not audio:
            raise EmptyMessage("Missing audio")
        text = await client.transcribe(audio, mime_type=body.mime_type, lang=body.lang)
    except CallRelayError as e:
        logger.warning("[STT] transcribe failed status=%s reason=%r", e.status_code, e.message)
        raise

    return TranscribeResponse(text=text)


# --------------------------------------------------------
# Roster + health
# --------------------------------------------------------

@router.get("/characters", response_model=CharactersResponse)
def characters() -> CharactersResponse:
    return CharactersResponse(characters=[c.public() for c in list_characters()])


@router.get("/health")
def health_check():
    """
    Simple health check endpoint for uptime monitoring.
    """
    return {"ok": True}
