"""
HTTP request/response models for the call relay API.

Request fields are optional on purpose: a missing character or message is
reported by the relay as a 400 with the usual error envelope rather than a
framework validation error.
"""

from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class SelectCharacterRequest(BaseModel):
    character: Optional[str] = None


class SendMessageRequest(BaseModel):
    message: Optional[str] = None
    character: Optional[str] = None


class TranscribeRequest(BaseModel):
    audio: Optional[str] = None
    mime_type: Optional[str] = None
    lang: Optional[str] = None


class SelectCharacterResponse(BaseModel):
    success: bool = True
    character: Dict[str, Any]
    initial_message: Optional[str] = None
    initial_audio: Optional[str] = None


class SendMessageResponse(BaseModel):
    """
    ``response`` never contains the end-of-call marker; ``end_call`` tells
    the client to hang up after playing the reply.
    """
    success: bool = True
    response: str
    end_call: bool = False
    audio: Optional[str] = None


class TranscribeResponse(BaseModel):
    success: bool = True
    text: str


class SuccessResponse(BaseModel):
    success: bool = True


class CharactersResponse(BaseModel):
    success: bool = True
    characters: List[Dict[str, Any]]
