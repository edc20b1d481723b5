"""
Custom exceptions for the call relay.

These exceptions are intentionally simple and descriptive.
They are used across:

  - core/api/        (upstream adapters)
  - runtime/agents/  (conversation relay)
  - runtime/api/     (HTTP error mapping)

Placing them at the project root (exceptions/) avoids circular imports and
keeps exception types consistent across modules. Each class carries the HTTP
status the API layer answers with.
"""

from typing import List, Optional


class CallRelayError(Exception):
    """Base class for every error the HTTP layer knows how to render.

    ``set_cookies`` holds Set-Cookie values issued while handling the failed
    request (a first-contact session cookie); the error envelope repeats them.
    """

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        self.set_cookies: List[str] = []
        super().__init__(message)


class InvalidCharacter(CallRelayError):
    """
    Raised when a character id is not present in the registry.
    """

    status_code = 400

    def __init__(self, character_id: Optional[str] = None):
        self.character_id = character_id
        super().__init__("Invalid character")


class NoCharacterSelected(CallRelayError):
    """
    Raised when a message is sent before any character has been selected.
    """

    status_code = 400

    def __init__(self):
        super().__init__("No character selected")


class EmptyMessage(CallRelayError):
    """
    Raised when the required text (or audio) payload is blank.
    """

    status_code = 400

    def __init__(self, message: str = "Message is required"):
        super().__init__(message)


class UpstreamError(CallRelayError):
    """
    Raised when an upstream AI service fails or answers with nothing usable.

    ``status`` is the upstream HTTP status (None for transport failures) and
    ``body`` the raw upstream error text, so the caller can diagnose without
    access to server logs.

    Example:
        UpstreamError("Claude API", status=529, body='{"type":"overloaded_error"}')
        -> "Claude API HTTP 529: {"type":"overloaded_error"}"
    """

    status_code = 502

    def __init__(self, service: str, status: Optional[int] = None, body: Optional[str] = None, detail: Optional[str] = None):
        self.service = service
        self.status = status
        self.body = body
        if detail is not None:
            msg = f"{service} {detail}"
        elif status is not None:
            msg = f"{service} HTTP {status}: {body or 'Request failed'}"
        else:
            msg = f"{service} request failed: {body or 'no response'}"
        super().__init__(msg)


class MissingCredential(CallRelayError):
    """
    Raised when an operator forgot to configure an API key.

    The message names the environment variable, never a value.
    """

    status_code = 500

    def __init__(self, env_var: str):
        self.env_var = env_var
        super().__init__(
            f"Missing {env_var}. Add it to your environment or .env file, "
            "then restart the server."
        )


class DegradedFeature(CallRelayError):
    """
    Raised by optional features (speech synthesis) when they fail.

    The relay catches it and reports the feature's output as absent; it
    never reaches the HTTP client as a failed request.
    """

    def __init__(self, feature: str, reason: str):
        self.feature = feature
        self.reason = reason
        super().__init__(f"{feature} unavailable: {reason}")
