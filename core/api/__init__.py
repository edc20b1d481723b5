"""Upstream HTTP adapters (chat completion, speech, transcription)."""
