"""
Core building blocks of the call relay that do not depend on the HTTP layer.

- api: upstream adapters (chat, model resolution, speech, transcription)
- characters: the static persona roster
"""
