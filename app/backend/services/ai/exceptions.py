"""
Exceptions raised by the extraction and transcription modules.
"""


class AIServiceError(Exception):
    """Raised when the LLM call fails or its reply cannot be used."""

    pass
