"""
AI service package for structured invoice extraction.

This package provides:
- extraction: Schema-driven structured extraction from document text
- transcription: Vision transcription of scanned pages

The AIService class wires these to a lazily created OpenAI client and
falls back to mock data when no API key is configured.
"""

import logging
from typing import Any

from PIL import Image

from ...config import get_settings
from ...models import ApiSchema
from ..schema_service import item_field_names, root_field_names
from .exceptions import AIServiceError
from .extraction import extract_structured_data as _extract_structured_data
from .extraction import normalize_extraction
from .transcription import transcribe_images as _transcribe_images

logger = logging.getLogger(__name__)

__all__ = [
    "AIService",
    "AIServiceError",
    "extract_structured_data",
    "get_ai_service",
    "normalize_extraction",
    "transcribe_images",
]

MOCK_ITEM_COUNT = 2


class AIService:
    """
    Service for AI-powered invoice extraction.

    Uses OpenAI structured outputs to extract the fields of a user-defined
    schema from document text, and a vision model to transcribe scanned pages.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        use_mock: bool = False,
    ):
        """
        Initialize the AI service.

        Args:
            api_key: OpenAI API key. If None, reads from config/environment.
            model: OpenAI model to use. If None, reads from config.
            use_mock: If True, return mock data instead of calling OpenAI.
        """
        if api_key is None or model is None:
            settings = get_settings()
            if api_key is None:
                api_key = settings.openai_api_key
            if model is None:
                model = settings.openai_model

        self.api_key = api_key
        self.model = model
        self.use_mock = use_mock or not self.api_key
        self._client = None

        if self.use_mock:
            logger.warning(
                "AI Service running in MOCK MODE. Set OPENAI_API_KEY in .env for real extraction."
            )

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AIServiceError(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key)
        return self._client

    async def extract_structured_data(self, text: str, schema: ApiSchema) -> dict[str, Any]:
        """
        Extract the schema's fields from document text.

        Args:
            text: Full document text.
            schema: Root/items schema to extract.

        Returns:
            Document with the declared root fields and an ``items`` list.
        """
        return await _extract_structured_data(
            text,
            schema,
            client=None if self.use_mock else self.client,
            model=self.model,
            use_mock=self.use_mock,
            get_mock_extraction=self._get_mock_extraction if self.use_mock else None,
        )

    async def transcribe_images(self, images: list[Image.Image] | Image.Image) -> str:
        """
        Transcribe scanned page images to text.

        Args:
            images: Single PIL Image or list of PIL Images, one per page.

        Returns:
            Markdown transcription of the pages.
        """
        return await _transcribe_images(
            images,
            client=None if self.use_mock else self.client,
            model=self.model,
            use_mock=self.use_mock,
            get_mock_transcription=self._get_mock_transcription if self.use_mock else None,
        )

    def _get_mock_extraction(self, schema: ApiSchema) -> dict[str, Any]:
        """Return mock extraction data for development."""
        mock_data: dict[str, Any] = {
            name: f"MOCK-{name.upper()}" for name in root_field_names(schema)
        }
        item_fields = item_field_names(schema)
        mock_data["items"] = (
            [
                {name: f"MOCK-{name.upper()}-{index}" for name in item_fields}
                for index in range(1, MOCK_ITEM_COUNT + 1)
            ]
            if item_fields
            else []
        )
        return mock_data

    def _get_mock_transcription(self, page_count: int) -> str:
        """Return mock transcription text for development."""
        return "\n\n".join(
            f"MOCK TRANSCRIPTION - page {page}" for page in range(1, page_count + 1)
        )


# =============================================================================
# Singleton Factory
# =============================================================================

_ai_service: AIService | None = None


def get_ai_service() -> AIService:
    """Get or create the AI service singleton."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service


# Re-export module functions for convenience
extract_structured_data = _extract_structured_data
transcribe_images = _transcribe_images
