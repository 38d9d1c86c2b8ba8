"""
Page transcription for scanned PDFs.

Documents without a text layer are rendered to images and transcribed to
markdown by a vision model, so they can go through the same text-based
extraction as digital PDFs.
"""

import base64
import io
import logging
from typing import Any, Callable

from PIL import Image

from .exceptions import AIServiceError

logger = logging.getLogger(__name__)

TRANSCRIPTION_SYSTEM_PROMPT = """You are a meticulous document transcriber.
Transcribe every page image you receive into markdown.

## Rules:
1. Reproduce all text exactly as printed, including numbers, currency symbols and dates.
2. Render tables as markdown tables, one row per printed row. Do not skip rows.
3. Keep headers and footers: they often hold company names, addresses and totals.
4. Do not summarize, correct, or add anything that is not on the page.
5. Separate pages with a blank line."""


def _image_to_base64(image: Image.Image) -> str:
    """Convert PIL Image to base64 string for API."""
    buffer = io.BytesIO()
    # Resize if too large (max 2048px on longest side for efficiency)
    max_size = 2048
    if max(image.size) > max_size:
        ratio = max_size / max(image.size)
        new_size = (int(image.size[0] * ratio), int(image.size[1] * ratio))
        image = image.resize(new_size, Image.Resampling.LANCZOS)

    image.save(buffer, format="PNG", optimize=True)
    buffer.seek(0)
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


async def transcribe_images(
    images: list[Image.Image] | Image.Image,
    client: Any,  # OpenAI client
    model: str = "gpt-4o-2024-08-06",
    use_mock: bool = False,
    get_mock_transcription: Callable[[int], str] | None = None,
) -> str:
    """
    Transcribe page images to markdown text.

    Args:
        images: Single PIL Image or list of PIL Images, one per page.
        client: OpenAI client instance.
        model: Model name to use (must support vision).
        use_mock: If True, return mock text instead of calling OpenAI.
        get_mock_transcription: Function producing mock text for a page count.

    Returns:
        The transcribed text.

    Raises:
        AIServiceError: If the call fails or returns no text.
    """
    # Normalize to list
    if isinstance(images, Image.Image):
        images = [images]

    if use_mock and get_mock_transcription:
        logger.info("Transcribing %d page(s) (MOCK MODE)", len(images))
        return get_mock_transcription(len(images))

    logger.info("Transcribing %d scanned page(s) with %s", len(images), model)

    content: list[dict[str, Any]] = [
        {
            "type": "text",
            "text": f"Transcribe these {len(images)} page(s) to markdown.",
        },
    ]
    for image in images:
        content.append({
            "type": "image_url",
            "image_url": {
                "url": f"data:image/png;base64,{_image_to_base64(image)}",
                "detail": "high",
            },
        })

    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": TRANSCRIPTION_SYSTEM_PROMPT},
                {"role": "user", "content": content},
            ],
        )
    except Exception as e:
        logger.exception("Page transcription failed")
        raise AIServiceError(f"Page transcription failed: {e}") from e

    text = response.choices[0].message.content
    if not text:
        raise AIServiceError("Empty transcription from OpenAI")

    logger.info("Transcribed %d characters", len(text))
    return text
