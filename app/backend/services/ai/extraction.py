"""
Structured data extraction from document text.

Sends the document text with a JSON Schema built from the user's schema to
OpenAI structured outputs, then normalizes the reply to that schema.
"""

import json
import logging
from typing import Any, Callable

from ...models import ApiSchema
from ..schema_service import (
    ITEMS_FIELD,
    build_extraction_json_schema,
    build_system_prompt,
    item_field_names,
    root_field_names,
)
from .exceptions import AIServiceError

logger = logging.getLogger(__name__)


def _normalize_value(value: Any) -> Any:
    return "" if value is None else value


def normalize_extraction(data: dict[str, Any], schema: ApiSchema) -> dict[str, Any]:
    """
    Keep only the declared fields of an extraction, in declaration order.

    Missing or null values become "". ``items`` is always present as a list;
    entries that are not objects are dropped.

    Args:
        data: Parsed model output.
        schema: Schema the output should follow.

    Returns:
        The normalized document.
    """
    item_fields = item_field_names(schema)

    document: dict[str, Any] = {
        name: _normalize_value(data.get(name)) for name in root_field_names(schema)
    }

    raw_items = data.get(ITEMS_FIELD)
    if not isinstance(raw_items, list):
        raw_items = []

    document[ITEMS_FIELD] = [
        {name: _normalize_value(item.get(name)) for name in item_fields}
        for item in raw_items
        if isinstance(item, dict)
    ]
    return document


async def extract_structured_data(
    text: str,
    schema: ApiSchema,
    client: Any,  # OpenAI client
    model: str = "gpt-4o-2024-08-06",
    use_mock: bool = False,
    get_mock_extraction: Callable[[ApiSchema], dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Extract structured data from document text according to a schema.

    Args:
        text: Full document text.
        schema: Root/items schema to extract.
        client: OpenAI client instance.
        model: Model name to use (must support structured outputs).
        use_mock: If True, return mock extraction instead of calling OpenAI.
        get_mock_extraction: Function producing the mock extraction.

    Returns:
        Document with the declared root fields and an ``items`` list.

    Raises:
        AIServiceError: If the call fails, the model refuses, or the reply
            is not valid JSON.
    """
    if use_mock and get_mock_extraction:
        logger.info("Extracting data (MOCK MODE)")
        return get_mock_extraction(schema)

    logger.info(
        "Extracting data from %d characters: root=%s, items=%s",
        len(text),
        root_field_names(schema),
        item_field_names(schema),
    )

    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": build_system_prompt(schema)},
                {"role": "user", "content": text},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": build_extraction_json_schema(schema),
            },
        )
    except Exception as e:
        logger.exception("Data extraction failed")
        raise AIServiceError(f"Data extraction failed: {e}") from e

    message = response.choices[0].message

    refusal = getattr(message, "refusal", None)
    if refusal:
        logger.warning("Model refused extraction: %s", refusal)
        raise AIServiceError(f"Model refused to extract data: {refusal}")

    content = message.content
    if not content:
        raise AIServiceError("Empty response from OpenAI")

    try:
        response_data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse extraction response: %s", content[:500])
        raise AIServiceError(f"Invalid JSON in extraction response: {e}") from e

    if not isinstance(response_data, dict):
        raise AIServiceError("Extraction response is not a JSON object")

    document = normalize_extraction(response_data, schema)
    logger.info("Extraction complete: %d item(s)", len(document[ITEMS_FIELD]))
    return document
