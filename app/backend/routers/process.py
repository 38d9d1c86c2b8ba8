"""
Router for structured extraction from document text.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from ..models import ProcessRequest
from ..services.ai import AIService, AIServiceError, get_ai_service
from ..services.schema_service import has_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["process"])


@router.post("/process")
async def process_text(
    request: ProcessRequest,
    ai_service: AIService = Depends(get_ai_service),
) -> dict[str, Any]:
    """
    Extract the schema's fields from document text with the LLM.

    Returns the extracted document: every root field plus an ``items`` list
    of objects holding the item fields.
    """
    if not request.text:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No text provided",
        )

    schema = request.schema_definition
    if not has_fields(schema):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No schema provided",
        )

    logger.info(
        "Processing %d characters of text (root=%s, items=%s)",
        len(request.text),
        list(schema.root or {}),
        list(schema.items or {}),
    )

    try:
        return await ai_service.extract_structured_data(request.text, schema)
    except AIServiceError as e:
        logger.error("Structured extraction failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
