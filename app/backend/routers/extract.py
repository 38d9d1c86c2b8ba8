"""
Router for PDF text extraction.

Handles:
- PDF upload and conversion to text
- Vision transcription fallback for scanned documents
"""

import logging
from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ..config import Settings, get_settings
from ..models import ExtractTextResponse
from ..services.ai import AIService, AIServiceError, get_ai_service
from ..services.pdf_service import PDFConversionError, PDFService, get_pdf_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["extract"])

PARSER_VISION = "vision"


@router.post("/extract", response_model=ExtractTextResponse)
async def extract_text(
    file: Annotated[UploadFile | None, File(description="PDF file to parse")] = None,
    pdf_service: PDFService = Depends(get_pdf_service),
    ai_service: AIService = Depends(get_ai_service),
    settings: Settings = Depends(get_settings),
) -> ExtractTextResponse:
    """
    Upload a PDF and return its full text.

    Scanned documents without a text layer are rendered to images and
    transcribed by the vision model when the fallback is enabled.
    """
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file provided",
        )

    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No filename provided",
        )

    if not file.filename.lower().endswith(".pdf"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only PDF files are accepted",
        )

    try:
        file_bytes = await file.read()

        if not file_bytes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Empty file provided",
            )

        max_bytes = settings.max_upload_mb * 1024 * 1024
        if len(file_bytes) > max_bytes:
            raise HTTPException(
                status_code=HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
                detail=f"File exceeds the {settings.max_upload_mb} MB upload limit",
            )

        logger.info("Processing PDF: %s (%d bytes)", file.filename, len(file_bytes))

        try:
            parsed = await pdf_service.parse_document(file_bytes)
        except PDFConversionError as e:
            logger.error("PDF parsing failed: %s", e)
            raise HTTPException(
                status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
                detail=str(e),
            )

        text = parsed.text
        parser = parsed.parser
        page_count = parsed.page_count

        if parsed.is_empty:
            if not settings.vision_fallback:
                raise HTTPException(
                    status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
                    detail="No extractable text found in PDF",
                )

            logger.info("No text layer in %s, falling back to vision transcription", file.filename)
            try:
                images = pdf_service.convert_pdf_to_images(file_bytes)
            except PDFConversionError as e:
                logger.error("PDF conversion failed: %s", e)
                raise HTTPException(
                    status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
                    detail=str(e),
                )

            try:
                text = await ai_service.transcribe_images(images)
            except AIServiceError as e:
                logger.error("Page transcription failed: %s", e)
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail=f"AI service error: {e}",
                )
            parser = PARSER_VISION
            page_count = len(images)

        return ExtractTextResponse(
            text=text,
            file_name=file.filename,
            page_count=page_count,
            parser=parser,
        )

    except HTTPException:
        raise
    except Exception:
        logger.exception("Unexpected error processing PDF")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing PDF file",
        )
    finally:
        await file.close()
