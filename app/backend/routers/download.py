"""
Router for spreadsheet export of extracted documents.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from ..models import DownloadRequest
from ..services.export_service import (
    EXPORT_FILENAME,
    XLSX_MEDIA_TYPE,
    ExportError,
    build_workbook,
)
from ..services.schema_service import has_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["download"])


@router.post(
    "/download",
    response_class=Response,
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
)
async def download_spreadsheet(request: DownloadRequest) -> Response:
    """
    Export extracted documents as an Excel workbook.

    Each document becomes a worksheet: one row per item, with the root
    fields repeated on every row.
    """
    schema = request.schema_definition
    if not has_fields(schema):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No schema provided",
        )

    try:
        content = build_workbook(request.data, schema)
    except ExportError as e:
        logger.error("Error generating Excel file: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate Excel file",
        )

    logger.info("Generated %s (%d bytes)", EXPORT_FILENAME, len(content))

    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )
