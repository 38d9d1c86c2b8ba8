"""
Spreadsheet export for extracted documents.

Flattens each document into rows (root values repeated for every item)
and writes one worksheet per document with openpyxl.
"""

import io
import json
import logging
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

from ..models import ApiSchema
from .schema_service import ITEMS_FIELD, item_field_names, root_field_names

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_FILENAME = "extracted_data.xlsx"


class ExportError(Exception):
    """Raised when the spreadsheet cannot be generated."""

    pass


def _cell_value(value: Any) -> Any:
    """Render a document value as a cell: missing values become "", nested values JSON."""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, str):
        # Control characters (form feeds from PDF text) are not allowed in xlsx
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def header_for(schema: ApiSchema) -> list[str]:
    """Column names: root fields then item fields, each in declaration order."""
    return root_field_names(schema) + item_field_names(schema)


def flatten_document(document: dict[str, Any], schema: ApiSchema) -> list[dict[str, Any]]:
    """
    Flatten one extracted document into spreadsheet rows.

    Args:
        document: Extracted data, optionally holding an ``items`` list.
        schema: Schema whose fields become the columns.

    Returns:
        One row per item with the root values repeated, or a single row with
        empty item columns when the document has no items. Keys follow
        ``header_for(schema)``.
    """
    root_fields = root_field_names(schema)
    item_fields = item_field_names(schema)

    items = document.get(ITEMS_FIELD)
    if not isinstance(items, list):
        items = []

    root_values = {field: _cell_value(document.get(field)) for field in root_fields}

    if not items:
        row = dict(root_values)
        row.update({field: "" for field in item_fields})
        return [row]

    rows = []
    for item in items:
        if not isinstance(item, dict):
            item = {}
        row = dict(root_values)
        row.update({field: _cell_value(item.get(field)) for field in item_fields})
        rows.append(row)
    return rows


def build_workbook(documents: list[dict[str, Any]], schema: ApiSchema) -> bytes:
    """
    Write documents to an .xlsx workbook.

    Args:
        documents: Extracted documents, one worksheet each ("Document 1", ...).
        schema: Schema whose fields become the columns.

    Returns:
        The workbook as bytes.

    Raises:
        ExportError: If the workbook cannot be written.
    """
    header = header_for(schema)
    logger.info(
        "Building workbook: %d document(s), columns=%s",
        len(documents),
        header,
    )

    try:
        workbook = Workbook()
        # Workbook() starts with one empty sheet; sheets are added per document
        workbook.remove(workbook.active)

        for index, document in enumerate(documents, start=1):
            rows = flatten_document(document, schema)
            logger.debug("Document %d: %d row(s)", index, len(rows))

            sheet = workbook.create_sheet(title=f"Document {index}")
            sheet.append(header)
            for row in rows:
                sheet.append([row[column] for column in header])
                for cell in sheet[sheet.max_row]:
                    if isinstance(cell.value, str) and cell.value.startswith("="):
                        # Keep extracted text as text, not a formula
                        cell.data_type = "s"

        if not documents:
            workbook.create_sheet(title="Document 1").append(header)

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()
    except Exception as e:
        logger.exception("Failed to build workbook")
        raise ExportError(f"Failed to generate Excel file: {e}") from e
