"""
PDF processing service.

Turns uploaded PDF documents into text with pdfplumber (local text layer)
or the LlamaParse cloud service, and renders pages to PIL Images with
pdf2image (poppler) for scanned documents that have no text layer.
"""

import io
import logging
import os
import tempfile
from typing import BinaryIO

from PIL import Image

logger = logging.getLogger(__name__)

PARSER_PDFPLUMBER = "pdfplumber"
PARSER_LLAMAPARSE = "llamaparse"
PAGE_SEPARATOR = "\n\n"


class PDFConversionError(Exception):
    """Raised when PDF conversion fails."""

    pass


class ParsedDocument:
    """Text extracted from a PDF."""

    def __init__(self, text: str, page_count: int, parser: str):
        self.text = text
        self.page_count = page_count
        self.parser = parser

    @property
    def is_empty(self) -> bool:
        """True when no text was found (e.g. a scanned document)."""
        return not self.text.strip()


def _read_bytes(file_bytes: bytes | BinaryIO) -> bytes:
    if hasattr(file_bytes, "read"):
        return file_bytes.read()
    return file_bytes


def validate_pdf_bytes(pdf_bytes: bytes) -> None:
    """
    Check that bytes look like a PDF.

    Raises:
        PDFConversionError: If the content is empty or lacks the PDF header.
    """
    if not pdf_bytes:
        raise PDFConversionError("Empty PDF file provided")

    # Validate PDF magic bytes
    if not pdf_bytes[:4] == b"%PDF":
        raise PDFConversionError(
            "Invalid PDF file: does not start with PDF header"
        )


class PDFService:
    """
    Service for PDF processing operations.

    Text comes from pdfplumber by default; set ``parser="llamaparse"`` to send
    documents to LlamaParse instead. Page rendering uses pdf2image.
    """

    def __init__(
        self,
        parser: str = PARSER_PDFPLUMBER,
        llama_cloud_api_key: str | None = None,
        dpi: int = 200,
        image_format: str = "PNG",
    ):
        """
        Initialize the PDF service.

        Args:
            parser: Text backend, "pdfplumber" or "llamaparse".
            llama_cloud_api_key: API key for LlamaParse. Falls back to the
                LLAMA_CLOUD_API_KEY environment variable read by the client.
            dpi: Resolution for PDF to image conversion.
            image_format: Output image format (PNG recommended for quality).
        """
        if parser not in (PARSER_PDFPLUMBER, PARSER_LLAMAPARSE):
            raise ValueError(f"Unknown PDF parser: {parser}")
        self.parser = parser
        self.llama_cloud_api_key = llama_cloud_api_key
        self.dpi = dpi
        self.image_format = image_format

    async def parse_document(self, file_bytes: bytes | BinaryIO) -> ParsedDocument:
        """
        Extract the full text of a PDF with the configured backend.

        Args:
            file_bytes: PDF file as bytes or file-like object.

        Returns:
            ParsedDocument with page texts joined by a blank line.

        Raises:
            PDFConversionError: If the file is not a PDF or parsing fails.
        """
        pdf_bytes = _read_bytes(file_bytes)
        validate_pdf_bytes(pdf_bytes)

        if self.parser == PARSER_LLAMAPARSE:
            return await self._parse_with_llamaparse(pdf_bytes)
        return self.extract_text(pdf_bytes)

    def extract_text(self, file_bytes: bytes | BinaryIO) -> ParsedDocument:
        """
        Extract the text layer of every page with pdfplumber.

        Args:
            file_bytes: PDF file as bytes or file-like object.

        Returns:
            ParsedDocument; ``text`` is empty for scanned documents.

        Raises:
            PDFConversionError: If the PDF cannot be read.
        """
        import pdfplumber

        pdf_bytes = _read_bytes(file_bytes)
        validate_pdf_bytes(pdf_bytes)

        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                page_texts = []
                for page in pdf.pages:
                    page_text = page.extract_text()
                    if page_text:
                        page_texts.append(page_text)
                page_count = len(pdf.pages)
        except Exception as e:
            logger.error("pdfplumber could not read PDF: %s", e)
            raise PDFConversionError(f"Invalid or corrupted PDF file: {e}") from e

        text = PAGE_SEPARATOR.join(page_texts)
        logger.info(
            "Extracted %d characters from %d page(s) with pdfplumber",
            len(text),
            page_count,
        )
        return ParsedDocument(text=text, page_count=page_count, parser=PARSER_PDFPLUMBER)

    async def _parse_with_llamaparse(self, pdf_bytes: bytes) -> ParsedDocument:
        """Send the PDF to LlamaParse and join the returned markdown documents."""
        try:
            from llama_parse import LlamaParse
        except ImportError as e:
            logger.error("llama-parse not installed: %s", e)
            raise PDFConversionError(
                "llama-parse library not installed. Run: pip install llama-parse"
            ) from e

        # LlamaParse reads from a path; the temp file is removed afterwards
        with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmp:
            tmp.write(pdf_bytes)
            temp_path = tmp.name

        try:
            reader = LlamaParse(api_key=self.llama_cloud_api_key, result_type="markdown")
            documents = await reader.aload_data(temp_path)
        except Exception as e:
            logger.exception("LlamaParse failed")
            raise PDFConversionError(f"Error processing PDF file: {e}") from e
        finally:
            os.unlink(temp_path)

        text = PAGE_SEPARATOR.join(doc.text for doc in documents)
        logger.info(
            "Extracted %d characters from %d document(s) with LlamaParse",
            len(text),
            len(documents),
        )
        return ParsedDocument(text=text, page_count=len(documents), parser=PARSER_LLAMAPARSE)

    def convert_pdf_to_images(
        self,
        file_bytes: bytes | BinaryIO,
        first_page: int | None = None,
        last_page: int | None = None,
    ) -> list[Image.Image]:
        """
        Convert PDF pages to PIL Images.

        Args:
            file_bytes: PDF file as bytes or file-like object.
            first_page: First page to convert (1-indexed, inclusive). None for first page.
            last_page: Last page to convert (1-indexed, inclusive). None for last page.

        Returns:
            List of PIL Image objects, one per page.

        Raises:
            PDFConversionError: If conversion fails for any reason.
        """
        from pdf2image import convert_from_bytes
        from pdf2image.exceptions import (
            PDFInfoNotInstalledError,
            PDFPageCountError,
            PDFSyntaxError,
        )

        pdf_bytes = _read_bytes(file_bytes)
        validate_pdf_bytes(pdf_bytes)

        try:
            logger.info(
                "Converting PDF to images (dpi=%d, pages=%s-%s)",
                self.dpi,
                first_page or "first",
                last_page or "last",
            )

            images = convert_from_bytes(
                pdf_bytes,
                dpi=self.dpi,
                fmt=self.image_format.lower(),
                first_page=first_page,
                last_page=last_page,
                thread_count=2,
            )

            logger.info("Successfully converted %d page(s)", len(images))
            return images

        except PDFInfoNotInstalledError as e:
            logger.error("Poppler not installed: %s", e)
            raise PDFConversionError(
                "Poppler not installed. Install poppler-utils: "
                "brew install poppler (macOS) or apt-get install poppler-utils (Linux)"
            ) from e

        except PDFPageCountError as e:
            logger.error("Could not get PDF page count: %s", e)
            raise PDFConversionError(
                f"Could not determine PDF page count: {e}"
            ) from e

        except PDFSyntaxError as e:
            logger.error("PDF syntax error: %s", e)
            raise PDFConversionError(f"Invalid or corrupted PDF file: {e}") from e

        except Exception as e:
            logger.exception("Unexpected error during PDF conversion")
            raise PDFConversionError(f"PDF conversion failed: {e}") from e

    def get_page_count(self, file_bytes: bytes | BinaryIO) -> int:
        """
        Get the total number of pages in a PDF.

        Raises:
            PDFConversionError: If page count cannot be determined.
        """
        import pdfplumber

        pdf_bytes = _read_bytes(file_bytes)
        validate_pdf_bytes(pdf_bytes)

        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                return len(pdf.pages)
        except Exception as e:
            logger.error("Could not get page count: %s", e)
            raise PDFConversionError(f"Could not get page count: {e}") from e


# Singleton instance for convenience
_pdf_service: PDFService | None = None


def get_pdf_service() -> PDFService:
    """Get or create the PDF service singleton from settings."""
    global _pdf_service
    if _pdf_service is None:
        from ..config import get_settings

        settings = get_settings()
        _pdf_service = PDFService(
            parser=settings.pdf_parser,
            llama_cloud_api_key=settings.llama_cloud_api_key,
        )
    return _pdf_service
