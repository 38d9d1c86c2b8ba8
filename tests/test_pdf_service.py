"""Tests for PDF service."""

import os
import sys
from types import ModuleType, SimpleNamespace

import pdfplumber
import pytest

from app.backend.services.pdf_service import (
    PDFConversionError,
    PDFService,
    ParsedDocument,
    validate_pdf_bytes,
)


class _FakePage:
    def __init__(self, text):
        self._text = text

    def extract_text(self):
        return self._text


class _FakePDF:
    def __init__(self, texts):
        self.pages = [_FakePage(t) for t in texts]

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False


@pytest.fixture
def fake_pdfplumber(monkeypatch):
    """Make pdfplumber.open return pages with the given texts."""

    def _install(texts):
        monkeypatch.setattr(pdfplumber, "open", lambda *args, **kwargs: _FakePDF(texts))

    return _install


@pytest.fixture
def fake_llama_parse(monkeypatch):
    """Install a stand-in llama_parse module that records its calls."""
    calls = {}

    class LlamaParse:
        def __init__(self, api_key=None, result_type=None):
            calls["api_key"] = api_key
            calls["result_type"] = result_type

        async def aload_data(self, path):
            calls["path"] = path
            with open(path, "rb") as f:
                calls["content"] = f.read()
            if calls.get("error"):
                raise RuntimeError(calls["error"])
            return [SimpleNamespace(text=text) for text in calls.get("pages", [])]

    module = ModuleType("llama_parse")
    module.LlamaParse = LlamaParse
    monkeypatch.setitem(sys.modules, "llama_parse", module)
    return calls


class TestPDFService:
    """Tests for PDFService class."""

    def test_init_default_values(self):
        """Test PDFService initializes with default values."""
        service = PDFService()
        assert service.parser == "pdfplumber"
        assert service.dpi == 200
        assert service.image_format == "PNG"

    def test_init_custom_values(self):
        """Test PDFService accepts custom configuration."""
        service = PDFService(parser="llamaparse", llama_cloud_api_key="llx-test", dpi=300)
        assert service.parser == "llamaparse"
        assert service.llama_cloud_api_key == "llx-test"
        assert service.dpi == 300

    def test_init_unknown_parser(self):
        """Test that an unknown backend is rejected."""
        with pytest.raises(ValueError):
            PDFService(parser="tesseract")

    def test_extract_text_joins_pages(self, fake_pdfplumber, sample_pdf_bytes: bytes):
        """Test that page texts are joined by a blank line, skipping empty pages."""
        fake_pdfplumber(["Page one", None, "Page three"])

        parsed = PDFService().extract_text(sample_pdf_bytes)

        assert parsed.text == "Page one\n\nPage three"
        assert parsed.page_count == 3
        assert parsed.parser == "pdfplumber"

    @pytest.mark.asyncio
    async def test_parse_document_uses_llamaparse(
        self, fake_llama_parse, sample_pdf_bytes: bytes
    ):
        """Test that LlamaParse markdown pages are joined and the temp file removed."""
        fake_llama_parse["pages"] = ["# Page 1", "# Page 2"]
        service = PDFService(parser="llamaparse", llama_cloud_api_key="llx-test")

        parsed = await service.parse_document(sample_pdf_bytes)

        assert parsed.text == "# Page 1\n\n# Page 2"
        assert parsed.page_count == 2
        assert parsed.parser == "llamaparse"
        assert fake_llama_parse["api_key"] == "llx-test"
        assert fake_llama_parse["result_type"] == "markdown"
        assert fake_llama_parse["content"] == sample_pdf_bytes
        assert fake_llama_parse["path"].endswith(".pdf")
        assert not os.path.exists(fake_llama_parse["path"])

    @pytest.mark.asyncio
    async def test_parse_document_wraps_llamaparse_errors(
        self, fake_llama_parse, sample_pdf_bytes: bytes
    ):
        """Test that LlamaParse failures raise PDFConversionError and clean up."""
        fake_llama_parse["error"] = "quota exceeded"

        with pytest.raises(PDFConversionError) as exc_info:
            await PDFService(parser="llamaparse").parse_document(sample_pdf_bytes)

        assert "quota exceeded" in str(exc_info.value)
        assert not os.path.exists(fake_llama_parse["path"])

    @pytest.mark.asyncio
    async def test_parse_document_llamaparse_not_installed(
        self, monkeypatch, sample_pdf_bytes: bytes
    ):
        """Test the error when the llama-parse extra is missing."""
        monkeypatch.setitem(sys.modules, "llama_parse", None)

        with pytest.raises(PDFConversionError) as exc_info:
            await PDFService(parser="llamaparse").parse_document(sample_pdf_bytes)

        assert "not installed" in str(exc_info.value)
        assert not parsed.is_empty

    def test_extract_text_scanned_document(self, fake_pdfplumber, sample_pdf_bytes: bytes):
        """Test that a PDF without a text layer gives empty text."""
        fake_pdfplumber([None, ""])

        parsed = PDFService().extract_text(sample_pdf_bytes)

        assert parsed.is_empty
        assert parsed.page_count == 2

    def test_extract_text_wraps_reader_errors(self, monkeypatch, sample_pdf_bytes: bytes):
        """Test that pdfplumber failures become PDFConversionError."""

        def _boom(*args, **kwargs):
            raise RuntimeError("broken xref")

        monkeypatch.setattr(pdfplumber, "open", _boom)

        with pytest.raises(PDFConversionError) as exc_info:
            PDFService().extract_text(sample_pdf_bytes)
        assert "broken xref" in str(exc_info.value)

    def test_get_page_count(self, fake_pdfplumber, sample_pdf_bytes: bytes):
        """Test counting pages."""
        fake_pdfplumber(["a", "b", "c", "d"])
        assert PDFService().get_page_count(sample_pdf_bytes) == 4

    @pytest.mark.asyncio
    async def test_parse_document_uses_pdfplumber(self, fake_pdfplumber, sample_pdf_bytes: bytes):
        """Test that the default backend is pdfplumber."""
        fake_pdfplumber(["Invoice 42"])

        parsed = await PDFService().parse_document(sample_pdf_bytes)

        assert parsed.text == "Invoice 42"
        assert parsed.parser == "pdfplumber"

    @pytest.mark.asyncio
    async def test_parse_document_rejects_invalid_pdf(self):
        """Test that non-PDF content raises PDFConversionError."""
        with pytest.raises(PDFConversionError) as exc_info:
            await PDFService().parse_document(b"This is not a PDF")
        assert "Invalid PDF" in str(exc_info.value)

    def test_convert_empty_file_raises_error(self):
        """Test that empty file raises PDFConversionError."""
        with pytest.raises(PDFConversionError) as exc_info:
            PDFService().convert_pdf_to_images(b"")
        assert "Empty" in str(exc_info.value)

    def test_convert_invalid_pdf_raises_error(self):
        """Test that non-PDF content raises PDFConversionError."""
        with pytest.raises(PDFConversionError) as exc_info:
            PDFService().convert_pdf_to_images(b"This is not a PDF")
        assert "does not start" in str(exc_info.value)


class TestValidatePdfBytes:
    """Tests for the PDF header check."""

    def test_accepts_pdf_header(self, sample_pdf_bytes: bytes):
        """Test that PDF content passes."""
        validate_pdf_bytes(sample_pdf_bytes)

    def test_rejects_empty(self):
        """Test that empty content fails."""
        with pytest.raises(PDFConversionError, match="Empty"):
            validate_pdf_bytes(b"")


class TestParsedDocument:
    """Tests for ParsedDocument."""

    def test_whitespace_only_is_empty(self):
        """Test that whitespace does not count as text."""
        assert ParsedDocument(text=" \n\n ", page_count=1, parser="pdfplumber").is_empty
