"""Pytest configuration and fixtures."""

from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.backend.main import app
from app.backend.models import ApiSchema
from app.backend.services.ai import AIService, get_ai_service
from app.backend.services.pdf_service import ParsedDocument, PDFService, get_pdf_service


class FakePDFService(PDFService):
    """PDF service returning canned text instead of parsing."""

    def __init__(self, text: str = "", page_count: int = 1):
        super().__init__()
        self.text = text
        self.page_count = page_count
        self.converted = 0

    async def parse_document(self, file_bytes):
        return ParsedDocument(text=self.text, page_count=self.page_count, parser="pdfplumber")

    def convert_pdf_to_images(self, file_bytes, first_page=None, last_page=None):
        self.converted += 1
        return [Image.new("RGB", (50, 50), color="white") for _ in range(self.page_count)]


@pytest.fixture
def mock_ai_service() -> AIService:
    """AI service forced into mock mode."""
    return AIService(api_key="", model="gpt-4o-2024-08-06", use_mock=True)


@pytest.fixture
def client(mock_ai_service: AIService) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application, with a mock AI service."""
    app.dependency_overrides[get_ai_service] = lambda: mock_ai_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def use_pdf_service():
    """Install a fake PDF service for the duration of a test."""

    def _install(service: PDFService) -> PDFService:
        app.dependency_overrides[get_pdf_service] = lambda: service
        return service

    yield _install
    app.dependency_overrides.pop(get_pdf_service, None)


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a minimal valid PDF for testing.

    This is a minimal PDF structure that should be recognized as a valid PDF.
    """
    pdf_content = b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R >>
endobj
4 0 obj
<< /Length 44 >>
stream
BT
/F1 12 Tf
100 700 Td
(Test) Tj
ET
endstream
endobj
xref
0 5
0000000000 65535 f 
0000000009 00000 n 
0000000058 00000 n 
0000000115 00000 n 
0000000214 00000 n 
trailer
<< /Size 5 /Root 1 0 R >>
startxref
306
%%EOF"""
    return pdf_content


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-PDF) file bytes for testing."""
    return b"This is not a PDF file"


@pytest.fixture
def invoice_schema_json() -> dict[str, Any]:
    """Root/items schema as sent by the frontend."""
    return {
        "root": {
            "company": {"type": "string", "description": "name of company"},
            "address": {"type": "string", "description": "address of company"},
            "total_sum": {"type": "string", "description": "total amount we purchased"},
        },
        "items": {
            "item": {"type": "string", "description": "name of item"},
            "unit_price": {"type": "string", "description": "unit price of item"},
            "quantity": {"type": "string", "description": "quantity we purchased"},
        },
    }


@pytest.fixture
def invoice_schema(invoice_schema_json: dict[str, Any]) -> ApiSchema:
    """Root/items schema as a model."""
    return ApiSchema.model_validate(invoice_schema_json)


@pytest.fixture
def invoice_document() -> dict[str, Any]:
    """An extracted invoice with two line items."""
    return {
        "company": "Acme GmbH",
        "address": "Hauptstrasse 1, Berlin",
        "total_sum": "150.00",
        "items": [
            {"item": "Widget", "unit_price": "50.00", "quantity": "2"},
            {"item": "Gadget", "unit_price": "50.00", "quantity": "1"},
        ],
    }
