"""
Services package for the invoice extraction application.

Contains:
- pdf_service: PDF text extraction and page rendering
- ai: OpenAI integration for structured extraction and page transcription
- schema_service: Conversion between schema forms, LLM output schema
- export_service: Flattening documents into spreadsheet rows
"""

from .ai import AIService
from .pdf_service import PDFService

__all__ = ["PDFService", "AIService"]
