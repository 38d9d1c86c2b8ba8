"""
Routers package for FastAPI endpoints.

Organized by step:
- extract: PDF upload and text extraction
- process: Structured extraction with the LLM
- download: Spreadsheet export
- schemas: Default schema and schema conversion
"""

from . import download, extract, process, schemas

__all__ = ["download", "extract", "process", "schemas"]
