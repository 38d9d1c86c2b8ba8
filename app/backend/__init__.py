"""
Invoice Extraction Backend Application.

A FastAPI service that turns PDF invoices into text, extracts structured
data with an LLM following a user-defined schema, and exports the result
as an Excel spreadsheet.
"""

__version__ = "1.0.0"
