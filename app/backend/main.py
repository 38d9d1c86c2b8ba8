"""
FastAPI application for the invoice extraction service.

Provides endpoints for:
- Uploading a PDF and extracting its text
- Extracting structured data from text with a user-defined schema
- Exporting extracted data as an Excel spreadsheet
- Getting and converting extraction schemas
"""

import logging

from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .models import HealthResponse
from .routers import download, extract, process, schemas
from .services.ai import AIServiceError, get_ai_service
from .services.pdf_service import PDFConversionError, get_pdf_service
from .services.schema_service import SchemaError

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Invoice Extraction Service...")
    # Initialize services on startup
    get_pdf_service()
    get_ai_service()
    logger.info("Services initialized successfully")
    yield
    logger.info("Shutting down Invoice Extraction Service...")


# Create FastAPI application
app = FastAPI(
    title="Invoice Extraction API",
    description="Schema-driven invoice data extraction to Excel using AI",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(
        status="healthy",
        message="Invoice Extraction API is running",
        version=__version__,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="Service is healthy", version=__version__)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(extract.router)
app.include_router(process.router)
app.include_router(download.router)
app.include_router(schemas.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(PDFConversionError)
async def pdf_conversion_error_handler(request, exc: PDFConversionError):
    """Handle PDF conversion errors."""
    return JSONResponse(
        status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request, exc: AIServiceError):
    """Handle AI service errors."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


@app.exception_handler(SchemaError)
async def schema_error_handler(request, exc: SchemaError):
    """Handle schemas that do not fit the root/items shape."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )
