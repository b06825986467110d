"""
DocShelf API - FastAPI application entry point
PDF library: collections, filtered document listing, notes, reading progress, chat
"""

import logging

from docshelf.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(levelname)s:%(name)s:%(message)s"
)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from docshelf.database import create_tables
from docshelf.middleware.rate_limiter import setup_rate_limiting
from docshelf.services.llm_service import LLMService
from docshelf.services.pdf_service import PDFService
from docshelf.storage.factory import get_storage_backend
from docshelf.utils.error_handlers import setup_error_handlers

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="PDF document library API",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "authentication", "description": "Registration and profile"},
        {"name": "collections", "description": "Collection tree management"},
        {"name": "documents", "description": "Document upload, listing and bulk operations"},
        {"name": "notes", "description": "Page notes"},
        {"name": "reading-progress", "description": "Reading position"},
        {"name": "chat", "description": "Chat about a document"}
    ]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_rate_limiting(app)
setup_error_handlers(app)


@app.on_event("startup")
async def startup_event():
    """Create tables and the collaborators shared by all requests"""
    create_tables()
    app.state.storage = get_storage_backend()
    app.state.pdf_service = PDFService()
    app.state.llm_service = LLMService()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} started")
    logger.info(f"API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """Release the storage client"""
    storage = getattr(app.state, "storage", None)
    if storage is not None:
        storage.close()
    logger.info(f"{settings.APP_NAME} stopped")


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy"
    }


@app.get("/health")
async def health_check():
    """Detailed health check"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "storage": settings.STORAGE_BACKEND
    }


from docshelf.api import auth, collections, documents, notes, reading_progress, chat

app.include_router(auth.router, prefix="/api/v1")
app.include_router(collections.router, prefix="/api/v1")
app.include_router(documents.router, prefix="/api/v1")
app.include_router(notes.router, prefix="/api/v1")
app.include_router(reading_progress.router, prefix="/api/v1")
app.include_router(chat.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "docshelf.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD
    )
