"""
FastAPI backend for the OCR Template Builder

Turns scanned forms into editable form templates: recognition, overlay
review, field editing and template assembly.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ocr_template_builder.errors import (
    ImageNotReadyError,
    RecognitionError,
    TemplateBuilderError,
    UploadRejectedError,
    ViewModeError,
)
from web.backend.api import templates
from web.backend.config import CORS_ORIGINS
from web.backend.services.session_store import session_store

logger = logging.getLogger(__name__)

# taxonomy -> HTTP status; first match wins
ERROR_STATUS = [
    (UploadRejectedError, 400),
    (RecognitionError, 502),
    (ViewModeError, 409),
    (ImageNotReadyError, 409),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    session_store.close_all()


app = FastAPI(
    title="OCR Template Builder API",
    description="Backend API for turning scanned forms into form templates",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware - allow frontend to communicate
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TemplateBuilderError)
async def template_builder_error_handler(request: Request, exc: TemplateBuilderError):
    """Map pipeline errors to 4xx/5xx responses the UI can show as a notification."""
    status = next((code for kind, code in ERROR_STATUS if isinstance(exc, kind)), 500)
    logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"success": False, "error": str(exc), "detail": str(exc)},
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "OCR Template Builder API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "services": {
            "api": "running",
            "sessions": len(session_store),
        }
    }


app.include_router(templates.router, prefix="/api/sessions", tags=["sessions"])

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print("🚀 Starting OCR Template Builder API...")
    print("📚 API Documentation: http://localhost:8000/docs")
    uvicorn.run(
        "web.backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        timeout_keep_alive=120,
    )
