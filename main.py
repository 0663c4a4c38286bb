"""
Public Art Registry API

FastAPI backend serving cached artwork images through a validated proxy.
Imports run separately through scripts/import_artworks.py.

Usage:
    uvicorn main:app --reload
"""

# Load environment variables from .env file FIRST
from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from artregistry.config import Config
from artregistry.errors import ImageApiError
from artregistry.models import ErrorResponse

# Configure logging from environment
logging.basicConfig(
    level=getattr(logging, Config.log_level(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)
logger.info(f"Starting with LOG_LEVEL={Config.log_level()}, DEV_MODE={Config.is_dev()}")

from artregistry.routes import images_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    logger.info(f"Serving images from {Config.media_root()}")
    yield


app = FastAPI(
    title="Public Art Registry API",
    description="Cached artwork images for the public art registry",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if Config.is_dev() else [],
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.exception_handler(ImageApiError)
async def image_api_error_handler(request: Request, exc: ImageApiError):
    """Render image proxy errors as {"error", "message", "details", "show_details"}."""
    if exc.status_code >= 500:
        logger.error(f"{request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.url.path}: {exc.kind.value} {exc.message}")
    body = ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# Include routers
app.include_router(images_router, tags=["images"])


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Public Art Registry API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
