"""
Production API for Imaging Modality Classification
This FastAPI application exposes the heuristic modality analyzer over REST.

Usage:
    python3 api.py                    # Run with default settings
    PORT=8080 python3 api.py          # Run on custom port
    ANALYSIS_PROFILE=perfect python3 api.py

API Documentation:
    http://localhost:8000/docs       # Swagger UI
    http://localhost:8000/redoc      # ReDoc
"""

import time
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, File, UploadFile, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from modality_analyzer import ImageAnalysis, ModalityAnalyzer, get_analyzer
from pixel_buffer import DecodeFailure
from profiles import PROFILES, get_profile
from technical_report import build_technical_report

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


# Global instances
analyzer: Optional[ModalityAnalyzer] = None
start_time = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    global analyzer, start_time
    start_time = datetime.now()

    logger.info(f"Starting Modality Classification API v{settings.API_VERSION}")
    logger.info(f"Analysis profile: {settings.ANALYSIS_PROFILE}")

    try:
        settings.validate()
        analyzer = get_analyzer()
        logger.info("✓ Modality analyzer ready")
    except Exception as e:
        logger.error(f"Failed to initialize analyzer: {e}")
        raise

    yield  # Application runs here

    logger.info("Shutting down API...")


# Initialize FastAPI app with lifespan
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS if isinstance(settings.ALLOWED_ORIGINS, list) else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_timing_header(request: Request, call_next):
    """Add response timing header for monitoring"""
    request_start = time.time()
    response = await call_next(request)
    process_time = time.time() - request_start
    response.headers["X-Process-Time"] = f"{process_time:.4f}"
    return response


def _check_profile(profile: Optional[str]) -> Optional[str]:
    if profile is None:
        return None
    try:
        return get_profile(profile).name
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e.args[0]))


def _check_upload(file: UploadFile):
    if not file.content_type or not file.content_type.startswith('image/'):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type: {file.content_type}. Expected image file."
        )


def _build_response(filename: str, analysis: ImageAnalysis) -> dict:
    payload = analysis.to_dict()
    return {
        "filename": filename,
        "classification": payload["classification"],
        "features": payload["features"],
        "technical": build_technical_report(analysis),
        "timestamp": datetime.now().isoformat()
    }


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {
        "name": settings.API_TITLE,
        "version": settings.API_VERSION,
        "status": "running",
        "endpoints": {
            "/": "API information",
            "/health": "Health check",
            "/profiles": "Available threshold profiles",
            "/analyze": "Single image classification (POST)",
            "/analyze/batch": "Batch classification (POST)"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    if analyzer is None:
        raise HTTPException(status_code=503, detail="Analyzer not initialized")

    return {
        "status": "healthy",
        "profile": analyzer.profile.name,
        "uptime_seconds": round((datetime.now() - start_time).total_seconds(), 1) if start_time else 0,
        "timestamp": datetime.now().isoformat()
    }


@app.get("/profiles")
async def list_profiles():
    """Describe every registered threshold profile"""
    return {
        "default": settings.ANALYSIS_PROFILE,
        "profiles": [profile.summary() for profile in PROFILES.values()]
    }


@app.post("/analyze")
async def analyze_image(
    file: UploadFile = File(...),
    profile: Optional[str] = Query(None, description="Threshold profile override")
):
    """
    Classify the imaging modality of a single image

    Args:
        file: Image file (JPEG, PNG, etc.)
        profile: Optional profile name (defaults to the configured profile)

    Returns:
        Classification, extracted features and technical summary
    """
    if analyzer is None:
        raise HTTPException(status_code=503, detail="Analyzer not initialized")

    _check_upload(file)
    profile_name = _check_profile(profile)

    image_bytes = await file.read()
    if len(image_bytes) > settings.MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"Image exceeds {settings.MAX_IMAGE_BYTES} bytes"
        )

    try:
        analysis = analyzer.analyze(image_bytes, file.filename or "", profile_name)
        return JSONResponse(content=_build_response(file.filename, analysis))

    except DecodeFailure as e:
        logger.warning(f"Decode failure for '{file.filename}': {e}")
        return JSONResponse(
            status_code=400,
            content={
                "error": "decode_failure",
                "message": str(e),
                "filename": file.filename
            }
        )
    except Exception as e:
        logger.error(f"Analysis error: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@app.post("/analyze/batch")
async def analyze_batch(
    files: List[UploadFile] = File(...),
    profile: Optional[str] = Query(None, description="Threshold profile override")
):
    """
    Classify multiple images

    Args:
        files: List of image files
        profile: Optional profile name applied to every image

    Returns:
        One result (or error entry) per uploaded file
    """
    if analyzer is None:
        raise HTTPException(status_code=503, detail="Analyzer not initialized")

    if len(files) > settings.MAX_BATCH_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum {settings.MAX_BATCH_SIZE} images allowed per batch request"
        )

    for file in files:
        _check_upload(file)
    profile_name = _check_profile(profile)

    try:
        results = []
        for file in files:
            image_bytes = await file.read()
            try:
                if len(image_bytes) > settings.MAX_IMAGE_BYTES:
                    raise DecodeFailure(f"Image exceeds {settings.MAX_IMAGE_BYTES} bytes")
                analysis = analyzer.analyze(image_bytes, file.filename or "", profile_name)
                results.append(_build_response(file.filename, analysis))
            except DecodeFailure as e:
                results.append({
                    'filename': file.filename,
                    'error': str(e),
                    'timestamp': datetime.now().isoformat()
                })

        return JSONResponse(content={"results": results})

    except Exception as e:
        logger.error(f"Batch analysis error: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


if __name__ == "__main__":
    import uvicorn

    # Print startup information
    print("\n" + "="*60)
    print("  🩻 IMAGING MODALITY CLASSIFICATION API")
    print("="*60)
    print(f"  Server: http://{settings.HOST}:{settings.PORT}")
    print(f"  API Docs: http://localhost:{settings.PORT}/docs")
    print(f"  Profile: {settings.ANALYSIS_PROFILE}")
    print("="*60 + "\n")

    # Run the API
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
