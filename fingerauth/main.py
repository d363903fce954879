"""
FingerAuth API

Demo fingerprint enrollment and authentication API built on a holistic
grayscale image comparison.

Endpoints:
- POST /api/enroll - Enroll a reference fingerprint
- POST /api/authenticate - Authenticate a fingerprint against enrolled references
- GET /api/enrolled - List enrolled fingerprints
- GET /api/enrolled/{fingerprint_id} - Get an enrolled fingerprint
- DELETE /api/enrolled/{fingerprint_id} - Delete an enrolled fingerprint
- DELETE /api/clear - Remove every enrolled fingerprint
"""
import math
import time
import logging
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, UploadFile, HTTPException, Depends
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from fingerauth import __version__
from fingerauth.config import (
    API_TITLE,
    API_DESCRIPTION,
    API_HOST,
    API_PORT,
    SUPPORTED_FORMATS,
    MatcherConfig
)
from fingerauth.errors import FingerAuthError, DecodeError, ImageReadError
from fingerauth.matcher import FingerprintMatcher, MatchStatus
from fingerauth.registry import EnrollmentRegistry, EnrolledReference
from fingerauth.schemas import (
    EnrolledFingerprint,
    EnrolledList,
    EnrollResponse,
    AuthenticateResponse,
    SkippedReferenceInfo,
    DeleteResponse,
    ClearResponse,
    ErrorResponse
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

registry = EnrollmentRegistry()
matcher = FingerprintMatcher(MatcherConfig())


def get_registry() -> EnrollmentRegistry:
    """Dependency to get the enrollment registry."""
    return registry


def get_matcher() -> FingerprintMatcher:
    """Dependency to get the fingerprint matcher."""
    return matcher


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting FingerAuth API...")
    logger.info(f"Threshold: {matcher.threshold}")
    logger.info(f"Canonical size: {matcher.config.canonical_width}x{matcher.config.canonical_height}")
    logger.info(f"Upload directory: {registry.upload_dir}")
    yield
    logger.info("Shutting down FingerAuth API...")


# Create FastAPI app
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=__version__,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def validate_image_file(file: UploadFile) -> None:
    """Validate uploaded image file."""
    if not file.filename:
        raise HTTPException(
            status_code=400,
            detail="No fingerprint image provided"
        )

    # Check file extension
    ext = "." + file.filename.lower().split(".")[-1] if "." in file.filename else ""
    if ext not in SUPPORTED_FORMATS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file format. Supported: {', '.join(sorted(SUPPORTED_FORMATS))}"
        )

    # Check content type
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(
            status_code=400,
            detail="File must be an image"
        )


async def read_upload(file: Optional[UploadFile]) -> bytes:
    """Validate an upload and return its bytes."""
    if file is None:
        raise HTTPException(status_code=400, detail="No fingerprint image provided")

    validate_image_file(file)

    try:
        image_bytes = await file.read()
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Failed to read image: {str(e)}")

    if len(image_bytes) == 0:
        raise HTTPException(status_code=400, detail="Empty image file")

    return image_bytes


def to_schema(reference: EnrolledReference) -> EnrolledFingerprint:
    return EnrolledFingerprint(
        id=reference.id,
        filename=reference.filename,
        enrolled_at=reference.enrolled_at
    )


@app.get("/", include_in_schema=False)
async def root(registry: EnrollmentRegistry = Depends(get_registry),
               matcher: FingerprintMatcher = Depends(get_matcher)):
    """Root endpoint with API info."""
    return {
        "message": "FingerAuth Backend API",
        "name": API_TITLE,
        "version": __version__,
        "threshold": matcher.threshold,
        "canonical_size": [matcher.config.canonical_width, matcher.config.canonical_height],
        "enrolled": registry.count,
        "endpoints": {
            "enroll": "POST /api/enroll",
            "authenticate": "POST /api/authenticate",
            "list": "GET /api/enrolled",
            "delete": "DELETE /api/enrolled/{fingerprint_id}",
            "clear": "DELETE /api/clear"
        }
    }


@app.get("/health")
async def health_check(registry: EnrollmentRegistry = Depends(get_registry)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "enrolled": registry.count
    }


# ============================================================================
# API 1: ENROLL
# ============================================================================
@app.post(
    "/api/enroll",
    response_model=EnrollResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        422: {"model": ErrorResponse, "description": "Image could not be decoded"}
    },
    summary="Enroll a fingerprint",
    description="""
    Store a reference fingerprint image.

    The image is decoded once up front so that unreadable files are rejected
    here instead of being silently skipped at authentication time.
    """
)
async def enroll(
    fingerprint: Optional[UploadFile] = File(None, description="Fingerprint image file"),
    registry: EnrollmentRegistry = Depends(get_registry),
    matcher: FingerprintMatcher = Depends(get_matcher)
):
    """Enroll a new reference fingerprint."""
    image_bytes = await read_upload(fingerprint)

    # Raises DecodeError for anything that is not an image
    matcher.normalizer.normalize(image_bytes)

    try:
        reference = registry.enroll(image_bytes, fingerprint.filename)
    except OSError as e:
        logger.error(f"Failed to store fingerprint: {e}")
        raise HTTPException(status_code=500, detail="Failed to enroll fingerprint")

    return EnrollResponse(
        success=True,
        message="Fingerprint enrolled successfully",
        id=reference.id
    )


# ============================================================================
# API 2: AUTHENTICATE
# ============================================================================
@app.post(
    "/api/authenticate",
    response_model=AuthenticateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        422: {"model": ErrorResponse, "description": "Image could not be decoded"}
    },
    summary="Authenticate a fingerprint",
    description="""
    Compare a fingerprint against every enrolled reference.

    **Pipeline:**
    1. Grayscale conversion and resize to the canonical size
    2. Pixel-wise absolute difference against each reference
    3. Best match (first enrolled wins on ties)
    4. Threshold decision

    References that cannot be processed are listed in `skipped` and never
    count as a match.
    """
)
async def authenticate(
    fingerprint: Optional[UploadFile] = File(None, description="Fingerprint image to authenticate"),
    registry: EnrollmentRegistry = Depends(get_registry),
    matcher: FingerprintMatcher = Depends(get_matcher)
):
    """Authenticate a fingerprint against all enrolled fingerprints."""
    start_time = time.time()

    image_bytes = await read_upload(fingerprint)

    result = matcher.identify(image_bytes, registry.list_references())
    processing_time = (time.time() - start_time) * 1000
    score = round(result.score, 2)
    if not result.authenticated and score >= result.threshold:
        # a rejected score must never display as reaching the threshold
        score = math.floor(result.score * 100) / 100

    if result.status == MatchStatus.NO_REFERENCES:
        message = "No enrolled fingerprints found. Please enroll first."
    elif result.authenticated:
        message = f"Authentication successful! Similarity: {score:.2f}%"
    else:
        message = f"Authentication failed. Similarity: {score:.2f}% (threshold: {result.threshold:g}%)"

    for skipped in result.skipped:
        logger.warning(f"Reference {skipped.reference_id} skipped ({skipped.kind}): {skipped.message}")

    if result.authenticated:
        logger.info(f"Matched fingerprint {result.matched_id} (similarity: {score:.2f}%) in {processing_time:.1f}ms")
    else:
        logger.info(f"No match ({result.status.value}, top score: {score:.2f}%) in {processing_time:.1f}ms")

    return AuthenticateResponse(
        success=result.authenticated,
        authenticated=result.authenticated,
        message=message,
        score=score,
        matched_id=result.matched_id,
        status=result.status.value,
        threshold=result.threshold,
        skipped=[
            SkippedReferenceInfo(id=s.reference_id, error=s.kind, detail=s.message)
            for s in result.skipped
        ],
        processing_time_ms=round(processing_time, 2)
    )


# ============================================================================
# API 3: LIST / GET
# ============================================================================
@app.get(
    "/api/enrolled",
    response_model=EnrolledList,
    summary="List enrolled fingerprints",
    description="Retrieve all enrolled fingerprints in enrollment order."
)
async def list_enrolled(registry: EnrollmentRegistry = Depends(get_registry)):
    """List all enrolled fingerprints."""
    records = [to_schema(r) for r in registry.list_records()]
    return EnrolledList(count=len(records), fingerprints=records)


@app.get(
    "/api/enrolled/{fingerprint_id}",
    response_model=EnrolledFingerprint,
    responses={
        404: {"model": ErrorResponse, "description": "Fingerprint not found"}
    },
    summary="Get an enrolled fingerprint"
)
async def get_enrolled(fingerprint_id: str, registry: EnrollmentRegistry = Depends(get_registry)):
    """Get a specific enrolled fingerprint by ID."""
    reference = registry.get(fingerprint_id)
    if reference is None:
        raise HTTPException(
            status_code=404,
            detail=f"Fingerprint with ID '{fingerprint_id}' not found"
        )
    return to_schema(reference)


# ============================================================================
# API 4: DELETE / CLEAR
# ============================================================================
@app.delete(
    "/api/enrolled/{fingerprint_id}",
    response_model=DeleteResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Fingerprint not found"}
    },
    summary="Delete an enrolled fingerprint"
)
async def delete_enrolled(fingerprint_id: str, registry: EnrollmentRegistry = Depends(get_registry)):
    """Delete an enrolled fingerprint by ID."""
    if not registry.delete(fingerprint_id):
        raise HTTPException(
            status_code=404,
            detail=f"Fingerprint with ID '{fingerprint_id}' not found"
        )
    return DeleteResponse(
        success=True,
        message="Fingerprint deleted",
        deleted_id=fingerprint_id
    )


@app.delete(
    "/api/clear",
    response_model=ClearResponse,
    summary="Clear all enrolled fingerprints"
)
async def clear_enrolled(registry: EnrollmentRegistry = Depends(get_registry)):
    """Remove every enrolled fingerprint and its stored image."""
    cleared = registry.clear()
    return ClearResponse(
        success=True,
        message="All enrolled fingerprints cleared",
        cleared=cleared
    )


# Exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Custom HTTP exception handler."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTPException",
            "detail": exc.detail
        }
    )


@app.exception_handler(FingerAuthError)
async def matching_exception_handler(request, exc):
    """Image errors on the submitted fingerprint."""
    if isinstance(exc, DecodeError):
        status_code = 422
    elif isinstance(exc, ImageReadError):
        status_code = 400
    else:
        logger.error(f"Matching failed: {exc}", exc_info=True)
        status_code = 500
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """General exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "detail": "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=API_HOST, port=API_PORT)
