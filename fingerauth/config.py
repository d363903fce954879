"""
Configuration settings for the FingerAuth service
"""
import os
from pathlib import Path

from pydantic import BaseModel, Field

# Base directories
BASE_DIR = Path(__file__).resolve().parent.parent
UPLOAD_DIR = Path(os.getenv("FINGERAUTH_UPLOAD_DIR", str(BASE_DIR / "uploads")))

# =============================================================================
# MATCHING SETTINGS
# =============================================================================

# Minimum similarity (0-100) for a query to authenticate.
# Holistic pixel comparison is coarse: it is not rotation, translation or
# lighting invariant, so keep this loose for demo use.
MATCH_THRESHOLD = float(os.getenv("FINGERAUTH_MATCH_THRESHOLD", "70.0"))

# Every image is stretched to this size before comparison
CANONICAL_WIDTH = int(os.getenv("FINGERAUTH_CANONICAL_WIDTH", "200"))
CANONICAL_HEIGHT = int(os.getenv("FINGERAUTH_CANONICAL_HEIGHT", "200"))

# Threads used to normalize enrolled references (1 = sequential)
MAX_WORKERS = int(os.getenv("FINGERAUTH_MAX_WORKERS", "1"))

# Image upload validation
SUPPORTED_FORMATS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tif", ".tiff", ".gif"}

# =============================================================================
# API Configuration
# =============================================================================
API_TITLE = "FingerAuth API"
API_DESCRIPTION = """
Demo fingerprint enrollment and authentication API.

## Features
- **Enroll**: Store a reference fingerprint image
- **Authenticate**: Compare a fingerprint against every enrolled reference
- **List**: View enrolled fingerprints
- **Delete / Clear**: Remove one or all enrolled fingerprints

## Matching
Images are converted to grayscale, stretched to a fixed size and compared
pixel by pixel. The similarity is the share of the maximum possible absolute
intensity difference that the two images do *not* differ by (0-100).
This is not a real biometric matcher.
"""
API_VERSION = "1.0.0"
API_HOST = os.getenv("HOST", "0.0.0.0")
API_PORT = int(os.getenv("PORT", "3000"))


class MatcherConfig(BaseModel):
    """Tunables of the normalize-and-compare pipeline."""
    threshold: float = Field(default=MATCH_THRESHOLD, ge=0.0, le=100.0, description="Minimum similarity to authenticate")
    canonical_width: int = Field(default=CANONICAL_WIDTH, gt=0, description="Width every image is resized to")
    canonical_height: int = Field(default=CANONICAL_HEIGHT, gt=0, description="Height every image is resized to")
    max_workers: int = Field(default=MAX_WORKERS, ge=1, description="Threads used to normalize references")

    model_config = {"frozen": True}

    @property
    def canonical_size(self) -> tuple:
        return (self.canonical_width, self.canonical_height)
