"""
Pydantic models for API request/response schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class EnrolledFingerprint(BaseModel):
    """Schema for an enrolled fingerprint"""
    id: str = Field(..., description="Opaque unique identifier of the enrolled fingerprint")
    filename: str = Field(..., description="Original image filename")
    enrolled_at: datetime = Field(..., description="Timestamp when the fingerprint was enrolled")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "3f2b9c1e8d7a4b6c9e0f1a2b3c4d5e6f",
                "filename": "right_index.png",
                "enrolled_at": "2024-01-15T10:30:00Z"
            }
        }


class EnrolledList(BaseModel):
    """Schema for listing enrolled fingerprints"""
    count: int = Field(..., description="Number of enrolled fingerprints")
    fingerprints: List[EnrolledFingerprint] = Field(..., description="Enrolled fingerprints in enrollment order")


class EnrollResponse(BaseModel):
    """Schema for enroll response"""
    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Status message")
    id: Optional[str] = Field(default=None, description="Identifier of the enrolled fingerprint")


class SkippedReferenceInfo(BaseModel):
    """A reference that could not be compared"""
    id: str = Field(..., description="Identifier of the skipped reference")
    error: str = Field(..., description="Error kind")
    detail: str = Field(..., description="Why the reference was skipped")


class AuthenticateResponse(BaseModel):
    """Schema for authenticate response"""
    success: bool = Field(..., description="Whether authentication succeeded")
    authenticated: bool = Field(..., description="Whether the best score reached the threshold")
    message: str = Field(..., description="Human readable outcome")
    score: float = Field(..., ge=0, le=100, description="Best similarity score (0-100)")
    matched_id: Optional[str] = Field(default=None, description="Best matching fingerprint, if any")
    status: str = Field(..., description="authenticated, rejected or no_references")
    threshold: float = Field(..., description="Threshold applied to the score")
    skipped: List[SkippedReferenceInfo] = Field(default_factory=list, description="References that failed to process")
    processing_time_ms: float = Field(..., description="Processing time in milliseconds")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "authenticated": True,
                "message": "Authentication successful! Similarity: 93.41%",
                "score": 93.41,
                "matched_id": "3f2b9c1e8d7a4b6c9e0f1a2b3c4d5e6f",
                "status": "authenticated",
                "threshold": 70.0,
                "skipped": [],
                "processing_time_ms": 18.7
            }
        }


class DeleteResponse(BaseModel):
    """Schema for delete response"""
    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Status message")
    deleted_id: Optional[str] = Field(default=None, description="Identifier of the deleted fingerprint")


class ClearResponse(BaseModel):
    """Schema for clear response"""
    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Status message")
    cleared: int = Field(..., description="Number of fingerprints removed")


class ErrorResponse(BaseModel):
    """Schema for error responses"""
    error: str = Field(..., description="Error type")
    detail: str = Field(..., description="Detailed error message")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "DecodeError",
                "detail": "Failed to decode image: cannot identify image file"
            }
        }
