# models/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)

    @property
    def rank(self) -> int:
        # completed and failed share the final rank
        return {"pending": 0, "in_progress": 1}.get(self.value, 2)


class MatchBand(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    GRAY = "GRAY"


class VerificationStatus(str, Enum):
    VERIFIED = "VERIFIED"
    REVIEW = "REVIEW"
    FAILED = "FAILED"


class ConfidenceLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class VerificationRequest(BaseModel):
    id_image: Optional[bytes] = None
    selfie_image: Optional[bytes] = None
    doc_type: Optional[str] = None


class CompressedImage(BaseModel):
    data: bytes
    encoded_size_bytes: int
    original_size_bytes: int
    quality_used: int
    dimension: int
    # set when the input was smaller than any re-encode and is passed through as-is
    kept_original: bool = False
    mime_type: str = "image/jpeg"


class ProviderTask(BaseModel):
    """Vendor-side unit of asynchronous work tracked while polling."""

    task_id: str
    group_id: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    attempts: int = 0

    def can_advance(self, new_status: TaskStatus) -> bool:
        if new_status == self.status:
            return True
        return not self.status.is_terminal and new_status.rank > self.status.rank

    def advance(self, new_status: TaskStatus) -> None:
        """Move to `new_status`. Never backwards, and never out of completed/failed."""
        if not self.can_advance(new_status):
            raise ValueError(
                f"Task {self.task_id} is already {self.status.value}, cannot move to {new_status.value}"
            )
        self.status = new_status


class FaceInfo(BaseModel):
    detected: bool = True
    quality: str = "unknown"


class LivenessInfo(BaseModel):
    status: str = "N/A"
    confidence: float = 0


class VerificationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(alias="requestId")
    match_score: float = Field(alias="matchScore", ge=0, le=100)
    match_band: MatchBand = Field(alias="matchBand")
    status: VerificationStatus
    confidence_level: ConfidenceLevel = Field(alias="confidenceLevel")
    face_matched: bool = Field(alias="faceMatched")
    face1: FaceInfo = Field(default_factory=FaceInfo)
    face2: FaceInfo = Field(default_factory=FaceInfo)
    liveness_info: LivenessInfo = Field(default_factory=LivenessInfo, alias="livenessInfo")
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="processedAt")
    provider_mode: str = Field(alias="providerMode")
    raw_response: Any = Field(default=None, alias="rawResponse")


class FaceMatchResponse(BaseModel):
    success: bool = True
    data: VerificationResult


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    detail: Optional[Any] = None


class HealthResponse(BaseModel):
    status: str = "healthy"
    mode: str
    timestamp: datetime
