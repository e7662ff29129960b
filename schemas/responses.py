# User value: This file defines the upload/limits response shapes so admin clients can rely on stable fields.
from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class MediaRef(BaseModel):
    # User value: points the admin at the stored media right after upload.
    id: Optional[str] = None
    url: Optional[str] = None
    type: Literal["image", "video"]


class UploadFileResult(BaseModel):
    # User value: one entry per submitted file so mixed batches are easy to read.
    fileName: str
    success: bool
    error: Optional[str] = None
    code: Optional[str] = None
    # User value: tells the admin what to do next when a file is rejected.
    suggestion: Optional[str] = None
    compressed: Optional[bool] = None
    originalSize: Optional[int] = Field(default=None, ge=0)
    compressedSize: Optional[int] = Field(default=None, ge=0)
    compressionRatio: Optional[float] = Field(default=None, ge=0.0)
    media: Optional[MediaRef] = None


class UploadBatchResponse(BaseModel):
    message: str
    succeeded: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    results: List[UploadFileResult] = Field(default_factory=list)


class RateLimitStatus(BaseModel):
    allowed: int
    remaining: int
    percentageRemaining: int


class MediaLimitsData(BaseModel):
    imageMaxSizeBytes: int
    imageMaxSizeMB: float
    videoMaxSizeBytes: int
    videoMaxSizeMB: float
    rawMaxSizeBytes: int
    rawMaxSizeMB: float
    imageMaxPx: int
    assetMaxTotalPx: int
    rateLimit: RateLimitStatus


class MediaLimitsResponse(BaseModel):
    ok: bool = True
    data: MediaLimitsData


class MediaDeletedResponse(BaseModel):
    ok: bool = True
    id: str
    folderSizeBytes: int = Field(default=0, ge=0)


class ProviderUsage(BaseModel):
    plan: str = "Unknown"
    lastUpdated: str = ""
    creditsUsed: float = 0.0
    creditsLimit: float = 0.0
    creditsUsedPercent: float = 0.0
    bandwidthBytes: int = 0
    objects: int = 0
    resources: int = 0
    derivedResources: int = 0
    requests: int = 0


class StorageUsageResponse(BaseModel):
    # User value: one glance tells the admin whether old folders must be cleared.
    currentGb: float
    quotaGb: float
    percentUsed: float
    status: Literal["ok", "warning", "critical"]
    recommendation: str
    totalFolders: int = Field(default=0, ge=0)
    totalFiles: int = Field(default=0, ge=0)
    bytesUsed: int = Field(default=0, ge=0)
    provider: ProviderUsage
