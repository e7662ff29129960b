# User value: This file runs each uploaded file through validation, optional compression and storage so admins get one clear result per file.
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from schemas.media_contract import (
    ACCESS_ACTION_MEDIA_UPLOAD,
    ERROR_UPLOAD_ERROR,
    ERROR_VALIDATION_ERROR,
    MEDIA_KIND_IMAGE,
)
from services.feature_flags import is_access_log_enabled
from services.image_compression import CompressionOutcome, compress_image, get_target_compression_size
from services.media_limits import MediaLimits, get_media_limits
from services.media_store import create_media_record, increment_folder_size, log_access
from services.media_validator import CandidateFile, ValidationOutcome, check_image_dimensions, validate_media_file
from services.storage import upload_media
from utils.metrics import incr, observe_ms
from utils.stage_logging import log_stage

logger = logging.getLogger("api.upload")

_OUTPUT_MIME_BY_FORMAT = {
    "png": "image/png",
    "webp": "image/webp",
}


@dataclass
class BatchResult:
    batch_id: str
    total: int = 0
    results: list = field(default_factory=list)
    total_bytes: int = 0
    cancelled: bool = False

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.results if item.get("success"))

    @property
    def message(self) -> str:
        return f"Uploaded {self.succeeded} of {self.total} files"


def _output_mime(outcome: CompressionOutcome, fallback: str) -> str:
    if outcome.format == "unknown":
        return fallback
    return _OUTPUT_MIME_BY_FORMAT.get(outcome.format, "image/jpeg")


def _failure(file: CandidateFile, code: str, error: str, suggestion: str | None = None, **extra) -> dict:
    out = {"fileName": file.name, "success": False, "error": error, "code": code}
    if suggestion:
        out["suggestion"] = suggestion
    out.update(extra)
    return out


def _validation_failure(file: CandidateFile, validation: ValidationOutcome) -> dict:
    return _failure(
        file,
        validation.code or ERROR_VALIDATION_ERROR,
        validation.message or "File validation failed",
        validation.suggestion,
    )


def _compression_fields(outcome: CompressionOutcome) -> dict:
    return {
        "compressed": True,
        "originalSize": outcome.original_size_bytes,
        "compressedSize": outcome.compressed_size_bytes,
        "compressionRatio": outcome.ratio,
    }


class _Admission:
    def __init__(
        self,
        *,
        batch_id: str,
        folder_id: str,
        admin_id: str,
        compress_enabled: bool,
        limits_provider: Callable[[], MediaLimits],
        uploader: Callable[..., dict],
        recorder: Callable[..., dict],
        compressor: Callable[..., CompressionOutcome],
    ):
        self.batch_id = batch_id
        self.folder_id = folder_id
        self.admin_id = admin_id
        self.compress_enabled = compress_enabled
        self.limits_provider = limits_provider
        self.uploader = uploader
        self.recorder = recorder
        self.compressor = compressor

    def _store(self, file: CandidateFile, data: bytes, mime_type: str) -> dict:
        stored = self.uploader(
            data=data,
            folder_id=self.folder_id,
            file_name=file.name,
            media_kind=file.media_kind,
            mime_type=mime_type,
        )
        record = self.recorder(
            folder_id=self.folder_id,
            file_name=file.name,
            media_kind=file.media_kind,
            mime_type=mime_type,
            size_bytes=len(data),
            stored=stored,
        )
        return {"id": record.get("id"), "url": record.get("url") or stored.get("url"), "type": file.media_kind}

    def log_event(self, stage: str, event: str, file: CandidateFile, **extra) -> None:
        log_stage(
            batch_id=self.batch_id,
            stage=stage,
            event=event,
            admin=self.admin_id,
            folder_id=self.folder_id,
            file_name=file.name,
            **extra,
        )

    def _compression_eligible(self, file: CandidateFile, validation: ValidationOutcome) -> bool:
        return self.compress_enabled and validation.should_compress and file.media_kind == MEDIA_KIND_IMAGE

    def admit(self, file: CandidateFile, batch: BatchResult) -> dict:
        validation = validate_media_file(file, file.media_kind, limits_provider=self.limits_provider)

        if validation.valid:
            return self._upload_original(file, batch)

        if self._compression_eligible(file, validation):
            rescued = self._compress_and_upload(file, batch)
            if rescued is not None:
                return rescued

        self.log_event("UPLOAD_VALIDATION", "FAILED", file, code=validation.code, size_bytes=file.size_bytes)
        incr("media_uploads_rejected_total", code=validation.code or ERROR_VALIDATION_ERROR)
        return _validation_failure(file, validation)

    def _upload_original(self, file: CandidateFile, batch: BatchResult) -> dict:
        self.log_event("MEDIA_STORE", "STARTED", file, size_bytes=file.size_bytes)
        try:
            media = self._store(file, file.data, file.mime_type)
        except Exception as exc:
            self.log_event("MEDIA_STORE", "FAILED", file, error=f"{exc.__class__.__name__}: {exc}")
            incr("media_uploads_failed_total", reason="store", media_kind=file.media_kind)
            return _failure(file, ERROR_UPLOAD_ERROR, "Upload failed")

        batch.total_bytes += file.size_bytes
        self.log_event("MEDIA_STORE", "COMPLETED", file, media_id=media.get("id"))
        incr("media_uploads_total", media_kind=file.media_kind, compressed=False)
        return {"fileName": file.name, "success": True, "media": media}

    # Returns None when compression could not bring the file under the ceiling.
    def _compress_and_upload(self, file: CandidateFile, batch: BatchResult) -> dict | None:
        limits = self.limits_provider()
        target = get_target_compression_size(limits.image_max_size_bytes)
        self.log_event("MEDIA_COMPRESS", "STARTED", file, size_bytes=file.size_bytes, target_bytes=target)

        started = time.perf_counter()
        try:
            outcome = self.compressor(file.data, target)
        except Exception as exc:
            self.log_event("MEDIA_COMPRESS", "FAILED", file, error=f"{exc.__class__.__name__}: {exc}")
            return None
        finally:
            observe_ms("media_compression_latency_ms", (time.perf_counter() - started) * 1000.0)

        if outcome.compressed_size_bytes >= file.size_bytes or outcome.compressed_size_bytes > limits.image_max_size_bytes:
            self.log_event(
                "MEDIA_COMPRESS",
                "FAILED",
                file,
                error="compression_insufficient",
                compressed_bytes=outcome.compressed_size_bytes,
                attempts=len(outcome.attempts),
            )
            incr("media_compression_insufficient_total")
            return None

        dimensions = check_image_dimensions(outcome.data, limits, file.name)
        if not dimensions.valid:
            self.log_event("MEDIA_COMPRESS", "FAILED", file, error="dimensions_exceeded", code=dimensions.code)
            incr("media_uploads_rejected_total", code=dimensions.code)
            return _validation_failure(file, dimensions)

        self.log_event(
            "MEDIA_COMPRESS",
            "COMPLETED",
            file,
            original_bytes=outcome.original_size_bytes,
            compressed_bytes=outcome.compressed_size_bytes,
            ratio=round(outcome.ratio, 2),
            attempts=len(outcome.attempts),
        )

        try:
            media = self._store(file, outcome.data, _output_mime(outcome, file.mime_type))
        except Exception as exc:
            self.log_event("MEDIA_STORE", "FAILED", file, error=f"{exc.__class__.__name__}: {exc}", compressed=True)
            incr("media_uploads_failed_total", reason="store_after_compression", media_kind=file.media_kind)
            return _failure(file, ERROR_UPLOAD_ERROR, "Upload failed after compression", **_compression_fields(outcome))

        batch.total_bytes += outcome.compressed_size_bytes
        self.log_event("MEDIA_STORE", "COMPLETED", file, media_id=media.get("id"), compressed=True)
        incr("media_uploads_total", media_kind=file.media_kind, compressed=True)
        return {"fileName": file.name, "success": True, "media": media, **_compression_fields(outcome)}


def process_upload_batch(
    *,
    folder_id: str,
    files: Iterable[CandidateFile],
    compress_enabled: bool,
    admin_id: str = "",
    batch_id: str | None = None,
    limits_provider: Callable[[], MediaLimits] | None = None,
    uploader: Callable[..., dict] | None = None,
    recorder: Callable[..., dict] | None = None,
    compressor: Callable[..., CompressionOutcome] | None = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> BatchResult:
    """Admit every file independently and collect one result per file.

    Files are handled in order; no file's outcome depends on another's.
    ``should_stop`` is polled before each file, and once it returns True
    the remaining files are left unstarted.
    """
    files = list(files)
    batch = BatchResult(batch_id=batch_id or uuid.uuid4().hex, total=len(files))
    admission = _Admission(
        batch_id=batch.batch_id,
        folder_id=folder_id,
        admin_id=admin_id,
        compress_enabled=compress_enabled,
        limits_provider=limits_provider or get_media_limits,
        uploader=uploader or upload_media,
        recorder=recorder or create_media_record,
        compressor=compressor or compress_image,
    )

    log_stage(
        batch_id=batch.batch_id,
        stage="UPLOAD_BATCH",
        event="STARTED",
        admin=admin_id,
        folder_id=folder_id,
        file_count=batch.total,
        compress_enabled=compress_enabled,
    )

    for file in files:
        if should_stop is not None and should_stop():
            batch.cancelled = True
            logger.warning(
                "upload_batch_stopped batch_id=%s processed=%s total=%s",
                batch.batch_id,
                len(batch.results),
                batch.total,
            )
            for skipped in files[len(batch.results) :]:
                admission.log_event("UPLOAD_VALIDATION", "SKIPPED", skipped, reason="client_disconnected")
            incr("media_uploads_skipped_total", amount=batch.total - len(batch.results))
            break
        batch.results.append(admission.admit(file, batch))

    log_stage(
        batch_id=batch.batch_id,
        stage="UPLOAD_BATCH",
        event="COMPLETED",
        admin=admin_id,
        folder_id=folder_id,
        succeeded=batch.succeeded,
        total=batch.total,
        total_bytes=batch.total_bytes,
        cancelled=batch.cancelled,
    )
    return batch


# User value: keeps the folder size and audit trail accurate after each upload batch.
def record_batch_bookkeeping(
    *,
    batch: BatchResult,
    folder_id: str,
    admin_id: str,
    ip_address: str = "unknown",
    user_agent: str = "unknown",
) -> None:
    try:
        increment_folder_size(folder_id, batch.total_bytes)
    except Exception as exc:
        logger.error(
            "folder_size_update_failed batch_id=%s folder=%s bytes=%s error=%s: %s",
            batch.batch_id,
            folder_id,
            batch.total_bytes,
            exc.__class__.__name__,
            exc,
        )

    if not is_access_log_enabled():
        return
    try:
        log_access(
            admin_id=admin_id,
            folder_id=folder_id,
            action=ACCESS_ACTION_MEDIA_UPLOAD,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    except Exception as exc:
        logger.error(
            "access_log_failed batch_id=%s folder=%s error=%s: %s",
            batch.batch_id,
            folder_id,
            exc.__class__.__name__,
            exc,
        )
