"""Multipart upload error hierarchy."""

from typing import Dict, List, Optional

from ..utils.constants import UploadPhase


class MultipartUploadError(Exception):
    """
    Base error for every failed upload phase.
    Carries enough context to diagnose the failure without re-running:
    the phase, the part number where applicable and the raw store response.
    """

    phase: UploadPhase = UploadPhase.PART

    def __init__(
        self,
        message: str,
        part_number: Optional[int] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        self.message = message
        self.part_number = part_number
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(str(self))

    def __str__(self) -> str:
        text = self.message
        if self.status_code is not None:
            text += f" (HTTP {self.status_code})"
        if self.response_body:
            text += f": {self.response_body}"
        return text


class EmptySourceError(MultipartUploadError):
    """Zero-length source rejected by the empty file policy."""

    phase = UploadPhase.PLAN


class SessionInitiationError(MultipartUploadError):
    """Store rejected the session open request."""

    phase = UploadPhase.INITIATE


class PartReadError(MultipartUploadError):
    """Local source could not supply a part's bytes."""

    phase = UploadPhase.READ


class PartTransferError(MultipartUploadError):
    """Signing, network or status failure while transferring a part."""

    phase = UploadPhase.PART

    def __init__(self, *args, transient: bool = False, **kwargs):
        self.transient = transient
        super().__init__(*args, **kwargs)


class PartialUploadError(MultipartUploadError):
    """Fewer part results than planned segments after all workers finished."""

    phase = UploadPhase.PART

    def __init__(
        self,
        expected: int,
        uploaded: int,
        failures: Optional[Dict[int, MultipartUploadError]] = None,
    ):
        self.expected = expected
        self.uploaded = uploaded
        self.failures = failures or {}
        message = f"Partial multipart upload: expected {expected} parts, uploaded {uploaded}"
        if self.failures:
            details = "; ".join(
                f"part {number}: {error}" for number, error in sorted(self.failures.items())
            )
            message += f"; failed {details}"
        first = self.failed_parts[0] if self.failed_parts else None
        super().__init__(message, part_number=first)

    @property
    def failed_parts(self) -> List[int]:
        """Part numbers that failed, ascending."""
        return sorted(self.failures)


class UploadCancelledError(MultipartUploadError):
    """Upload stopped by its cancellation signal."""

    phase = UploadPhase.PART

    def __init__(
        self, message: str, failures: Optional[Dict[int, MultipartUploadError]] = None
    ):
        self.failures = failures or {}
        super().__init__(message)


class CommitError(MultipartUploadError):
    """Store rejected the completion manifest."""

    phase = UploadPhase.COMMIT


class AbortError(MultipartUploadError):
    """Store rejected the abort request."""

    phase = UploadPhase.ABORT
