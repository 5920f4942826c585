"""Multipart upload schemas."""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.s3_xml import build_complete_body, parse_complete_body


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UploadSession(BaseModel):
    """One multipart transfer opened on the store."""

    upload_id: str = Field(..., min_length=1, description="Upload ID issued by the store")
    bucket: str = Field(..., description="Target bucket")
    key: str = Field(..., description="Target object key")
    created_at: datetime = Field(default_factory=_utc_now)


class PartSegment(BaseModel):
    """A planned byte range of the source."""

    part_number: int = Field(..., ge=1, description="Part number (1-indexed)")
    offset: int = Field(..., ge=0, description="Byte offset in the source")
    length: int = Field(..., ge=0, description="Number of bytes in this part")

    @property
    def end(self) -> int:
        """Exclusive end offset."""
        return self.offset + self.length


class PartResult(BaseModel):
    """Outcome of one successful part upload."""

    part_number: int = Field(..., ge=1, description="Part number (1-indexed)")
    etag: str = Field(..., min_length=1, description="ETag returned by the store")
    size: int = Field(default=0, ge=0, description="Bytes transferred")
    duration_seconds: Optional[float] = Field(None, description="Wall time of the successful attempt")
    attempts: int = Field(default=1, ge=1, description="Attempts it took")


class ManifestPart(BaseModel):
    """One entry of the completion manifest."""

    part_number: int = Field(..., ge=1)
    etag: str = Field(..., min_length=1)


class CompletionManifest(BaseModel):
    """Ordered part list instructing the store how to assemble the object."""

    parts: List[ManifestPart] = Field(..., min_length=1)

    @field_validator("parts")
    @classmethod
    def check_contiguous(cls, parts: List[ManifestPart]) -> List[ManifestPart]:
        """Part numbers must run 1..N ascending with no gaps or duplicates."""
        for expected, part in enumerate(parts, start=1):
            if part.part_number != expected:
                raise ValueError(
                    f"Manifest part numbers must be 1..{len(parts)} ascending; "
                    f"found {part.part_number} at position {expected}"
                )
        return parts

    @classmethod
    def from_results(cls, results: Iterable[PartResult]) -> "CompletionManifest":
        """Build the manifest from collected results in any arrival order."""
        ordered = sorted(results, key=lambda r: r.part_number)
        return cls(
            parts=[ManifestPart(part_number=r.part_number, etag=r.etag) for r in ordered]
        )

    @classmethod
    def from_xml(cls, body: bytes) -> "CompletionManifest":
        """Parse a CompleteMultipartUpload document."""
        return cls(
            parts=[
                ManifestPart(part_number=number, etag=etag)
                for number, etag in parse_complete_body(body)
            ]
        )

    def to_xml(self) -> bytes:
        """Serialize to the CompleteMultipartUpload document."""
        return build_complete_body((p.part_number, p.etag) for p in self.parts)

    def __len__(self) -> int:
        return len(self.parts)


class UploadResult(BaseModel):
    """Summary of a committed upload."""

    bucket: str
    key: str
    upload_id: str
    etag: Optional[str] = Field(None, description="ETag of the assembled object")
    location: Optional[str] = None
    total_parts: int
    total_bytes: int
    duration_seconds: float
