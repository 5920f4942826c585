"""Application constants and enums."""

from enum import Enum


# S3 multipart limits
MIN_PART_SIZE = 5 * 1024 * 1024  # 5MB, all parts except the last
MAX_PART_SIZE = 5 * 1024 * 1024 * 1024  # 5GB
MAX_PARTS = 10000

DEFAULT_PART_SIZE = MAX_PART_SIZE
DEFAULT_PRESIGN_EXPIRATION = 900  # 15 minutes


class UploadState(str, Enum):
    """Multipart upload lifecycle state."""

    IDLE = "idle"
    SESSION_OPEN = "session_open"
    PARTS_IN_FLIGHT = "parts_in_flight"
    PARTS_COLLECTED = "parts_collected"
    COMMITTED = "committed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Committed and failed uploads accept no further transitions."""
        return self in (UploadState.COMMITTED, UploadState.FAILED)


# Allowed transitions; FAILED is reachable from every non-terminal state.
UPLOAD_STATE_TRANSITIONS = {
    UploadState.IDLE: {UploadState.SESSION_OPEN},
    UploadState.SESSION_OPEN: {UploadState.PARTS_IN_FLIGHT},
    UploadState.PARTS_IN_FLIGHT: {UploadState.PARTS_COLLECTED},
    UploadState.PARTS_COLLECTED: {UploadState.COMMITTED},
    UploadState.COMMITTED: set(),
    UploadState.FAILED: set(),
}


class AuthMode(str, Enum):
    """How part upload requests are authenticated."""

    HEADER = "header"
    PRESIGNED = "presigned"


class EmptyFilePolicy(str, Enum):
    """What to do with a zero-length source."""

    REJECT = "reject"
    SINGLE_PART = "single_part"


class UploadPhase(str, Enum):
    """Phase an upload error was raised in."""

    PLAN = "plan"
    INITIATE = "initiate"
    READ = "read"
    PART = "part"
    COMMIT = "commit"
    ABORT = "abort"
