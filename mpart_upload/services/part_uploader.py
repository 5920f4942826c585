"""Single-part transfer with bounded retry."""

import asyncio
import time

from ..core.exceptions import PartTransferError
from ..repositories.source_repo import LocalFileSource
from ..repositories.storage_repo import StorageRepository
from ..schemas.multipart_schemas import PartResult, PartSegment, UploadSession
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PartUploader:
    """Uploads parts of one source into one session."""

    def __init__(
        self,
        storage_repo: StorageRepository,
        source: LocalFileSource,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_backoff_multiplier: float = 2.0,
        retry_max_delay: float = 30.0,
    ):
        self.storage_repo = storage_repo
        self.source = source
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_backoff_multiplier = retry_backoff_multiplier
        self.retry_max_delay = retry_max_delay

    def retry_delay(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (1-based)."""
        delay = self.retry_base_delay * (self.retry_backoff_multiplier ** (attempt - 1))
        return min(delay, self.retry_max_delay)

    async def upload(self, session: UploadSession, segment: PartSegment) -> PartResult:
        """
        Read the segment and transfer it.

        Read failures are final. Transfer failures flagged transient are
        retried up to max_retries times; re-sending a part number overwrites
        the previous attempt on the store.
        """
        data = await self.source.read(segment)

        attempt = 0
        while True:
            attempt += 1
            started = time.monotonic()
            try:
                etag = await self.storage_repo.upload_part(session, segment.part_number, data)
            except PartTransferError as e:
                if not e.transient or attempt > self.max_retries:
                    raise
                delay = self.retry_delay(attempt)
                logger.warning(
                    "Retrying part upload",
                    upload_id=session.upload_id,
                    part_number=segment.part_number,
                    attempt=attempt,
                    delay=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)
                continue

            duration = time.monotonic() - started
            logger.info(
                "Part uploaded",
                upload_id=session.upload_id,
                part_number=segment.part_number,
                size=segment.length,
                attempts=attempt,
                duration=round(duration, 3),
            )
            return PartResult(
                part_number=segment.part_number,
                etag=etag,
                size=segment.length,
                duration_seconds=duration,
                attempts=attempt,
            )
