"""Multipart upload orchestration."""

import asyncio
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Union

import httpx

from ..config import Settings, settings as default_settings
from ..config.storage import get_bucket_name, get_credentials, get_endpoint_url
from ..core.exceptions import (
    MultipartUploadError,
    PartialUploadError,
    UploadCancelledError,
)
from ..core.signer import RequestSigner
from ..repositories.source_repo import LocalFileSource
from ..repositories.storage_repo import StorageRepository
from ..schemas.multipart_schemas import (
    CompletionManifest,
    PartResult,
    PartSegment,
    UploadResult,
    UploadSession,
)
from ..utils.constants import UPLOAD_STATE_TRANSITIONS, UploadState
from ..utils.helpers import format_file_size, generate_object_key, guess_content_type
from ..utils.logger import get_logger
from ..utils.validators import validate_object_key
from .part_uploader import PartUploader
from .planner import calculate_part_size, plan_parts

logger = get_logger(__name__)


class UploadJob:
    """State of a single upload call."""

    def __init__(self, source: LocalFileSource, key: str, content_type: str):
        self.source = source
        self.key = key
        self.content_type = content_type
        self.state = UploadState.IDLE
        self.session: Optional[UploadSession] = None
        self.segments: List[PartSegment] = []
        self.results: List[PartResult] = []
        self.failures: Dict[int, MultipartUploadError] = {}

    def transition(self, new_state: UploadState) -> None:
        """Move to `new_state`; failing is allowed from any non-terminal state."""
        if self.state.is_terminal or (
            new_state != UploadState.FAILED
            and new_state not in UPLOAD_STATE_TRANSITIONS[self.state]
        ):
            raise RuntimeError(f"Invalid upload transition {self.state.value} -> {new_state.value}")
        logger.debug("Upload state changed", key=self.key, old=self.state.value, new=new_state.value)
        self.state = new_state


class UploadService:
    """
    Coordinates one multipart upload from plan to commit.

    Parts are queued and consumed by a bounded pool of workers, so the
    number of parts and the concurrency level are independent. Results are
    collected after every worker has finished and only then ordered by part
    number into the completion manifest. A session that was opened always
    ends in a commit or an abort.
    """

    def __init__(
        self,
        storage_repo: StorageRepository,
        config: Optional[Settings] = None,
        part_size: Optional[int] = None,
    ):
        self.storage_repo = storage_repo
        self.config = config or default_settings
        self.part_size = part_size if part_size is not None else self.config.part_size

    def plan(self, file_size: int) -> List[PartSegment]:
        """Plan the parts of a source of `file_size` bytes."""
        part_size = self.part_size
        if part_size == 0:
            part_size, _ = calculate_part_size(file_size)
        return plan_parts(file_size, part_size, self.config.empty_file_policy)

    async def upload_file(
        self,
        file_path: Union[str, Path],
        key: Optional[str] = None,
        content_type: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> UploadResult:
        """
        Upload a local file as one object.
        Args:
            file_path: File to upload
            key: Object key; derived from the file name and S3_KEY_PREFIX when omitted
            content_type: MIME type; guessed from the file name when omitted
            cancel_event: Set it to stop dispatching parts and abort the upload
        Returns:
            Summary of the committed object
        """
        key = validate_object_key(
            key or generate_object_key(str(file_path), self.config.s3_key_prefix or None)
        )
        job = UploadJob(
            source=LocalFileSource(file_path),
            key=key,
            content_type=content_type or guess_content_type(str(file_path)),
        )
        return await self.run(job, cancel_event)

    async def run(self, job: UploadJob, cancel_event: Optional[asyncio.Event] = None) -> UploadResult:
        """Drive `job` through its lifecycle."""
        started = time.monotonic()

        try:
            job.segments = self.plan(job.source.size)
        except (MultipartUploadError, ValueError):
            job.transition(UploadState.FAILED)
            raise

        logger.info(
            "Starting multipart upload",
            key=job.key,
            size=format_file_size(job.source.size),
            parts=len(job.segments),
            concurrency=self.config.max_concurrency,
        )

        async with self._session_scope(job) as session:
            job.transition(UploadState.PARTS_IN_FLIGHT)
            await self._upload_parts(job, cancel_event)
            job.transition(UploadState.PARTS_COLLECTED)

            if len(job.results) != len(job.segments):
                if cancel_event is not None and cancel_event.is_set():
                    raise UploadCancelledError(
                        f"Upload cancelled after {len(job.results)} of {len(job.segments)} parts",
                        failures=job.failures,
                    )
                raise PartialUploadError(len(job.segments), len(job.results), job.failures)

            manifest = CompletionManifest.from_results(job.results)
            completed = await self.storage_repo.complete_multipart_upload(session, manifest)
            job.transition(UploadState.COMMITTED)

        duration = time.monotonic() - started
        logger.info(
            "Multipart upload completed",
            key=job.key,
            upload_id=session.upload_id,
            parts=len(manifest),
            duration=round(duration, 3),
        )
        return UploadResult(
            bucket=session.bucket,
            key=session.key,
            upload_id=session.upload_id,
            etag=completed.get("etag"),
            location=completed.get("location"),
            total_parts=len(manifest),
            total_bytes=job.source.size,
            duration_seconds=duration,
        )

    @asynccontextmanager
    async def _session_scope(self, job: UploadJob) -> AsyncIterator[UploadSession]:
        """Open the session; abort it if the body exits with any exception."""
        try:
            job.session = await self.storage_repo.initiate_multipart_upload(
                job.key, job.content_type
            )
        except MultipartUploadError:
            job.transition(UploadState.FAILED)
            raise
        job.transition(UploadState.SESSION_OPEN)

        try:
            yield job.session
        except BaseException as e:
            job.transition(UploadState.FAILED)
            logger.error(
                "Multipart upload failed",
                key=job.key,
                upload_id=job.session.upload_id,
                error=str(e) or type(e).__name__,
            )
            await self._abort(job.session)
            raise

    async def _abort(self, session: UploadSession) -> None:
        try:
            await self.storage_repo.abort_multipart_upload(session)
        except MultipartUploadError as e:
            # Cleanup is best effort; the original error is what the caller sees
            logger.error(
                "Failed to abort multipart upload",
                key=session.key,
                upload_id=session.upload_id,
                error=str(e),
            )

    async def _upload_parts(self, job: UploadJob, cancel_event: Optional[asyncio.Event]) -> None:
        """Run every segment through a bounded worker pool; return once all workers finished."""
        uploader = PartUploader(
            self.storage_repo,
            job.source,
            max_retries=self.config.max_retries,
            retry_base_delay=self.config.retry_base_delay_seconds,
            retry_backoff_multiplier=self.config.retry_backoff_multiplier,
            retry_max_delay=self.config.retry_max_delay_seconds,
        )
        queue: asyncio.Queue = asyncio.Queue()
        for segment in job.segments:
            queue.put_nowait(segment)
        stop = asyncio.Event()

        def stopped() -> bool:
            return stop.is_set() or (cancel_event is not None and cancel_event.is_set())

        async def worker() -> None:
            while not stopped():
                try:
                    segment = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    result = await uploader.upload(job.session, segment)
                except MultipartUploadError as e:
                    job.failures[segment.part_number] = e
                    logger.error(
                        "Part upload failed",
                        upload_id=job.session.upload_id,
                        part_number=segment.part_number,
                        error=str(e),
                    )
                    if self.config.fail_fast:
                        stop.set()
                else:
                    job.results.append(result)

        worker_count = min(self.config.max_concurrency, len(job.segments))
        outcomes = await asyncio.gather(
            *(worker() for _ in range(worker_count)), return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome


def create_upload_service(
    http_client: httpx.AsyncClient, config: Optional[Settings] = None
) -> UploadService:
    """Wire an UploadService from settings."""
    config = config or default_settings
    signer = RequestSigner(
        get_credentials(config), config.aws_region, sign_payload=config.sign_payload
    )
    storage_repo = StorageRepository(
        http_client=http_client,
        signer=signer,
        bucket=get_bucket_name(config),
        endpoint_url=get_endpoint_url(config),
        auth_mode=config.auth_mode,
        presign_expiration=config.presign_expiration,
    )
    return UploadService(storage_repo, config)
