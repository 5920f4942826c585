"""Storage repository for multipart upload wire operations."""

from typing import Dict, Optional
from urllib.parse import quote, urlencode

import httpx
from botocore.exceptions import BotoCoreError

from ..config.storage import build_object_url
from ..core.exceptions import (
    AbortError,
    CommitError,
    PartTransferError,
    SessionInitiationError,
)
from ..core.signer import RequestSigner
from ..schemas.multipart_schemas import CompletionManifest, UploadSession
from ..utils.constants import AuthMode, DEFAULT_PRESIGN_EXPIRATION
from ..utils.logger import get_logger
from ..utils.s3_xml import parse_complete_result, parse_error, parse_upload_id

logger = get_logger(__name__)


def _is_transient_status(status_code: int) -> bool:
    """Throttling and server errors are worth another attempt."""
    return status_code == 429 or status_code >= 500


class StorageRepository:
    """Repository for the multipart protocol against one bucket."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        signer: RequestSigner,
        bucket: str,
        endpoint_url: str,
        auth_mode: AuthMode = AuthMode.HEADER,
        presign_expiration: int = DEFAULT_PRESIGN_EXPIRATION,
    ):
        self.http_client = http_client
        self.signer = signer
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.auth_mode = auth_mode
        self.presign_expiration = presign_expiration

    def object_url(self, key: str, **params) -> str:
        """URL of an object, with query parameters percent-encoded."""
        url = build_object_url(self.endpoint_url, key)
        if params:
            url += "?" + urlencode(params, quote_via=quote, safe="")
        return url

    async def _send_signed(
        self,
        method: str,
        url: str,
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        signed_headers = self.signer.sign(method, url, body, headers)
        return await self.http_client.request(method, url, content=body, headers=signed_headers)

    async def initiate_multipart_upload(
        self, key: str, content_type: str = "application/octet-stream"
    ) -> UploadSession:
        """
        Initiate multipart upload.
        Returns:
            The opened session carrying the store's upload ID
        """
        url = build_object_url(self.endpoint_url, key) + "?uploads"

        try:
            response = await self._send_signed(
                "POST", url, headers={"Content-Type": content_type}
            )
        except (httpx.HTTPError, BotoCoreError) as e:
            raise SessionInitiationError(f"Failed to initiate multipart upload: {e}") from e

        if not response.is_success:
            raise SessionInitiationError(
                "Failed to initiate multipart upload",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            upload_id = parse_upload_id(response.content)
        except ValueError as e:
            raise SessionInitiationError(
                f"Failed to initiate multipart upload: {e}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        logger.info("Multipart upload initiated", bucket=self.bucket, key=key, upload_id=upload_id)
        return UploadSession(upload_id=upload_id, bucket=self.bucket, key=key)

    def generate_part_presigned_url(self, session: UploadSession, part_number: int) -> str:
        """Generate a presigned URL for uploading one part."""
        url = self.object_url(
            session.key, partNumber=part_number, uploadId=session.upload_id
        )
        return self.signer.presign("PUT", url, expires_in=self.presign_expiration)

    async def upload_part(self, session: UploadSession, part_number: int, data: bytes) -> str:
        """
        Upload one part.
        Returns:
            The part's ETag, verbatim
        """
        try:
            if self.auth_mode == AuthMode.PRESIGNED:
                url = self.generate_part_presigned_url(session, part_number)
                response = await self.http_client.put(url, content=data)
            else:
                url = self.object_url(
                    session.key, partNumber=part_number, uploadId=session.upload_id
                )
                response = await self._send_signed("PUT", url, data)
        except httpx.TransportError as e:
            raise PartTransferError(
                f"Error sending part {part_number}: {e!r}",
                part_number=part_number,
                transient=True,
            ) from e
        except (httpx.HTTPError, BotoCoreError) as e:
            raise PartTransferError(
                f"Error preparing part {part_number}: {e}", part_number=part_number
            ) from e

        if not response.is_success:
            raise PartTransferError(
                f"Error uploading part {part_number}",
                part_number=part_number,
                status_code=response.status_code,
                response_body=response.text,
                transient=_is_transient_status(response.status_code),
            )

        etag = response.headers.get("ETag")
        if not etag:
            raise PartTransferError(
                f"ETag not found in response for part {part_number}",
                part_number=part_number,
                status_code=response.status_code,
                response_body=response.text,
            )
        return etag

    async def complete_multipart_upload(
        self, session: UploadSession, manifest: CompletionManifest
    ) -> Dict[str, Optional[str]]:
        """
        Complete multipart upload by combining all parts.
        Returns:
            Location, bucket, key and etag reported by the store
        """
        url = self.object_url(session.key, uploadId=session.upload_id)
        body = manifest.to_xml()

        try:
            response = await self._send_signed(
                "POST", url, body, headers={"Content-Type": "application/xml"}
            )
        except (httpx.HTTPError, BotoCoreError) as e:
            raise CommitError(f"Failed to complete multipart upload: {e}") from e

        if not response.is_success:
            raise CommitError(
                "Failed to complete multipart upload",
                status_code=response.status_code,
                response_body=response.text,
            )

        # S3 may report a failed completion inside a 200 response
        error = parse_error(response.content)
        if error is not None:
            code, message = error
            raise CommitError(
                f"Failed to complete multipart upload: {code} {message}".rstrip(),
                status_code=response.status_code,
                response_body=response.text,
            )

        if not response.content:
            return {}
        try:
            return parse_complete_result(response.content)
        except ValueError as e:
            raise CommitError(
                f"Failed to complete multipart upload: {e}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

    async def abort_multipart_upload(self, session: UploadSession) -> None:
        """Abort multipart upload and clean up parts."""
        url = self.object_url(session.key, uploadId=session.upload_id)

        try:
            response = await self._send_signed("DELETE", url)
        except (httpx.HTTPError, BotoCoreError) as e:
            raise AbortError(f"Failed to abort multipart upload: {e}") from e

        if not response.is_success:
            raise AbortError(
                "Failed to abort multipart upload",
                status_code=response.status_code,
                response_body=response.text,
            )
        logger.info("Multipart upload aborted", key=session.key, upload_id=session.upload_id)
