"""Pytest configuration and fixtures."""

import asyncio
import hashlib
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

import httpx
import pytest
from botocore.credentials import Credentials

from mpart_upload.config import Settings
from mpart_upload.core.signer import RequestSigner
from mpart_upload.repositories.storage_repo import StorageRepository
from mpart_upload.utils.constants import AuthMode

BUCKET = "test-bucket"
ENDPOINT = "http://s3.test"
NS = "http://s3.amazonaws.com/doc/2006-03-01/"


class FakeS3:
    """
    In-memory S3 multipart endpoint served through httpx.MockTransport.

    Knobs:
        part_failures: part number -> status codes returned by successive attempts
        missing_etag_parts: parts answered 200 without an ETag header
        part_delays: part number -> seconds to wait before answering
        initiate_status / complete_status / abort_status: force a status code
        complete_error: answer the completion with 200 and an Error document
    """

    def __init__(self, bucket: str = BUCKET):
        self.bucket = bucket
        self.requests: List[httpx.Request] = []
        self.uploads: Dict[str, Dict[int, bytes]] = {}
        self.objects: Dict[str, bytes] = {}
        self.aborted: List[str] = []
        self.completed_manifests: List[List[tuple]] = []
        self.arrival_order: List[int] = []
        self.part_failures: Dict[int, List[int]] = {}
        self.missing_etag_parts: set = set()
        self.part_delays: Dict[int, float] = {}
        self.initiate_status: Optional[int] = None
        self.complete_status: Optional[int] = None
        self.abort_status: Optional[int] = None
        self.complete_error = False
        self._counter = 0

    @staticmethod
    def etag_for(data: bytes) -> str:
        return f'"{hashlib.md5(data).hexdigest()}"'

    def requests_for(self, method: str, param: Optional[str] = None) -> List[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and (param is None or param in r.url.params)
        ]

    def _key(self, request: httpx.Request) -> str:
        prefix = f"/{self.bucket}/"
        assert request.url.path.startswith(prefix), request.url.path
        return request.url.path[len(prefix):]

    def _is_authenticated(self, request: httpx.Request) -> bool:
        return "authorization" in request.headers or "X-Amz-Signature" in request.url.params

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        await request.aread()
        if not self._is_authenticated(request):
            return httpx.Response(403, text="<Error><Code>AccessDenied</Code></Error>")

        params = request.url.params
        if request.method == "POST" and "uploads" in params:
            return self._initiate(request)
        if request.method == "PUT" and "partNumber" in params:
            return await self._upload_part(request)
        if request.method == "POST" and "uploadId" in params:
            return self._complete(request)
        if request.method == "DELETE" and "uploadId" in params:
            return self._abort(request)
        return httpx.Response(400, text="<Error><Code>InvalidRequest</Code></Error>")

    def _initiate(self, request: httpx.Request) -> httpx.Response:
        if self.initiate_status:
            return httpx.Response(
                self.initiate_status, text="<Error><Code>AccessDenied</Code></Error>"
            )
        self._counter += 1
        upload_id = f"upload-{self._counter}"
        self.uploads[upload_id] = {}
        body = (
            f'<?xml version="1.0" encoding="UTF-8"?>'
            f'<InitiateMultipartUploadResult xmlns="{NS}">'
            f"<Bucket>{self.bucket}</Bucket><Key>{self._key(request)}</Key>"
            f"<UploadId>{upload_id}</UploadId></InitiateMultipartUploadResult>"
        )
        return httpx.Response(200, text=body)

    async def _upload_part(self, request: httpx.Request) -> httpx.Response:
        part_number = int(request.url.params["partNumber"])
        upload_id = request.url.params["uploadId"]
        if upload_id not in self.uploads:
            return httpx.Response(404, text="<Error><Code>NoSuchUpload</Code></Error>")

        delay = self.part_delays.get(part_number)
        if delay:
            await asyncio.sleep(delay)

        failures = self.part_failures.get(part_number)
        if failures:
            status = failures.pop(0)
            return httpx.Response(
                status, text=f"<Error><Code>Fail{status}</Code><PartNumber>{part_number}</PartNumber></Error>"
            )

        self.uploads[upload_id][part_number] = request.content
        self.arrival_order.append(part_number)
        if part_number in self.missing_etag_parts:
            return httpx.Response(200)
        return httpx.Response(200, headers={"ETag": self.etag_for(request.content)})

    def _complete(self, request: httpx.Request) -> httpx.Response:
        upload_id = request.url.params["uploadId"]
        if self.complete_status:
            return httpx.Response(
                self.complete_status, text="<Error><Code>InvalidPart</Code></Error>"
            )
        if self.complete_error:
            return httpx.Response(
                200,
                text="<Error><Code>InternalError</Code><Message>We encountered an internal error.</Message></Error>",
            )

        stored = self.uploads.get(upload_id)
        if stored is None:
            return httpx.Response(404, text="<Error><Code>NoSuchUpload</Code></Error>")

        root = ET.fromstring(request.content)
        manifest = [
            (int(part.findtext("PartNumber")), part.findtext("ETag"))
            for part in root.findall("Part")
        ]
        self.completed_manifests.append(manifest)

        numbers = [number for number, _ in manifest]
        if numbers != sorted(set(numbers)):
            return httpx.Response(400, text="<Error><Code>InvalidPartOrder</Code></Error>")
        for number, etag in manifest:
            if number not in stored or self.etag_for(stored[number]) != etag:
                return httpx.Response(400, text="<Error><Code>InvalidPart</Code></Error>")

        key = self._key(request)
        self.objects[key] = b"".join(stored[number] for number in numbers)
        del self.uploads[upload_id]
        body = (
            f'<CompleteMultipartUploadResult xmlns="{NS}">'
            f"<Location>{ENDPOINT}/{self.bucket}/{key}</Location>"
            f"<Bucket>{self.bucket}</Bucket><Key>{key}</Key>"
            f'<ETag>"composite-{len(manifest)}"</ETag></CompleteMultipartUploadResult>'
        )
        return httpx.Response(200, text=body)

    def _abort(self, request: httpx.Request) -> httpx.Response:
        upload_id = request.url.params["uploadId"]
        if self.abort_status:
            return httpx.Response(self.abort_status, text="<Error><Code>InternalError</Code></Error>")
        self.aborted.append(upload_id)
        self.uploads.pop(upload_id, None)
        return httpx.Response(204)


@pytest.fixture
def fake_s3() -> FakeS3:
    """Fresh fake object store."""
    return FakeS3()


@pytest.fixture
async def http_client(fake_s3: FakeS3):
    """HTTP client routed to the fake store."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_s3.handler)) as client:
        yield client


@pytest.fixture
def credentials() -> Credentials:
    return Credentials("AKIDEXAMPLE", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY")


@pytest.fixture
def signer(credentials: Credentials) -> RequestSigner:
    return RequestSigner(credentials, "us-east-1")


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: static credentials, no retry delay."""
    return Settings(
        aws_access_key_id="AKIDEXAMPLE",
        aws_secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        aws_region="us-east-1",
        s3_bucket_name=BUCKET,
        s3_endpoint_url=ENDPOINT,
        s3_key_prefix="",
        max_concurrency=3,
        max_retries=0,
        retry_base_delay_seconds=0,
        fail_fast=False,
        auth_mode=AuthMode.HEADER,
    )


@pytest.fixture
def storage_repo(http_client: httpx.AsyncClient, signer: RequestSigner) -> StorageRepository:
    return StorageRepository(
        http_client=http_client,
        signer=signer,
        bucket=BUCKET,
        endpoint_url=f"{ENDPOINT}/{BUCKET}",
    )


@pytest.fixture
def make_file(tmp_path):
    """Write `data` to a file under tmp_path and return its path."""

    def _make(data: bytes, name: str = "payload.bin"):
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return _make
