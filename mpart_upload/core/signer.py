"""SigV4 request signing for the object store."""

from typing import Dict, Optional

from botocore.auth import S3SigV4Auth, S3SigV4QueryAuth
from botocore.awsrequest import AWSRequest
from botocore.config import Config
from botocore.credentials import Credentials

from ..utils.constants import DEFAULT_PRESIGN_EXPIRATION


class RequestSigner:
    """
    Stateless signing capability.

    Holds only the credentials and the signing scope; every call builds a
    fresh botocore signer, so one instance can be shared by concurrent part
    uploads and passed explicitly to whatever needs authentication.
    """

    service_name = "s3"

    def __init__(self, credentials: Credentials, region: str, sign_payload: bool = False):
        self.credentials = credentials
        self.region = region
        self.sign_payload = sign_payload

    def sign(
        self,
        method: str,
        url: str,
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
        sign_payload: Optional[bool] = None,
    ) -> Dict[str, str]:
        """
        Sign a request.
        Args:
            method: HTTP method
            url: Full request URL, query string included
            body: Request body
            headers: Headers that will be sent and must be covered by the signature
            sign_payload: SHA-256 sign the body instead of sending UNSIGNED-PAYLOAD
        Returns:
            Headers to send, authentication headers included
        """
        if sign_payload is None:
            sign_payload = self.sign_payload

        request = AWSRequest(method=method, url=url, data=body, headers=dict(headers or {}))
        request.context["client_config"] = Config(
            s3={"payload_signing_enabled": sign_payload}
        )
        S3SigV4Auth(self.credentials, self.service_name, self.region).add_auth(request)
        return dict(request.headers.items())

    def presign(
        self, method: str, url: str, expires_in: int = DEFAULT_PRESIGN_EXPIRATION
    ) -> str:
        """
        Produce a time-bounded URL carrying all authorization parameters.
        Args:
            method: HTTP method the URL will be used with
            url: Request URL, query string included
            expires_in: Validity window in seconds
        Returns:
            Presigned URL
        """
        request = AWSRequest(method=method, url=url)
        S3SigV4QueryAuth(
            self.credentials, self.service_name, self.region, expires=expires_in
        ).add_auth(request)
        return request.url
