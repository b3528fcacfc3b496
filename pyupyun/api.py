"""API client for the UPYUN storage REST API."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import random
import time
from email.utils import formatdate
from typing import Any
from urllib.parse import quote

import httpx

from .config import config
from .exceptions import UpyunConfigError
from .sync.operations import RemoteResult
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_TRANSPORT_RETRY_DELAY, md5_bytes

logger = logging.getLogger(__name__)


class UpyunClient:
    """Client for a single UPYUN storage bucket.

    Every public operation returns a :class:`RemoteResult` instead of raising:
    2xx responses are successes, 404 is not-found, and every other response
    or transport failure is reported as ``OTHER`` with the raw details.

    Each public operation may issue several HTTP requests: transport errors
    (connection failures, timeouts) are retried up to ``max_retries`` times
    with exponential backoff before ``OTHER`` is returned. A single attempt
    of the deploy engine's directory removal retry therefore covers up to
    ``max_retries + 1`` requests. A stalled request fails as a
    transport error after ``timeout`` seconds.
    """

    def __init__(
        self,
        bucket: str | None = None,
        operator: str | None = None,
        password: str | None = None,
        api_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_TRANSPORT_RETRY_DELAY,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize UPYUN API client.

        Args:
            bucket: Bucket (service) name (uses config if not provided)
            operator: Operator name (uses config if not provided)
            password: Operator password (uses config if not provided)
            api_url: Optional API endpoint (uses config if not provided)
            max_retries: Maximum number of retries on transport errors
            retry_delay: Initial delay between retries in seconds
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)

        Raises:
            UpyunConfigError: If bucket, operator or password is missing
        """
        self.bucket = bucket or config.bucket
        self.operator = operator or config.operator
        self.password = password or config.password
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        missing = [
            name
            for name, value in (
                ("bucket", self.bucket),
                ("operator", self.operator),
                ("password", self.password),
            )
            if not value
        ]
        if missing:
            raise UpyunConfigError(
                f"UPYUN {', '.join(missing)} not configured. Please check your "
                "config or set the UPYUN_BUCKET, UPYUN_OPERATOR and "
                "UPYUN_PASSWORD environment variables."
            )

        self._password_md5 = hashlib.md5(self.password.encode("utf-8")).hexdigest()
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> UpyunClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # =========================
    # Request helpers
    # =========================

    def _uri(self, path: str) -> str:
        """Build the URL-encoded request URI for a bucket path."""
        return quote(f"/{self.bucket}/{path.lstrip('/')}", safe="/~")

    def sign(self, method: str, uri: str, date: str, content_md5: str = "") -> str:
        """Compute the UPYUN signature of a request.

        The signature is ``base64(HMAC-SHA1(md5(password), message))`` where
        the message is ``METHOD&URI&DATE`` optionally followed by
        ``&Content-MD5``.

        Args:
            method: HTTP method
            uri: URL-encoded request URI starting with the bucket
            date: RFC 1123 date sent in the Date header
            content_md5: Optional MD5 of the request body

        Returns:
            Value for the Authorization header
        """
        parts = [method.upper(), uri, date]
        if content_md5:
            parts.append(content_md5)
        message = "&".join(parts)
        digest = hmac.new(
            self._password_md5.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha1,
        ).digest()
        signature = base64.b64encode(digest).decode("ascii")
        return f"UPYUN {self.operator}:{signature}"

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _request(
        self,
        method: str,
        path: str,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> RemoteResult:
        """Make a signed request and classify the response.

        Transport errors are retried with exponential backoff; HTTP error
        responses are returned as results without retrying.

        Args:
            method: HTTP method
            path: Path inside the bucket
            content: Optional request body
            headers: Additional request headers

        Returns:
            RemoteResult describing the outcome
        """
        uri = self._uri(path)
        url = f"{self.api_url}{uri}"
        client = self._get_client()
        last_error: Exception | None = None

        for attempt in range(self.max_retries + 1):
            date = formatdate(usegmt=True)
            request_headers = {
                "Date": date,
                "Authorization": self.sign(
                    method, uri, date, (headers or {}).get("Content-MD5", "")
                ),
            }
            if headers:
                request_headers.update(headers)

            try:
                response = client.request(
                    method, url, content=content, headers=request_headers
                )
            except httpx.RequestError as e:
                last_error = e
                if attempt < self.max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        f"{method} {path} failed ({e}), retrying in {delay:.2f}s"
                    )
                    time.sleep(delay)
                    continue
                break

            return self._classify(method, path, response)

        logger.debug(f"{method} {path} failed after {self.max_retries + 1} attempts")
        return RemoteResult.other(f"Network error: {last_error}")

    def _classify(self, method: str, path: str, response: httpx.Response) -> RemoteResult:
        status = response.status_code
        logger.debug(f"{method} {path} -> {status}")
        if 200 <= status < 300:
            return RemoteResult.success(response.content if method == "GET" else None)
        if status == 404:
            return RemoteResult.not_found(_describe(response))
        return RemoteResult.other(_describe(response))

    # =========================
    # Store operations
    # =========================

    def get_file(self, path: str) -> RemoteResult:
        """Download a file.

        Args:
            path: Path inside the bucket

        Returns:
            Success with the body in ``content``, not-found, or other
        """
        return self._request("GET", path)

    def put_file(
        self, path: str, content: bytes, content_type: str | None = None
    ) -> RemoteResult:
        """Upload a file, creating missing parent directories.

        The MD5 of the content is sent as ``Content-MD5`` and included in the
        signature.

        Args:
            path: Path inside the bucket
            content: File content
            content_type: Optional Content-Type; when omitted UPYUN infers
                the type from the file extension

        Returns:
            RemoteResult of the upload
        """
        headers = {"Content-MD5": md5_bytes(content)}
        if content_type:
            headers["Content-Type"] = content_type
        return self._request("PUT", path, content=content, headers=headers)

    def delete_file(self, path: str) -> RemoteResult:
        """Delete a file or an empty directory."""
        return self._request("DELETE", path)

    def make_dir(self, path: str) -> RemoteResult:
        """Create a directory."""
        return self._request("POST", path, headers={"folder": "true"})


def _describe(response: httpx.Response) -> dict[str, Any]:
    """Collect the raw details of an error response."""
    detail: dict[str, Any] = {"status": response.status_code}
    try:
        body = response.json()
    except ValueError:
        body = response.text[:500] if response.content else ""
    if isinstance(body, dict):
        for key in ("code", "msg", "id"):
            if key in body:
                detail[key] = body[key]
    elif body:
        detail["body"] = body
    return detail
