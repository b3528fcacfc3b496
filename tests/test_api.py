"""Tests for the UPYUN API client."""

import base64
import hashlib
import hmac
from unittest.mock import patch

import httpx
import pytest

from pyupyun.api import UpyunClient
from pyupyun.exceptions import UpyunConfigError
from pyupyun.sync.operations import ResultStatus

API_URL = "https://api.test"


def make_client(handler, **kwargs):
    """Create a client whose requests are answered by ``handler``."""
    return UpyunClient(
        bucket="site",
        operator="deployer",
        password="secret",
        api_url=API_URL,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class RecordingHandler:
    """Mock transport handler returning a fixed response."""

    def __init__(self, status_code=200, **response_kwargs):
        self.status_code = status_code
        self.response_kwargs = response_kwargs
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, **self.response_kwargs)


class TestUpyunClientInit:
    """Tests for client construction."""

    def test_missing_credentials(self):
        """Missing credentials raise a config error naming them."""
        with patch("pyupyun.api.config") as mock_config:
            mock_config.bucket = "site"
            mock_config.operator = None
            mock_config.password = None
            mock_config.api_url = API_URL

            with pytest.raises(UpyunConfigError, match="operator, password"):
                UpyunClient()

    def test_falls_back_to_config(self):
        with patch("pyupyun.api.config") as mock_config:
            mock_config.bucket = "from-config"
            mock_config.operator = "op"
            mock_config.password = "pw"
            mock_config.api_url = "https://custom.example/"

            client = UpyunClient()

        assert client.bucket == "from-config"
        assert client.api_url == "https://custom.example"

    def test_context_manager_closes(self):
        handler = RecordingHandler()
        with make_client(handler) as client:
            client.get_file("a")
            assert client._client is not None

        assert client._client is None


class TestSignature:
    """Tests for request signing."""

    def test_sign_format(self):
        client = make_client(RecordingHandler())
        date = "Wed, 01 May 2024 10:00:00 GMT"

        expected_key = hashlib.md5(b"secret").hexdigest().encode()
        expected = base64.b64encode(
            hmac.new(
                expected_key, f"PUT&/site/a.txt&{date}".encode(), hashlib.sha1
            ).digest()
        ).decode()

        assert client.sign("put", "/site/a.txt", date) == f"UPYUN deployer:{expected}"

    def test_sign_with_content_md5(self):
        client = make_client(RecordingHandler())
        date = "Wed, 01 May 2024 10:00:00 GMT"

        assert client.sign("PUT", "/site/a", date) != client.sign(
            "PUT", "/site/a", date, content_md5="abc"
        )

    def test_request_is_signed(self):
        handler = RecordingHandler()
        client = make_client(handler)

        client.get_file("index.html")

        request = handler.requests[0]
        date = request.headers["Date"]
        assert date.endswith("GMT")
        assert request.headers["Authorization"] == client.sign(
            "GET", "/site/index.html", date
        )

    def test_uri_is_encoded(self):
        handler = RecordingHandler()
        client = make_client(handler)

        client.get_file("posts/hello world.html")

        assert handler.requests[0].url.raw_path == b"/site/posts/hello%20world.html"


class TestOperations:
    """Tests for the store operations."""

    def test_get_file_returns_content(self):
        handler = RecordingHandler(200, content=b"[]")
        client = make_client(handler)

        result = client.get_file(".file_list.json")

        assert result.ok
        assert result.content == b"[]"
        assert handler.requests[0].method == "GET"
        assert str(handler.requests[0].url) == f"{API_URL}/site/.file_list.json"

    def test_put_file(self):
        handler = RecordingHandler(200)
        client = make_client(handler)

        result = client.put_file("css/main.css", b"body{}")

        request = handler.requests[0]
        assert result.ok
        assert result.content is None
        assert request.method == "PUT"
        assert request.content == b"body{}"
        assert "content-type" not in request.headers

    def test_put_file_sends_signed_content_md5(self):
        handler = RecordingHandler(200)
        client = make_client(handler)

        client.put_file("css/main.css", b"body{}")

        request = handler.requests[0]
        content_md5 = hashlib.md5(b"body{}").hexdigest()
        assert request.headers["Content-MD5"] == content_md5
        assert request.headers["Authorization"] == client.sign(
            "PUT", "/site/css/main.css", request.headers["Date"], content_md5
        )

    def test_put_file_with_content_type(self):
        handler = RecordingHandler(200)
        client = make_client(handler)

        client.put_file("about", b"<p>about</p>", "text/html")

        assert handler.requests[0].headers["Content-Type"] == "text/html"

    def test_make_dir(self):
        handler = RecordingHandler(200)
        client = make_client(handler)

        assert client.make_dir("posts").ok

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.headers["folder"] == "true"

    def test_delete_file(self):
        handler = RecordingHandler(200)
        client = make_client(handler)

        assert client.delete_file("old.html").ok
        assert handler.requests[0].method == "DELETE"


class TestClassification:
    """Tests for mapping HTTP responses to results."""

    @pytest.mark.parametrize("status_code", [200, 201, 204])
    def test_2xx_is_success(self, status_code):
        client = make_client(RecordingHandler(status_code))

        assert client.delete_file("a").status == ResultStatus.SUCCESS

    def test_404_is_not_found(self):
        handler = RecordingHandler(
            404, json={"code": 40400001, "msg": "file or directory not found"}
        )
        client = make_client(handler)

        result = client.delete_file("gone")

        assert result.missing
        assert result.detail == {
            "status": 404,
            "code": 40400001,
            "msg": "file or directory not found",
        }

    @pytest.mark.parametrize("status_code", [400, 401, 403, 429, 500, 503])
    def test_other_status_is_other(self, status_code):
        client = make_client(RecordingHandler(status_code, text="nope"))

        result = client.delete_file("dir")

        assert result.status == ResultStatus.OTHER
        assert result.detail == {"status": status_code, "body": "nope"}

    def test_http_errors_are_not_retried(self):
        handler = RecordingHandler(503)
        client = make_client(handler)

        client.make_dir("a")

        assert len(handler.requests) == 1


class TestTransportErrors:
    """Tests for retrying transport failures."""

    @patch("pyupyun.api.time.sleep")
    def test_retries_then_succeeds(self, mock_sleep):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200)

        client = make_client(handler, max_retries=3)

        assert client.put_file("a.txt", b"a").ok
        assert len(attempts) == 3
        assert mock_sleep.call_count == 2

    @patch("pyupyun.api.time.sleep")
    def test_exhausted_is_other(self, mock_sleep):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler, max_retries=2)

        result = client.get_file("a.txt")

        assert result.status == ResultStatus.OTHER
        assert "Network error" in result.detail
        assert mock_sleep.call_count == 2

    @patch("pyupyun.api.time.sleep")
    def test_one_operation_covers_all_retries(self, mock_sleep):
        """A single call issues max_retries + 1 requests before giving up."""
        attempts = []

        def handler(request):
            attempts.append(request)
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)

        assert not client.delete_file("docs").ok
        assert len(attempts) == client.max_retries + 1

    def test_timeout_applies_to_requests(self):
        client = make_client(RecordingHandler(), timeout=12.5)

        timeout = client._get_client().timeout
        assert timeout.connect == 12.5
        assert timeout.read == 12.5

    def test_retry_delay_grows(self):
        client = make_client(RecordingHandler(), retry_delay=1.0)

        with patch("pyupyun.api.random.random", return_value=0.5):
            assert client._calculate_retry_delay(0) == 1.0
            assert client._calculate_retry_delay(2) == 4.0
