"""Integration tests for the S3 client policy against a local S3-compatible endpoint."""

import asyncio
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from types import SimpleNamespace

import boto3
import pytest
from botocore.exceptions import ClientError

from rider_photos.core.factories import (
    MAX_ATTEMPTS,
    AppContext,
    client_config,
    disable_region_redirects,
)
from rider_photos.core.models import FaceConfig, PersistenceConfig, ThumbnailConfig

PERMANENT_REDIRECT = (
    301,
    {"Content-Type": "application/xml", "x-amz-bucket-region": "eu-west-1"},
    b'<?xml version="1.0" encoding="UTF-8"?>'
    b"<Error><Code>PermanentRedirect</Code>"
    b"<Message>The bucket you are attempting to access must be addressed using the specified endpoint.</Message>"
    b"<Bucket>src</Bucket><Endpoint>src.s3.eu-west-1.amazonaws.com</Endpoint></Error>",
)
INTERNAL_ERROR = (
    500,
    {"Content-Type": "application/xml"},
    b'<?xml version="1.0" encoding="UTF-8"?>'
    b"<Error><Code>InternalError</Code><Message>We encountered an internal error.</Message></Error>",
)
GIF_OBJECT = (200, {"Content-Type": "image/gif"}, b"GIF89a\x01\x00\x01\x00\x00\x00\x00;")


@pytest.fixture
def s3_endpoint():
    """Local endpoint that plays back scripted responses, repeating the last one."""
    requests = []
    script = []

    class ScriptedHandler(BaseHTTPRequestHandler):
        def do_GET(self):
            requests.append(self.path)
            status, headers, body = script[min(len(requests), len(script)) - 1]
            self.send_response(status)
            for name, value in headers.items():
                self.send_header(name, value)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), ScriptedHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield SimpleNamespace(
        url=f"http://127.0.0.1:{server.server_port}", requests=requests, script=script
    )

    server.shutdown()
    server.server_close()


def _sync_s3_client(endpoint_url):
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        endpoint_url=endpoint_url,
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=client_config(),
    )
    return disable_region_redirects(client)


class TestRegionRedirects:
    """S3 clients never re-send a request to the region a redirect names."""

    def test_sync_client_does_not_follow_redirect(self, s3_endpoint):
        s3_endpoint.script.extend([PERMANENT_REDIRECT, GIF_OBJECT])
        client = _sync_s3_client(s3_endpoint.url)

        with pytest.raises(ClientError) as exc_info:
            client.get_object(Bucket="src", Key="a.gif")

        assert exc_info.value.response["Error"]["Code"] == "PermanentRedirect"
        assert len(s3_endpoint.requests) == 1

    def test_app_context_client_does_not_follow_redirect(self, s3_endpoint, monkeypatch):
        s3_endpoint.script.extend([PERMANENT_REDIRECT, GIF_OBJECT])
        monkeypatch.setenv("AWS_ENDPOINT_URL_S3", s3_endpoint.url)
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
        monkeypatch.delenv("AWS_SESSION_TOKEN", raising=False)
        monkeypatch.delenv("AWS_PROFILE", raising=False)
        monkeypatch.delenv("AWS_IGNORE_CONFIGURED_ENDPOINT_URLS", raising=False)
        app = AppContext(ThumbnailConfig(), FaceConfig(), PersistenceConfig(), region="us-east-1")

        async def fetch():
            async with app.s3_client() as s3_client:
                await s3_client.get_object(Bucket="src", Key="a.gif")

        with pytest.raises(ClientError) as exc_info:
            asyncio.run(fetch())

        assert exc_info.value.response["Error"]["Code"] == "PermanentRedirect"
        assert len(s3_endpoint.requests) == 1


class TestRetryBudget:
    """Transient failures are retried up to the attempt ceiling in total."""

    def test_attempts_capped_in_total(self, s3_endpoint):
        s3_endpoint.script.append(INTERNAL_ERROR)
        client = _sync_s3_client(s3_endpoint.url)

        assert client.meta.config.retries["total_max_attempts"] == MAX_ATTEMPTS

        with pytest.raises(ClientError):
            client.get_object(Bucket="src", Key="a.gif")

        assert len(s3_endpoint.requests) == MAX_ATTEMPTS

    def test_success_after_transient_failure(self, s3_endpoint):
        s3_endpoint.script.extend([INTERNAL_ERROR, GIF_OBJECT])
        client = _sync_s3_client(s3_endpoint.url)

        response = client.get_object(Bucket="src", Key="a.gif")

        assert response["Body"].read().startswith(b"GIF89a")
        assert len(s3_endpoint.requests) == 2
