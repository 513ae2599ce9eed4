"""
Tests for the remote fetch primitive
"""

import httpx
import pytest

from clipper.core.errors import FetchFailure
from clipper.core.fetch import HttpFetcher, is_remote_uri, stage_bytes


def test_is_remote_uri():
    assert is_remote_uri("https://example.com/a.png")
    assert is_remote_uri("http://example.com")
    assert is_remote_uri("file:///tmp/a.png")
    assert not is_remote_uri("file:///tmp/a.png", local=False)
    assert is_remote_uri("https://example.com/a.png", local=False)
    assert not is_remote_uri("https://")
    assert not is_remote_uri("ftp://example.com/a.png")
    assert not is_remote_uri("avatar")
    assert not is_remote_uri("")
    assert not is_remote_uri(None)
    assert not is_remote_uri(5)


class TestHttpFetcher:

    def test_fetches_bytes(self):
        def handler(request: httpx.Request):
            assert request.url == "https://example.com/cat.png"
            return httpx.Response(200, content=b"meow")

        fetcher = HttpFetcher(client=httpx.Client(transport=httpx.MockTransport(handler)))

        assert fetcher("https://example.com/cat.png") == b"meow"

    def test_http_error_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        fetcher = HttpFetcher(client=httpx.Client(transport=transport))

        with pytest.raises(FetchFailure) as exc_info:
            fetcher("https://example.com/missing.png")
        assert exc_info.value.uri == "https://example.com/missing.png"

    def test_network_error(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = HttpFetcher(client=httpx.Client(transport=httpx.MockTransport(handler)))

        with pytest.raises(FetchFailure):
            fetcher("https://example.com/cat.png")

    def test_file_uri(self, tmp_path):
        path = tmp_path / "local.txt"
        path.write_bytes(b"local")

        assert HttpFetcher()(path.as_uri()) == b"local"
        with pytest.raises(FetchFailure):
            HttpFetcher()((tmp_path / "missing.txt").as_uri())

    def test_unsupported_scheme(self):
        with pytest.raises(FetchFailure):
            HttpFetcher()("ftp://example.com/a.png")


def test_stage_bytes():
    artifact = stage_bytes(b"data", "https://example.com/docs/report.pdf?download=1")

    assert artifact.staged
    assert artifact.mime_type == "application/pdf"
    assert artifact.path.suffix == ".pdf"
    assert artifact.read_bytes() == b"data"

    artifact.discard()
    assert not artifact.path.exists()


def test_stage_bytes_unknown_type():
    artifact = stage_bytes(b"data")
    assert artifact.mime_type == "application/octet-stream"
    artifact.discard()
