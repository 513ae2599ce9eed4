"""
Remote fetch primitive.

Retrieves raw bytes for a URI and stages them as a temporary artifact
the orchestrator can feed through the save pipeline.
"""

import logging
import mimetypes
import tempfile
from pathlib import Path
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx

from clipper.core.errors import FetchFailure
from clipper.filerecord.models import Artifact


logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http", "https")


def is_remote_uri(value, local: bool = True) -> bool:
    """
    True if value is an http(s) URL with a host, or a file:// URI when
    local is set.
    """
    if not isinstance(value, str):
        return False
    parts = urlsplit(value.strip())
    if parts.scheme in REMOTE_SCHEMES:
        return bool(parts.netloc)
    if local and parts.scheme == "file":
        return bool(parts.path)
    return False


class HttpFetcher:
    """
    Default fetch collaborator.

    http/https URIs are downloaded with httpx; file:// URIs are read from
    the local filesystem. Any failure surfaces as FetchFailure.
    """

    def __init__(self, timeout: float = 30.0, client: httpx.Client | None = None):
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        return self._client

    def __call__(self, uri: str) -> bytes:
        parts = urlsplit(uri)
        if parts.scheme == "file":
            try:
                return Path(url2pathname(parts.path)).read_bytes()
            except OSError as exc:
                raise FetchFailure(uri, str(exc)) from exc

        if parts.scheme not in REMOTE_SCHEMES:
            raise FetchFailure(uri, f"Unsupported scheme '{parts.scheme}'")

        try:
            response = self.client.get(uri)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchFailure(uri, str(exc)) from exc

        logger.debug("Fetched %s bytes from %s", len(response.content), uri)
        return response.content


def stage_bytes(content: bytes, uri: str | None = None) -> Artifact:
    """Write fetched bytes into a temporary file, guessing the mime type from the URI."""
    suffix = ""
    mime_type = None
    if uri:
        path = urlsplit(uri).path
        suffix = Path(path).suffix
        mime_type, _ = mimetypes.guess_type(path)

    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as handle:
        handle.write(content)

    return Artifact(
        path=Path(handle.name),
        mime_type=mime_type or "application/octet-stream",
        staged=True,
    )
