import io
import os
from collections import Counter

import pytest
from botocore.exceptions import ClientError
from sqlmodel import Session, create_engine, SQLModel
from sqlmodel.pool import StaticPool

os.environ.setdefault("SETTINGS_MODE", "test")

from clipper.core.errors import FetchFailure  # noqa: E402
from clipper.filerecord.models import Artifact, Owner  # noqa: E402
from clipper.filerecord.repository import FileRecordRepository  # noqa: E402
from clipper.orchestrator import AttachmentOrchestrator  # noqa: E402
from clipper.pipeline.models import Abort, Continue, PipelineEvent, Processor  # noqa: E402
from clipper.pipeline.services import ProcessPipeline  # noqa: E402
from clipper.storage.filesystem import FilesystemDriver  # noqa: E402


class MockS3Paginator:
    """Mock S3 paginator for list_objects_v2"""

    def __init__(self, client):
        self.client = client

    def paginate(self, Bucket: str, Prefix: str = "", **kwargs):
        """Return a single page with every key under Prefix"""
        contents = [
            {"Key": key, "Size": len(body)}
            for key, body in sorted(self.client.buckets.get(Bucket, {}).items())
            if key.startswith(Prefix)
        ]
        page = {}
        if contents:
            page["Contents"] = contents
        yield page


class MockS3Client:
    """Mock S3 client for testing"""

    def __init__(self):
        self.buckets = {}  # {bucket_name: {key: bytes}}
        self.put_calls = []
        self.error_mode = None  # For simulating errors

    def _check_error(self, operation: str):
        if self.error_mode == "AccessDenied":
            raise ClientError(
                {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
                operation,
            )

    def _missing(self, operation: str):
        return ClientError(
            {"Error": {"Code": "404", "Message": "Not Found"}},
            operation,
        )

    def put_object(self, Bucket: str, Key: str, Body: bytes, **kwargs):
        self._check_error("PutObject")
        self.buckets.setdefault(Bucket, {})[Key] = Body
        self.put_calls.append((Bucket, Key, kwargs))
        return {"ETag": '"mock"'}

    def head_object(self, Bucket: str, Key: str):
        self._check_error("HeadObject")
        if Key not in self.buckets.get(Bucket, {}):
            raise self._missing("HeadObject")
        return {"ContentLength": len(self.buckets[Bucket][Key])}

    def get_object(self, Bucket: str, Key: str):
        self._check_error("GetObject")
        if Key not in self.buckets.get(Bucket, {}):
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}},
                "GetObject",
            )
        return {"Body": io.BytesIO(self.buckets[Bucket][Key])}

    def delete_object(self, Bucket: str, Key: str):
        self._check_error("DeleteObject")
        self.buckets.get(Bucket, {}).pop(Key, None)
        return {}

    def get_paginator(self, operation: str):
        if operation == "list_objects_v2":
            return MockS3Paginator(self)
        raise NotImplementedError(f"Paginator for {operation} not implemented")

    def generate_presigned_url(self, ClientMethod: str, Params: dict, ExpiresIn: int = 3600):
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?Expires={ExpiresIn}"

    def simulate_error(self, error_type: str):
        self.error_mode = error_type


class CountingDriver(FilesystemDriver):
    """Filesystem driver that records every save_file call"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.saved = []

    def save_file(self, artifact, record, options=None):
        self.saved.append((record.id, self.variant_key(options)))
        super().save_file(artifact, record, options)


class RecordingProcessor(Processor):
    """Records every subject it sees; aborts when told to"""

    def __init__(self, events, abort=False, mime_types=None, label=None):
        self.events = tuple(PipelineEvent(e) for e in events)
        self.mime_types = mime_types
        self.abort = abort
        self.label = label
        self.calls = []

    @property
    def name(self):
        return self.label or super().name

    def handle(self, subject, event, options):
        self.calls.append((subject, event, dict(options)))
        if self.abort:
            return Abort(reason="rejected by test")
        return Continue(subject=subject)


class UppercaseProcessor(Processor):
    """onSave processor that writes an upper-cased copy of text files"""
    events = (PipelineEvent.ON_SAVE,)
    mime_types = ("text/*",)

    def __init__(self, tmp_path):
        self.tmp_path = tmp_path

    def handle(self, subject, event, options):
        target = self.tmp_path / f"upper-{subject.path.name}"
        target.write_bytes(subject.read_bytes().upper())
        return Continue(subject=Artifact(path=target, mime_type=subject.mime_type, staged=True))


class FakeFetcher:
    """Fetch primitive serving canned bytes, failing for unknown URIs"""

    def __init__(self, responses=None, failures=0):
        self.responses = dict(responses or {})
        self.failures = failures
        self.calls = []

    def __call__(self, uri: str) -> bytes:
        self.calls.append(uri)
        if self.failures > 0:
            self.failures -= 1
            raise FetchFailure(uri, "connection reset")
        if uri not in self.responses:
            raise FetchFailure(uri, "404 Not Found")
        return self.responses[uri]


def assert_unique_slots(repository):
    """No owner holds two records in the same non-null slot"""
    counts = Counter(
        (record.owner_type, record.owner_id, record.slot)
        for record in repository.find()
        if record.slot is not None
    )
    assert all(count == 1 for count in counts.values()), counts


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="repository")
def repository_fixture(session: Session):
    return FileRecordRepository(session)


@pytest.fixture(name="storage_root")
def storage_root_fixture(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture(name="driver")
def driver_fixture(storage_root):
    return CountingDriver(storage_root, public_prefix="https://cdn.example.com/files")


@pytest.fixture(name="mock_s3_client")
def mock_s3_client_fixture():
    """Provide a mock S3 client for testing"""
    return MockS3Client()


@pytest.fixture(name="pipeline")
def pipeline_fixture():
    return ProcessPipeline()


@pytest.fixture(name="fetcher")
def fetcher_fixture():
    return FakeFetcher()


@pytest.fixture(name="orchestrator")
def orchestrator_fixture(repository, driver, pipeline, fetcher):
    return AttachmentOrchestrator(
        repository=repository,
        drivers={"local": driver},
        pipeline=pipeline,
        fetcher=fetcher,
    )


@pytest.fixture(name="make_artifact")
def make_artifact_fixture(tmp_path):
    """Factory writing a file under tmp_path and wrapping it as an Artifact"""
    uploads = tmp_path / "uploads"
    uploads.mkdir()

    def _make(name="photo.png", content=b"\x89PNG fake image", mime_type=None):
        path = uploads / name
        path.write_bytes(content)
        return Artifact.from_path(path, mime_type=mime_type)

    return _make


@pytest.fixture(name="post")
def post_fixture():
    return Owner(type="Post", id=1)
