import io
import time

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.db.db import get_session
from app.main import app
from app.models.report import Report  # noqa: F401
from app.repositories.report_repository import ReportRepository
from app.utils.dependencies import get_image_store
from app.utils.errors import UploadError


class FakeImageStore:
    """Records calls; uploads listed in `fail_on` (by call index) fail."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.uploads = []
        self.deleted = []

    async def upload(self, data, content_type, filename):
        index = len(self.uploads)
        self.uploads.append(filename)
        if index in self.fail_on:
            raise UploadError(f"store rejected {filename}")
        return f"https://img.campusfinder.test/{filename}"

    async def delete(self, url):
        self.deleted.append(url)


class FakeS3Client:
    """Just enough of a boto3 S3 client for S3ImageStore."""

    def __init__(self, error=None, delay=0.0):
        self.error = error
        self.delay = delay
        self.objects = {}

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        time.sleep(self.delay)
        if self.error:
            raise self.error
        self.objects[(bucket, key)] = (fileobj.read(), ExtraArgs["ContentType"])

    def delete_object(self, Bucket, Key):
        if self.error:
            raise self.error
        self.objects.pop((Bucket, Key), None)


class CountingRepository(ReportRepository):
    def __init__(self, session, fail=False):
        super().__init__(session)
        self.create_calls = 0
        self.fail = fail

    def create(self, record):
        self.create_calls += 1
        if self.fail:
            from app.utils.errors import PersistenceError

            raise PersistenceError("Failed to save report")
        return super().create(record)


def png_bytes(size=(8, 8), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def repo(session):
    return CountingRepository(session)


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def client(session, image_store):
    def _session_override():
        yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_image_store] = lambda: image_store

    yield TestClient(app)

    app.dependency_overrides.clear()
