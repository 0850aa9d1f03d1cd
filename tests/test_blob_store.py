"""Tests for the local and S3 blob store backends."""

import time
from urllib.parse import parse_qs, unquote, urlparse

import boto3
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from moto import mock_aws

from conftest import InMemoryMetadataStore
from file_archive.errors import (
    NotFoundError,
    SignatureError,
    StorageDeleteError,
    StorageReadError,
    StorageWriteError,
)
from file_archive.main import create_app
from file_archive.services.archive_catalog import ArchiveCatalogService
from file_archive.services.blob_store import LocalBlobStore, S3BlobStore


def _parse_signed(url: str) -> tuple[str, int, str]:
    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    key = unquote(parsed.path.removeprefix("/blobs/"))
    return key, int(query["expires"][0]), query["signature"][0]


# =============================================================================
# Local Storage Backend Tests
# =============================================================================


@pytest.fixture
def local_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(
        base_path=str(tmp_path / "uploads"),
        signing_secret="test-secret",
        public_base_url="http://test/",
    )


class TestLocalBlobStore:
    def test_requires_signing_secret(self, tmp_path):
        with pytest.raises(ValueError):
            LocalBlobStore(str(tmp_path), signing_secret="", public_base_url="http://test")

    @pytest.mark.asyncio
    async def test_put_writes_file(self, local_store):
        ref = await local_store.put("abc-hello.txt", b"Hello, World!", "text/plain")

        assert ref.endswith("abc-hello.txt")
        assert (local_store.base_path / "abc-hello.txt").read_bytes() == b"Hello, World!"

    @pytest.mark.asyncio
    async def test_keys_cannot_escape_base_path(self, local_store):
        await local_store.put("../../etc/passwd", b"data", "text/plain")

        written = list(local_store.base_path.iterdir())
        assert len(written) == 1
        assert written[0].parent == local_store.base_path

    @pytest.mark.asyncio
    async def test_dot_keys_are_rejected(self, local_store):
        with pytest.raises(StorageWriteError):
            await local_store.put("..", b"data", "text/plain")

    @pytest.mark.asyncio
    async def test_write_failure_is_storage_write_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        store = LocalBlobStore(str(blocker), "secret", "http://test")

        with pytest.raises(StorageWriteError):
            await store.put("k", b"data", "text/plain")

    @pytest.mark.asyncio
    async def test_delete_removes_file_and_is_idempotent(self, local_store):
        await local_store.put("k.txt", b"data", "text/plain")

        await local_store.delete("k.txt")
        await local_store.delete("k.txt")

        assert not (local_store.base_path / "k.txt").exists()

    @pytest.mark.asyncio
    async def test_delete_invalid_key(self, local_store):
        with pytest.raises(StorageDeleteError):
            await local_store.delete("..")

    @pytest.mark.asyncio
    async def test_signed_url_round_trip(self, local_store):
        await local_store.put("id-report v1.pdf", b"pdf", "application/pdf")

        url = await local_store.signed_url("id-report v1.pdf", 300)

        assert url.startswith("http://test/blobs/")
        key, expires, signature = _parse_signed(url)
        assert key == "id-report v1.pdf"
        assert expires > time.time()
        path = local_store.verify(key, expires, signature)
        assert path.read_bytes() == b"pdf"

    @pytest.mark.asyncio
    async def test_tampered_signature_is_rejected(self, local_store):
        await local_store.put("k.txt", b"data", "text/plain")
        key, expires, signature = _parse_signed(await local_store.signed_url("k.txt", 300))

        with pytest.raises(SignatureError):
            local_store.verify(key, expires, "0" * len(signature))
        with pytest.raises(SignatureError):
            local_store.verify(key, expires + 60, signature)
        with pytest.raises(SignatureError):
            local_store.verify("other.txt", expires, signature)

    @pytest.mark.asyncio
    async def test_expired_signature_is_rejected(self, local_store):
        await local_store.put("k.txt", b"data", "text/plain")
        key, expires, signature = _parse_signed(await local_store.signed_url("k.txt", -10))

        with pytest.raises(SignatureError):
            local_store.verify(key, expires, signature)

    @pytest.mark.asyncio
    async def test_valid_signature_for_missing_blob(self, local_store):
        key, expires, signature = _parse_signed(await local_store.signed_url("gone.txt", 300))

        with pytest.raises(NotFoundError):
            local_store.verify(key, expires, signature)

    def test_signature_error_is_a_read_error(self):
        assert issubclass(SignatureError, StorageReadError)


@pytest.mark.asyncio
class TestLocalBlobRoute:
    @pytest_asyncio.fixture
    async def local_client(self, settings, local_store):
        catalog = ArchiveCatalogService(local_store, InMemoryMetadataStore())
        app = create_app(settings=settings, catalog=catalog)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac

    async def test_upload_then_follow_download_redirect(self, local_client):
        await local_client.post("/upload", files={"file": ("notes.txt", b"some notes", "text/plain")})
        (archive,) = (await local_client.get("/archives")).json()

        redirect = await local_client.get(f"/download/{archive['id']}")
        assert redirect.status_code == 302

        response = await local_client.get(redirect.headers["location"])
        assert response.status_code == 200
        assert response.content == b"some notes"

    async def test_served_with_stored_content_type_and_filename(self, local_client):
        await local_client.post("/upload", files={"file": ("report", b"%PDF-1.4", "application/pdf")})
        (archive,) = (await local_client.get("/archives")).json()

        redirect = await local_client.get(f"/download/{archive['id']}")
        response = await local_client.get(redirect.headers["location"])

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"].startswith("inline")
        assert 'filename="report"' in response.headers["content-disposition"]

    async def test_missing_query_parameters_are_400(self, local_client):
        response = await local_client.get("/blobs/some-key")

        assert response.status_code == 400
        assert set(response.json()) == {"error"}

    async def test_bad_signature_is_403(self, local_client):
        await local_client.post("/upload", files={"file": ("notes.txt", b"some notes", "text/plain")})
        (archive,) = (await local_client.get("/archives")).json()

        response = await local_client.get(
            f"/blobs/{archive['blobKey']}",
            params={"expires": int(time.time()) + 60, "signature": "forged"},
        )

        assert response.status_code == 403


# =============================================================================
# S3 Backend Tests (moto)
# =============================================================================


@pytest.fixture
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def s3_store(aws_credentials):
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="test-bucket")
        yield S3BlobStore(bucket="test-bucket", region="us-east-1", client=client)


@pytest.mark.asyncio
class TestS3BlobStore:
    async def test_put_stores_object_with_content_type(self, s3_store):
        ref = await s3_store.put("abc-hello.txt", b"Hello", "text/plain")

        assert ref == "s3://test-bucket/abc-hello.txt"
        obj = s3_store._client.get_object(Bucket="test-bucket", Key="abc-hello.txt")
        assert obj["Body"].read() == b"Hello"
        assert obj["ContentType"] == "text/plain"

    async def test_delete_removes_object(self, s3_store):
        await s3_store.put("k.txt", b"data", "text/plain")

        await s3_store.delete("k.txt")

        listing = s3_store._client.list_objects_v2(Bucket="test-bucket")
        assert listing.get("KeyCount", 0) == 0

    async def test_delete_missing_key_is_not_an_error(self, s3_store):
        await s3_store.delete("never-existed.txt")

    async def test_signed_url_contains_key_and_expiry(self, s3_store):
        url = await s3_store.signed_url("abc-hello.txt", 300)

        assert "test-bucket" in url
        assert "abc-hello.txt" in url
        assert "X-Amz-Expires=300" in url

    async def test_missing_bucket_is_storage_write_error(self, aws_credentials):
        with mock_aws():
            store = S3BlobStore(bucket="no-such-bucket", region="us-east-1")

            with pytest.raises(StorageWriteError):
                await store.put("k.txt", b"data", "text/plain")
