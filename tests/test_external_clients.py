import pytest

from hiring_pipeline.workers import (
    AffindaParsingService,
    LocalObjectStorage,
    ParsingServiceError,
    StorageError,
    StoragePaths,
    SupabaseObjectStorage,
)


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


class FakeBucket:
    def __init__(self, signed):
        self.signed = signed
        self.uploads = []
        self.sign_requests = []

    def upload(self, path, data, file_options=None):
        self.uploads.append((path, data, file_options))
        return {"Key": path}

    def create_signed_url(self, path, expires_in):
        self.sign_requests.append((path, expires_in))
        return self.signed


class FakeSupabase:
    def __init__(self, signed):
        self.bucket = FakeBucket(signed)
        self.buckets = []
        self.storage = self

    def from_(self, name):
        self.buckets.append(name)
        return self.bucket


def test_affinda_posts_url_with_bearer_token():
    session = FakeSession(FakeResponse(200, payload={"data": {"professionalSummary": "hi"}}))
    service = AffindaParsingService("secret-key", session=session)

    result = service.parse_url("https://files/cv.pdf?token=abc")

    assert result == {"data": {"professionalSummary": "hi"}}
    url, kwargs = session.calls[0]
    assert url == "https://api.affinda.com/v3/resumes"
    assert kwargs["headers"]["Authorization"] == "Bearer secret-key"
    assert kwargs["json"] == {"url": "https://files/cv.pdf?token=abc"}
    assert kwargs["timeout"] is None


def test_affinda_non_success_includes_status_and_body():
    session = FakeSession(FakeResponse(401, text='{"detail":"Invalid token"}'))
    service = AffindaParsingService("bad-key", session=session)

    with pytest.raises(ParsingServiceError) as excinfo:
        service.parse_url("https://files/cv.pdf")

    assert str(excinfo.value) == 'Affinda error 401: {"detail":"Invalid token"}'
    assert excinfo.value.status_code == 401
    assert excinfo.value.body == '{"detail":"Invalid token"}'


def test_affinda_requires_api_key():
    session = FakeSession(FakeResponse(200, payload={}))
    with pytest.raises(ParsingServiceError, match="Missing AFFINDA_API_KEY"):
        AffindaParsingService(None, session=session).parse_url("https://files/cv.pdf")
    assert session.calls == []


def test_local_storage_overwrites_and_signs(tmp_path):
    storage = LocalObjectStorage(StoragePaths(tmp_path), clock=lambda: 100.0)
    storage.upload("exports", "a/b.csv", b"one")
    storage.upload("exports", "a/b.csv", b"two", overwrite=True)

    assert storage.read("exports", "a/b.csv") == b"two"
    url = storage.create_signed_url("exports", "a/b.csv", 60)
    assert url.startswith("file://")
    assert url.endswith("?expires=160")

    with pytest.raises(StorageError):
        storage.upload("exports", "a/b.csv", b"three", overwrite=False)


def test_local_storage_rejects_paths_outside_bucket(tmp_path):
    storage = LocalObjectStorage(StoragePaths(tmp_path))
    with pytest.raises(StorageError):
        storage.upload("exports", "../secrets.txt", b"x")


def test_supabase_storage_upload_and_sign():
    client = FakeSupabase(signed={"signedURL": "https://proj.supabase.co/storage/v1/object/sign/exports/x.csv?token=t"})
    storage = SupabaseObjectStorage(client)

    storage.upload("exports", "x.csv", b"a,b", content_type="text/csv", overwrite=True)
    url = storage.create_signed_url("exports", "x.csv", 86400)

    assert client.bucket.uploads == [("x.csv", b"a,b", {"content-type": "text/csv", "upsert": "true"})]
    assert client.bucket.sign_requests == [("x.csv", 86400)]
    assert client.buckets == ["exports", "exports"]
    assert url.endswith("token=t")


def test_supabase_storage_accepts_camel_case_signed_url_key():
    storage = SupabaseObjectStorage(FakeSupabase(signed={"signedUrl": "https://signed"}))
    assert storage.create_signed_url("resumes", "cv.pdf", 600) == "https://signed"


def test_supabase_storage_without_signed_url_raises():
    storage = SupabaseObjectStorage(FakeSupabase(signed={"error": "not found"}))
    with pytest.raises(StorageError):
        storage.create_signed_url("resumes", "cv.pdf", 600)


def test_supabase_storage_requires_credentials():
    with pytest.raises(StorageError, match="SUPABASE_URL"):
        SupabaseObjectStorage.from_credentials(None, "key")
