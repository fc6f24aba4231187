import requests

from api_client import ModalityAPIClient


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return self.response

    def post(self, url, **kwargs):
        files = kwargs.get("files")
        names = [f[1][0] for f in files] if isinstance(files, list) else [files["file"][0]]
        self.calls.append(("POST", url, dict(kwargs, files=names)))
        return self.response


def make_client(response):
    client = ModalityAPIClient("http://api.test/")
    client.session = FakeSession(response)
    return client


def test_health_check():
    client = make_client(FakeResponse({"status": "healthy"}))

    assert client.health_check() == {"status": "healthy"}
    assert client.session.calls[0][1] == "http://api.test/health"


def test_failed_request_returns_none():
    client = make_client(FakeResponse({}, status_code=503))

    assert client.list_profiles() is None


def test_analyze_single_sends_profile(tmp_path, brain_png):
    image = tmp_path / "brain.png"
    image.write_bytes(brain_png)
    client = make_client(FakeResponse({"classification": {"modality": "brain-mri"}}))

    result = client.analyze_single(str(image), profile="perfect")

    method, url, kwargs = client.session.calls[0]
    assert result["classification"]["modality"] == "brain-mri"
    assert url == "http://api.test/analyze"
    assert kwargs["params"] == {"profile": "perfect"}
    assert kwargs["files"] == ["brain.png"]


def test_analyze_batch(tmp_path, brain_png):
    paths = []
    for name in ("a.png", "b.png"):
        path = tmp_path / name
        path.write_bytes(brain_png)
        paths.append(str(path))
    client = make_client(FakeResponse({"results": [{}, {}]}))

    result = client.analyze_batch(paths)

    _, url, kwargs = client.session.calls[0]
    assert url == "http://api.test/analyze/batch"
    assert kwargs["files"] == ["a.png", "b.png"]
    assert kwargs["params"] is None
    assert len(result["results"]) == 2


def test_missing_file_returns_none(tmp_path):
    client = make_client(FakeResponse({}))

    assert client.analyze_single(str(tmp_path / "missing.png")) is None
    assert client.session.calls == []
