"""Tests for the HTTP surface (tubemp3.routers.convert)."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tubemp3 import create_app
from tubemp3.exceptions import ConversionError, ExtractionFailure, MetadataUnavailableError
from tubemp3.models.audio import VideoMetadata
from tubemp3.routers import convert as convert_router

VIDEO_ID = "dQw4w9WgXcQ"
WATCH_URL = f"https://www.youtube.com/watch?v={VIDEO_ID}"


class FakeService:
    """Stands in for ConvertService; records what the router asked for."""

    def __init__(
        self,
        metadata: VideoMetadata,
        info_error: Exception | None = None,
        chunks: tuple = (b"ENC:", b"audio"),
        error: Exception | None = None,
    ) -> None:
        self.metadata = metadata
        self.info_error = info_error
        self.chunks = chunks
        self.error = error
        self.info_urls: list = []
        self.convert_calls: list = []

    def get_video_info(self, url: str) -> VideoMetadata:
        self.info_urls.append(url)
        if self.info_error is not None:
            raise self.info_error
        return self.metadata

    def convert_to_writer(self, url, sink, opts=None, cancel=None) -> None:
        self.convert_calls.append((url, opts))
        for chunk in self.chunks:
            sink.write(chunk)
        if self.error is not None:
            raise self.error


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


@pytest.fixture
def install_service(sample_metadata: VideoMetadata, monkeypatch: pytest.MonkeyPatch):
    def factory(**kwargs) -> FakeService:
        service = FakeService(sample_metadata, **kwargs)
        monkeypatch.setattr(convert_router, "_convert_service", service)
        return service

    return factory


class TestIndex:
    def test_serves_form(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert 'name="youtube-url"' in response.text
        assert 'action="/convert"' in response.text


class TestInfo:
    def test_returns_metadata(self, client: TestClient, install_service) -> None:
        service = install_service()

        response = client.get("/api/info", params={"url": f"  {WATCH_URL}  "})

        assert response.status_code == 200
        assert response.json() == {
            "title": "My/Video: Title?",
            "author": "Test Channel",
            "duration": "3:32",
            "video_id": VIDEO_ID,
        }
        assert service.info_urls == [WATCH_URL]

    def test_missing_url(self, client: TestClient, install_service) -> None:
        install_service()

        assert client.get("/api/info").status_code == 400

    def test_unavailable_video(self, client: TestClient, install_service) -> None:
        install_service(info_error=MetadataUnavailableError("Video unavailable"))

        response = client.get("/api/info", params={"url": WATCH_URL})

        assert response.status_code == 404
        assert "Video unavailable" in response.json()["detail"]


class TestConvert:
    def test_streams_audio_with_filename(self, client: TestClient, install_service) -> None:
        service = install_service()

        response = client.post("/convert", data={"youtube-url": WATCH_URL})

        assert response.status_code == 200
        assert response.content == b"ENC:audio"
        assert response.headers["content-type"] == "audio/mpeg"
        disposition = response.headers["content-disposition"]
        assert 'filename="My_Video_ Title_.mp3"' in disposition
        assert "filename*=UTF-8''My_Video_%20Title_.mp3" in disposition
        url, opts = service.convert_calls[0]
        assert url == WATCH_URL
        assert (opts.sample_rate, opts.channels, opts.bitrate, opts.format) == (22050, 1, "64k", "mp3")

    def test_non_ascii_title(self, client: TestClient, install_service) -> None:
        service = install_service()
        service.metadata = VideoMetadata("東京 Live", "Test Channel", "3:32", VIDEO_ID)

        response = client.post("/convert", data={"youtube-url": WATCH_URL})

        disposition = response.headers["content-disposition"]
        assert "filename*=UTF-8''%E6%9D%B1%E4%BA%AC%20Live.mp3" in disposition

    def test_options_forwarded(self, client: TestClient, install_service) -> None:
        service = install_service()

        response = client.post(
            "/convert",
            data={"youtube-url": WATCH_URL, "bitrate": "128k", "sample_rate": "44100", "channels": "2"},
        )

        assert response.status_code == 200
        _, opts = service.convert_calls[0]
        assert (opts.sample_rate, opts.channels, opts.bitrate) == (44100, 2, "128k")

    def test_invalid_channels(self, client: TestClient, install_service) -> None:
        service = install_service()

        response = client.post("/convert", data={"youtube-url": WATCH_URL, "channels": "6"})

        assert response.status_code == 400
        assert service.convert_calls == []

    def test_missing_url(self, client: TestClient, install_service) -> None:
        service = install_service()

        response = client.post("/convert", data={"youtube-url": "   "})

        assert response.status_code == 400
        assert service.info_urls == []

    def test_unavailable_video(self, client: TestClient, install_service) -> None:
        service = install_service(info_error=MetadataUnavailableError("Private video"))

        response = client.post("/convert", data={"youtube-url": WATCH_URL})

        assert response.status_code == 404
        assert service.convert_calls == []

    def test_failure_before_first_chunk(self, client: TestClient, install_service) -> None:
        failure = ExtractionFailure("yt_dlp", ExtractionFailure.NETWORK, "HTTP 403")
        install_service(chunks=(), error=ConversionError([failure]))

        response = client.post("/convert", data={"youtube-url": WATCH_URL})

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail.startswith("conversion failed:")
        assert "HTTP 403" in detail

    def test_empty_output(self, client: TestClient, install_service) -> None:
        install_service(chunks=())

        response = client.post("/convert", data={"youtube-url": WATCH_URL})

        assert response.status_code == 200
        assert response.content == b""
