"""Tests for ImageSource"""

import base64

import httpx
import pytest

from meter_lab_core.domain.errors import TransportError
from meter_lab_core.infrastructure.image_source import ImageSource


def _source(handler) -> ImageSource:
    return ImageSource(http_client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestFetch:
    def test_http(self):
        source = _source(lambda request: httpx.Response(200, content=b"jpeg-bytes"))
        assert source.fetch("https://cdn.example.com/001.jpg") == b"jpeg-bytes"

    def test_http_error_status(self):
        source = _source(lambda request: httpx.Response(404))
        with pytest.raises(TransportError, match="001.jpg"):
            source.fetch("https://cdn.example.com/001.jpg")

    def test_data_url(self):
        payload = base64.b64encode(b"png-bytes").decode()
        source = _source(lambda request: httpx.Response(500))
        assert source.fetch(f"data:image/png;base64,{payload}") == b"png-bytes"

    def test_invalid_data_url(self):
        source = _source(lambda request: httpx.Response(500))
        with pytest.raises(TransportError):
            source.fetch("data:image/png;base64,***")

    def test_local_file(self, tmp_path):
        path = tmp_path / "001.jpg"
        path.write_bytes(b"local-bytes")
        assert _source(lambda request: httpx.Response(500)).fetch(str(path)) == b"local-bytes"

    def test_missing_file(self, tmp_path):
        with pytest.raises(TransportError):
            _source(lambda request: httpx.Response(500)).fetch(str(tmp_path / "missing.jpg"))

    def test_path_with_null_byte(self, tmp_path):
        with pytest.raises(TransportError, match="bad"):
            _source(lambda request: httpx.Response(500)).fetch(str(tmp_path / "bad\x00.jpg"))


class TestTryFetch:
    def test_failure_returns_none(self, tmp_path):
        source = _source(lambda request: httpx.Response(503))
        assert source.try_fetch("https://cdn.example.com/x.jpg") is None
        assert source.try_fetch(str(tmp_path / "missing.jpg")) is None
        source.close()
