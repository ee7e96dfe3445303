"""Unit tests for the Stability AI adapter (mocked session)."""

import io
from unittest.mock import MagicMock

import pytest
import requests
from PIL import Image

from zoombg.core.providers.stability import StabilityAdapter
from zoombg.utils.exceptions import APIError, AuthError, ConfigurationError

_buf = io.BytesIO()
Image.new("RGB", (16, 9), color=(0, 255, 0)).save(_buf, format="PNG")
MINIMAL_PNG = _buf.getvalue()


def _response(status: int, content: bytes = b"", content_type: str = "image/png") -> MagicMock:
    r = MagicMock()
    r.status_code = status
    r.content = content
    r.text = "" if content_type.startswith("image/") else '{"errors": ["bad"]}'
    r.headers = {"content-type": content_type}
    return r


@pytest.mark.unit
class TestStabilityGenerate:
    def test_requires_key(self):
        session = MagicMock(spec=requests.Session)
        with pytest.raises(ConfigurationError):
            StabilityAdapter().generate_image("x", "", session=session)
        session.post.assert_not_called()

    def test_success_sends_multipart_form(self):
        session = MagicMock(spec=requests.Session)
        session.post.return_value = _response(200, MINIMAL_PNG)
        adapter = StabilityAdapter(base_url="https://stab.test")

        result = adapter.generate_image("northern lights", "sk-stab", session=session)

        assert result.size == (16, 9)
        assert result.service_name == "stability"
        args, kwargs = session.post.call_args
        assert args[0] == "https://stab.test/v2beta/stable-image/generate/core"
        assert kwargs["headers"]["Accept"] == "image/*"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-stab"
        assert kwargs["data"]["prompt"] == "northern lights"
        assert kwargs["data"]["aspect_ratio"] == "16:9"
        assert "files" in kwargs
        assert kwargs["timeout"] == 90.0

    def test_non_image_body_is_api_error(self):
        session = MagicMock(spec=requests.Session)
        session.post.return_value = _response(200, b"{}", content_type="application/json")
        with pytest.raises(APIError):
            StabilityAdapter().generate_image("x", "sk-stab", session=session)

    def test_403_is_auth_error(self):
        session = MagicMock(spec=requests.Session)
        session.post.return_value = _response(403, content_type="application/json")
        with pytest.raises(AuthError):
            StabilityAdapter().generate_image("x", "sk-stab", session=session)
