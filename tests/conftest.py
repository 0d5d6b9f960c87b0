"""Shared fakes: a scripted requests session and generated test images."""

import random
import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import ProviderConfig
from models.schemas import CompressedImage

_NO_JSON = object()


class FakeResponse:
    def __init__(self, status_code=200, json_data=_NO_JSON, text=None, headers=None):
        self.status_code = status_code
        self._json = json_data
        self._text = text
        self.headers = headers or {}

    @property
    def text(self):
        if self._text is not None:
            return self._text
        if self._json is _NO_JSON:
            return ""
        return repr(self._json)

    def json(self):
        if self._json is _NO_JSON:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """Returns scripted responses in order and records every call."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def add(self, response):
        self.responses.append(response)
        return self

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def urls(self, method=None):
        return [c["url"] for c in self.calls if method is None or c["method"] == method]


def make_image_bytes(width, height, fmt="PNG", noise=True, mode="RGB", seed=0):
    if noise:
        rng = random.Random(seed)
        img = Image.frombytes(mode, (width, height), rng.randbytes(width * height * len(mode)))
    else:
        img = Image.new(mode, (width, height))
    out = BytesIO()
    img.save(out, fmt)
    return out.getvalue()


def compressed(data=b"\xff\xd8jpeg-bytes\xff\xd9"):
    return CompressedImage(
        data=data,
        encoded_size_bytes=len(data),
        original_size_bytes=len(data),
        quality_used=70,
        dimension=800,
    )


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def id_image():
    return compressed(b"id-image-bytes")


@pytest.fixture
def selfie_image():
    return compressed(b"selfie-image-bytes")


@pytest.fixture
def small_png():
    return make_image_bytes(120, 90, noise=True, seed=1)


@pytest.fixture
def sync_config():
    return ProviderConfig(
        mode="sync",
        api_key="svd-token",
        auth_header="tokenKey",
        submit_url="https://api.example.test/v4/faceMatch",
    )


@pytest.fixture
def async_config():
    return ProviderConfig(
        mode="async_poll",
        api_key="async-key",
        auth_header="x-api-key",
        submit_url="https://async.example.test/match",
        status_url="https://async.example.test/match/status",
        poll_interval=0,
        poll_max_attempts=30,
    )


@pytest.fixture
def multi_step_config():
    return ProviderConfig(
        mode="multi_step",
        api_key="svd-token",
        base_url="https://api.springscan.test",
        flow="springscan_ocr",
        default_doc_type="ind_aadhaar",
    )


@pytest.fixture
def vision_config():
    return ProviderConfig(
        mode="vision",
        api_key="sk-test",
        auth_header="Authorization",
        auth_scheme="Bearer",
        submit_url="https://llm.example.test/v1/chat/completions",
        model="gpt-4o",
    )
