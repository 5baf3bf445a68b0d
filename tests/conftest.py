import io
import struct
import zlib

import pytest
import requests
from PIL import Image


class FakeResponse:
    def __init__(self, content: bytes = b"", status_code: int = 200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeHTTPSession:
    """Stands in for requests.Session; maps URLs to responses or exceptions."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.closed = False

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        result = self.routes.get(url, FakeResponse(status_code=404))
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


class FakeGenerator:
    """Returns (or raises) the queued outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.prompts = []
        self.closed = False

    def generate(self, prompt):
        self.prompts.append(prompt)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def scripted_input(*lines):
    """Build an input() replacement that replays lines, then raises EOFError."""
    remaining = list(lines)

    def _input(marker=""):
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return _input


def png_header(width, height):
    """Minimal PNG declaring the given size; Pillow reads only the header."""
    def chunk(kind, data):
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IEND", b"")


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (8, 4), "red").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in ("OPENAI_ENDPOINT", "OPENAI_API_KEY", "MODEL_DEPLOYMENT",
                "OPENAI_API_VERSION", "DOWNLOAD_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path
