import io
import os
import zipfile
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

import pytest
import structlog

from ralen.orchestrator import Orchestrator
from ralen.registry import RuntimeRegistry

posix_only = pytest.mark.skipif(os.name == "nt", reason="requires /bin/sh runtimes")

API = "https://api.github.com/repos/serene1491/SaLang"
DOWNLOAD = "https://github.com/serene1491/SaLang/releases/download"

VERSION_SCRIPT = """#!/bin/sh
if [ "$1" = "--version" ]; then
  echo "salang {version}"
  exit 0
fi
echo "ran $1"
"""


class FakeContent:
    def __init__(self, body: bytes):
        self._body = body
        self._pos = 0

    async def read(self, n: int = -1) -> bytes:
        if n < 0:
            n = len(self._body) - self._pos
        chunk = self._body[self._pos:self._pos + n]
        self._pos += len(chunk)
        return chunk


class FakeResponse:
    """Just enough of aiohttp.ClientResponse for ralen."""

    def __init__(
        self,
        status: int = 200,
        json_data: Any = None,
        body: bytes = b"",
        reason: str = "",
        filename: Optional[str] = None,
    ):
        self.status = status
        self.reason = reason or ("OK" if status < 400 else "Not Found")
        self._json = json_data
        self.content = FakeContent(body)
        self.content_disposition = SimpleNamespace(filename=filename) if filename else None

    async def json(self):
        if isinstance(self._json, Exception):
            raise self._json
        return self._json

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Routes (method, url) to canned responses; unknown URLs are 404."""

    def __init__(self, routes: Optional[Dict[str, Dict[str, Any]]] = None):
        self.routes: Dict[str, Dict[str, Any]] = dict(routes or {})
        self.requests: List[Tuple[str, str]] = []

    def add(self, url: str, **response: Any) -> None:
        self.routes[url] = response

    def _respond(self, method: str, url: str) -> FakeResponse:
        self.requests.append((method, url))
        canned = self.routes.get(url)
        if canned is None:
            return FakeResponse(status=404)
        return FakeResponse(**canned)

    def get(self, url: str, **kwargs) -> FakeResponse:
        return self._respond("GET", url)

    def head(self, url: str, **kwargs) -> FakeResponse:
        return self._respond("HEAD", url)

    def count(self, method: str, url: str) -> int:
        return self.requests.count((method, url))

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def make_zip(entries: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def install_fake_runtime(registry: RuntimeRegistry, language: str, version: str, script: str) -> Path:
    path = registry.get_path(language, version)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(script)
    path.chmod(0o755)
    return path


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def ralen_home(tmp_path, monkeypatch) -> Path:
    home = tmp_path / "ralen-home"
    monkeypatch.setenv("RALEN_HOME", str(home))
    return home


@pytest.fixture
def registry(tmp_path) -> RuntimeRegistry:
    return RuntimeRegistry(tmp_path / "root")


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def orchestrator(registry, session) -> Orchestrator:
    return Orchestrator(registry, session=session)
