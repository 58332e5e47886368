"""Shared pytest fixtures for mdpublish tests."""

from __future__ import annotations

import json
from pathlib import Path
from urllib.parse import parse_qs, urlparse
from unittest.mock import patch

import pytest
import requests

from mdpublish.config_schema import ProjectConfig, RemoteConfig
from mdpublish.context import Context
from mdpublish.sync.models import DocumentMetadata

JIVE_BASE_URL = "https://jive.example.com/api/core/v3"


# ---------------------------------------------------------------------------
# HTTP fakes
# ---------------------------------------------------------------------------


def make_response(
    status_code: int = 200,
    json_body=None,
    request: requests.PreparedRequest | None = None,
    text: str | None = None,
) -> requests.Response:
    """Build a real ``requests.Response`` with a JSON (or raw text) body."""
    response = requests.Response()
    response.status_code = status_code
    if text is not None:
        response._content = text.encode("utf-8")
    elif json_body is not None:
        response._content = json.dumps(json_body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    response.encoding = "utf-8"
    response.request = request
    response.url = request.url if request is not None else ""
    return response


def query(request: requests.PreparedRequest) -> dict[str, str]:
    """Query parameters of *request* as a flat dict."""
    parsed = parse_qs(urlparse(request.url).query)
    return {key: values[-1] for key, values in parsed.items()}


def path(request: requests.PreparedRequest) -> str:
    return urlparse(request.url).path


class FakeTransport:
    """Stands in for ``requests.Session.send``.

    *handler* receives each prepared request and returns either a
    ``requests.Response`` or a ``(status_code, json_body)`` tuple.
    """

    def __init__(self, handler):
        self.handler = handler
        self.requests: list[requests.PreparedRequest] = []
        self.timeouts: list = []

    def __call__(self, session, request, **kwargs):
        self.requests.append(request)
        self.timeouts.append(kwargs.get("timeout"))
        result = self.handler(request)
        if isinstance(result, requests.Response):
            return result
        status_code, body = result
        return make_response(status_code, body, request)

    def bodies(self) -> list[dict]:
        return [json.loads(r.body) for r in self.requests if r.body]


@pytest.fixture
def fake_http():
    """Install a handler for every ``requests.Session.send`` call.

    Usage::

        transport = fake_http(lambda request: (200, {"list": []}))
    """
    patchers = []

    def install(handler) -> FakeTransport:
        transport = FakeTransport(handler)
        patcher = patch(
            "requests.Session.send", autospec=True, side_effect=transport
        )
        patcher.start()
        patchers.append(patcher)
        return transport

    yield install

    for patcher in patchers:
        patcher.stop()


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """A project with three markdown files under docs/."""
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "README.md").write_text("# Readme\n\nHello world.\n")
    (docs / "guide.md").write_text("# Guide\n\n| a | b |\n|---|---|\n| 1 | 2 |\n")
    (docs / "notes.md").write_text("# Notes\n\n~~old~~ new\n")
    return tmp_path


@pytest.fixture
def context(project_dir) -> Context:
    """Noop-remote context over ``project_dir`` with its files tracked."""
    config = ProjectConfig(
        search_path=["docs"],
        output_path="build",
        metadata=[
            DocumentMetadata(source_path="docs/README.md", title="README.md"),
            DocumentMetadata(source_path="docs/guide.md", title="guide.md"),
            DocumentMetadata(source_path="docs/notes.md", title="notes.md"),
        ],
    )
    return Context(config_path=project_dir / ".mdpublish.yml", config=config)


@pytest.fixture
def jive_context(project_dir) -> Context:
    """Context configured for a Jive remote with basic credentials."""
    config = ProjectConfig(
        search_path=["docs"],
        output_path="build",
        remote=RemoteConfig(
            adapter="jive",
            base_url=JIVE_BASE_URL,
            username="jiveuser",
            password="jivepass",
        ),
    )
    return Context(config_path=project_dir / ".mdpublish.yml", config=config)
