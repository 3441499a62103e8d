"""
tests/conftest.py — Shared fixtures.

FakeSession stands in for requests.Session: routes are registered
per (method, url) and every request is recorded.
"""

import os
import sys
from dataclasses import dataclass, field
from typing import Any

import pytest
import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from helmpush.settings import Settings


@dataclass
class Call:
    method: str
    url: str
    kwargs: dict[str, Any]
    body: bytes = b""
    filename: str = ""

    @property
    def headers(self) -> dict[str, str]:
        return self.kwargs.get("headers") or {}


class FakeResponse:
    def __init__(self, status_code: int = 200, content: bytes = b""):
        self.status_code = status_code
        self.content = content
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


@dataclass
class FakeSession:
    routes: dict[tuple[str, str], Any] = field(default_factory=dict)
    calls: list[Call] = field(default_factory=list)
    responses: list[FakeResponse] = field(default_factory=list)
    closed: bool = False

    def add(self, method: str, url: str, status: int = 200, content: bytes = b""):
        self.routes[(method, url)] = (status, content)

    def fail(self, method: str, url: str, exc: Exception):
        self.routes[(method, url)] = exc

    def request(self, method, url, **kwargs):
        call = Call(method=method, url=url, kwargs=kwargs)
        files = kwargs.get("files")
        if files:
            name, fobj, _ = files["chart"]
            call.filename = name
            call.body = fobj.read()
        self.calls.append(call)

        route = self.routes.get((method, url))
        if route is None:
            resp = FakeResponse(404, b'{"error": "not found"}')
        elif isinstance(route, Exception):
            raise route
        else:
            resp = FakeResponse(*route)
        self.responses.append(resp)
        return resp

    def close(self):
        self.closed = True

    def calls_to(self, method: str) -> list[Call]:
        return [c for c in self.calls if c.method == method]


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        helm_major_version="3",
        helm_home=tmp_path / "helm-home",
        helm_config_dir=tmp_path / "helm-config",
        repository_config=tmp_path / "repositories.yaml",
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """No HELM_REPO_* / HELM_DEBUG leaking in from the host."""
    for var in list(os.environ):
        if var.startswith("HELM_REPO_") or var in ("HELM_DEBUG", "HELM_REPOSITORY_CONFIG"):
            monkeypatch.delenv(var, raising=False)


def write_repositories(path, repos: list[dict]) -> None:
    with open(path, "w") as f:
        yaml.dump({"apiVersion": "v1", "repositories": repos}, f)


def make_chart_dir(base, name="mychart", version="0.1.0", extra=None) -> str:
    """Create a minimal chart directory."""
    chart_dir = base / name
    (chart_dir / "templates").mkdir(parents=True)
    with open(chart_dir / "Chart.yaml", "w") as f:
        yaml.dump({
            "apiVersion": "v2",
            "name": name,
            "version": version,
            "appVersion": "1.0",
            "description": "Test chart",
        }, f, sort_keys=False)
    (chart_dir / "values.yaml").write_text("replicas: 1\n")
    (chart_dir / "templates" / "cm.yaml").write_text(
        "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: test\n"
    )
    for rel, content in (extra or {}).items():
        p = chart_dir / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content)
    return str(chart_dir)
