"""Tests for agentpen.backend."""

from __future__ import annotations

from pathlib import Path

import httpx
import yaml

import agentpen.backend as backend
from agentpen.backend import (
    backend_health,
    compose_spec,
    render_compose,
    setup_backend,
    wait_for_backend,
)


def test_compose_pins_backend_image_and_port():
    text = render_compose(Path("/opt/agentpen"))

    assert "ghcr.io/sara-builds/agent-deck-backend:latest" in text
    assert "8080:8080" in text

    parsed = yaml.safe_load(text)
    assert parsed["version"] == "3.8"
    assert list(parsed["services"]) == ["backend"]
    service = parsed["services"]["backend"]
    assert service["image"] == "ghcr.io/sara-builds/agent-deck-backend:latest"
    assert service["container_name"] == "agentpen-api"
    assert service["restart"] == "unless-stopped"
    assert service["ports"] == ["8080:8080"]
    assert service["volumes"] == [
        "/opt/agentpen/agents:/opt/agentpen/agents",
        "/opt/agentpen/data:/app/data",
    ]
    assert service["environment"] == [
        "SPRING_PROFILES_ACTIVE=prod",
        "AGENTPEN_AGENTS_PATH=/opt/agentpen/agents",
    ]
    assert service["healthcheck"] == {
        "test": [
            "CMD", "wget", "--no-verbose", "--tries=1", "--spider",
            "http://localhost:8080/api/health",
        ],
        "interval": "30s",
        "timeout": "3s",
        "retries": 3,
    }


def test_compose_defaults_to_opt_agentpen(monkeypatch):
    monkeypatch.delenv("AGENTPEN_ROOT", raising=False)
    volumes = compose_spec()["services"]["backend"]["volumes"]
    assert volumes[0] == "/opt/agentpen/agents:/opt/agentpen/agents"


def test_compose_host_volumes_follow_install_root(tmp_path: Path):
    volumes = compose_spec(tmp_path)["services"]["backend"]["volumes"]
    assert volumes == [
        f"{tmp_path / 'agents'}:/opt/agentpen/agents",
        f"{tmp_path / 'data'}:/app/data",
    ]


def test_setup_backend_regenerates_compose_then_pulls_and_starts(tmp_path: Path, monkeypatch):
    calls: list[tuple[list[str], Path]] = []
    monkeypatch.setattr(
        backend,
        "run_checked",
        lambda args, *, cwd=None, **_kwargs: calls.append((list(args), Path(cwd))) or "",
    )
    compose = tmp_path / "docker-compose.yml"
    compose.write_text("stale: true\n", encoding="utf-8")

    path = setup_backend(tmp_path)

    assert path == compose
    assert compose.read_text(encoding="utf-8") == render_compose(tmp_path)
    assert calls == [
        (["docker", "compose", "pull"], tmp_path),
        (["docker", "compose", "up", "-d"], tmp_path),
    ]


def test_backend_health_reports_status(monkeypatch):
    seen: list[str] = []

    def _fake_get(url: str, timeout: float = 0):
        seen.append(url)
        return httpx.Response(200, json={"status": "UP"})

    monkeypatch.setattr(backend.httpx, "get", _fake_get)

    ok, detail = backend_health("http://10.0.0.5:8080/")

    assert ok is True
    assert seen == ["http://10.0.0.5:8080/api/health"]
    assert "http_200" in detail


def test_backend_health_handles_errors(monkeypatch):
    def _refused(url: str, timeout: float = 0):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(backend.httpx, "get", _refused)
    ok, detail = backend_health("http://localhost:8080")
    assert ok is False
    assert "connection refused" in detail

    monkeypatch.setattr(backend.httpx, "get", lambda url, timeout=0: httpx.Response(503))
    ok, detail = backend_health("http://localhost:8080")
    assert ok is False
    assert "http_503" in detail


def test_wait_for_backend_polls_until_healthy(monkeypatch):
    results = iter([(False, "down"), (False, "down"), (True, "up")])
    sleeps: list[float] = []
    monkeypatch.setattr(backend, "backend_health", lambda _url=None: next(results))
    monkeypatch.setattr(backend.time, "sleep", sleeps.append)

    ok, detail = wait_for_backend("http://localhost:8080", timeout_seconds=60, poll_seconds=2)

    assert (ok, detail) == (True, "up")
    assert sleeps == [2, 2]


def test_backend_health_handles_malformed_url(monkeypatch):
    def _invalid(url: str, timeout: float = 0):
        raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

    monkeypatch.setattr(backend.httpx, "get", _invalid)

    ok, detail = backend_health("http://bad\x01host:8080")

    assert ok is False
    assert "Invalid non-printable" in detail
