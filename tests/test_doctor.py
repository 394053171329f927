"""Tests for agentpen.doctor."""

from __future__ import annotations

import json
from pathlib import Path

import agentpen.agents as agents
import agentpen.doctor as doctor
from agentpen.agents import configure_telegram, create_default_agent
from agentpen.backend import render_compose, write_compose
from agentpen.doctor import build_doctor_report, run_doctor
from agentpen.install_state import record_agent
from agentpen.provision import setup_directories
from agentpen.system import OsInfo


def _healthy_host(monkeypatch):
    monkeypatch.setattr(agents, "command_exists", lambda _name: False)
    monkeypatch.setattr(doctor, "detect_os", lambda: OsInfo(id="ubuntu", version_id="24.04", codename="noble"))
    monkeypatch.setattr(doctor, "command_exists", lambda _name: True)
    monkeypatch.setattr(doctor, "command_version", lambda _args: "v1.0.0")
    monkeypatch.setattr(doctor, "_check_root", lambda: doctor.DoctorCheck(name="root", ok=True, detail="root"))


def _installed(root: Path, *, telegram: bool = False) -> Path:
    setup_directories(root)
    write_compose(root)
    workspace = create_default_agent("my-agent", root=root)
    record_agent("my-agent", root=root)
    if telegram:
        configure_telegram("my-agent", "123:ABC", root=root)
        record_agent("my-agent", telegram=True, root=root)
    return workspace


def _check(report: dict, name: str) -> dict:
    return next(c for c in report["checks"] if c["name"] == name)


def test_doctor_passes_on_fresh_install(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    _installed(tmp_path, telegram=True)

    report = build_doctor_report(root=tmp_path, check_backend=False)

    assert report["ok"] is True
    assert report["agents"] == ["my-agent"]
    assert _check(report, "gateway:my-agent")["detail"] == "Telegram enabled=True"


def test_doctor_reports_missing_tools(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    monkeypatch.setattr(doctor, "command_exists", lambda name: name != "openclaw")
    _installed(tmp_path)

    report = build_doctor_report(root=tmp_path, check_backend=False)

    assert report["ok"] is False
    assert _check(report, "openclaw_installed")["ok"] is False
    assert _check(report, "docker_installed")["detail"] == "v1.0.0"


def test_doctor_detects_compose_drift_and_fix_rewrites(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    _installed(tmp_path)
    compose = tmp_path / "docker-compose.yml"
    compose.write_text(render_compose(tmp_path).replace("8080:8080", "9090:8080"), encoding="utf-8")

    report = build_doctor_report(root=tmp_path, check_backend=False)
    check = _check(report, "compose_file")
    assert check["ok"] is False
    assert check["warning"] is True
    assert "drift" in check["detail"]

    fixed = build_doctor_report(fix=True, root=tmp_path, check_backend=False)
    assert _check(fixed, "compose_file")["fixed"] is True
    assert compose.read_text(encoding="utf-8") == render_compose(tmp_path)


def test_doctor_fix_restores_missing_workspace_files(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    workspace = _installed(tmp_path)
    (workspace / "MEMORY.md").unlink()
    (workspace / "TOOLS.md").unlink()
    (workspace / "SOUL.md").write_text("# SOUL.md\n\nYou are a sales assistant.\n", encoding="utf-8")

    report = build_doctor_report(root=tmp_path, check_backend=False)
    assert _check(report, "workspace:my-agent")["ok"] is False

    fixed = build_doctor_report(fix=True, root=tmp_path, check_backend=False)
    check = _check(fixed, "workspace:my-agent")
    assert check["ok"] is True
    assert check["fixed"] is True
    assert (workspace / "MEMORY.md").exists()
    assert (workspace / "TOOLS.md").exists()
    assert "sales assistant" in (workspace / "SOUL.md").read_text(encoding="utf-8")


def test_doctor_fix_creates_directories_and_compose(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)

    report = build_doctor_report(fix=True, root=tmp_path, check_backend=False)

    assert _check(report, "directories")["fixed"] is True
    assert _check(report, "compose_file")["fixed"] is True
    assert (tmp_path / "agents").is_dir()
    assert _check(report, "agents")["warning"] is True


def test_doctor_fails_when_recorded_telegram_config_is_missing(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    workspace = _installed(tmp_path, telegram=True)
    (workspace / "gateway.yml").unlink()

    report = build_doctor_report(root=tmp_path, check_backend=False)

    assert report["ok"] is False
    check = _check(report, "gateway:my-agent")
    assert check["ok"] is False
    assert check["warning"] is False


def test_doctor_warns_only_when_telegram_never_configured(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    _installed(tmp_path)

    report = build_doctor_report(root=tmp_path, check_backend=False)

    check = _check(report, "gateway:my-agent")
    assert check["ok"] is True
    assert check["warning"] is True
    assert report["ok"] is True


def test_doctor_probes_backend(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    _installed(tmp_path)
    seen: list[str | None] = []

    def _fake_health(url):
        seen.append(url)
        return False, "http://10.0.0.5:8080/api/health: ConnectError"

    monkeypatch.setattr(doctor, "backend_health", _fake_health)

    report = build_doctor_report(root=tmp_path, backend_url="http://10.0.0.5:8080")

    assert seen == ["http://10.0.0.5:8080"]
    assert _check(report, "backend_health")["ok"] is False
    assert report["ok"] is False


def test_run_doctor_json_output(tmp_path: Path, monkeypatch, capsys):
    _healthy_host(monkeypatch)
    _installed(tmp_path)
    capsys.readouterr()

    code = run_doctor(root=tmp_path, check_backend=False, json_output=True)

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["install_root"] == str(tmp_path)
    assert payload["fix_mode"] is False


def test_run_doctor_text_output(tmp_path: Path, monkeypatch, capsys):
    _healthy_host(monkeypatch)
    monkeypatch.setattr(doctor, "command_exists", lambda name: name != "docker")
    _installed(tmp_path)

    code = run_doctor(root=tmp_path, check_backend=False)

    out = capsys.readouterr().out
    assert code == 1
    assert "AgentPen doctor summary" in out
    assert "- [FAIL] docker_installed: docker not found on PATH" in out
    assert "- [OK] gateway:my-agent: No gateway.yml; Telegram not configured" in out


def test_run_doctor_exits_1_when_recorded_telegram_config_is_missing(tmp_path: Path, monkeypatch, capsys):
    _healthy_host(monkeypatch)
    workspace = _installed(tmp_path, telegram=True)
    (workspace / "gateway.yml").unlink()
    capsys.readouterr()

    code = run_doctor(root=tmp_path, check_backend=False)

    assert code == 1
    assert "- [FAIL] gateway:my-agent" in capsys.readouterr().out


def test_doctor_reports_non_utf8_template_as_customized(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    workspace = _installed(tmp_path)
    (workspace / "SOUL.md").write_bytes(b"# Soul\n\xe9t\xe9\n")

    report = build_doctor_report(fix=True, root=tmp_path, check_backend=False)

    check = _check(report, "workspace:my-agent")
    assert check["ok"] is True
    assert "SOUL.md (edited)" in check["detail"]
    assert (workspace / "SOUL.md").read_bytes() == b"# Soul\n\xe9t\xe9\n"


def test_doctor_treats_non_utf8_compose_as_drift(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    _installed(tmp_path)
    (tmp_path / "docker-compose.yml").write_bytes(b"version: '3.8'\n# caf\xe9\n")

    check = _check(build_doctor_report(root=tmp_path, check_backend=False), "compose_file")
    assert check["ok"] is False
    assert "drift" in check["detail"]

    fixed = build_doctor_report(fix=True, root=tmp_path, check_backend=False)
    assert _check(fixed, "compose_file")["fixed"] is True
    assert (tmp_path / "docker-compose.yml").read_text(encoding="utf-8") == render_compose(tmp_path)


def test_doctor_reports_non_utf8_gateway_config(tmp_path: Path, monkeypatch):
    _healthy_host(monkeypatch)
    workspace = _installed(tmp_path, telegram=True)
    (workspace / "gateway.yml").write_bytes(b"agent: my-agent\ntoken: \xff\xfe\n")

    check = _check(build_doctor_report(root=tmp_path, check_backend=False), "gateway:my-agent")

    assert check["ok"] is False
    assert "Invalid YAML" in check["detail"]
