"""AgentPen doctor: validate and repair an existing VPS install."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

from .backend import backend_health, compose_path, render_compose
from .config import (
    GATEWAY_FILE,
    agent_workspace,
    agents_root,
    data_root,
    get_install_root,
)
from .errors import PreconditionError
from .install_state import load_install_state, recorded_agents
from .system import command_exists, command_version, detect_os
from .workspace_templates import MEMORY_DIR, TOOLS_FILE, WORKSPACE_TEMPLATES


@dataclass
class DoctorCheck:
    name: str
    ok: bool
    detail: str
    fixed: bool = False
    warning: bool = False


def _check_root() -> DoctorCheck:
    geteuid = getattr(os, "geteuid", None)
    is_root = geteuid is not None and geteuid() == 0
    return DoctorCheck(
        name="root",
        ok=is_root,
        detail="running as root" if is_root else "not running as root; installs need sudo",
        warning=not is_root,
    )


def _check_os() -> DoctorCheck:
    try:
        info = detect_os()
    except PreconditionError as exc:
        return DoctorCheck(name="os", ok=False, detail=str(exc))
    return DoctorCheck(name="os", ok=True, detail=info.label)


def _check_tool(name: str, version_args: list[str] | None = None) -> DoctorCheck:
    if not command_exists(name):
        return DoctorCheck(name=f"{name}_installed", ok=False, detail=f"{name} not found on PATH")
    detail = command_version(version_args) if version_args else f"{name} available"
    return DoctorCheck(name=f"{name}_installed", ok=True, detail=detail)


def _check_directories(root: Path, fix: bool) -> DoctorCheck:
    missing = [path for path in (agents_root(root), data_root(root)) if not path.is_dir()]
    if not missing:
        return DoctorCheck(name="directories", ok=True, detail=f"{agents_root(root)}, {data_root(root)}")
    if fix:
        for path in missing:
            path.mkdir(parents=True, exist_ok=True)
        return DoctorCheck(
            name="directories",
            ok=True,
            detail=f"Created {', '.join(str(p) for p in missing)}",
            fixed=True,
        )
    return DoctorCheck(
        name="directories",
        ok=False,
        detail=f"Missing {', '.join(str(p) for p in missing)}",
    )


def _sync_compose_file(root: Path, fix: bool) -> DoctorCheck:
    path = compose_path(root)
    desired = render_compose(root)
    if path.exists():
        current = path.read_bytes()
        if current == desired.encode("utf-8"):
            return DoctorCheck(name="compose_file", ok=True, detail=f"{path} current")
        try:
            same = yaml.safe_load(current) == yaml.safe_load(desired)
        except yaml.YAMLError:
            same = False
        if same:
            return DoctorCheck(name="compose_file", ok=True, detail=f"{path} current (formatting differs)")
        if fix:
            path.write_text(desired, encoding="utf-8")
            return DoctorCheck(name="compose_file", ok=True, detail=f"Rewrote {path}", fixed=True)
        return DoctorCheck(
            name="compose_file",
            ok=False,
            detail=f"compose drift detected at {path}",
            warning=True,
        )

    if fix:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(desired, encoding="utf-8")
        return DoctorCheck(name="compose_file", ok=True, detail=f"Created {path}", fixed=True)
    return DoctorCheck(name="compose_file", ok=False, detail=f"Missing {path}")


def _sync_agent_workspace(agent_name: str, root: Path, fix: bool) -> DoctorCheck:
    workspace = agent_workspace(agent_name, root)
    check_name = f"workspace:{agent_name}"
    problems: list[str] = []
    if not (workspace / MEMORY_DIR).is_dir():
        problems.append(f"{MEMORY_DIR}/")
    for filename, render in WORKSPACE_TEMPLATES.items():
        path = workspace / filename
        if not path.exists():
            problems.append(filename)
        elif path.read_bytes() != render().encode("utf-8"):
            problems.append(f"{filename} (edited)")
    if not (workspace / TOOLS_FILE).exists():
        problems.append(TOOLS_FILE)

    missing = [item for item in problems if not item.endswith("(edited)")]
    if not problems:
        return DoctorCheck(name=check_name, ok=True, detail=f"{workspace} complete")
    if not missing:
        # Edited templates are left alone.
        return DoctorCheck(
            name=check_name,
            ok=True,
            detail=f"Customized: {', '.join(problems)}",
        )

    if fix:
        (workspace / MEMORY_DIR).mkdir(parents=True, exist_ok=True)
        for filename, render in WORKSPACE_TEMPLATES.items():
            path = workspace / filename
            if not path.exists():
                path.write_text(render(), encoding="utf-8")
        (workspace / TOOLS_FILE).touch(exist_ok=True)
        return DoctorCheck(
            name=check_name,
            ok=True,
            detail=f"Restored {', '.join(missing)}",
            fixed=True,
        )
    return DoctorCheck(name=check_name, ok=False, detail=f"Missing {', '.join(missing)} in {workspace}")


def _check_gateway_config(agent_name: str, root: Path, telegram_expected: bool) -> DoctorCheck:
    path = agent_workspace(agent_name, root) / GATEWAY_FILE
    check_name = f"gateway:{agent_name}"
    if not path.exists():
        return DoctorCheck(
            name=check_name,
            ok=not telegram_expected,
            detail=f"No {GATEWAY_FILE}; Telegram not configured",
            warning=not telegram_expected,
        )
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, yaml.YAMLError) as exc:
        return DoctorCheck(name=check_name, ok=False, detail=f"Invalid YAML in {path}: {exc}")
    if not isinstance(payload, dict):
        return DoctorCheck(name=check_name, ok=False, detail=f"{path} is not a mapping")

    channels = payload.get("channels") if isinstance(payload.get("channels"), dict) else {}
    telegram = channels.get("telegram") if isinstance(channels.get("telegram"), dict) else {}
    token = str(telegram.get("token") or "").strip()
    if str(payload.get("agent", "")).strip() != agent_name:
        return DoctorCheck(name=check_name, ok=False, detail=f"{path} names agent '{payload.get('agent')}'")
    if not token:
        return DoctorCheck(name=check_name, ok=False, detail=f"{path} has no Telegram token")
    return DoctorCheck(name=check_name, ok=True, detail=f"Telegram enabled={bool(telegram.get('enabled'))}")


def _check_backend(backend_url: str | None) -> DoctorCheck:
    ok, detail = backend_health(backend_url)
    return DoctorCheck(name="backend_health", ok=ok, detail=detail)


def build_doctor_report(
    fix: bool = False,
    root: Path | None = None,
    backend_url: str | None = None,
    check_backend: bool = True,
) -> dict[str, Any]:
    install_root = get_install_root(root)
    checks: list[DoctorCheck] = [
        _check_root(),
        _check_os(),
        _check_tool("docker", ["docker", "--version"]),
        _check_tool("node", ["node", "--version"]),
        _check_tool("openclaw"),
        _check_directories(install_root, fix=fix),
        _sync_compose_file(install_root, fix=fix),
    ]

    state = load_install_state(install_root)
    agent_state = state.get("agents") if isinstance(state.get("agents"), dict) else {}
    agent_names = recorded_agents(install_root)
    if not agent_names and agents_root(install_root).is_dir():
        agent_names = sorted(p.name for p in agents_root(install_root).iterdir() if p.is_dir())
    if not agent_names:
        checks.append(DoctorCheck(name="agents", ok=False, detail="No agent workspaces found", warning=True))

    for name in agent_names:
        entry = agent_state.get(name) if isinstance(agent_state.get(name), dict) else {}
        checks.append(_sync_agent_workspace(name, install_root, fix=fix))
        checks.append(_check_gateway_config(name, install_root, telegram_expected=bool(entry.get("telegram"))))

    if check_backend:
        checks.append(_check_backend(backend_url))

    ok = all(c.ok or c.warning for c in checks)
    return {
        "ok": ok,
        "fix_mode": fix,
        "install_root": str(install_root),
        "agents": agent_names,
        "checks": [asdict(c) for c in checks],
    }


def run_doctor(
    fix: bool = False,
    root: Path | None = None,
    backend_url: str | None = None,
    check_backend: bool = True,
    json_output: bool = False,
) -> int:
    report = build_doctor_report(fix=fix, root=root, backend_url=backend_url, check_backend=check_backend)
    if json_output:
        print(json.dumps(report, indent=2))
    else:
        print("AgentPen doctor summary")
        print(f"- Install root: {report.get('install_root', '')}")
        print(f"- Fix mode: {'on' if report.get('fix_mode') else 'off'}")
        for check in report.get("checks", []):
            if not isinstance(check, dict):
                continue
            marker = "[OK]" if check.get("ok") else "[WARN]" if check.get("warning") else "[FAIL]"
            suffix = " (fixed)" if check.get("fixed") else ""
            print(f"- {marker} {check.get('name', 'unknown')}: {check.get('detail', '')}{suffix}")

    return 0 if bool(report.get("ok")) else 1
