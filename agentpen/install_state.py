"""Install-state helpers: what the installer has done on this host."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import INSTALL_STATE_FILE, get_install_root
from .utils import load_json, save_json


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def install_state_path(root: Path | None = None) -> Path:
    return get_install_root(root) / INSTALL_STATE_FILE


def load_install_state(root: Path | None = None) -> dict[str, Any]:
    payload = load_json(install_state_path(root), default={})
    return payload if isinstance(payload, dict) else {}


def save_install_state(state: dict[str, Any], root: Path | None = None):
    save_json(install_state_path(root), state)


def update_install_state(updates: dict[str, Any], root: Path | None = None) -> dict[str, Any]:
    state = load_install_state(root)
    state.update(updates)
    state["updated_at"] = _now_iso()
    save_install_state(state, root)
    return state


def record_step(step: str, root: Path | None = None) -> dict[str, Any]:
    state = load_install_state(root)
    steps = state.get("completed_steps") if isinstance(state.get("completed_steps"), dict) else {}
    steps[step] = _now_iso()
    return update_install_state({"completed_steps": steps}, root)


def record_agent(
    agent_name: str,
    *,
    telegram: bool | None = None,
    pid: int | None = None,
    supervised: bool | None = None,
    root: Path | None = None,
) -> dict[str, Any]:
    state = load_install_state(root)
    agents = state.get("agents") if isinstance(state.get("agents"), dict) else {}
    entry = agents.get(agent_name) if isinstance(agents.get(agent_name), dict) else {}
    entry.setdefault("created_at", _now_iso())
    if telegram is not None:
        entry["telegram"] = bool(telegram)
    if pid is not None:
        entry["pid"] = int(pid)
    if supervised is not None:
        entry["supervised"] = bool(supervised)
    agents[agent_name] = entry
    return update_install_state({"agents": agents}, root)


def recorded_agents(root: Path | None = None) -> list[str]:
    agents = load_install_state(root).get("agents")
    if not isinstance(agents, dict):
        return []
    return sorted(str(name) for name in agents)
