"""Agent workspaces: scaffolding, Telegram gateway config and gateway start."""

from __future__ import annotations

import re
import shutil
from pathlib import Path

from .config import (
    DEFAULT_AGENT_NAME,
    GATEWAY_FILE,
    SYSTEMD_UNIT_DIR,
    agent_workspace,
    get_log_dir,
)
from .errors import InstallError, PreconditionError
from .system import command_exists, run_checked, run_command, spawn_detached
from .ui import log, success, warn
from .utils import tail_output
from .workspace_templates import (
    MEMORY_DIR,
    TOOLS_FILE,
    WORKSPACE_TEMPLATES,
    render_agent_service,
    render_gateway_yml,
)


AGENT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$")
TELEGRAM_TOKEN_PATTERN = re.compile(r"^\d+:[A-Za-z0-9_-]+$")


def validate_agent_name(agent_name: str) -> str:
    clean = str(agent_name or "").strip()
    if not AGENT_NAME_PATTERN.fullmatch(clean):
        raise PreconditionError(
            f"Invalid agent name '{agent_name}': use letters, digits, '.', '_' or '-' (max 64 chars)"
        )
    return clean


def agent_log_path(agent_name: str, log_dir: Path | None = None) -> Path:
    return get_log_dir(log_dir) / f"openclaw-{agent_name}.log"


def agent_service_name(agent_name: str) -> str:
    return f"agentpen-agent-{agent_name}.service"


def _init_openclaw_workspace(agent_name: str, workspace: Path) -> tuple[bool, str]:
    """Best effort: a failed `openclaw init` never aborts agent creation."""
    return run_command(["openclaw", "init", ".", "--name", agent_name], cwd=workspace, timeout=120)


def create_default_agent(agent_name: str = DEFAULT_AGENT_NAME, *, root: Path | None = None) -> Path:
    """Write SOUL/MEMORY/AGENTS/TOOLS.md and memory/ for an agent; reruns overwrite."""
    name = validate_agent_name(agent_name or DEFAULT_AGENT_NAME)
    log(f"Creating agent: {name}")

    workspace = agent_workspace(name, root)
    (workspace / MEMORY_DIR).mkdir(parents=True, exist_ok=True)

    for filename, render in WORKSPACE_TEMPLATES.items():
        (workspace / filename).write_text(render(), encoding="utf-8")
    (workspace / TOOLS_FILE).touch(exist_ok=True)

    if command_exists("openclaw"):
        ok, out = _init_openclaw_workspace(name, workspace)
        if not ok:
            detail = tail_output(out, lines=3)
            warn(f"openclaw init did not complete; continuing{': ' + detail if detail else ''}")

    success(f"Agent workspace created: {name}")
    return workspace


def configure_telegram(agent_name: str, bot_token: str, *, root: Path | None = None) -> Path | None:
    """Write gateway.yml for an agent. An empty token skips the step with a warning."""
    token = str(bot_token or "").strip()
    if not token:
        warn("No Telegram token provided, skipping Telegram setup")
        return None

    name = validate_agent_name(agent_name)
    log(f"Configuring Telegram for {name}...")

    if not TELEGRAM_TOKEN_PATTERN.fullmatch(token):
        warn("Telegram token does not look like '<bot id>:<secret>'; writing it anyway")

    workspace = agent_workspace(name, root)
    workspace.mkdir(parents=True, exist_ok=True)
    gateway_path = workspace / GATEWAY_FILE
    gateway_path.write_text(render_gateway_yml(name, token), encoding="utf-8")

    success("Telegram configured")
    return gateway_path


def start_agent(
    agent_name: str,
    *,
    root: Path | None = None,
    log_dir: Path | None = None,
) -> int | None:
    """Launch `openclaw gateway start` detached; returns the PID, or None if OpenClaw is missing.

    The process is not supervised. Use install_agent_service() for restart-on-crash.
    """
    name = validate_agent_name(agent_name)
    log(f"Starting agent: {name}")

    if not command_exists("openclaw"):
        warn("OpenClaw not found, agent not started")
        return None

    workspace = agent_workspace(name, root)
    if not workspace.is_dir():
        raise InstallError(f"Agent workspace missing: {workspace}")

    try:
        pid = spawn_detached(
            ["openclaw", "gateway", "start"],
            cwd=workspace,
            log_path=agent_log_path(name, log_dir),
        )
    except OSError as exc:
        raise InstallError(f"Could not start agent gateway: {exc}") from exc

    success(f"Agent started (PID: {pid})")
    return pid


def install_agent_service(
    agent_name: str,
    *,
    root: Path | None = None,
    log_dir: Path | None = None,
    unit_dir: Path | None = None,
) -> Path | None:
    """Run the agent gateway under systemd with Restart=on-failure."""
    name = validate_agent_name(agent_name)
    log(f"Installing supervised service for agent: {name}")

    openclaw_bin = shutil.which("openclaw")
    if not openclaw_bin:
        warn("OpenClaw not found, agent not started")
        return None

    workspace = agent_workspace(name, root)
    if not workspace.is_dir():
        raise InstallError(f"Agent workspace missing: {workspace}")

    log_path = agent_log_path(name, log_dir)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    service = agent_service_name(name)
    unit_path = Path(unit_dir or SYSTEMD_UNIT_DIR) / service
    unit_path.parent.mkdir(parents=True, exist_ok=True)
    unit_path.write_text(
        render_agent_service(
            agent_name=name,
            workspace=str(workspace),
            openclaw_bin=openclaw_bin,
            log_path=str(log_path),
        ),
        encoding="utf-8",
    )

    run_checked(["systemctl", "daemon-reload"])
    run_checked(["systemctl", "enable", "--now", service])

    success(f"Agent service enabled: {service}")
    return unit_path
