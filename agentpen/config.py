"""
AgentPen configuration: install paths, backend contract and environment handling.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────────────────────

DEFAULT_INSTALL_ROOT = "/opt/agentpen"
AGENTS_DIR = "agents"
DATA_DIR = "data"
COMPOSE_FILE = "docker-compose.yml"
INSTALL_STATE_FILE = "install.json"
DEFAULT_LOG_DIR = "/var/log"
SYSTEMD_UNIT_DIR = "/etc/systemd/system"
OS_RELEASE_PATH = "/etc/os-release"

# ── Backend Container ─────────────────────────────────────────────────────────

BACKEND_IMAGE = "ghcr.io/sara-builds/agent-deck-backend:latest"
BACKEND_SERVICE = "backend"
BACKEND_CONTAINER = "agentpen-api"
BACKEND_PORT = 8080
BACKEND_HEALTH_PATH = "/api/health"
BACKEND_CONTAINER_AGENTS_PATH = "/opt/agentpen/agents"
BACKEND_CONTAINER_DATA_PATH = "/app/data"
BACKEND_SPRING_PROFILE = "prod"
DEFAULT_BACKEND_URL = f"http://localhost:{BACKEND_PORT}"

# ── Host Tooling ──────────────────────────────────────────────────────────────

NODE_MAJOR = 22
NODESOURCE_SETUP_URL = f"https://deb.nodesource.com/setup_{NODE_MAJOR}.x"
DOCKER_DOWNLOAD_BASE = "https://download.docker.com/linux"
APT_KEYRINGS_DIR = "/etc/apt/keyrings"
DOCKER_KEYRING = f"{APT_KEYRINGS_DIR}/docker.gpg"
DOCKER_APT_LIST = "/etc/apt/sources.list.d/docker.list"
DOCKER_PREREQ_PACKAGES = ("ca-certificates", "curl", "gnupg")
DOCKER_PACKAGES = (
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
)
OPENCLAW_NPM_PACKAGE = "openclaw"

# ── Agents ────────────────────────────────────────────────────────────────────

DEFAULT_AGENT_NAME = "my-agent"
GATEWAY_FILE = "gateway.yml"
GATEWAY_MODEL_PROVIDER = "anthropic"
GATEWAY_MODEL = "claude-sonnet-4-20250514"

_TRUTHY = {"1", "true", "yes", "on"}


def is_truthy(value: str | bool | int | None) -> bool:
    clean = str(value or "").strip().lower()
    return clean in _TRUTHY


def get_install_root(override: str | Path | None = None) -> Path:
    """Resolve the install root from override or environment or default."""
    if override:
        return Path(override)
    env = os.environ.get("AGENTPEN_ROOT", "").strip()
    if env:
        return Path(env)
    return Path(DEFAULT_INSTALL_ROOT)


def get_log_dir(override: str | Path | None = None) -> Path:
    if override:
        return Path(override)
    env = os.environ.get("AGENTPEN_LOG_DIR", "").strip()
    if env:
        return Path(env)
    return Path(DEFAULT_LOG_DIR)


def get_backend_url(override: str | None = None) -> str:
    text = str(override or "").strip()
    if text:
        return text.rstrip("/")
    env = os.environ.get("AGENTPEN_BACKEND_URL", "").strip()
    if env:
        return env.rstrip("/")
    return DEFAULT_BACKEND_URL


def agents_root(root: str | Path | None = None) -> Path:
    return get_install_root(root) / AGENTS_DIR


def data_root(root: str | Path | None = None) -> Path:
    return get_install_root(root) / DATA_DIR


def agent_workspace(agent_name: str, root: str | Path | None = None) -> Path:
    return agents_root(root) / agent_name


@dataclass(frozen=True)
class InstallSettings:
    agent_name: str
    telegram_token: str
    install_root: Path
    log_dir: Path
    backend_url: str
    supervise: bool = False
    wait_for_backend: bool = True


def resolve_install_settings(
    *,
    agent_name: str | None = None,
    telegram_token: str | None = None,
    supervise: bool | None = None,
    wait_for_backend: bool = True,
    install_root: str | Path | None = None,
) -> InstallSettings:
    """Merge CLI overrides with AGENT_NAME / TELEGRAM_TOKEN / AGENTPEN_* env vars."""
    name = str(agent_name or "").strip() or os.environ.get("AGENT_NAME", "").strip() or DEFAULT_AGENT_NAME
    token = telegram_token if telegram_token is not None else os.environ.get("TELEGRAM_TOKEN", "")
    supervised = is_truthy(os.environ.get("AGENTPEN_SUPERVISE")) if supervise is None else bool(supervise)
    return InstallSettings(
        agent_name=name,
        telegram_token=str(token or "").strip(),
        install_root=get_install_root(install_root),
        log_dir=get_log_dir(),
        backend_url=get_backend_url(),
        supervise=supervised,
        wait_for_backend=wait_for_backend,
    )
