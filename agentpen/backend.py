"""AgentPen backend container: compose spec, start-up and health probing."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

import httpx
import yaml

from .config import (
    BACKEND_CONTAINER,
    BACKEND_CONTAINER_AGENTS_PATH,
    BACKEND_CONTAINER_DATA_PATH,
    BACKEND_HEALTH_PATH,
    BACKEND_IMAGE,
    BACKEND_PORT,
    BACKEND_SERVICE,
    BACKEND_SPRING_PROFILE,
    COMPOSE_FILE,
    agents_root,
    data_root,
    get_backend_url,
    get_install_root,
)
from .system import run_checked
from .ui import log, success


def compose_spec(root: Path | None = None) -> dict[str, Any]:
    """Single-service compose document for the backend container."""
    return {
        "version": "3.8",
        "services": {
            BACKEND_SERVICE: {
                "image": BACKEND_IMAGE,
                "container_name": BACKEND_CONTAINER,
                "restart": "unless-stopped",
                "ports": [f"{BACKEND_PORT}:{BACKEND_PORT}"],
                "volumes": [
                    f"{agents_root(root)}:{BACKEND_CONTAINER_AGENTS_PATH}",
                    f"{data_root(root)}:{BACKEND_CONTAINER_DATA_PATH}",
                ],
                "environment": [
                    f"SPRING_PROFILES_ACTIVE={BACKEND_SPRING_PROFILE}",
                    f"AGENTPEN_AGENTS_PATH={BACKEND_CONTAINER_AGENTS_PATH}",
                ],
                "healthcheck": {
                    "test": [
                        "CMD",
                        "wget",
                        "--no-verbose",
                        "--tries=1",
                        "--spider",
                        f"http://localhost:{BACKEND_PORT}{BACKEND_HEALTH_PATH}",
                    ],
                    "interval": "30s",
                    "timeout": "3s",
                    "retries": 3,
                },
            },
        },
    }


def render_compose(root: Path | None = None) -> str:
    return yaml.safe_dump(compose_spec(root), default_flow_style=False, sort_keys=False)


def compose_path(root: Path | None = None) -> Path:
    return get_install_root(root) / COMPOSE_FILE


def write_compose(root: Path | None = None) -> Path:
    path = compose_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_compose(root), encoding="utf-8")
    return path


def setup_backend(root: Path | None = None) -> Path:
    """Regenerate docker-compose.yml, then pull and start the backend."""
    log("Setting up AgentPen backend...")

    install_root = get_install_root(root)
    path = write_compose(root)

    run_checked(["docker", "compose", "pull"], cwd=install_root)
    run_checked(["docker", "compose", "up", "-d"], cwd=install_root)

    success("Backend started")
    return path


def health_url(base_url: str | None = None) -> str:
    return f"{get_backend_url(base_url)}{BACKEND_HEALTH_PATH}"


def backend_health(base_url: str | None = None, timeout: float = 5.0) -> tuple[bool, str]:
    url = health_url(base_url)
    try:
        response = httpx.get(url, timeout=timeout)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return False, f"{url}: {exc}"
    if response.status_code >= 300:
        return False, f"{url}: http_{response.status_code}"
    return True, f"{url}: http_{response.status_code}"


def wait_for_backend(
    base_url: str | None = None,
    *,
    timeout_seconds: int = 90,
    poll_seconds: int = 3,
) -> tuple[bool, str]:
    """Poll the health endpoint until it answers or the deadline passes."""
    deadline = time.time() + max(1, int(timeout_seconds))
    ok, detail = backend_health(base_url)
    while not ok and time.time() < deadline:
        time.sleep(max(1, int(poll_seconds)))
        ok, detail = backend_health(base_url)
    return ok, detail
