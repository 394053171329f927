"""Templates for agent workspace files and the per-agent gateway config."""

from __future__ import annotations

from typing import Any

import yaml

from .config import GATEWAY_MODEL, GATEWAY_MODEL_PROVIDER


def render_soul_md() -> str:
    return (
        "# SOUL.md - Who You Are\n\n"
        "You are a helpful AI assistant.\n"
    )


def render_memory_md() -> str:
    return (
        "# MEMORY.md - Long-Term Memory\n\n"
        "*Your memories will be stored here.*\n"
    )


def render_agents_md() -> str:
    return (
        "# AGENTS.md - Workspace Guidelines\n\n"
        "Follow the patterns established in this workspace.\n"
    )


# Files rewritten on every run. TOOLS.md is only created when missing.
WORKSPACE_TEMPLATES = {
    "SOUL.md": render_soul_md,
    "MEMORY.md": render_memory_md,
    "AGENTS.md": render_agents_md,
}
TOOLS_FILE = "TOOLS.md"
MEMORY_DIR = "memory"


def gateway_config(agent_name: str, bot_token: str) -> dict[str, Any]:
    return {
        "agent": agent_name,
        "channels": {
            "telegram": {
                "enabled": True,
                "token": bot_token,
            },
        },
        "model": {
            "provider": GATEWAY_MODEL_PROVIDER,
            "model": GATEWAY_MODEL,
        },
    }


def render_gateway_yml(agent_name: str, bot_token: str) -> str:
    """Render gateway.yml; the bot token is stored in plaintext."""
    return yaml.safe_dump(gateway_config(agent_name, bot_token), default_flow_style=False, sort_keys=False)


def render_agent_service(
    *,
    agent_name: str,
    workspace: str,
    openclaw_bin: str,
    log_path: str,
) -> str:
    """systemd unit that keeps an agent gateway running across crashes and reboots."""
    return (
        "[Unit]\n"
        f"Description=AgentPen agent gateway ({agent_name})\n"
        "After=network-online.target docker.service\n"
        "Wants=network-online.target\n\n"
        "[Service]\n"
        "Type=simple\n"
        f"WorkingDirectory={workspace}\n"
        f"ExecStart={openclaw_bin} gateway start\n"
        "Restart=on-failure\n"
        "RestartSec=10\n"
        f"StandardOutput=append:{log_path}\n"
        f"StandardError=append:{log_path}\n\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )
