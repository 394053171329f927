"""
AgentPen CLI: unified entry point for the VPS installer and its helpers.

Usage:
    agentpen install [options]
    agentpen agent create|telegram|start <name> [options]
    agentpen backend up|health [options]
    agentpen doctor [options]
    agentpen site scaffold|build|files [site_dir] [options]

`agentpen install` needs no flags: AGENT_NAME (default my-agent) and
TELEGRAM_TOKEN (default empty) are read from the environment.
"""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path

from .errors import InstallError
from .ui import error, success, warn


def _add_install_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("install", help="Provision this VPS (Docker, Node.js, OpenClaw, backend, agent)")
    parser.add_argument("--agent-name", default=None, help="Overrides AGENT_NAME (default: my-agent)")
    parser.add_argument("--telegram-token", default=None, help="Overrides TELEGRAM_TOKEN")
    parser.add_argument(
        "--supervise",
        action="store_true",
        default=None,
        help="Run the agent gateway as a systemd service instead of a detached process",
    )
    parser.add_argument("--skip-backend-wait", action="store_true", help="Do not poll the backend health endpoint")


def _add_agent_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("agent", help="Manage agent workspaces")
    agent_sub = parser.add_subparsers(dest="agent_command", required=True)

    create = agent_sub.add_parser("create", help="Create or reset an agent workspace")
    create.add_argument("name", nargs="?", default=None)

    telegram = agent_sub.add_parser("telegram", help="Write gateway.yml with a Telegram bot token")
    telegram.add_argument("name")
    telegram.add_argument("--token", default=None, help="Bot token (default: TELEGRAM_TOKEN)")

    start = agent_sub.add_parser("start", help="Start the agent's OpenClaw gateway")
    start.add_argument("name")
    start.add_argument("--supervise", action="store_true")


def _add_backend_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("backend", help="AgentPen backend container")
    backend_sub = parser.add_subparsers(dest="backend_command", required=True)

    backend_sub.add_parser("up", help="Regenerate docker-compose.yml, pull and start the backend")

    health = backend_sub.add_parser("health", help="Probe GET /api/health")
    health.add_argument("--url", default=None, help="Backend base URL (default: AGENTPEN_BACKEND_URL)")
    health.add_argument("--wait", type=int, default=0, help="Seconds to keep polling before giving up")


def _add_doctor_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("doctor", help="Validate and repair an AgentPen install")
    parser.add_argument("--fix", action="store_true")
    parser.add_argument("--json", action="store_true")
    parser.add_argument("--skip-backend", action="store_true", help="Do not probe the backend health endpoint")
    parser.add_argument("--backend-url", default=None)


def _add_site_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("site", help="Static site container")
    site_sub = parser.add_subparsers(dest="site_command", required=True)

    scaffold = site_sub.add_parser("scaffold", help="Write Dockerfile and nginx.conf")
    scaffold.add_argument("site_dir", nargs="?", default=None)
    scaffold.add_argument("--force", action="store_true")

    build = site_sub.add_parser("build", help="docker build the site image")
    build.add_argument("site_dir", nargs="?", default=None)
    build.add_argument("--tag", default=None)

    files = site_sub.add_parser("files", help="List the files the image serves")
    files.add_argument("site_dir", nargs="?", default=None)
    files.add_argument("--json", action="store_true")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentpen",
        description="AgentPen VPS installer",
    )
    subparsers = parser.add_subparsers(dest="mode", required=True)
    _add_install_parser(subparsers)
    _add_agent_parser(subparsers)
    _add_backend_parser(subparsers)
    _add_doctor_parser(subparsers)
    _add_site_parser(subparsers)
    return parser


def _handle_install(args: argparse.Namespace) -> int:
    from .config import resolve_install_settings
    from .installer import run_install

    settings = resolve_install_settings(
        agent_name=args.agent_name,
        telegram_token=args.telegram_token,
        supervise=args.supervise,
        wait_for_backend=not args.skip_backend_wait,
    )
    return run_install(settings)


def _handle_agent(args: argparse.Namespace) -> int:
    from .agents import (
        configure_telegram,
        create_default_agent,
        install_agent_service,
        start_agent,
        validate_agent_name,
    )
    from .config import DEFAULT_AGENT_NAME
    from .install_state import record_agent

    if args.agent_command == "create":
        workspace = create_default_agent(args.name or os.environ.get("AGENT_NAME", "").strip() or DEFAULT_AGENT_NAME)
        record_agent(workspace.name)
        return 0

    name = validate_agent_name(args.name)

    if args.agent_command == "telegram":
        token = args.token if args.token is not None else os.environ.get("TELEGRAM_TOKEN", "")
        path = configure_telegram(name, token)
        if path is None:
            return 1
        record_agent(name, telegram=True)
        return 0

    if args.supervise:
        unit = install_agent_service(name)
        if unit is None:
            return 1
        record_agent(name, supervised=True)
        return 0
    pid = start_agent(name)
    if pid is None:
        return 1
    record_agent(name, pid=pid, supervised=False)
    return 0


def _handle_backend(args: argparse.Namespace) -> int:
    from .backend import backend_health, setup_backend, wait_for_backend
    from .provision import setup_directories

    if args.backend_command == "up":
        setup_directories()
        setup_backend()
        return 0

    if args.wait > 0:
        ok, detail = wait_for_backend(args.url, timeout_seconds=args.wait)
    else:
        ok, detail = backend_health(args.url)
    if ok:
        success(f"Backend healthy: {detail}")
        return 0
    warn(f"Backend unhealthy: {detail}")
    return 1


def _handle_doctor(args: argparse.Namespace) -> int:
    from .doctor import run_doctor

    return run_doctor(
        fix=bool(args.fix),
        backend_url=args.backend_url,
        check_backend=not args.skip_backend,
        json_output=bool(args.json),
    )


def _handle_site(args: argparse.Namespace) -> int:
    from .site import DEFAULT_SITE_TAG, build_site_image, default_site_dir, scaffold_site, served_files

    site_dir = Path(args.site_dir) if args.site_dir else default_site_dir()

    if args.site_command == "scaffold":
        written = scaffold_site(site_dir, force=bool(args.force))
        if not written:
            warn(f"Nothing written; {site_dir} already has Dockerfile and nginx.conf (use --force)")
        for path in written:
            success(f"Wrote {path}")
        return 0

    if args.site_command == "build":
        build_site_image(site_dir, tag=args.tag or DEFAULT_SITE_TAG)
        return 0

    files = served_files(site_dir)
    if args.json:
        print(json.dumps(files, indent=2))
    else:
        for name in files:
            print(name)
    return 0


def main(argv: list[str] | None = None):
    args = build_parser().parse_args(argv)
    handlers = {
        "install": _handle_install,
        "agent": _handle_agent,
        "backend": _handle_backend,
        "doctor": _handle_doctor,
        "site": _handle_site,
    }

    try:
        code = handlers[args.mode](args)
    except InstallError as exc:
        error(str(exc))
        code = 1
    except KeyboardInterrupt:
        error("Interrupted")
        code = 130
    raise SystemExit(code)


if __name__ == "__main__":
    main()
