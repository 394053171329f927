"""Host helpers: subprocess runners, presence checks and OS detection."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

import httpx

from .config import OS_RELEASE_PATH
from .errors import CommandError, InstallError, PreconditionError
from .utils import tail_output


@dataclass(frozen=True)
class OsInfo:
    id: str
    version_id: str
    codename: str

    @property
    def label(self) -> str:
        return f"{self.id} {self.version_id}".strip()


def apt_env() -> dict[str, str]:
    env = dict(os.environ)
    env["DEBIAN_FRONTEND"] = "noninteractive"
    return env


def _execute(
    args: list[str],
    *,
    cwd: Path | None,
    env: dict[str, str] | None,
    input_text: str | None,
    timeout: int,
) -> tuple[int, str]:
    result = subprocess.run(
        args,
        check=False,
        capture_output=True,
        text=True,
        input=input_text,
        cwd=str(cwd) if cwd is not None else None,
        env=env,
        timeout=timeout,
    )
    output_parts = []
    stdout = (result.stdout or "").strip()
    stderr = (result.stderr or "").strip()
    if stdout:
        output_parts.append(stdout)
    if stderr:
        output_parts.append(stderr)
    return result.returncode, "\n".join(output_parts).strip()


def run_command(
    args: list[str],
    *,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    input_text: str | None = None,
    timeout: int = 900,
) -> tuple[bool, str]:
    """Run a command and return (ok, combined output). Never raises."""
    try:
        returncode, output = _execute(args, cwd=cwd, env=env, input_text=input_text, timeout=timeout)
    except (OSError, subprocess.SubprocessError) as exc:
        return False, str(exc)
    return returncode == 0, output


def run_checked(
    args: list[str],
    *,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    input_text: str | None = None,
    timeout: int = 900,
) -> str:
    """Run a command that must succeed; raise CommandError otherwise."""
    try:
        returncode, output = _execute(args, cwd=cwd, env=env, input_text=input_text, timeout=timeout)
    except (OSError, subprocess.SubprocessError) as exc:
        raise CommandError(args, -1, str(exc)) from exc
    if returncode != 0:
        raise CommandError(args, returncode, tail_output(output))
    return output


def command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def command_version(args: list[str]) -> str:
    ok, out = run_command(args, timeout=15)
    if not ok or not out:
        return "unknown"
    return out.splitlines()[0].strip()


def fetch_text(url: str, timeout: int = 60) -> str:
    """Download a small text payload (GPG key, setup script)."""
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise InstallError(f"Download failed: {url}: {exc}") from exc
    return response.text


def require_root():
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None or geteuid() != 0:
        raise PreconditionError("Please run as root (use sudo)")


def read_os_release(path: Path | None = None) -> dict[str, str]:
    """Parse an os-release file into a dict; values are unquoted."""
    release_path = path or Path(OS_RELEASE_PATH)
    values: dict[str, str] = {}
    for raw in release_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("'\"")]
        values[key.strip()] = parts[0] if parts else ""
    return values


def detect_os(path: Path | None = None) -> OsInfo:
    release_path = path or Path(OS_RELEASE_PATH)
    if not release_path.is_file():
        raise PreconditionError("Cannot detect OS. Only Ubuntu/Debian supported.")
    values = read_os_release(release_path)
    os_id = values.get("ID", "").strip()
    if not os_id:
        raise PreconditionError("Cannot detect OS. Only Ubuntu/Debian supported.")
    return OsInfo(
        id=os_id,
        version_id=values.get("VERSION_ID", "").strip(),
        codename=values.get("VERSION_CODENAME", "").strip(),
    )


def dpkg_architecture() -> str:
    return run_checked(["dpkg", "--print-architecture"]).strip()


def primary_ip_address() -> str:
    """First address reported by `hostname -I`, or localhost."""
    ok, out = run_command(["hostname", "-I"], timeout=10)
    if ok:
        parts = out.split()
        if parts:
            return parts[0]
    return "localhost"


def spawn_detached(args: list[str], *, cwd: Path, log_path: Path) -> int:
    """Start a process in its own session with output sent to log_path; return its PID."""
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("wb") as handle:
        process = subprocess.Popen(
            args,
            cwd=str(cwd),
            stdin=subprocess.DEVNULL,
            stdout=handle,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
    return process.pid
