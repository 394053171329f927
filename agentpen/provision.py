"""Host tooling installers: Docker Engine, Node.js, OpenClaw and the install tree.

Every installer is guarded by a presence check so reruns are no-ops. Any failing
apt-get/npm/systemctl call raises CommandError and aborts the install.
"""

from __future__ import annotations

from pathlib import Path

from .config import (
    APT_KEYRINGS_DIR,
    DOCKER_APT_LIST,
    DOCKER_DOWNLOAD_BASE,
    DOCKER_KEYRING,
    DOCKER_PACKAGES,
    DOCKER_PREREQ_PACKAGES,
    NODE_MAJOR,
    NODESOURCE_SETUP_URL,
    OPENCLAW_NPM_PACKAGE,
    agents_root,
    data_root,
)
from .system import (
    OsInfo,
    apt_env,
    command_exists,
    command_version,
    dpkg_architecture,
    fetch_text,
    run_checked,
)
from .ui import log, success


def render_docker_apt_source(os_info: OsInfo, arch: str) -> str:
    return (
        f"deb [arch={arch} signed-by={DOCKER_KEYRING}] "
        f"{DOCKER_DOWNLOAD_BASE}/{os_info.id} {os_info.codename} stable\n"
    )


def _apt_install(packages: tuple[str, ...] | list[str]):
    run_checked(["apt-get", "install", "-y", "-qq", *packages], env=apt_env())


def _apt_update():
    run_checked(["apt-get", "update", "-qq"], env=apt_env())


def install_docker(os_info: OsInfo) -> bool:
    """Install Docker Engine from the official apt repository. Returns True if installed now."""
    if command_exists("docker"):
        success(f"Docker already installed: {command_version(['docker', '--version'])}")
        return False

    log("Installing Docker...")

    _apt_update()
    _apt_install(DOCKER_PREREQ_PACKAGES)

    run_checked(["install", "-m", "0755", "-d", APT_KEYRINGS_DIR])
    gpg_key = fetch_text(f"{DOCKER_DOWNLOAD_BASE}/{os_info.id}/gpg")
    run_checked(["gpg", "--batch", "--yes", "--dearmor", "-o", DOCKER_KEYRING], input_text=gpg_key)
    run_checked(["chmod", "a+r", DOCKER_KEYRING])

    source_line = render_docker_apt_source(os_info, dpkg_architecture())
    Path(DOCKER_APT_LIST).write_text(source_line, encoding="utf-8")

    _apt_update()
    _apt_install(DOCKER_PACKAGES)

    run_checked(["systemctl", "enable", "docker"])
    run_checked(["systemctl", "start", "docker"])

    success("Docker installed successfully")
    return True


def install_nodejs() -> bool:
    """Install Node.js via the NodeSource setup script. Returns True if installed now."""
    if command_exists("node"):
        success(f"Node.js already installed: {command_version(['node', '--version'])}")
        return False

    log(f"Installing Node.js {NODE_MAJOR}...")

    setup_script = fetch_text(NODESOURCE_SETUP_URL)
    run_checked(["bash", "-"], input_text=setup_script, env=apt_env())
    _apt_install(["nodejs"])

    success(f"Node.js installed: {command_version(['node', '--version'])}")
    return True


def install_openclaw() -> bool:
    if command_exists("openclaw"):
        success("OpenClaw already installed")
        return False

    log("Installing OpenClaw...")

    run_checked(["npm", "install", "-g", OPENCLAW_NPM_PACKAGE])

    success("OpenClaw installed")
    return True


def setup_directories(root: Path | None = None) -> list[Path]:
    log("Setting up directories...")

    created = [agents_root(root), data_root(root)]
    for path in created:
        path.mkdir(parents=True, exist_ok=True)

    success("Directories created")
    return created
