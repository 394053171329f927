"""AgentPen VPS installer pipeline.

Steps run in a fixed order, each idempotent:

    install_docker -> install_nodejs -> install_openclaw -> setup_directories
    -> setup_backend -> create_default_agent -> [configure_telegram -> start_agent]

The bracketed steps only run when a Telegram token is supplied. The first
failing step raises and the install stops; nothing is rolled back.
"""

from __future__ import annotations

from .agents import configure_telegram, create_default_agent, install_agent_service, start_agent, validate_agent_name
from .backend import setup_backend, wait_for_backend
from .config import BACKEND_PORT, GATEWAY_FILE, InstallSettings, agent_workspace
from .install_state import record_agent, record_step, update_install_state
from .provision import install_docker, install_nodejs, install_openclaw, setup_directories
from .system import OsInfo, detect_os, primary_ip_address, require_root
from .ui import banner, console, log, success, warn


class Installer:
    """Runs the provisioning pipeline for one agent."""

    def __init__(self, settings: InstallSettings):
        self.settings = settings
        self.root = settings.install_root
        self.agent_name = settings.agent_name
        self.os_info: OsInfo | None = None

    def preflight(self) -> OsInfo:
        require_root()
        validate_agent_name(self.agent_name)
        log("Starting AgentPen installation...")
        self.os_info = detect_os()
        log(f"Detected OS: {self.os_info.label}")
        return self.os_info

    def run(self) -> int:
        os_info = self.preflight()

        banner("AgentPen VPS Installer")

        install_docker(os_info)
        self._checkpoint("install_docker")
        install_nodejs()
        self._checkpoint("install_nodejs")
        install_openclaw()
        self._checkpoint("install_openclaw")
        setup_directories(self.root)
        self._checkpoint("setup_directories")
        setup_backend(self.root)
        self._checkpoint("setup_backend")
        if self.settings.wait_for_backend:
            self._wait_for_backend()

        create_default_agent(self.agent_name, root=self.root)
        record_agent(self.agent_name, root=self.root)
        self._checkpoint("create_default_agent")

        if self.settings.telegram_token:
            configure_telegram(self.agent_name, self.settings.telegram_token, root=self.root)
            record_agent(self.agent_name, telegram=True, root=self.root)
            self._checkpoint("configure_telegram")
            self._start_agent()
            self._checkpoint("start_agent")

        update_install_state(
            {
                "os": {"id": os_info.id, "version_id": os_info.version_id, "codename": os_info.codename},
                "default_agent": self.agent_name,
                "setup_completed": True,
            },
            self.root,
        )
        self._summary()
        return 0

    def _checkpoint(self, step: str):
        record_step(step, self.root)

    def _wait_for_backend(self):
        log("Waiting for backend health check...")
        ok, detail = wait_for_backend(self.settings.backend_url)
        if ok:
            success("Backend healthy")
        else:
            warn(f"Backend not healthy yet ({detail}); check `docker compose ps` in {self.root}")

    def _start_agent(self):
        if self.settings.supervise:
            unit = install_agent_service(self.agent_name, root=self.root, log_dir=self.settings.log_dir)
            if unit is not None:
                record_agent(self.agent_name, supervised=True, root=self.root)
            return
        pid = start_agent(self.agent_name, root=self.root, log_dir=self.settings.log_dir)
        if pid is not None:
            record_agent(self.agent_name, pid=pid, supervised=False, root=self.root)

    def _summary(self):
        workspace = agent_workspace(self.agent_name, self.root)
        banner("Installation Complete! 🎉")
        console.print(f"Backend running at: http://{primary_ip_address()}:{BACKEND_PORT}", markup=False)
        console.print(f"Agent workspace:    {workspace}", markup=False)
        console.print()
        if not self.settings.telegram_token:
            console.print("To connect Telegram, edit:", markup=False)
            console.print(f"  {workspace / GATEWAY_FILE}", markup=False)
            console.print(f"or run: agentpen agent telegram {self.agent_name} --token <bot token>", markup=False)
            console.print()


def run_install(settings: InstallSettings) -> int:
    return Installer(settings).run()
