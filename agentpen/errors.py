"""Installer error types."""

from __future__ import annotations


class InstallError(Exception):
    """Fatal installer failure; the CLI prints it and exits 1."""


class PreconditionError(InstallError):
    """The host is not fit to run the installer (not root, unknown OS, bad input)."""


class CommandError(InstallError):
    """An external command (apt-get, docker, npm, ...) exited non-zero."""

    def __init__(self, args: list[str], returncode: int, output: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.output = output
        message = f"Command failed ({returncode}): {' '.join(self.args_list)}"
        if output:
            message = f"{message}\n{output}"
        super().__init__(message)
