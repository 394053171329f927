"""Console output helpers shared by the installer, doctor and CLI."""

from __future__ import annotations

import platform

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.text import Text


CYAN = "cyan"
BRIGHT_CYAN = "bright_cyan"
GREEN = "green"
YELLOW = "bold yellow"
RED = "red"
DIM = "dim"

console = Console(force_terminal=True if platform.system() == "Windows" else None, highlight=False)


def log(text: str):
    console.print(Text.assemble(("[AgentPen]", CYAN), " ", str(text)))


def success(text: str):
    console.print(Text.assemble(("[✓]", GREEN), " ", str(text)))


def warn(text: str):
    console.print(Text.assemble(("[!]", YELLOW), " ", str(text)))


def error(text: str):
    console.print(Text.assemble(("[✗]", RED), " ", str(text)))


def banner(title: str, subtitle: str = ""):
    """Print a centered boxed title, e.g. the installer start/finish banners."""
    body = Text(title, style=f"bold {BRIGHT_CYAN}", justify="center")
    if subtitle:
        body.append(f"\n{subtitle}", style=DIM)
    console.print()
    console.print(Panel(Align.center(body), border_style=CYAN, width=43))
    console.print()
