"""
AgentPen shared utilities: JSON state files and command output trimming.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


# ── File Helpers ──────────────────────────────────────────────────────────────

def load_json(path: Path, default: Any = None) -> Any:
    """Safely load a JSON file, returning default on failure."""
    if default is None:
        default = {}
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return default


def save_json(path: Path, data: Any, indent: int = 2):
    """Save data as JSON, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)
        f.write("\n")


# ── Output Helpers ────────────────────────────────────────────────────────────

def tail_output(output: str, *, lines: int = 25, max_chars: int = 2200) -> str:
    """Keep the last lines of noisy apt/npm/docker output for error messages."""
    text = str(output or "").strip()
    if not text:
        return ""
    selected = "\n".join(text.splitlines()[-lines:]).strip()
    if len(selected) > max_chars:
        return selected[-max_chars:]
    return selected
