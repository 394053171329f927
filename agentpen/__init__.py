"""AgentPen: VPS installer and static site kit for OpenClaw agents."""

__version__ = "0.1.0"
