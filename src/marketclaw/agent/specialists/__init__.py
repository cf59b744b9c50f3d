"""Built-in marketing specialists, shipped as markdown manifests."""

from __future__ import annotations

from pathlib import Path

from marketclaw.agent.types import SubAgentManifest

SPECIALISTS_DIR = Path(__file__).parent

# Registration order of the built-ins
BUILTIN_IDS = (
    "twitter",
    "linkedin",
    "email",
    "creative",
    "analyst",
    "researcher",
    "producthunt",
)


def load_builtin_specialists() -> list[SubAgentManifest]:
    return [
        SubAgentManifest.from_file(SPECIALISTS_DIR / f"{agent_id}.md")
        for agent_id in BUILTIN_IDS
    ]
