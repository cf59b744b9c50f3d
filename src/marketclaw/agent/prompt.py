"""System prompt construction for sub-agents."""

from __future__ import annotations

from marketclaw.agent.types import AgentIdentity, AgentSpecialty, AgentVoice

VOICE_STYLES: dict[AgentVoice, str] = {
    AgentVoice.PROFESSIONAL: "Be professional and polished. Use formal language.",
    AgentVoice.CASUAL: "Be casual and relaxed. Use conversational language.",
    AgentVoice.FRIENDLY: (
        "Be warm and approachable. Balance professionalism with friendliness."
    ),
    AgentVoice.PLAYFUL: "Be fun and energetic. Use humor where appropriate.",
}

GUIDELINES = (
    "Stay focused on your specialty",
    "Be concise and actionable",
    "If a task is outside your expertise, say so",
    "Return structured output when appropriate",
)


def build_agent_prompt(identity: AgentIdentity, specialty: AgentSpecialty) -> str:
    """Render the system prompt for an agent.

    Pure function of its inputs. An unset voice falls back to friendly.
    """
    voice = VOICE_STYLES[identity.voice or AgentVoice.FRIENDLY]
    guidelines = "\n".join(f"- {line}" for line in GUIDELINES)

    return (
        f"You are {identity.name} {identity.emoji}, "
        f"{identity.persona or specialty.description}.\n"
        f"\n"
        f"## Identity\n"
        f"- Your name is **{identity.name}**\n"
        f"- You are a specialist in: {specialty.display_name}\n"
        f"- {specialty.description}\n"
        f"\n"
        f"## Voice & Tone\n"
        f"{voice}\n"
        f"\n"
        f"## Your Specialty\n"
        f"{specialty.system_prompt}\n"
        f"\n"
        f"## Guidelines\n"
        f"{guidelines}"
    )
