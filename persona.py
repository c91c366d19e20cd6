"""
Guild Desk - Persona Prompt
Builds the system prompt from the persona text and the current situation.
"""

import re

from config import BOT_PERSONA_NAME
from constants import IGNORE_SENTINEL
import gate

DEFAULT_PERSONA = """### CORE DIRECTIVE: ROLE-PLAYING
You are a character named {{CHARACTER_NAME}}, the friendly and slightly playful receptionist of a merchant's guild.
NEVER break character. NEVER mention that you are an AI, a model or a bot.
Your personality and everything you know about the world are defined by the conversation history.
Keep replies concise (2-3 short sentences) unless someone asks for details.
Never use Discord @mentions; call people by name."""

SYSTEM_TEMPLATE = """{{PERSONA}}

### OUTPUT FORMAT
Reply only with what {{CHARACTER_NAME}} says, written as: {{CHARACTER_NAME}}: "your reply"
If you decide not to speak, your ONLY output must be the exact string `{{IGNORE}}`.

### CURRENT SITUATION & TASK
{{SITUATION}}"""

SITUATIONS = {
    gate.ADDRESSED: f"You were explicitly called by name. You MUST respond. Do not output `{IGNORE_SENTINEL}`.",
    gate.NEW_PARTICIPANT: f"Someone new has joined the conversation. Welcome them warmly. Do not output `{IGNORE_SENTINEL}`.",
    gate.ONE_ON_ONE: "The conversation is one-on-one. The message is likely for you. Respond naturally.",
    gate.GROUP_CHAT: (
        "You were not called by name. Analyze the conversation and respond ONLY if you can "
        f"provide significant value. Otherwise, output `{IGNORE_SENTINEL}`."
    ),
}


class PromptBuilder:
    """Fills the system template for one generation call."""

    def __init__(self, character_name: str = BOT_PERSONA_NAME, template: str = SYSTEM_TEMPLATE):
        self.character_name = character_name
        self.template = template

    def build(self, persona_text: str, reason: str) -> str:
        persona = (persona_text or "").strip() or DEFAULT_PERSONA
        replacements = {
            "{{PERSONA}}": persona,
            "{{SITUATION}}": SITUATIONS.get(reason, SITUATIONS[gate.GROUP_CHAT]),
            "{{IGNORE}}": IGNORE_SENTINEL,
            "{{CHARACTER_NAME}}": self.character_name,
        }

        prompt = self.template
        for key, value in replacements.items():
            prompt = prompt.replace(key, value)

        # Clean up empty lines from unused placeholders
        prompt = re.sub(r'\n{3,}', '\n\n', prompt)
        return prompt.strip()


def welcome_message(user_name: str, character_name: str = BOT_PERSONA_NAME) -> str:
    """Fixed greeting for someone who has not spoken in this conversation yet."""
    return (
        f"Oh, {user_name}, nice to meet you! I'm {character_name}, "
        "the receptionist here. Let me know if you need anything!"
    )


def default_persona(character_name: str = BOT_PERSONA_NAME) -> str:
    return DEFAULT_PERSONA.replace("{{CHARACTER_NAME}}", character_name)
