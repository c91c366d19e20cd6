"""
Guild Desk - Configuration
Discord token, LLM provider, spreadsheet and persona settings.
"""

import os
import json
from dotenv import load_dotenv

load_dotenv()

# Discord Bot Token
DISCORD_TOKEN = os.getenv('DISCORD_TOKEN')


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, falling back on bad values."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"⚠️ Invalid {name}={raw!r}, using {default}")
        return default


# --- Provider Configuration ---

def load_provider() -> tuple[dict, int]:
    """Load the generation provider from providers.json or the environment.

    Only the first entry of providers.json is used.

    Returns:
        tuple: (provider_dict, timeout_seconds)
    """
    config_path = os.path.join(os.path.dirname(__file__), "providers.json")
    timeout = int(_env_float('API_TIMEOUT', 60))

    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            print(f"⚠️ Invalid providers.json: {e}")
            data = {}

        provider_list = data.get("providers", [])
        if provider_list and provider_list[0].get("url"):
            p = provider_list[0]
            key_env = p.get("key_env", "")
            key = os.getenv(key_env, "") if key_env else "not-needed"
            return {
                "name": p.get("name", "Provider 1"),
                "url": p["url"],
                "key": key,
                "model": p.get("model", "gemini-2.5-flash-lite"),
            }, data.get("timeout", timeout)
        print("⚠️ providers.json has no usable provider, using environment")

    # Gemini through its OpenAI-compatible endpoint by default
    return {
        "name": os.getenv('LLM_NAME', 'Gemini'),
        "url": os.getenv('LLM_BASE_URL', 'https://generativelanguage.googleapis.com/v1beta/openai/'),
        "key": os.getenv('LLM_API_KEY') or os.getenv('GEMINI_API_KEY'),
        "model": os.getenv('LLM_MODEL', 'gemini-2.5-flash-lite'),
    }, timeout


PROVIDER, API_TIMEOUT = load_provider()

# AI Settings
DEFAULT_TEMPERATURE = _env_float('LLM_TEMPERATURE', 1.0)
DEFAULT_MAX_TOKENS = 1024

# Persona
BOT_VERSION = 'v3.10.0'
BOT_PERSONA_NAME = os.getenv('BOT_PERSONA_NAME', 'Noel')
GUILD_MASTER_NAME = os.getenv('GUILD_MASTER_NAME', 'Guild Master')
# Extra names the bot answers to (comma-separated)
BOT_NICKNAMES = [
    n.strip() for n in os.getenv('BOT_NICKNAMES', 'bot').split(',') if n.strip()
]

# Conversation
HISTORY_TIMEOUT = _env_float('HISTORY_TIMEOUT', 3600.0)  # 1 hour
PARTICIPANT_TRACKING_DURATION = _env_float('PARTICIPANT_TRACKING_DURATION', 600.0)  # 10 minutes
# Group chat reply chance: min(1, factor / (active participants - 1))
REPLY_CHANCE_FACTOR = _env_float('REPLY_CHANCE_FACTOR', 1.5)

# Spreadsheet
SPREADSHEET_ID = os.getenv('SPREADSHEET_ID', '')
GOOGLE_CREDENTIALS_JSON = os.getenv('GOOGLE_CREDENTIALS_JSON', '')

# Servers
PORT = int(_env_float('PORT', 3000))
METRICS_PORT = int(_env_float('METRICS_PORT', 0))  # 0 = disabled
