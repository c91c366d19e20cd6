"""
Guild Desk - Startup Validation
Ensures configuration is valid before the bot starts.
"""

import json
import os
import sys
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv

# Colors for terminal
class Colors:
    OK = '\033[92m'
    WARN = '\033[93m'
    FAIL = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'

def ok(msg): print(f"{Colors.OK}✓{Colors.END} {msg}")
def warn(msg): print(f"{Colors.WARN}⚠{Colors.END} {msg}")
def fail(msg): print(f"{Colors.FAIL}✗{Colors.END} {msg}")


BASE_DIR = Path(__file__).parent


def check_discord_token() -> Tuple[bool, List[str]]:
    """Check if DISCORD_TOKEN is set."""
    token = os.getenv("DISCORD_TOKEN")

    if not token:
        fail("DISCORD_TOKEN not set in .env!")
        return False, ["missing DISCORD_TOKEN"]
    # Discord tokens are long and dot-separated
    if len(token) > 50 and '.' in token:
        ok("DISCORD_TOKEN is set")
        return True, []
    warn("DISCORD_TOKEN looks invalid (too short or wrong format)")
    return False, ["DISCORD_TOKEN looks invalid"]


def check_provider() -> Tuple[bool, List[str]]:
    """Check that the generation provider has a key."""
    providers_file = BASE_DIR / "providers.json"

    if providers_file.exists():
        try:
            with open(providers_file) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            fail(f"providers.json is invalid JSON: {e}")
            return False, ["invalid providers.json"]

        providers = data.get("providers", [])
        if providers:
            p = providers[0]
            name = p.get("name", "Provider 1")
            key_env = p.get("key_env", "")
            if p.get("requires_key", True) and key_env and not os.getenv(key_env):
                warn(f"[{name}] {key_env} not set in .env")
                return False, [f"{name}: no API key ({key_env})"]
            ok(f"[{name}] {p.get('url', '')[:40]}")
            return True, []
        warn("providers.json has no providers, using environment")

    if os.getenv("LLM_API_KEY") or os.getenv("GEMINI_API_KEY"):
        ok("LLM API key is set")
        return True, []
    warn("Neither LLM_API_KEY nor GEMINI_API_KEY is set")
    return False, ["no API key for the LLM provider"]


def check_spreadsheet() -> Tuple[bool, List[str]]:
    """Check the spreadsheet settings. Without them the built-in persona is used."""
    spreadsheet_id = os.getenv("SPREADSHEET_ID")
    credentials = os.getenv("GOOGLE_CREDENTIALS_JSON")

    if not spreadsheet_id or not credentials:
        warn("SPREADSHEET_ID / GOOGLE_CREDENTIALS_JSON not set, using built-in persona")
        return False, ["spreadsheet not configured"]

    try:
        creds = json.loads(credentials)
    except json.JSONDecodeError as e:
        fail(f"GOOGLE_CREDENTIALS_JSON is invalid JSON: {e}")
        return False, ["invalid GOOGLE_CREDENTIALS_JSON"]

    ok(f"Spreadsheet configured (service account: {creds.get('client_email', '?')})")
    return True, []


def validate_startup() -> bool:
    """
    Run all startup validation checks.

    Returns:
        False if a critical issue was found, True otherwise.
    """
    load_dotenv(BASE_DIR / ".env")

    print(f"\n{Colors.BOLD}{'='*50}")
    print("Guild Desk - Startup Validation")
    print(f"{'='*50}{Colors.END}\n")

    all_issues = []
    checks = [
        ("Discord Token", check_discord_token),
        ("LLM Provider", check_provider),
        ("Spreadsheet", check_spreadsheet),
    ]
    for i, (title, check) in enumerate(checks, 1):
        print(f"{Colors.BOLD}[{i}/{len(checks)}] {title}{Colors.END}")
        _, issues = check()
        all_issues.extend(issues)
        print()

    print(f"{Colors.BOLD}{'='*50}{Colors.END}")

    critical_issues = [i for i in all_issues if 'missing' in i.lower() or 'invalid' in i.lower()]

    if not all_issues:
        print(f"{Colors.OK}{Colors.BOLD}✓ All checks passed! Starting bot...{Colors.END}")
        return True
    if critical_issues:
        print(f"{Colors.FAIL}{Colors.BOLD}✗ {len(critical_issues)} critical issue(s) found:{Colors.END}")
        for issue in critical_issues:
            print(f"  • {issue}")
        return False

    print(f"{Colors.WARN}{Colors.BOLD}⚠ {len(all_issues)} warning(s):{Colors.END}")
    for issue in all_issues:
        print(f"  • {issue}")
    return True


if __name__ == "__main__":
    sys.exit(0 if validate_startup() else 1)
