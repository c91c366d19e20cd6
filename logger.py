"""
Guild Desk - Logging Utilities
Console logging with colored icons, gated by a verbosity level.
"""

import logging
import os
from datetime import datetime

# Log levels
QUIET = 0   # Only errors
NORMAL = 1  # Errors + important events
VERBOSE = 2 # Everything

_LEVEL_NAMES = {"quiet": QUIET, "normal": NORMAL, "verbose": VERBOSE}

LOG_LEVEL = _LEVEL_NAMES.get(os.getenv('LOG_LEVEL', 'normal').lower(), NORMAL)

# Library loggers that flood the console at INFO
NOISY_LOGGERS = (
    'discord', 'discord.http', 'discord.gateway',
    'httpx', 'httpcore', 'openai', 'openai._base_client', 'werkzeug',
)


class Colors:
    """ANSI color codes for terminal output."""
    OK = '\033[92m'      # Green
    WARN = '\033[93m'    # Yellow
    FAIL = '\033[91m'    # Red
    INFO = '\033[94m'    # Blue
    DIM = '\033[90m'     # Gray
    BOLD = '\033[1m'
    END = '\033[0m'


def set_level(level: int):
    """Change verbosity at runtime."""
    global LOG_LEVEL
    LOG_LEVEL = level


def quiet_libraries():
    """Turn noisy third-party loggers down to WARNING."""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _timestamp():
    return datetime.now().strftime("%H:%M:%S")


def _log(icon: str, color: str, msg: str, channel: str = None, level: int = NORMAL):
    if level > LOG_LEVEL:
        return

    ts = f"{Colors.DIM}{_timestamp()}{Colors.END}"
    prefix = f"[{channel}] " if channel else ""
    print(f"{ts} {color}{icon}{Colors.END} {prefix}{msg}")


def ok(msg: str, channel: str = None):
    """Log success message."""
    _log("✓", Colors.OK, msg, channel, NORMAL)


def warn(msg: str, channel: str = None):
    """Log warning message."""
    _log("⚠", Colors.WARN, msg, channel, NORMAL)


def error(msg: str, channel: str = None):
    """Log error message (always shown)."""
    _log("✗", Colors.FAIL, msg, channel, QUIET)


def info(msg: str, channel: str = None):
    _log("ℹ", Colors.INFO, msg, channel, NORMAL)


def debug(msg: str, channel: str = None):
    """Log debug message (only in verbose mode)."""
    _log("•", Colors.DIM, msg, channel, VERBOSE)


def startup(msg: str):
    print(f"{Colors.BOLD}{msg}{Colors.END}")


def online(msg: str):
    """Log bot online status (always shown)."""
    print(f"{Colors.DIM}{_timestamp()}{Colors.END} {Colors.OK}●{Colors.END} {msg}")


def divider():
    print(f"{Colors.DIM}{'─' * 50}{Colors.END}")
