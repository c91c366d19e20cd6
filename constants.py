"""
Guild Desk - Constants
Centralized constants to avoid magic numbers and strings throughout the codebase.
"""

# =============================================================================
# GENERATION
# =============================================================================

MAX_GENERATION_ATTEMPTS = 5      # Attempts per reply before giving up on rate limits
BACKOFF_BASE_SECONDS = 1.0       # Delay = base * 2^attempt + jitter
BACKOFF_JITTER_SECONDS = 1.0     # Upper bound of the random jitter
IGNORE_SENTINEL = "[IGNORE]"     # Emitted by the model to decline a reply

# =============================================================================
# DICE
# =============================================================================

MAX_DICE_COUNT = 100
MAX_DICE_SIDES = 1000

# =============================================================================
# MESSAGE PROCESSING
# =============================================================================

MAX_MESSAGE_LENGTH = 2000        # Discord's max message length
QUEUE_DELAY = 0.5                # Pause between queued messages of one channel (seconds)

# =============================================================================
# SPREADSHEET
# =============================================================================

PERSONA_SHEET = "PERSONA"
MENU_SHEET = "MENU_DEF"
USER_LOG_PREFIX = "USER_"
USER_LOG_HEADERS = ["Timestamp", "UserName", "Action", "Response"]
MENU_CACHE_DURATION = 60         # Seconds menu definitions are cached

# =============================================================================
# MENU
# =============================================================================

MAX_PASSCODE_LENGTH = 4
MAX_BUTTONS_PER_ROW = 5          # Discord limit
DEFAULT_EMBED_COLOR = "#0099ff"

# =============================================================================
# USER-FRIENDLY (IN-PERSONA) MESSAGES
# =============================================================================

USER_FRIENDLY_ERRORS = {
    "config_unavailable": "Sorry, I can't seem to find the guild ledger right now... please try again in a little while.",
    "default": "Ah, sorry... I was lost in thought for a moment!",
    "menu": "Sorry, something went wrong at the counter.",
    "menu_missing": "I couldn't find that menu page.",
}

DICE_OVER_LIMIT = f"That's too many dice or sides! (limit: {MAX_DICE_COUNT} dice, {MAX_DICE_SIDES} sides)"
DICE_INVALID = "A roll needs at least one die with at least one side!"
