"""
Guild Desk - Prefix Commands
Deterministic `!` commands answered before the conversation gate:
dice rolls (!2d6), !ver and !ping.
"""

import random
import re
from typing import List, Optional, Tuple

from config import BOT_VERSION
from constants import MAX_DICE_COUNT, MAX_DICE_SIDES, DICE_OVER_LIMIT, DICE_INVALID

RE_DICE = re.compile(r'^!(\d+)d(\d+)$', re.IGNORECASE)


def parse_dice_command(text: str) -> Optional[Tuple[int, int]]:
    """`!<count>d<sides>` -> (count, sides), or None if not a dice command."""
    match = RE_DICE.match(text.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def roll_dice(count: int, sides: int, rng: random.Random = None) -> List[int]:
    rng = rng or random
    return [rng.randint(1, sides) for _ in range(count)]


def format_roll(count: int, sides: int, rolls: List[int]) -> str:
    return f"🎲 {count}d{sides}: [{', '.join(str(r) for r in rolls)}] → Total: {sum(rolls)}"


def dice_reply(count: int, sides: int, rng: random.Random = None) -> str:
    """Roll and format, or explain why the roll was refused."""
    if count > MAX_DICE_COUNT or sides > MAX_DICE_SIDES:
        return DICE_OVER_LIMIT
    if count < 1 or sides < 1:
        return DICE_INVALID
    return format_roll(count, sides, roll_dice(count, sides, rng))


def handle_prefix_command(text: str, rng: random.Random = None) -> Optional[Tuple[str, str]]:
    """Answer a `!` command.

    Returns:
        (command_name, reply) or None when the text is not a known command.
    """
    command = text.strip()
    if not command.startswith('!'):
        return None
    if command == '!ver':
        return "ver", f"My current version is {BOT_VERSION}."
    if command == '!ping':
        return "ping", "Pong!"
    parsed = parse_dice_command(command)
    if parsed:
        return "dice", dice_reply(*parsed, rng=rng)
    return None
