"""
Guild Desk - Discord Utilities
Helpers for turning Discord objects into plain values and back.
"""

import re
from typing import List

import discord

from constants import MAX_MESSAGE_LENGTH

RE_USER_MENTION = re.compile(r'<@!?(\d+)>')


def get_user_display_name(user: discord.User | discord.Member) -> str:
    """Get display name for a user."""
    if hasattr(user, 'display_name') and user.display_name:
        return user.display_name
    elif hasattr(user, 'global_name') and user.global_name:
        return user.global_name
    return user.name


def replace_agent_mention(text: str, agent_id, persona_name: str) -> str:
    """Replace the bot's own <@id> mention with its persona name."""
    if agent_id is None:
        return text
    return RE_USER_MENTION.sub(
        lambda m: persona_name if m.group(1) == str(agent_id) else m.group(0), text
    ).strip()


def split_message(content: str, max_length: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split a long reply into Discord-sized chunks, preferring paragraph
    and then sentence boundaries."""
    if len(content) <= max_length:
        return [content]

    chunks = []
    current = ""

    def flush():
        nonlocal current
        if current:
            chunks.append(current)
        current = ""

    for para in content.split('\n\n'):
        if len(current) + len(para) + 2 <= max_length:
            current += ('\n\n' if current else '') + para
            continue
        flush()
        if len(para) <= max_length:
            current = para
            continue
        for sentence in re.split(r'(?<=[.!?。！？])\s*', para):
            if not sentence:
                continue
            if len(current) + len(sentence) + 1 <= max_length:
                current += (' ' if current else '') + sentence
            else:
                flush()
                while len(sentence) > max_length:
                    chunks.append(sentence[:max_length])
                    sentence = sentence[max_length:]
                current = sentence
    flush()
    return chunks
