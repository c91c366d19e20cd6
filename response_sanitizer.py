"""
Guild Desk - Response Sanitizer
Strips reasoning tags and speaker-label framing from generated replies.
"""

import re
import functools

# =============================================================================
# PRE-COMPILED REGEX PATTERNS
# =============================================================================

# Reasoning blocks emitted by some OpenAI-compatible models
RE_THINKING = re.compile(r'<thinking>.*?</thinking>', re.DOTALL | re.IGNORECASE)
RE_THINK = re.compile(r'<think>.*?</think>', re.DOTALL | re.IGNORECASE)
RE_THINK_ORPHAN_START = re.compile(r'^.*?</think(?:ing)?>', re.DOTALL | re.IGNORECASE)

# Opening -> closing quote characters stripped as one enclosing layer
QUOTE_PAIRS = {
    '"': '"',
    '“': '”',
    '「': '」',
    '『': '』',
}


@functools.lru_cache(maxsize=32)
def _label_pattern(persona_name: str) -> re.Pattern:
    """Matches `Name: "content"` with an optionally quoted name and a
    half- or full-width colon."""
    name = re.escape(persona_name)
    return re.compile(
        rf'^\s*["“]?{name}["”]?\s*[:：]\s*["“「](?P<content>.*)["”」]\s*$',
        re.DOTALL | re.IGNORECASE,
    )


def remove_thinking_tags(text: str) -> str:
    """Remove <think>/<thinking> blocks, including a dangling closing tag."""
    if not isinstance(text, str):
        return ""
    text = RE_THINKING.sub('', text)
    text = RE_THINK.sub('', text)
    if re.search(r'</think(?:ing)?>', text, re.IGNORECASE):
        text = RE_THINK_ORPHAN_START.sub('', text)
    return text.strip()


def strip_enclosing_quotes(text: str) -> str:
    """Remove exactly one layer of matching enclosing quotes."""
    if len(text) >= 2:
        closing = QUOTE_PAIRS.get(text[0])
        if closing and text[-1] == closing:
            return text[1:-1].strip()
    return text


def clean(raw_text, persona_name: str) -> str:
    """Turn raw model output into the text that is sent and remembered.

    `Noel: "hello"` becomes `hello`. Anything else is trimmed and loses one
    layer of enclosing quotes. Unexpected shapes fall through unchanged;
    this never raises.
    """
    if not isinstance(raw_text, str):
        return ""
    text = raw_text.strip()
    if persona_name:
        match = _label_pattern(persona_name).match(text)
        if match:
            return match.group('content').strip()
    return strip_enclosing_quotes(text)


def sanitize_response(raw_text, persona_name: str) -> str:
    """Full cleanup pipeline applied to every generated reply."""
    return clean(remove_thinking_tags(raw_text), persona_name)
