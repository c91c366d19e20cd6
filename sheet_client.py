"""
Guild Desk - Spreadsheet Client
Loads persona text, knowledge seed and menu definitions from Google Sheets,
and writes per-user action logs back.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

import gspread
from gspread.exceptions import WorksheetNotFound

from config import SPREADSHEET_ID, GOOGLE_CREDENTIALS_JSON, BOT_PERSONA_NAME, GUILD_MASTER_NAME
from constants import PERSONA_SHEET, MENU_SHEET, USER_LOG_PREFIX, USER_LOG_HEADERS, MENU_CACHE_DURATION
from history import Turn
from persona import default_persona

logger = logging.getLogger("sheets")

MENU_HEADERS = [
    'PageID', 'Title', 'DescriptionTemplate', 'ButtonLabel', 'ButtonStyle',
    'ActionType', 'Target', 'Row', 'ImageURL', 'ThumbnailURL', 'EmbedColor'
]

_MAIN = ('main', 'Main Menu', 'Welcome back, {{UserName}}!\nWhat would you like to do today?')
_GUILD = ('guild', 'Guild', 'Welcome, {{UserName}}!\nHow can I help you?')

# (page, label, style, action, target, row, color)
DEFAULT_MENU_ROWS = [
    _MAIN + ('Register Character', 'Success', 'PROCESS', 'register', 1, '#00AAFF'),
    _MAIN + ('Status', 'Primary', 'PROCESS', 'status', 1, ''),
    _MAIN + ('Inventory', 'Primary', 'PROCESS', 'inventory', 1, ''),
    _MAIN + ('Guild', 'Primary', 'NAVIGATE', 'guild', 2, ''),
    _MAIN + ('Help', 'Link', 'LINK', 'https://discord.com', 3, ''),
    _MAIN + ('Leave', 'Secondary', 'PROCESS', 'leave', 3, ''),
    _GUILD + ('Market Rates', 'Primary', 'PROCESS', 'market', 1, '#FFAA00'),
    _GUILD + ('Request Board', 'Primary', 'PROCESS', 'board', 1, ''),
    _GUILD + ('Shop', 'Primary', 'PROCESS', 'shop', 2, ''),
    _GUILD + ('Buyback Counter', 'Primary', 'PROCESS', 'sell', 2, ''),
    _GUILD + ('Go Back', 'Secondary', 'NAVIGATE', 'main', 3, ''),
]


def _default_menu_records() -> List[dict]:
    records = []
    for page, title, desc, label, style, action, target, row, color in DEFAULT_MENU_ROWS:
        records.append({
            'PageID': page, 'Title': title, 'DescriptionTemplate': desc,
            'ButtonLabel': label, 'ButtonStyle': style, 'ActionType': action,
            'Target': target, 'Row': row, 'ImageURL': '', 'ThumbnailURL': '',
            'EmbedColor': color,
        })
    return records


def is_enabled(value) -> bool:
    """Checkbox cells arrive as True or the string 'TRUE'."""
    return value is True or str(value).strip().upper() == "TRUE"


def _to_int(value, default: int = 1) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def greeting_seed(character_name: str = BOT_PERSONA_NAME) -> List[Turn]:
    """Canned first exchange used when no knowledge sheet is enabled."""
    return [
        Turn.user("seed:newcomer", "Newcomer", f"Hello, are you {character_name}, the one in charge here?", seeded=True),
        Turn.agent(f"Yes, I'm {character_name}, the receptionist! Nice to meet you!", seeded=True,
                   speaker_name=character_name),
    ]


def format_knowledge_line(headers: List[str], row: List[str]) -> Optional[str]:
    """Render one data row as a sentence.

    Column A is the enabled flag. With several filled columns the last one
    is the fact and the others label it: `Item "Sword", City "Port": 120`.
    """
    parts = []
    for header, value in zip(headers[1:], row[1:]):
        if header and value not in (None, ""):
            parts.append((header, value))
    if not parts:
        return None
    if len(parts) == 1:
        return str(parts[0][1])
    labels = ", ".join(f'{header} "{value}"' for header, value in parts[:-1])
    return f"{labels}: {parts[-1][1]}"


def parse_knowledge_sheet(title: str, values: List[List[str]],
                          character_name: str = BOT_PERSONA_NAME) -> List[Turn]:
    """Turn one knowledge worksheet into a (user, agent) pair of seed turns.

    Row 1: A1 enabled flag, B1 speaker name, C1 message template.
    Row 2: headers. Rows 3+: data, column A enabled.
    """
    if not values or not is_enabled(values[0][0] if values[0] else ""):
        logger.debug(f'Sheet "{title}" is disabled. Skipping.')
        return []

    directive = values[0] + [""] * 3
    speaker = directive[1] or GUILD_MASTER_NAME
    template = directive[2]
    if not template:
        logger.warning(f'Sheet "{title}" is enabled but has no message template in C1. Skipping.')
        return []

    headers = values[1] if len(values) > 1 else []
    lines = []
    for row in values[2:]:
        if not row or not is_enabled(row[0]):
            continue
        line = format_knowledge_line(headers, row)
        if line:
            lines.append(line)

    if not lines:
        return []

    logger.info(f'Loaded {len(lines)} records from "{title}".')
    knowledge = template + "\n" + "\n".join(lines)
    return [
        Turn.user(f"sheet:{title}", speaker, knowledge, seeded=True),
        Turn.agent(f"Yes, {speaker}! I've got all of that!", seeded=True, speaker_name=character_name),
    ]


def parse_menu_records(records: List[dict]) -> Dict[str, dict]:
    """Group MENU_DEF rows into pages of buttons keyed by PageID."""
    pages: Dict[str, dict] = {}
    for record in records:
        page_id = str(record.get('PageID') or '').strip()
        if not page_id:
            continue

        page = pages.setdefault(page_id, {
            'title': record.get('Title') or '',
            'description_template': record.get('DescriptionTemplate') or '',
            'image_url': record.get('ImageURL') or '',
            'thumbnail_url': record.get('ThumbnailURL') or '',
            'embed_color': record.get('EmbedColor') or '',
            'buttons': [],
        })

        label = record.get('ButtonLabel')
        if label:
            page['buttons'].append({
                'label': str(label),
                'style': record.get('ButtonStyle') or 'Primary',
                'action_type': (record.get('ActionType') or 'PROCESS').upper(),
                'target': str(record.get('Target') or ''),
                'row': _to_int(record.get('Row') or 1),
            })
    return pages


class SheetClient:
    """Google Sheets backed persona and knowledge source.

    Every gspread call blocks, so the public coroutines run them in a
    worker thread. Loaders return None on failure instead of raising.
    """

    def __init__(self, spreadsheet_id: str = SPREADSHEET_ID,
                 credentials_json: str = GOOGLE_CREDENTIALS_JSON,
                 character_name: str = BOT_PERSONA_NAME,
                 spreadsheet=None):
        self.spreadsheet_id = spreadsheet_id
        self.credentials_json = credentials_json
        self.character_name = character_name
        self._spreadsheet = spreadsheet
        self._menu_cache: Optional[Dict[str, dict]] = None
        self._menu_loaded_at = 0.0

    def _open(self):
        if self._spreadsheet is None:
            creds = json.loads(self.credentials_json)
            client = gspread.service_account_from_dict(creds)
            self._spreadsheet = client.open_by_key(self.spreadsheet_id)
            logger.info(f"Connected to spreadsheet: {self._spreadsheet.title}")
        return self._spreadsheet

    async def init(self) -> bool:
        """Connect eagerly so configuration problems show up at startup."""
        try:
            await asyncio.to_thread(self._open)
            return True
        except Exception as e:
            logger.error(f"Failed to load spreadsheet info: {e}")
            return False

    # --- Persona ---

    def _read_persona(self) -> str:
        try:
            sheet = self._open().worksheet(PERSONA_SHEET)
        except WorksheetNotFound:
            logger.warning(f'Sheet "{PERSONA_SHEET}" not found. Using default persona.')
            return default_persona(self.character_name)

        lines = []
        for row in sheet.get_all_values()[1:]:
            if len(row) >= 2 and is_enabled(row[0]) and row[1]:
                lines.append(row[1])
        logger.info(f"Loaded {len(lines)} persona lines.")
        return "\n".join(lines) if lines else default_persona(self.character_name)

    async def load_persona_text(self) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read_persona)
        except Exception as e:
            logger.error(f"Error loading persona from Google Sheets: {e}", exc_info=True)
            return None

    # --- Knowledge ---

    def _read_knowledge(self) -> List[Turn]:
        seed: List[Turn] = []
        for sheet in self._open().worksheets():
            title = sheet.title
            if title in (PERSONA_SHEET, MENU_SHEET) or title.startswith(USER_LOG_PREFIX):
                continue
            seed.extend(parse_knowledge_sheet(title, sheet.get_all_values(), self.character_name))

        logger.info(f"Generated {len(seed) // 2} sets of memories.")
        return seed or greeting_seed(self.character_name)

    async def load_knowledge_seed(self) -> Optional[List[Turn]]:
        try:
            return await asyncio.to_thread(self._read_knowledge)
        except Exception as e:
            logger.error(f"Error loading knowledge from Google Sheets: {e}", exc_info=True)
            return None

    # --- User action log ---

    def _append_user_action(self, user_id, user_name: str, action: str, response: str):
        spreadsheet = self._open()
        title = f"{USER_LOG_PREFIX}{user_id}"
        try:
            sheet = spreadsheet.worksheet(title)
        except WorksheetNotFound:
            logger.info(f"Creating new sheet for user: {title}")
            sheet = spreadsheet.add_worksheet(title=title, rows=100, cols=len(USER_LOG_HEADERS))
            sheet.append_row(USER_LOG_HEADERS)

        timestamp = datetime.now(timezone.utc).isoformat()
        sheet.append_row([timestamp, user_name, action, response])

    async def log_user_action(self, user_id, user_name: str, action: str, response: str):
        """Append an action row to the user's log sheet. Never raises."""
        try:
            await asyncio.to_thread(self._append_user_action, user_id, user_name, action, response)
            logger.debug(f"Logged action to {USER_LOG_PREFIX}{user_id}")
        except Exception as e:
            logger.error(f"Failed to log action for user {user_id}: {e}")

    # --- Menu ---

    def _read_menu(self) -> Dict[str, dict]:
        spreadsheet = self._open()
        try:
            sheet = spreadsheet.worksheet(MENU_SHEET)
        except WorksheetNotFound:
            logger.info(f"Creating {MENU_SHEET} sheet with default pages...")
            sheet = spreadsheet.add_worksheet(title=MENU_SHEET, rows=100, cols=len(MENU_HEADERS))
            defaults = _default_menu_records()
            sheet.append_rows([MENU_HEADERS] + [[r[h] for h in MENU_HEADERS] for r in defaults])
            return parse_menu_records(defaults)
        return parse_menu_records(sheet.get_all_records())

    async def load_menu_data(self) -> Optional[Dict[str, dict]]:
        now = time.time()
        if self._menu_cache is not None and now - self._menu_loaded_at < MENU_CACHE_DURATION:
            return self._menu_cache
        try:
            pages = await asyncio.to_thread(self._read_menu)
        except Exception as e:
            logger.error(f"Error loading menu data: {e}")
            return None
        self._menu_cache = pages
        self._menu_loaded_at = now
        logger.info(f"Loaded menu configuration for {len(pages)} pages.")
        return pages


class StaticSource:
    """Same interface as SheetClient for running without a spreadsheet."""

    def __init__(self, character_name: str = BOT_PERSONA_NAME):
        self.character_name = character_name

    async def init(self) -> bool:
        return True

    async def load_persona_text(self) -> Optional[str]:
        return default_persona(self.character_name)

    async def load_knowledge_seed(self) -> Optional[List[Turn]]:
        return greeting_seed(self.character_name)

    async def log_user_action(self, user_id, user_name: str, action: str, response: str):
        logger.debug(f"[{user_name}] {action} -> {response}")

    async def load_menu_data(self) -> Optional[Dict[str, dict]]:
        return parse_menu_records(_default_menu_records())


def create_source(spreadsheet_id: str = SPREADSHEET_ID, credentials_json: str = GOOGLE_CREDENTIALS_JSON):
    """Spreadsheet source when configured, static defaults otherwise."""
    if spreadsheet_id and credentials_json:
        return SheetClient(spreadsheet_id, credentials_json)
    logger.warning("SPREADSHEET_ID or GOOGLE_CREDENTIALS_JSON not set, using built-in persona")
    return StaticSource()
