import asyncio

from gspread.exceptions import WorksheetNotFound

from history import AGENT, USER
from persona import default_persona
from sheet_client import (
    SheetClient, StaticSource, _default_menu_records, format_knowledge_line,
    greeting_seed, parse_knowledge_sheet, parse_menu_records,
)

PRICES = [
    ["TRUE", "Guild Master", "Here are today's prices."],
    ["On", "Item", "Price"],
    ["TRUE", "Sword", "120"],
    ["FALSE", "Shield", "90"],
    ["TRUE", "Potion", "15"],
]


class FakeWorksheet:
    def __init__(self, title, values=None):
        self.title = title
        self.values = values or []
        self.appended = []

    def get_all_values(self):
        return self.values

    def append_row(self, row):
        self.appended.append(row)


class FakeSpreadsheet:
    title = "Guild Ledger"

    def __init__(self, *sheets):
        self.sheets = {sheet.title: sheet for sheet in sheets}

    def worksheets(self):
        return list(self.sheets.values())

    def worksheet(self, title):
        if title not in self.sheets:
            raise WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title, rows, cols):
        sheet = FakeWorksheet(title)
        self.sheets[title] = sheet
        return sheet


class BrokenSpreadsheet(FakeSpreadsheet):
    def worksheets(self):
        raise RuntimeError("quota exceeded")

    def worksheet(self, title):
        raise RuntimeError("quota exceeded")


def _client(spreadsheet):
    return SheetClient("sheet-id", "{}", character_name="Noel", spreadsheet=spreadsheet)


def test_format_knowledge_line():
    assert format_knowledge_line(["On", "Item", "Price"], ["TRUE", "Sword", "120"]) == 'Item "Sword": 120'
    assert format_knowledge_line(["On", "Fact"], ["TRUE", "The guild opens at dawn."]) == "The guild opens at dawn."
    assert format_knowledge_line(["On", "Item"], ["TRUE", ""]) is None


def test_enabled_sheet_becomes_seed_pair():
    user, agent = parse_knowledge_sheet("Prices", PRICES, "Noel")

    assert user.role == USER and user.seeded
    assert user.speaker_name == "Guild Master"
    assert user.text == 'Here are today\'s prices.\nItem "Sword": 120\nItem "Potion": 15'
    assert agent.role == AGENT and agent.seeded
    assert agent.text == "Yes, Guild Master! I've got all of that!"


def test_disabled_or_incomplete_sheets_are_skipped():
    assert parse_knowledge_sheet("Prices", [["FALSE"] + PRICES[0][1:]] + PRICES[1:]) == []
    assert parse_knowledge_sheet("Prices", [["TRUE", "Guild Master", ""]] + PRICES[1:]) == []
    assert parse_knowledge_sheet("Empty", []) == []


def test_knowledge_seed_skips_reserved_sheets():
    spreadsheet = FakeSpreadsheet(
        FakeWorksheet("PERSONA", [["TRUE", "x", "y"], ["On", "A"], ["TRUE", "persona"]]),
        FakeWorksheet("MENU_DEF", [["TRUE", "x", "y"], ["On", "A"], ["TRUE", "menu"]]),
        FakeWorksheet("USER_42", [["TRUE", "x", "y"], ["On", "A"], ["TRUE", "log"]]),
        FakeWorksheet("Prices", PRICES),
    )

    seed = asyncio.run(_client(spreadsheet).load_knowledge_seed())

    assert len(seed) == 2
    assert seed[0].speaker_id == "sheet:Prices"


def test_knowledge_seed_falls_back_to_greeting():
    seed = asyncio.run(_client(FakeSpreadsheet(FakeWorksheet("Notes", []))).load_knowledge_seed())

    assert [t.text for t in seed] == [t.text for t in greeting_seed("Noel")]


def test_persona_lines_are_joined():
    spreadsheet = FakeSpreadsheet(FakeWorksheet("PERSONA", [
        ["Enabled", "Text"],
        ["TRUE", "You are Noel."],
        ["FALSE", "Hidden line."],
        ["TRUE", "Be kind."],
    ]))

    assert asyncio.run(_client(spreadsheet).load_persona_text()) == "You are Noel.\nBe kind."


def test_missing_persona_sheet_uses_default():
    assert asyncio.run(_client(FakeSpreadsheet()).load_persona_text()) == default_persona("Noel")


def test_read_failures_return_none():
    client = _client(BrokenSpreadsheet())

    assert asyncio.run(client.load_persona_text()) is None
    assert asyncio.run(client.load_knowledge_seed()) is None
    assert asyncio.run(client.load_menu_data()) is None


def test_user_action_log_creates_sheet():
    spreadsheet = FakeSpreadsheet()
    asyncio.run(_client(spreadsheet).log_user_action(42, "Aria", 'chose "Status"', "Checking."))

    sheet = spreadsheet.sheets["USER_42"]
    assert sheet.appended[0] == ["Timestamp", "UserName", "Action", "Response"]
    assert sheet.appended[1][1:] == ["Aria", 'chose "Status"', "Checking."]


def test_user_action_log_never_raises():
    asyncio.run(_client(BrokenSpreadsheet()).log_user_action(42, "Aria", "x", "y"))


def test_menu_records_group_into_pages():
    pages = parse_menu_records(_default_menu_records())

    assert set(pages) == {"main", "guild"}
    main = pages["main"]
    assert main["title"] == "Main Menu"
    assert main["embed_color"] == "#00AAFF"
    assert len(main["buttons"]) == 6
    assert {b["action_type"] for b in main["buttons"]} == {"PROCESS", "NAVIGATE", "LINK"}


def test_menu_records_skip_rows_without_page():
    pages = parse_menu_records([{"PageID": "", "ButtonLabel": "Lost"},
                                {"PageID": "p", "ButtonLabel": "Go", "ActionType": "navigate",
                                 "Target": "q", "Row": "x"}])

    assert list(pages) == ["p"]
    assert pages["p"]["buttons"][0]["action_type"] == "NAVIGATE"
    assert pages["p"]["buttons"][0]["row"] == 1


def test_static_source_serves_defaults():
    source = StaticSource("Noel")

    assert asyncio.run(source.load_persona_text()) == default_persona("Noel")
    assert len(asyncio.run(source.load_knowledge_seed())) == 2
    assert "main" in asyncio.run(source.load_menu_data())
