import asyncio
from types import SimpleNamespace

import menu
from constants import USER_FRIENDLY_ERRORS
from menu import CLASS_DETAILS, MenuHandler, PasscodeBook, button_rows, parse_custom_id, passcode_prompt
from sheet_client import _default_menu_records, parse_menu_records


class FakeResponse:
    def __init__(self):
        self.sent = []
        self.edits = []
        self._done = False

    def is_done(self):
        return self._done

    async def defer(self):
        self._done = True

    async def send_message(self, content=None, ephemeral=False, **kwargs):
        self._done = True
        self.sent.append((content, ephemeral))

    async def edit_message(self, **kwargs):
        self._done = True
        self.edits.append(kwargs)


class FakeFollowup:
    def __init__(self):
        self.sent = []
        self.extras = []

    async def send(self, content=None, ephemeral=False, **kwargs):
        self.sent.append((content, ephemeral))
        self.extras.append(kwargs)


class FakeMessage:
    def __init__(self):
        self.edits = []

    async def edit(self, **kwargs):
        self.edits.append(kwargs)


class FakeEngine:
    def __init__(self, fail=False):
        self.recorded = []
        self.fail = fail

    def record_interaction(self, channel_id, speaker_id, speaker_name, action_text, reply_text):
        if self.fail:
            raise RuntimeError("transcript unavailable")
        self.recorded.append((channel_id, speaker_id, speaker_name, action_text, reply_text))


class FakeSource:
    def __init__(self):
        self.logged = []

    async def load_menu_data(self):
        return parse_menu_records(_default_menu_records())

    async def log_user_action(self, user_id, user_name, action, response):
        self.logged.append((user_id, user_name, action, response))


def _interaction(custom_id):
    return SimpleNamespace(
        data={"custom_id": custom_id},
        user=SimpleNamespace(id=42, display_name="Aria", global_name=None, name="aria"),
        channel_id=7,
        response=FakeResponse(),
        followup=FakeFollowup(),
        message=FakeMessage(),
    )


def _press(handler, custom_id):
    interaction = _interaction(custom_id)
    handled = asyncio.run(handler.handle_component(interaction))
    return handled, interaction


def test_parse_custom_id():
    assert parse_custom_id("menu_nav_guild") == ("menu", "nav", "guild")
    assert parse_custom_id("menu_nav_shop_2") == ("menu", "nav", "shop_2")
    assert parse_custom_id("class_return_list") == ("class", "return", "list")
    assert parse_custom_id("menu_return") == ("menu", "return", None)
    assert parse_custom_id("pass_7") == ("pass", "7", None)


def test_button_rows_follow_sheet_rows():
    rows = button_rows(parse_menu_records(_default_menu_records())["main"])

    assert [b["custom_id"] for b in rows[0]] == [
        "menu_process_register", "menu_process_status", "menu_process_inventory"
    ]
    assert rows[1][0]["custom_id"] == "menu_nav_guild"
    assert rows[2][0] == {"label": "Help", "style": "Link", "url": "https://discord.com"}


def test_button_rows_respect_discord_limits():
    page = {"buttons": [
        {"label": f"B{i}", "style": "Primary", "action_type": "PROCESS", "target": str(i), "row": i % 7}
        for i in range(49)
    ]}

    rows = button_rows(page)
    assert len(rows) == 5
    assert all(len(row) == 5 for row in rows)


def test_render_description():
    assert menu.render_description("Welcome back, {{UserName}}!", "Aria") == "Welcome back, Aria!"


def test_passcode_book():
    book = PasscodeBook(max_length=4)
    book.start(42)
    for key in "12345":
        code = book.press(42, key)

    assert code == "1234"
    assert book.press(42, "back") == "123"
    assert PasscodeBook.display("123") == "***"
    assert book.finish(42) == "123"
    assert book.finish(42) == ""
    assert passcode_prompt("") == "Please enter your passcode\n`#`"


def test_process_action_replies_and_is_remembered():
    engine, source = FakeEngine(), FakeSource()
    handled, interaction = _press(MenuHandler(engine, source), "menu_process_status")

    assert handled
    reply = interaction.response.sent[0]
    assert reply == (menu.PROCESS_REPLIES["status"][1], True)
    assert engine.recorded == [(7, 42, "Aria", 'chose "Status"', reply[0])]
    assert source.logged == [(42, "Aria", 'chose "Status"', reply[0])]


def test_class_selection_disables_buttons(monkeypatch):
    engine, source = FakeEngine(), FakeSource()
    handler = MenuHandler(engine, source)
    disabled = []

    async def fake_disable(message):
        disabled.append(message)

    monkeypatch.setattr(handler, "_disable_buttons", fake_disable)
    handled, interaction = _press(handler, "class_select_merchant")

    assert handled
    assert engine.recorded[0][3] == 'made "Merchant" their final class choice'
    assert disabled == [interaction.message]


def test_class_details_show_description():
    handled, interaction = _press(MenuHandler(FakeEngine(), FakeSource()), "class_details_trader")

    assert handled
    assert interaction.response.edits[0]["content"] == CLASS_DETAILS["trader"]["description"]


def test_passcode_entry_flow():
    handler = MenuHandler(FakeEngine(), FakeSource())
    handler.passcodes.start(42)

    _, first = _press(handler, "pass_4")
    assert first.response.edits[0]["content"] == passcode_prompt("4")

    _, enter = _press(handler, "pass_enter")
    assert enter.response.sent[0][0].startswith("Code entered: 4")
    assert enter.message.edits == [{"content": "Passcode entry finished.", "view": None}]
    assert handler.engine.recorded[0][3] == 'entered passcode "4"'


def test_unknown_custom_id_is_not_handled():
    handled, interaction = _press(MenuHandler(FakeEngine(), FakeSource()), "poll_vote_1")

    assert not handled
    assert interaction.response.sent == []


def test_failures_answer_with_apology():
    handled, interaction = _press(MenuHandler(FakeEngine(fail=True), FakeSource()), "menu_process_status")

    assert handled
    assert interaction.followup.sent == [(USER_FRIENDLY_ERRORS["menu"], True)]


def test_show_main_posts_embed_page():
    interaction = _interaction("")
    asyncio.run(MenuHandler(FakeEngine(), FakeSource()).show_main(interaction))

    extras = interaction.followup.extras[0]
    text_embed = extras["embeds"][-1]
    assert text_embed.title == "Main Menu"
    assert text_embed.description.startswith("Welcome back, Aria!")
    assert len(extras["view"].children) == 6
