"""
Guild Desk - Button Menu
Spreadsheet-driven menu pages, class selection and a passcode keypad.
Button presses are routed by custom_id so old messages keep working
after a restart.
"""

from typing import Dict, List, Optional, Tuple

import discord
from discord import ui

from constants import (
    MAX_BUTTONS_PER_ROW, MAX_PASSCODE_LENGTH, DEFAULT_EMBED_COLOR, USER_FRIENDLY_ERRORS
)
from discord_utils import get_user_display_name
from prometheus_metrics import metrics_manager
import logger as log

MAX_ROWS = 5  # Discord limit

CLASS_DETAILS = {
    "merchant": {
        "name": "Merchant",
        "description": "## **Merchant**\nA **rational manager** with sharp negotiation and market sense who maximizes profit by cutting costs. Values trust and pursues real gains.",
    },
    "artisan": {
        "name": "Artisan",
        "description": "## **Artisan**\nA craftsperson of rare skill and creativity who builds a one-of-a-kind brand through exhibitions. **A master of both art and quality.**",
    },
    "leader": {
        "name": "Leader",
        "description": "## **Leader**\nA **commander** rooted in the community, skilled with exclusive contracts and local resources. Deeply trusted by the townsfolk.",
    },
    "engineer": {
        "name": "Engineer",
        "description": "## **Engineer**\nA researcher of outstanding skill who fuses new materials with magic tools. **A challenger** who could spark an industrial revolution.",
    },
    "magnate": {
        "name": "Magnate",
        "description": "## **Magnate**\nAn **economic aristocrat** running several businesses at once, adept at hiring, training and investing.",
    },
    "trader": {
        "name": "Trader",
        "description": "## **Trader**\nA **master of commerce** who plays exchange rates and tariffs, bridging diplomacy and economy across borders.",
    },
}

CLASS_LIST_TEXT = (
    "## **Choose Your Class**\n"
    "Your first step as a proprietor begins with one of the Prime Classes.\n"
    "Your choice shapes your strategy, connections and reputation.\n\n"
    "**Pick a class to learn more about it.**"
)

FALLBACK_MAIN_TEXT = "Welcome! What can I do for you?\n(The menu data could not be loaded)"

# process key -> (what the user did, what the desk answers)
PROCESS_REPLIES = {
    "status": ('chose "Status"', "Checking your status. (Not available yet)"),
    "inventory": ('chose "Inventory"', "Checking your belongings. (Not available yet)"),
    "market": ('chose "Market Rates"', "Here are the current market rates. (Not available yet)"),
    "board": ('chose "Request Board"', "Here is the request board. (Not available yet)"),
    "shop": ('chose "Shop"', "What would you like to buy? (Not available yet)"),
    "sell": ('chose "Buyback Counter"', "What would you like to sell? (Not available yet)"),
}
LEAVE_REPLY = ('chose "Leave"', "Understood. Please come again!")
NOT_READY_REPLY = "That feature is still being prepared."


# --- Pure helpers ---

def parse_custom_id(custom_id: str) -> Tuple[str, Optional[str], Optional[str]]:
    """`menu_nav_guild` -> ('menu', 'nav', 'guild'). Missing parts are None."""
    parts = (custom_id or "").split('_', 2)
    parts += [None] * (3 - len(parts))
    return parts[0], parts[1], parts[2]


def button_rows(page: dict) -> List[List[dict]]:
    """Lay out a page's buttons as rows of button specs.

    Rows are ordered by their sheet row number and capped at Discord's
    limits of five rows of five buttons.
    """
    rows: Dict[int, List[dict]] = {}
    for btn in page.get('buttons', []):
        action = btn.get('action_type', 'PROCESS')
        item = {'label': btn['label'][:80], 'style': btn.get('style', 'Primary')}
        if action == 'LINK':
            item['url'] = btn['target']
            item['style'] = 'Link'
        elif action == 'NAVIGATE':
            item['custom_id'] = f"menu_nav_{btn['target']}"
        else:
            item['custom_id'] = f"menu_process_{btn['target']}"
        rows.setdefault(btn.get('row', 1), []).append(item)

    return [rows[key][:MAX_BUTTONS_PER_ROW] for key in sorted(rows)][:MAX_ROWS]


def render_description(template: str, user_name: str) -> str:
    return (template or "").replace('{{UserName}}', user_name)


def _button_style(name: str) -> discord.ButtonStyle:
    """Style for a custom_id button. Link style is reserved for URL buttons."""
    style = getattr(discord.ButtonStyle, (name or "primary").lower(), discord.ButtonStyle.primary)
    return discord.ButtonStyle.primary if style is discord.ButtonStyle.link else style


def _colour(value: str) -> discord.Colour:
    try:
        return discord.Colour.from_str(value or DEFAULT_EMBED_COLOR)
    except ValueError:
        return discord.Colour.from_str(DEFAULT_EMBED_COLOR)


def build_view(rows: List[List[dict]]) -> ui.View:
    view = ui.View(timeout=None)
    for index, row in enumerate(rows):
        for item in row:
            if 'url' in item:
                button = ui.Button(label=item['label'], style=discord.ButtonStyle.link, url=item['url'], row=index)
            else:
                button = ui.Button(label=item['label'], style=_button_style(item['style']),
                                   custom_id=item['custom_id'], row=index)
            view.add_item(button)
    return view


def build_embeds(page: dict, user_name: str) -> List[discord.Embed]:
    """Image embed on top (if any), text embed below."""
    embeds = []
    if page.get('image_url'):
        embeds.append(discord.Embed().set_image(url=page['image_url']))

    text = discord.Embed(
        title=page.get('title') or None,
        description=render_description(page.get('description_template', ''), user_name),
        colour=_colour(page.get('embed_color')),
    )
    if page.get('thumbnail_url'):
        text.set_thumbnail(url=page['thumbnail_url'])
    embeds.append(text)
    return embeds


def fallback_main_view() -> ui.View:
    return build_view([[
        {'label': 'Register Character', 'style': 'Success', 'custom_id': 'menu_register'},
        {'label': 'Status', 'style': 'Primary', 'custom_id': 'menu_status'},
        {'label': 'Request Board', 'style': 'Primary', 'custom_id': 'menu_board'},
        {'label': 'Leave', 'style': 'Secondary', 'custom_id': 'menu_leave'},
    ]])


def class_list_view() -> ui.View:
    specs = [
        {'label': f"About the {info['name']}", 'style': 'Primary', 'custom_id': f"class_details_{key}"}
        for key, info in CLASS_DETAILS.items()
    ]
    return build_view([
        specs[:3],
        specs[3:],
        [{'label': 'Back to Main Menu', 'style': 'Secondary', 'custom_id': 'menu_return'}],
    ])


def class_details_view(class_key: str, class_name: str) -> ui.View:
    return build_view([[
        {'label': f"Choose {class_name}", 'style': 'Success', 'custom_id': f"class_select_{class_key}"},
        {'label': 'Back to Class List', 'style': 'Secondary', 'custom_id': 'class_return_list'},
    ]])


def keypad_view() -> ui.View:
    def key(label, custom_id, style='Secondary'):
        return {'label': label, 'style': style, 'custom_id': custom_id}

    return build_view([
        [key(d, f"pass_{d}") for d in "123"],
        [key(d, f"pass_{d}") for d in "456"],
        [key(d, f"pass_{d}") for d in "789"],
        [key("⌫", "pass_back", 'Danger'), key("0", "pass_0"), key("Enter", "pass_enter", 'Success')],
    ])


class PasscodeBook:
    """Per-user passcode being typed on the keypad."""

    def __init__(self, max_length: int = MAX_PASSCODE_LENGTH):
        self.max_length = max_length
        self._codes: Dict[str, str] = {}

    def start(self, user_id):
        self._codes[str(user_id)] = ""

    def press(self, user_id, key: str) -> str:
        """Apply a digit or 'back' and return the current code."""
        code = self._codes.get(str(user_id), "")
        if key and key.isdigit() and len(key) == 1:
            if len(code) < self.max_length:
                code += key
        elif key == 'back':
            code = code[:-1]
        self._codes[str(user_id)] = code
        return code

    def finish(self, user_id) -> str:
        return self._codes.pop(str(user_id), "")

    @staticmethod
    def display(code: str) -> str:
        return "*" * len(code) if code else "#"


def passcode_prompt(code: str) -> str:
    return f"Please enter your passcode\n`{PasscodeBook.display(code)}`"


# --- Interaction handling ---

class MenuHandler:
    """Answers /menu and every menu button press."""

    def __init__(self, engine, source):
        self.engine = engine
        self.source = source
        self.passcodes = PasscodeBook()

    async def show_main(self, interaction: discord.Interaction):
        """Post the main menu page in the channel."""
        await interaction.response.defer()
        pages = await self.source.load_menu_data()
        page = pages.get('main') if pages else None
        if page:
            await interaction.followup.send(
                embeds=build_embeds(page, get_user_display_name(interaction.user)),
                view=build_view(button_rows(page)),
            )
        else:
            await interaction.followup.send(content=FALLBACK_MAIN_TEXT, view=fallback_main_view())

    async def handle_component(self, interaction: discord.Interaction) -> bool:
        """Route a button press. Returns False if the custom_id is not ours."""
        custom_id = (interaction.data or {}).get('custom_id', '')
        action, sub_action, subject = parse_custom_id(custom_id)
        if action not in ('menu', 'class', 'pass'):
            return False

        try:
            if action == 'menu':
                if sub_action == 'nav':
                    await self._navigate(interaction, subject)
                elif sub_action == 'process':
                    await self._process(interaction, subject)
                else:
                    await self._process(interaction, sub_action)
            elif action == 'class':
                await self._class_menu(interaction, sub_action, subject)
            else:
                await self._passcode(interaction, sub_action)
        except Exception as e:
            log.error(f"Error in button interaction {custom_id}: {e}", str(interaction.channel_id))
            metrics_manager.record_error("menu")
            await self._send_error(interaction)
        return True

    async def _send_error(self, interaction: discord.Interaction):
        try:
            if interaction.response.is_done():
                await interaction.followup.send(USER_FRIENDLY_ERRORS["menu"], ephemeral=True)
            else:
                await interaction.response.send_message(USER_FRIENDLY_ERRORS["menu"], ephemeral=True)
        except discord.HTTPException as e:
            log.debug(f"Could not send menu error: {e}")

    async def _navigate(self, interaction: discord.Interaction, page_id: str):
        pages = await self.source.load_menu_data()
        page = pages.get(page_id) if pages else None
        if not page:
            await interaction.response.send_message(USER_FRIENDLY_ERRORS["menu_missing"], ephemeral=True)
            return
        await interaction.response.edit_message(
            content='',
            embeds=build_embeds(page, get_user_display_name(interaction.user)),
            view=build_view(button_rows(page)),
        )

    async def _process(self, interaction: discord.Interaction, key: str):
        if key == 'register':
            await interaction.response.edit_message(content=CLASS_LIST_TEXT, embeds=[], view=class_list_view())
            return

        if key == 'return':
            pages = await self.source.load_menu_data()
            if pages and pages.get('main'):
                await self._navigate(interaction, 'main')
            else:
                await interaction.response.edit_message(content=FALLBACK_MAIN_TEXT, embeds=[],
                                                        view=fallback_main_view())
            return

        if key == 'leave':
            await self._complete_action(interaction, *LEAVE_REPLY, disable=True)
            return

        if key == 'inputPass':
            self.passcodes.start(interaction.user.id)
            await interaction.response.edit_message(content=passcode_prompt(""), embeds=[], view=keypad_view())
            await self._remember(interaction, 'started "Passcode Entry"', "Showed the passcode keypad")
            return

        action_text, reply_text = PROCESS_REPLIES.get(key, (f'chose "{key}"', NOT_READY_REPLY))
        await self._complete_action(interaction, action_text, reply_text)

    async def _class_menu(self, interaction: discord.Interaction, sub_action: str, subject: Optional[str]):
        if sub_action == 'return' and subject == 'list':
            await interaction.response.edit_message(content=CLASS_LIST_TEXT, view=class_list_view())
            return

        info = CLASS_DETAILS.get(subject or "")
        if not info:
            await interaction.response.send_message(USER_FRIENDLY_ERRORS["menu_missing"], ephemeral=True)
            return

        if sub_action == 'details':
            await interaction.response.edit_message(
                content=info['description'], view=class_details_view(subject, info['name'])
            )
        elif sub_action == 'select':
            await self._complete_action(
                interaction,
                f'made "{info["name"]}" their final class choice',
                f'Your class is now "{info["name"]}". Welcome! (Not available yet)',
                disable=True,
            )

    async def _passcode(self, interaction: discord.Interaction, key: str):
        user_id = interaction.user.id
        if key != 'enter':
            code = self.passcodes.press(user_id, key)
            await interaction.response.edit_message(content=passcode_prompt(code))
            return

        code = self.passcodes.finish(user_id)
        reply_text = f"Code entered: {code}\n(Verification is not available yet)"
        await interaction.response.send_message(reply_text, ephemeral=True)
        await interaction.message.edit(content="Passcode entry finished.", view=None)
        await self._remember(interaction, f'entered passcode "{code}"', reply_text)

    async def _complete_action(self, interaction: discord.Interaction, action_text: str,
                               reply_text: str, disable: bool = False):
        await interaction.response.send_message(reply_text, ephemeral=True)
        await self._remember(interaction, action_text, reply_text)
        if disable and interaction.message is not None:
            await self._disable_buttons(interaction.message)

    async def _remember(self, interaction: discord.Interaction, action_text: str, reply_text: str):
        """Record the action in the channel transcript and the user's log sheet."""
        user_name = get_user_display_name(interaction.user)
        self.engine.record_interaction(interaction.channel_id, interaction.user.id, user_name,
                                       action_text, reply_text)
        await self.source.log_user_action(interaction.user.id, user_name, action_text, reply_text)

    async def _disable_buttons(self, message: discord.Message):
        view = ui.View.from_message(message, timeout=None)
        for item in view.children:
            if hasattr(item, 'disabled'):
                item.disabled = True
        await message.edit(view=view)
