"""
Guild Desk - Bot Instance
Wires the Discord client to the conversation engine, the menu and the
slash commands.
"""

import asyncio

import discord
from discord import app_commands

from config import BOT_PERSONA_NAME, BOT_VERSION
from commands import handle_prefix_command
from conversation import ConversationEngine, InboundMessage
from discord_utils import get_user_display_name, replace_agent_mention, split_message
from menu import MenuHandler
from providers import provider_manager
from request_queue import RequestQueue
from sheet_client import create_source
from prometheus_metrics import metrics_manager
import logger as log


class BotInstance:
    """A single Discord bot with its own client, engine and queue."""

    def __init__(self, token: str, character_name: str = BOT_PERSONA_NAME, source=None, generator=None):
        self.name = character_name
        self.token = token
        self.character_name = character_name

        intents = discord.Intents.default()
        intents.message_content = True

        self.client = discord.Client(intents=intents)
        self.tree = app_commands.CommandTree(self.client)

        self.source = source or create_source()
        self.engine = ConversationEngine(self.source, generator or provider_manager,
                                         character_name=character_name)
        self.menu = MenuHandler(self.engine, self.source)

        self.request_queue = RequestQueue()
        self.request_queue.set_processor(self._process_request)

        self._setup_events()
        self._setup_commands()

    def _setup_events(self):
        """Register event handlers."""

        @self.client.event
        async def on_ready():
            if await self.source.init():
                log.ok("Knowledge source ready", self.name)
            else:
                log.warn("Knowledge source unavailable, replies will apologize until it recovers", self.name)

            metrics_manager.update_bot_status(BOT_VERSION, self.character_name, online=True)

            try:
                synced = await self.tree.sync()
                log.ok(f"Synced {len(synced)} commands", self.name)
            except Exception as e:
                log.error(f"Command sync failed: {e}", self.name)

            log.online(f"{self.client.user} is online!")

        @self.client.event
        async def on_message(message: discord.Message):
            if message.author == self.client.user or message.author.bot:
                return
            if message.content.startswith('/'):
                return

            if await self._handle_prefix_command(message):
                return

            content = replace_agent_mention(message.content, self.client.user.id, self.character_name)
            if not content:
                return

            inbound = InboundMessage(
                channel_id=message.channel.id,
                speaker_id=message.author.id,
                speaker_name=get_user_display_name(message.author),
                text=content,
                mentions_agent=self.client.user in message.mentions,
            )
            await self.request_queue.add_request(message.channel.id, message=message, inbound=inbound)

        @self.client.event
        async def on_interaction(interaction: discord.Interaction):
            # Slash commands are dispatched by the command tree
            if interaction.type != discord.InteractionType.component:
                return
            handled = await self.menu.handle_component(interaction)
            if not handled:
                log.debug(f"Unhandled component: {(interaction.data or {}).get('custom_id')}", self.name)

    async def _handle_prefix_command(self, message: discord.Message) -> bool:
        """Answer `!` commands directly. Returns True if one was handled."""
        result = handle_prefix_command(message.content)
        if result is None:
            return False

        command, reply = result
        metrics_manager.record_command(command)
        try:
            await message.reply(reply)
        except discord.HTTPException as e:
            log.error(f"Failed to send: {e}", str(message.channel.id))
        return True

    async def _process_request(self, message: discord.Message, inbound: InboundMessage):
        """Run one queued message through the engine, replying in the channel."""

        async def reply(text: str):
            for i, chunk in enumerate(split_message(text)):
                if i == 0:
                    await message.reply(chunk)
                else:
                    await asyncio.sleep(0.5)
                    await message.channel.send(chunk)

        await self.engine.handle(inbound, reply)

    def _setup_commands(self) -> None:
        """Register slash commands from commands module."""
        from commands import setup_all_commands
        setup_all_commands(self)

    async def start(self):
        """Start the bot."""
        await self.client.start(self.token)

    async def close(self):
        """Close the bot connection."""
        metrics_manager.update_bot_status(BOT_VERSION, self.character_name, online=False)
        await self.client.close()
