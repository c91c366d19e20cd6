"""
Guild Desk - Core Commands
Slash commands: ping, ver, menu, reset, status
"""

import discord

from config import BOT_VERSION
from prometheus_metrics import metrics_manager
import logger as log


def setup_core_commands(bot_instance) -> None:
    """Register core slash commands."""
    tree = bot_instance.tree

    @tree.command(name="ping", description="Check that the bot is responding. Replies \"Pong!\".")
    async def cmd_ping(interaction: discord.Interaction) -> None:
        metrics_manager.record_command("ping")
        await interaction.response.send_message("Pong!", ephemeral=True)

    @tree.command(name="ver", description="Show the bot's current version")
    async def cmd_ver(interaction: discord.Interaction) -> None:
        metrics_manager.record_command("ver")
        await interaction.response.send_message(f"My current version is {BOT_VERSION}.", ephemeral=True)

    @tree.command(name="menu", description="Open the home menu")
    async def cmd_menu(interaction: discord.Interaction) -> None:
        metrics_manager.record_command("menu")
        await bot_instance.menu.show_main(interaction)

    @tree.command(name="reset", description="Forget the conversation in this channel")
    async def cmd_reset(interaction: discord.Interaction) -> None:
        metrics_manager.record_command("reset")
        cleared = bot_instance.engine.reset_channel(interaction.channel_id)
        log.info(f"History reset by {interaction.user}", str(interaction.channel_id))
        await interaction.response.send_message(
            "✅ History cleared" if cleared else "Nothing to clear", ephemeral=True
        )

    @tree.command(name="status", description="Check bot status")
    async def cmd_status(interaction: discord.Interaction) -> None:
        metrics_manager.record_command("status")
        engine = bot_instance.engine
        msg = (
            f"**Bot:** {engine.character_name} {BOT_VERSION}\n"
            f"**Active conversations:** {engine.history.channel_count()}\n\n"
            f"{engine.generator.get_status()}"
        )
        await interaction.response.send_message(msg, ephemeral=True)
