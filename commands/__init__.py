"""
Guild Desk - Commands Package
Slash commands and `!` prefix commands.
"""

# Re-export command registration functions for easy import
from .core import setup_core_commands
from .dice import handle_prefix_command


def setup_all_commands(bot_instance):
    """Register all slash commands for a bot instance."""
    setup_core_commands(bot_instance)
