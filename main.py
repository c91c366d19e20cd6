"""
Guild Desk - Entry Point
Validates configuration, starts the side servers and runs the bot.
"""

import asyncio
import sys

import logger as log

log.quiet_libraries()

from config import DISCORD_TOKEN, BOT_PERSONA_NAME, BOT_VERSION, PORT, METRICS_PORT
from bot_instance import BotInstance
from keep_alive import start_keep_alive
from prometheus_metrics import metrics_manager


async def run_bot():
    """Run the configured bot until it disconnects."""
    if not DISCORD_TOKEN:
        log.error("DISCORD_TOKEN not set!")
        return

    log.startup(f"Starting {BOT_PERSONA_NAME} {BOT_VERSION}...")
    log.divider()

    bot = BotInstance(token=DISCORD_TOKEN)

    try:
        start_keep_alive(port=PORT)
        log.online(f"Keep-alive server running on port {PORT}")
    except Exception as e:
        log.warn(f"Keep-alive server failed to start: {e}")

    if METRICS_PORT:
        metrics_manager.start_metrics_server(METRICS_PORT)

    try:
        await bot.start()
    finally:
        log.info("Shutting down...")
        await bot.close()


# --- Entry Point ---

if __name__ == "__main__":
    from startup import validate_startup

    if not validate_startup():
        log.error("Startup validation failed. Please fix the issues above.")
        sys.exit(1)

    log.divider()
    try:
        asyncio.run(run_bot())
    except KeyboardInterrupt:
        pass
