"""
Aegis Discord Moderation Bot
============================

A Discord bot that automatically moderates guild chat (spam bursts, invite
links, mass mentions, banned words), gives new members an optional autorole
and provides slash commands for manual moderation, case history and member
info.
"""

import os
import sys
from pathlib import Path

def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. AEGIS_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("AEGIS_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from aegis.bot.runtime import AegisRuntime
from aegis.configuration.app_configuration import CONFIG_PATH, AppConfig
from aegis.database.database import Database
from aegis.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the Discord intents required by automod and the commands.

    Message content is needed for invite and banned-word checks; members are
    needed to resolve permissions and role positions and to see joins.
    """
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, runtime: AegisRuntime) -> None:
    """Register all operational cogs with the provided Discord bot instance."""
    from aegis.bot.cogs import (
        guild_settings_cmds,
        member_listener,
        message_listener,
        moderation_cmds,
        utility_cmds,
    )

    message_listener.setup(discord_bot_instance, runtime)
    member_listener.setup(discord_bot_instance, runtime)
    guild_settings_cmds.setup(discord_bot_instance, runtime)
    moderation_cmds.setup(discord_bot_instance, runtime)
    utility_cmds.setup(discord_bot_instance, runtime)

    logger.info("All cogs loaded successfully.")


def create_bot(runtime: AegisRuntime) -> discord.Bot:
    """Instantiate the Discord bot and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot, runtime)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, runtime: AegisRuntime) -> None:
    """Gracefully stop the Discord bot, the automod sweep and the database."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
            logger.info("Discord bot connection closed.")
        except Exception as exc:
            logger.exception("Error while closing the Discord bot: %s", exc)

    await runtime.shutdown()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database, runtime and bot, returning an exit code."""
    token = load_environment()

    app_config = AppConfig(CONFIG_PATH)
    database = Database(app_config.database_path)

    logger.info("Initializing database...")
    if not await database.initialize():
        logger.critical("Failed to initialize database at %s", app_config.database_path)
        return 1

    try:
        runtime = AegisRuntime.build(database, app_config.automod_settings)
    except Exception as exc:
        logger.critical("Failed to build the automod runtime: %s", exc)
        await database.shutdown()
        return 1

    try:
        bot = create_bot(runtime)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await runtime.shutdown()
        return 1

    exit_code = 0
    runtime.start()
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, runtime)

    return exit_code


def main() -> int:
    """Entrypoint that orchestrates the async runtime and returns the process code."""
    sys.excepthook = handle_exception
    logger.info("Starting Aegis…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        if code is None:
            return 1
        try:
            return int(code)
        except (ValueError, TypeError):
            logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
            return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    print(f"Exited with code: {main()}")
