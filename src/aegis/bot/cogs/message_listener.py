"""Message listener Cog for Aegis.

Feeds every guild message into the automod engine.
"""

import discord
from discord.ext import commands

from aegis.automod.decision_engine import AutomodEngine
from aegis.bot.runtime import AegisRuntime
from aegis.util import discord_utils
from aegis.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for running automod on new messages."""

    def __init__(self, discord_bot_instance, engine: AutomodEngine):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        engine:
            Automod engine that classifies and acts on each message.
        """
        self.discord_bot_instance = discord_bot_instance
        self.engine = engine
        logger.info("Message listener cog loaded")

    @commands.Cog.listener(name='on_message')
    async def on_message(self, message: discord.Message):
        """Run automod on a new guild message. DMs, bots and webhooks are ignored."""
        if message.guild is None:
            return
        if discord_utils.is_ignored_author(message.author):
            return
        await self.engine.handle_message(message)


def setup(discord_bot_instance, runtime: AegisRuntime):
    """
    Register the MessageListenerCog with the bot.

    Parameters
    ----------
    discord_bot_instance:
        The Discord bot instance to add this cog to.
    runtime:
        Services built at startup.
    """
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, runtime.engine))
