# cogs/events.py

import discord
from discord.ext import commands
import logging

import config
from core.downloader import DownloadFailed
from core.playback_manager import PlaybackManager
from data_manager import LibraryError
from utils.voice_helpers import NotInVoiceChannel

log = logging.getLogger('Chester.Cog.Events')


class EventsCog(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        if not hasattr(bot, 'playback_manager') or not isinstance(bot.playback_manager, PlaybackManager):
            log.critical("EventsCog FATAL: bot.playback_manager not found or is not the correct PlaybackManager instance!")
            raise RuntimeError("PlaybackManager not initialized on Bot before loading EventsCog")
        self.playback_manager: PlaybackManager = bot.playback_manager

    @commands.Cog.listener()
    async def on_ready(self):
        """Called once the bot is ready and operational."""
        log.info(f'Logged in as {self.bot.user.name} ({self.bot.user.id})')
        log.info(f"Using py-cord version {discord.__version__}")
        bot_config = getattr(self.bot, 'config', config)
        log.info(f"Audio directory: {bot_config.AUDIO_DIR}")
        log.info(f"Database: {bot_config.DATABASE_PATH}")
        log.info(f"Normalize downloads: {bot_config.NORMALIZE_DOWNLOADS} (target {bot_config.TARGET_LOUDNESS_DBFS} dBFS)")
        log.info(f"Chester is operational. Serving {len(self.bot.guilds)} guilds.")

    @commands.Cog.listener()
    async def on_voice_state_update(self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState):
        """Drops the guild's playback state when the bot is disconnected from voice by anyone."""
        if not member.guild or member.id != self.bot.user.id:
            return
        if before.channel and not after.channel:
            log.info(f"EVENT: Bot disconnected from {before.channel.name} in GID:{member.guild.id}")
            await self.playback_manager.reset(member.guild.id)

    @commands.Cog.listener()
    async def on_application_command_error(self, ctx: discord.ApplicationContext, error: discord.DiscordException):
        """Global handler for slash command errors originating from cogs."""
        command_name = ctx.command.qualified_name if ctx.command else "N/A"
        user_name = f"{ctx.author.name}({ctx.author.id})" if ctx.author else "Unknown User"
        guild_name = f"{ctx.guild.name}({ctx.guild.id})" if ctx.guild else "DM Context"
        log_prefix = f"CMD ERROR (/{command_name}, User: {user_name}, Guild: {guild_name}):"

        async def send_error_response(message: str, log_level=logging.WARNING, delete_after=None, ephemeral=True):
            log.log(log_level, f"{log_prefix} {message} (Error Type: {type(error).__name__}, Details: {error})")
            await self.playback_manager._try_respond(ctx.interaction, message, ephemeral=ephemeral, delete_after=delete_after)

        if isinstance(error, commands.CommandOnCooldown):
            await send_error_response(f"⏳ Command on cooldown. Please wait {error.retry_after:.1f} seconds.", delete_after=10)
        elif isinstance(error, commands.MissingPermissions):
            perms = ', '.join(f"`{p}`" for p in error.missing_permissions)
            await send_error_response(f"🚫 You lack the required permissions: {perms}")
        elif isinstance(error, commands.BotMissingPermissions):
            perms = ', '.join(f"`{p}`" for p in error.missing_permissions)
            await send_error_response(f"🚫 I lack the required permissions: {perms}. Please check my role settings.", log_level=logging.ERROR)
        elif isinstance(error, commands.CheckFailure):
            await send_error_response("🚫 You do not meet the requirements to use this command.")
        elif isinstance(error, (discord.ApplicationCommandInvokeError, commands.CommandInvokeError)):
            original = error.original
            if isinstance(original, (NotInVoiceChannel, LibraryError)):
                # Expected outcomes of bad input, reply with the message as is
                await send_error_response(str(original), log_level=logging.INFO)
                return
            if isinstance(original, DownloadFailed):
                await send_error_response(f"❌ Download failed: {original}")
                return
            log.error(f"{log_prefix} An error occurred within the command code.", exc_info=original)
            user_msg = "❌ An internal error occurred while executing the command. Please report this if it persists."
            if isinstance(original, FileNotFoundError) and 'ffmpeg' in str(original).lower():
                user_msg = "❌ Internal Error: FFmpeg (needed for audio) not found or not accessible by the bot. Please contact the administrator."
            elif isinstance(original, discord.Forbidden):
                user_msg = f"❌ Discord Permissions Error: I lack permissions needed for this action: {original.text}. Please check my roles/permissions."
            await send_error_response(user_msg, log_level=logging.ERROR)
        elif isinstance(error, discord.NotFound):
            log.warning(f"{log_prefix} Interaction not found (possibly timed out or deleted?). Error: {error}")
        else:
            log.error(f"{log_prefix} An unexpected Discord API or command system error occurred: {error}", exc_info=error)
            await send_error_response(f"❌ An unexpected error occurred ({type(error).__name__}).", log_level=logging.ERROR)


def setup(bot: commands.Bot):
    if not hasattr(bot, 'playback_manager'):
        log.critical("Cannot load EventsCog: bot.playback_manager is not set.")
        return
    bot.add_cog(EventsCog(bot))
    log.info("Events Cog loaded.")
