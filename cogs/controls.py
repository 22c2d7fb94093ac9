# -*- coding: utf-8 -*-
import discord
from discord.ext import commands
import logging

import config
from core.playback_manager import PlaybackManager
from utils import file_helpers, voice_helpers
from utils.autocomplete_helpers import track_autocomplete

log = logging.getLogger('Chester.Cog.Controls')


class ControlsCog(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.playback_manager: PlaybackManager = bot.playback_manager

    @commands.slash_command(name="join", description="Joins your voice channel.")
    @commands.cooldown(1, config.COMMAND_COOLDOWN_SECONDS, commands.BucketType.user)
    async def join(self, ctx: discord.ApplicationContext):
        if not ctx.guild:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return
        log.info(f"COMMAND: /join by {ctx.author.name} ({ctx.author.id}) in guild {ctx.guild.id}")
        channel = voice_helpers.require_voice_channel(ctx.author)
        await ctx.defer()
        vc = await self.playback_manager.ensure_voice_client(ctx.interaction, channel, action_type="JOIN")
        if vc:
            await ctx.followup.send("Joined your voice channel! 🎶")

    @commands.slash_command(name="play", description="Plays a selected track from the library.")
    @commands.cooldown(1, config.COMMAND_COOLDOWN_SECONDS, commands.BucketType.user)
    async def play(
        self,
        ctx: discord.ApplicationContext,
        track: discord.Option(str, description="Track to play now", required=True, autocomplete=track_autocomplete)
    ):
        if not ctx.guild:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return
        log.info(f"COMMAND: /play by {ctx.author.name} ({ctx.author.id}) in guild {ctx.guild.id}, track: '{track}'")

        found = await self.bot.library.get_track(track)
        if found is None:
            await ctx.respond(f"The track `{track}` could not be found in the database.", ephemeral=True)
            return
        channel = voice_helpers.require_voice_channel(ctx.author)

        path = file_helpers.track_audio_path(found.id)
        if not file_helpers.audio_exists(found.id):
            log.warning(f"PLAY: Audio file missing for {found.id} at '{path}'")
            await ctx.respond(f"❌ The audio for `{found.track_title}` is missing. An admin can restore it with `/fetch_missing`.", ephemeral=True)
            return

        await ctx.defer()
        vc = await self.playback_manager.ensure_voice_client(ctx.interaction, channel, action_type="PLAY")
        if not vc:
            return
        await self.playback_manager.play_track(vc, found, path)
        await ctx.followup.send(f"Now playing: `{found.track_title}` by `{found.artist}`")

    @commands.slash_command(name="loop", description="Loop or un-loop the currently playing track.")
    async def loop(self, ctx: discord.ApplicationContext):
        if not ctx.guild:
            await ctx.respond("Looping only works in a server.", ephemeral=True)
            return
        log.info(f"COMMAND: /loop by {ctx.author.name} in guild {ctx.guild.id}")
        looping = await self.playback_manager.toggle_loop(ctx.guild.id)
        if looping is None:
            await ctx.respond("No track is currently playing.", ephemeral=True)
        else:
            await ctx.respond(f"Looping {'enabled' if looping else 'disabled'}")

    @commands.slash_command(name="pause", description="Toggles pause/unpause for the currently playing track.")
    async def pause(self, ctx: discord.ApplicationContext):
        if not ctx.guild:
            await ctx.respond("Pause command can only be used in a server.", ephemeral=True)
            return
        log.info(f"COMMAND: /pause by {ctx.author.name} in guild {ctx.guild.id}")
        paused = await self.playback_manager.toggle_pause(ctx.guild.id)
        if paused is None:
            await ctx.respond("No track is currently playing.", ephemeral=True)
        elif paused:
            await ctx.respond("Paused the currently playing track.")
        else:
            await ctx.respond("Resumed the currently paused track.")

    @commands.slash_command(name="leave", description="Leaves the voice channel.")
    @commands.cooldown(1, config.COMMAND_COOLDOWN_SECONDS, commands.BucketType.user)
    async def leave(self, ctx: discord.ApplicationContext):
        if not ctx.guild:
            await ctx.respond("This command must be used in a server.", ephemeral=True)
            return
        log.info(f"COMMAND: /leave by {ctx.author.name} ({ctx.author.id}) in guild {ctx.guild.id}")
        voice_helpers.require_voice_channel(ctx.author)
        if await self.playback_manager.leave(ctx.guild.id):
            await ctx.respond("Left the voice channel")
        else:
            await ctx.respond("🤷 I'm not currently in a voice channel in this server.", ephemeral=True)


def setup(bot: commands.Bot):
    bot.add_cog(ControlsCog(bot))
    log.info("Controls Cog loaded.")
