# -*- coding: utf-8 -*-
import discord
from discord.ext import commands
import logging

import config
from core import downloader
from core.music_types import Track
from data_manager import TrackExists
from utils import file_helpers
from utils.autocomplete_helpers import (
    artist_autocomplete,
    origin_autocomplete,
    tag_autocomplete,
    track_autocomplete,
)

log = logging.getLogger('Chester.Cog.Management')


class ManagementCog(commands.Cog):
    """Adding tracks to the library and editing their metadata."""

    set_metadata = discord.SlashCommandGroup("set_metadata", "Set a track's title, artist, or origin")

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.slash_command(name="download", description="Download a track from a YouTube link.")
    @commands.cooldown(1, config.DOWNLOAD_COOLDOWN_SECONDS, commands.BucketType.user)
    async def download(
        self,
        ctx: discord.ApplicationContext,
        yt_link: discord.Option(str, description="YouTube link to download from", required=True),
        track_artist: discord.Option(str, description="The actual artist of the track", required=False, default=None, autocomplete=artist_autocomplete),
        track_origin: discord.Option(str, description="The origin of the track (e.g., game/movie title)", required=False, default=None, autocomplete=origin_autocomplete),
        track_title: discord.Option(str, description="The actual title of the track", required=False, default=None)
    ):
        log.info(f"COMMAND: /download by {ctx.author.name} ({ctx.author.id}), link: '{yt_link}'")
        video_id = file_helpers.get_youtube_id(yt_link)
        if not video_id:
            await ctx.respond("❌ Invalid YouTube link.", ephemeral=True)
            return

        existing = await self.bot.library.get_track(video_id)
        if existing is not None:
            await ctx.respond(f"This track exists in the database already as `{existing.track_title}`.")
            return

        await ctx.defer()
        try:
            info = await downloader.download_audio(yt_link, video_id)
        except downloader.DownloadFailed as e:
            await ctx.followup.send(f"❌ Download failed: {e}")
            return

        track = Track(
            id=video_id,
            track_title=track_title or info["title"],
            artist=track_artist or config.DEFAULT_ARTIST,
            origin=track_origin or config.DEFAULT_ORIGIN,
            upload_date=info["upload_date"],
            yt_title=info["title"],
            yt_channel=info["channel"],
        )
        try:
            await self.bot.library.add_track(track)
        except TrackExists as e:
            # Someone else downloaded the same video while this one was running
            await ctx.followup.send(str(e))
            return
        await ctx.followup.send(f"File downloaded and added to the library: `{track.track_title}`")

    @commands.slash_command(name="add_tag", description="Add a new arbitrary tag to a track.")
    async def add_tag(
        self,
        ctx: discord.ApplicationContext,
        track: discord.Option(str, description="The track to add a tag to", required=True, autocomplete=track_autocomplete),
        tag: discord.Option(str, description="The tag to add", required=True, autocomplete=tag_autocomplete)
    ):
        log.info(f"COMMAND: /add_tag by {ctx.author.name}, track: '{track}', tag: '{tag}'")
        updated = await self.bot.library.add_tag(track, tag.strip())
        await ctx.respond(f"Tag `{tag.strip()}` added to track `{updated.track_title}`")

    @commands.slash_command(name="reset_tags", description="Reset a track's user-set tags.")
    async def reset_tags(
        self,
        ctx: discord.ApplicationContext,
        track: discord.Option(str, description="The track to reset the tags of", required=True, autocomplete=track_autocomplete)
    ):
        log.info(f"COMMAND: /reset_tags by {ctx.author.name}, track: '{track}'")
        updated = await self.bot.library.reset_tags(track)
        await ctx.respond(f"Reset tags for track `{updated.track_title}`")

    @set_metadata.command(name="title", description="Set a track's title.")
    async def set_title(
        self,
        ctx: discord.ApplicationContext,
        track: discord.Option(str, description="The track to adjust", required=True, autocomplete=track_autocomplete),
        new_title: discord.Option(str, description="The new title to give the track", required=True)
    ):
        log.info(f"COMMAND: /set_metadata title by {ctx.author.name}, track: '{track}', title: '{new_title}'")
        _, old_title = await self.bot.library.set_title(track, new_title)
        await ctx.respond(f"Set new title `{new_title}` for track `{old_title}`")

    @set_metadata.command(name="artist", description="Set a track's artist.")
    async def set_artist(
        self,
        ctx: discord.ApplicationContext,
        track: discord.Option(str, description="The track to adjust", required=True, autocomplete=track_autocomplete),
        new_artist: discord.Option(str, description="The new artist for the track", required=True, autocomplete=artist_autocomplete)
    ):
        log.info(f"COMMAND: /set_metadata artist by {ctx.author.name}, track: '{track}', artist: '{new_artist}'")
        updated = await self.bot.library.set_artist(track, new_artist)
        await ctx.respond(f"Set new artist `{new_artist}` for track `{updated.track_title}`")

    @set_metadata.command(name="origin", description="Set a track's origin (e.g., game/movie title).")
    async def set_origin(
        self,
        ctx: discord.ApplicationContext,
        track: discord.Option(str, description="The track to adjust", required=True, autocomplete=track_autocomplete),
        new_origin: discord.Option(str, description="The new origin for the track", required=True, autocomplete=origin_autocomplete)
    ):
        log.info(f"COMMAND: /set_metadata origin by {ctx.author.name}, track: '{track}', origin: '{new_origin}'")
        updated = await self.bot.library.set_origin(track, new_origin)
        await ctx.respond(f"Set new origin `{new_origin}` for track `{updated.track_title}`")


def setup(bot: commands.Bot):
    bot.add_cog(ManagementCog(bot))
    log.info("Management Cog loaded.")
