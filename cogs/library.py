# -*- coding: utf-8 -*-
import discord
from discord.ext import commands, pages
import logging
from typing import List, Sequence

from core.music_types import LibrarySort, ListMode

log = logging.getLogger('Chester.Cog.Library')

SORT_CHOICES = [
    discord.OptionChoice(name="Title", value=LibrarySort.TITLE.value),
    discord.OptionChoice(name="Artist", value=LibrarySort.ARTIST.value),
    discord.OptionChoice(name="Origin", value=LibrarySort.ORIGIN.value),
]


class LibraryCog(commands.Cog):
    """Read-only views of the track library, rendered as paged text tables."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def _send_pages(self, ctx: discord.ApplicationContext, page_texts: Sequence[str]):
        """Sends the pages behind paginator buttons. Expects a deferred ctx."""
        paginator = pages.Paginator(pages=list(page_texts), show_indicator=True, timeout=300)
        await paginator.respond(ctx.interaction)

    async def _send_listing(self, ctx: discord.ApplicationContext, mode: ListMode, rows: List[List[str]]):
        log.debug(f"LIBRARY: {mode.value} listing of {len(rows)} row(s) for {ctx.author.name}")
        await self._send_pages(ctx, mode.render(rows))

    @commands.slash_command(name="library", description="List all tracks in the library.")
    async def library(
        self,
        ctx: discord.ApplicationContext,
        sort: discord.Option(str, description="Column to sort the listing by", required=False, default=LibrarySort.TITLE.value, choices=SORT_CHOICES)
    ):
        log.info(f"COMMAND: /library by {ctx.author.name} ({ctx.author.id}), sort: '{sort}'")
        await ctx.defer()
        rows = await self.bot.library.fetch_listing(ListMode.FULL, LibrarySort(sort))
        await self._send_listing(ctx, ListMode.FULL, rows)

    @commands.slash_command(name="library_title", description="List the titles of all tracks in the library.")
    async def library_title(self, ctx: discord.ApplicationContext):
        log.info(f"COMMAND: /library_title by {ctx.author.name}")
        await ctx.defer()
        await self._send_listing(ctx, ListMode.TITLE, await self.bot.library.fetch_listing(ListMode.TITLE))

    @commands.slash_command(name="library_artist", description="List all tracks grouped by artist.")
    async def library_artist(self, ctx: discord.ApplicationContext):
        log.info(f"COMMAND: /library_artist by {ctx.author.name}")
        await ctx.defer()
        await self._send_listing(ctx, ListMode.ARTIST, await self.bot.library.fetch_listing(ListMode.ARTIST))

    @commands.slash_command(name="library_origin", description="List all tracks grouped by origin.")
    async def library_origin(self, ctx: discord.ApplicationContext):
        log.info(f"COMMAND: /library_origin by {ctx.author.name}")
        await ctx.defer()
        await self._send_listing(ctx, ListMode.ORIGIN, await self.bot.library.fetch_listing(ListMode.ORIGIN))

    @commands.slash_command(name="library_tags", description="List all tracks grouped by tag.")
    async def library_tags(self, ctx: discord.ApplicationContext):
        log.info(f"COMMAND: /library_tags by {ctx.author.name}")
        await ctx.defer()
        await self._send_listing(ctx, ListMode.TAGS, await self.bot.library.fetch_listing(ListMode.TAGS))

    @commands.slash_command(name="search", description="Search the library by title, artist, origin or tag.")
    async def search(
        self,
        ctx: discord.ApplicationContext,
        query: discord.Option(str, description="Text to look for", required=True)
    ):
        log.info(f"COMMAND: /search by {ctx.author.name}, query: '{query}'")
        await ctx.defer()
        rows = await self.bot.library.search_listing(query)
        if not rows:
            await ctx.followup.send(f"No tracks match `{query}`.")
            return
        await self._send_listing(ctx, ListMode.FULL, rows)


def setup(bot: commands.Bot):
    bot.add_cog(LibraryCog(bot))
    log.info("Library Cog loaded.")
