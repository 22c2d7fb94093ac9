# -*- coding: utf-8 -*-
import discord
from discord.ext import commands
import logging
from typing import Dict, List

import config
from core import downloader
from utils.text_helpers import filter_candidates, format_list

log = logging.getLogger('Chester.Cog.Admin')


def command_descriptions(bot: discord.Bot) -> Dict[str, str]:
    """Maps every slash command's qualified name (e.g. 'set_metadata title') to its description."""
    descriptions = {}
    for command in bot.walk_application_commands():
        if isinstance(command, discord.SlashCommand):
            descriptions[command.qualified_name] = command.description or ""
    return descriptions


async def command_autocomplete(ctx: discord.AutocompleteContext) -> List[str]:
    return filter_candidates(ctx.value, command_descriptions(ctx.bot))


class AdminCog(commands.Cog):
    def __init__(self, bot: discord.Bot):
        self.bot = bot

    @discord.slash_command(name="help", description="List Chester's commands, or describe one of them.")
    async def help(
        self,
        ctx: discord.ApplicationContext,
        command: discord.Option(str, description="Command to describe", required=False, default=None, autocomplete=command_autocomplete)
    ):
        log.info(f"COMMAND: /help by {ctx.author.name} ({ctx.author.id}), command: '{command}'")
        descriptions = command_descriptions(self.bot)
        if command:
            name = command.strip().lstrip("/")
            if name not in descriptions:
                await ctx.respond(f"❌ There is no `/{name}` command. Use `/help` to list them.", ephemeral=True)
                return
            embed = discord.Embed(title=f"/{name}", description=descriptions[name], color=discord.Color.blurple())
        else:
            lines = [f"`/{name}`: {description}" for name, description in sorted(descriptions.items())]
            embed = discord.Embed(title="Chester commands", description="\n".join(lines), color=discord.Color.blurple())
        embed.set_footer(text=config.HELP_FOOTER)
        await ctx.respond(embed=embed, ephemeral=True)

    @discord.slash_command(name="fetch_missing", description="[Admin Only] Re-download the audio of library tracks missing from disk.")
    @commands.has_permissions(manage_guild=True)
    @commands.cooldown(1, 60, commands.BucketType.guild)
    async def fetch_missing(self, ctx: discord.ApplicationContext):
        await ctx.defer(ephemeral=True)
        admin = ctx.author
        log.info(f"COMMAND: /fetch_missing by admin {admin.name} ({admin.id})")

        track_ids = await self.bot.library.all_track_ids()
        downloaded, failed = await downloader.fetch_missing(track_ids, jobs=config.DOWNLOAD_PARALLEL_JOBS)
        if not downloaded and not failed:
            await ctx.followup.send(f"✅ All {len(track_ids)} tracks already have their audio.", ephemeral=True)
            return

        message = f"📥 Downloaded {len(downloaded)} missing track(s)."
        if failed:
            message += f"\n❌ Failed: {format_list(f'`{video_id}`' for video_id in failed)}"
        log.info(f"ADMIN ACTION: fetch_missing downloaded {len(downloaded)}, failed {len(failed)}.")
        await ctx.followup.send(message[:2000], ephemeral=True)


def setup(bot: discord.Bot):
    bot.add_cog(AdminCog(bot))
    log.info("Admin Cog loaded.")
