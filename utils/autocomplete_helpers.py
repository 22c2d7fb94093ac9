# -*- coding: utf-8 -*-
import logging
from operator import attrgetter
from typing import Iterable, List, Optional

import discord

import config
from core.music_types import MetadataField, Track
from utils.text_helpers import filter_candidates, trim

log = logging.getLogger('Chester.Utils.Autocomplete')


def metadata_choices(needle: Optional[str], values: Iterable[str]) -> List[str]:
    """Artist/origin/tag suggestions: trimmed to Discord's limit, filtered and sorted."""
    labels = (trim(value, config.AUTOCOMPLETE_MAX_LENGTH) for value in values)
    return filter_candidates(needle, labels)


def track_choices(needle: Optional[str], tracks: Iterable[Track]) -> List[discord.OptionChoice]:
    """Track suggestions labelled 'title | artist | origin | tags', valued by video id."""
    chosen = filter_candidates(
        needle,
        tracks,
        key=attrgetter('id'),
        display=attrgetter('autocomplete_label'),
        match=attrgetter('search_text'),
    )
    return [discord.OptionChoice(name=track.autocomplete_label, value=track.id) for track in chosen]


async def _metadata_autocomplete(ctx: discord.AutocompleteContext, kind: MetadataField) -> List[str]:
    try:
        values = await ctx.bot.library.metadata_values(kind, ctx.value)
        return metadata_choices(ctx.value, values)
    except Exception as e:
        log.error(f"Error during {kind.value} autocomplete for '{ctx.value}': {e}", exc_info=True)
        return []


async def artist_autocomplete(ctx: discord.AutocompleteContext) -> List[str]:
    return await _metadata_autocomplete(ctx, MetadataField.ARTIST)


async def origin_autocomplete(ctx: discord.AutocompleteContext) -> List[str]:
    return await _metadata_autocomplete(ctx, MetadataField.ORIGIN)


async def tag_autocomplete(ctx: discord.AutocompleteContext) -> List[str]:
    return await _metadata_autocomplete(ctx, MetadataField.TAG)


async def track_autocomplete(ctx: discord.AutocompleteContext) -> List[discord.OptionChoice]:
    try:
        tracks = await ctx.bot.library.matching_tracks(ctx.value)
        return track_choices(ctx.value, tracks)
    except Exception as e:
        log.error(f"Error during track autocomplete for '{ctx.value}': {e}", exc_info=True)
        return []
