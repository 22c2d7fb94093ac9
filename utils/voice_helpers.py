# -*- coding: utf-8 -*-
import discord
import logging
from typing import Optional, Union

log = logging.getLogger('Chester.VoiceHelpers')


class NotInVoiceChannel(Exception):
    """The invoking member isn't connected to a voice channel."""
    def __init__(self, message: str = "The user is not in a voice channel."):
        super().__init__(message)


VoiceChannelType = Union[discord.VoiceChannel, discord.StageChannel]


def get_member_voice_channel(member: Optional[discord.abc.User]) -> Optional[VoiceChannelType]:
    """Returns the voice channel the member is in, if any."""
    voice_state = getattr(member, 'voice', None)
    if not voice_state or not voice_state.channel:
        return None
    return voice_state.channel


def require_voice_channel(member: Optional[discord.abc.User]) -> VoiceChannelType:
    channel = get_member_voice_channel(member)
    if channel is None:
        log.debug(f"Voice channel required but {getattr(member, 'name', 'unknown member')} isn't in one.")
        raise NotInVoiceChannel()
    return channel

