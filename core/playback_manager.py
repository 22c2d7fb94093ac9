import discord
import asyncio
import logging
import functools
from collections import defaultdict
from typing import Dict, Optional
from discord.ext import commands

from core.music_types import Track, TrackHandle

log = logging.getLogger('Chester.PlaybackManager')

FFMPEG_OPTIONS = {'options': '-vn'}


class PlaybackManager:
    """
    Owns each guild's current track handle.

    Every read-modify-write of `handles[guild_id]` happens under
    `guild_locks[guild_id]`. Discord calls the `after=` hook of `vc.play()`
    from its audio thread, so that hook only schedules
    `_playback_finished_task` on the event loop, which then takes the lock.
    """
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.handles: Dict[int, TrackHandle] = {}
        self.guild_locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def get_voice_client(self, guild_id: int) -> Optional[discord.VoiceClient]:
        return discord.utils.get(self.bot.voice_clients, guild__id=guild_id)

    def current(self, guild_id: int) -> Optional[TrackHandle]:
        return self.handles.get(guild_id)

    async def ensure_voice_client(
        self,
        interaction: Optional[discord.Interaction],
        target_channel: discord.VoiceChannel,
        action_type: str = "ACTION"
    ) -> Optional[discord.VoiceClient]:
        """
        Connects to (or moves to) the target voice channel.
        Returns the VoiceClient on success, None on failure, in which case the
        reason has already been sent through the interaction if one was given.
        """
        guild = target_channel.guild
        guild_id = guild.id
        current_vc = self.get_voice_client(guild_id)

        if current_vc and current_vc.channel == target_channel:
            log.debug(f"Ensure VC: Already connected to {target_channel.name} in GID:{guild_id}")
            return current_vc

        my_perms = target_channel.permissions_for(guild.me)
        if not my_perms.connect or not my_perms.speak:
            log.warning(f"Ensure VC: Missing permissions to connect/speak in {target_channel.name} (GID:{guild_id})")
            await self._try_respond(interaction, f"❌ I don't have permissions to join or speak in {target_channel.mention}.", ephemeral=True)
            return None

        try:
            if current_vc:
                log.info(f"Ensure VC: Moving from {current_vc.channel.name} to {target_channel.name} (GID:{guild_id}) for {action_type}")
                await current_vc.move_to(target_channel)
                return current_vc
            log.info(f"Ensure VC: Connecting to {target_channel.name} (GID:{guild_id}) for {action_type}")
            return await target_channel.connect(timeout=30.0, reconnect=True)
        except asyncio.TimeoutError:
            log.error(f"Ensure VC: Timeout joining {target_channel.name} (GID:{guild_id})")
            await self._try_respond(interaction, "❌ Timed out trying to connect to the voice channel.", ephemeral=True)
            return None
        except discord.ClientException as e:
            log.error(f"Ensure VC: Discord ClientException joining {target_channel.name} (GID:{guild_id}): {e}")
            msg = "⏳ Already connecting/connected. Please wait." if "already connect" in str(e).lower() else f"❌ Error connecting: {e}"
            await self._try_respond(interaction, msg, ephemeral=True)
            return None

    # --- Playback ---
    def _make_source(self, path: str) -> discord.AudioSource:
        return discord.FFmpegPCMAudio(path, **FFMPEG_OPTIONS)

    def _start(self, vc: discord.VoiceClient, handle: TrackHandle):
        vc.play(self._make_source(handle.path), after=functools.partial(self._playback_finished_callback, handle))

    async def play_track(self, vc: discord.VoiceClient, track: Track, path: str, looping: bool = True) -> TrackHandle:
        """Replaces whatever the guild is playing with `track`. Loops by default."""
        guild_id = vc.guild.id
        async with self.guild_locks[guild_id]:
            previous = self.handles.get(guild_id)
            if previous:
                previous.stopping = True
            if vc.is_playing() or vc.is_paused():
                vc.stop()
            handle = TrackHandle(
                guild_id=guild_id,
                track_id=track.id,
                title=track.track_title,
                artist=track.artist,
                path=path,
                looping=looping,
            )
            self.handles[guild_id] = handle
            self._start(vc, handle)
        log.info(f"PLAY: GID {guild_id} now playing '{track.track_title}' ({track.id}), looping={looping}")
        return handle

    def _playback_finished_callback(self, handle: TrackHandle, error: Optional[Exception]):
        """Runs on discord's audio thread when a source ends."""
        if error:
            log.error(f"Playback error reported for GID {handle.guild_id}: {error}", exc_info=error)
        self.bot.loop.call_soon_threadsafe(
            lambda: self.bot.loop.create_task(self._playback_finished_task(handle, error))
        )

    async def _playback_finished_task(self, handle: TrackHandle, error: Optional[Exception]):
        guild_id = handle.guild_id
        async with self.guild_locks[guild_id]:
            if handle.stopping or self.handles.get(guild_id) is not handle:
                log.debug(f"Finish handler: stale handle for GID {guild_id}, ignoring.")
                return
            vc = self.get_voice_client(guild_id)
            if error or not handle.looping or not vc or not vc.is_connected():
                log.debug(f"Finish handler: '{handle.title}' done in GID {guild_id} (error={error}, looping={handle.looping}).")
                self.handles.pop(guild_id, None)
                return
            log.debug(f"Finish handler: looping '{handle.title}' in GID {guild_id}.")
            try:
                self._start(vc, handle)
            except (discord.ClientException, OSError) as e:
                log.error(f"Finish handler: could not restart '{handle.title}' in GID {guild_id}: {e}", exc_info=True)
                self.handles.pop(guild_id, None)

    async def toggle_loop(self, guild_id: int) -> Optional[bool]:
        """Flips looping. Returns the new state, or None if nothing is playing."""
        async with self.guild_locks[guild_id]:
            handle = self.handles.get(guild_id)
            if handle is None:
                return None
            handle.looping = not handle.looping
            log.info(f"LOOP: GID {guild_id} looping {'enabled' if handle.looping else 'disabled'} for '{handle.title}'")
            return handle.looping

    async def toggle_pause(self, guild_id: int) -> Optional[bool]:
        """Pauses or resumes. Returns True if now paused, False if resumed, None if nothing is playing."""
        async with self.guild_locks[guild_id]:
            handle = self.handles.get(guild_id)
            vc = self.get_voice_client(guild_id)
            if handle is None or vc is None:
                return None
            if vc.is_paused():
                vc.resume()
                handle.paused = False
            else:
                vc.pause()
                handle.paused = True
            log.info(f"PAUSE: GID {guild_id} '{handle.title}' paused={handle.paused}")
            return handle.paused

    def _forget(self, guild_id: int):
        handle = self.handles.pop(guild_id, None)
        if handle:
            handle.stopping = True
            log.info(f"Cleared playback state for GID:{guild_id}")

    async def reset(self, guild_id: int):
        """Drops the guild's handle after an external disconnect."""
        async with self.guild_locks[guild_id]:
            self._forget(guild_id)

    async def leave(self, guild_id: int) -> bool:
        """Stops playback and disconnects. Returns False if not connected."""
        async with self.guild_locks[guild_id]:
            self._forget(guild_id)
            vc = self.get_voice_client(guild_id)
            if vc is None or not vc.is_connected():
                return False
            if vc.is_playing() or vc.is_paused():
                vc.stop()
            await vc.disconnect(force=False)
        log.info(f"Disconnected from voice in GID:{guild_id}.")
        return True

    async def _try_respond(self, interaction: Optional[discord.Interaction], message: Optional[str] = None, **kwargs):
        """Responds to an interaction, tolerating ones that already expired or were answered."""
        if not interaction:
            return
        content = kwargs.pop('content', message)
        is_ephemeral = kwargs.pop('ephemeral', False)
        try:
            if interaction.response.is_done():
                await interaction.followup.send(content=content, ephemeral=is_ephemeral, **kwargs)
            else:
                await interaction.response.send_message(content=content, ephemeral=is_ephemeral, **kwargs)
        except discord.NotFound:
            log.warning(f"Interaction response failed (NotFound): {interaction.id}")
        except discord.HTTPException as e:
            log.warning(f"Interaction response failed (HTTPException {e.status} / {e.code}): {interaction.id}")
