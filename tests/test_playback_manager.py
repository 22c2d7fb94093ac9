# -*- coding: utf-8 -*-
import asyncio
from types import SimpleNamespace

from core.music_types import Track
from core.playback_manager import PlaybackManager

GUILD_ID = 1234


class FakeVoiceClient:
    def __init__(self, guild_id=GUILD_ID):
        self.guild = SimpleNamespace(id=guild_id)
        self.sources = []
        self.after = None
        self.connected = True
        self._playing = False
        self._paused = False

    def play(self, source, after=None):
        self.sources.append(source)
        self.after = after
        self._playing = True
        self._paused = False

    def stop(self):
        self._playing = False
        self._paused = False

    def pause(self):
        self._paused = True

    def resume(self):
        self._paused = False

    def is_playing(self):
        return self._playing and not self._paused

    def is_paused(self):
        return self._paused

    def is_connected(self):
        return self.connected

    async def disconnect(self, force=False):
        self.connected = False


def make_manager(vc):
    bot = SimpleNamespace(voice_clients=[vc], loop=asyncio.get_running_loop())
    manager = PlaybackManager(bot)
    manager._make_source = lambda path: f"source:{path}"
    return manager


def run(scenario):
    return asyncio.run(scenario())


ZELDA = Track(id="zelda01", track_title="Zelda Theme", artist="Koji Kondo")
MARIO = Track(id="mario01", track_title="Overworld", artist="Koji Kondo")


def test_play_track_starts_looping_handle():
    async def scenario():
        vc = FakeVoiceClient()
        manager = make_manager(vc)
        handle = await manager.play_track(vc, ZELDA, "audio/zelda01.mp3")
        return vc, manager, handle

    vc, manager, handle = run(scenario)
    assert handle.looping
    assert manager.current(GUILD_ID) is handle
    assert vc.sources == ["source:audio/zelda01.mp3"]


def test_finished_track_restarts_while_looping():
    async def scenario():
        vc = FakeVoiceClient()
        manager = make_manager(vc)
        handle = await manager.play_track(vc, ZELDA, "audio/zelda01.mp3")
        await manager._playback_finished_task(handle, None)
        return vc, manager, handle

    vc, manager, handle = run(scenario)
    assert len(vc.sources) == 2
    assert manager.current(GUILD_ID) is handle


def test_finished_track_is_dropped_when_not_looping():
    async def scenario():
        vc = FakeVoiceClient()
        manager = make_manager(vc)
        handle = await manager.play_track(vc, ZELDA, "audio/zelda01.mp3")
        looping = await manager.toggle_loop(GUILD_ID)
        await manager._playback_finished_task(handle, None)
        return vc, manager, looping

    vc, manager, looping = run(scenario)
    assert looping is False
    assert len(vc.sources) == 1
    assert manager.current(GUILD_ID) is None


def test_replaced_track_callback_is_ignored():
    async def scenario():
        vc = FakeVoiceClient()
        manager = make_manager(vc)
        first = await manager.play_track(vc, ZELDA, "audio/zelda01.mp3")
        second = await manager.play_track(vc, MARIO, "audio/mario01.mp3")
        await manager._playback_finished_task(first, None)
        return vc, manager, first, second

    vc, manager, first, second = run(scenario)
    assert first.stopping
    assert manager.current(GUILD_ID) is second
    assert vc.sources == ["source:audio/zelda01.mp3", "source:audio/mario01.mp3"]


def test_audio_thread_callback_is_scheduled_on_loop():
    async def scenario():
        vc = FakeVoiceClient()
        manager = make_manager(vc)
        await manager.play_track(vc, ZELDA, "audio/zelda01.mp3")
        vc.after(None)
        for _ in range(5):
            await asyncio.sleep(0)
        return vc

    vc = run(scenario)
    assert len(vc.sources) == 2


def test_toggle_pause_and_nothing_playing():
    async def scenario():
        vc = FakeVoiceClient()
        manager = make_manager(vc)
        idle = await manager.toggle_pause(GUILD_ID)
        idle_loop = await manager.toggle_loop(GUILD_ID)
        await manager.play_track(vc, ZELDA, "audio/zelda01.mp3")
        paused = await manager.toggle_pause(GUILD_ID)
        resumed = await manager.toggle_pause(GUILD_ID)
        return idle, idle_loop, paused, resumed

    assert run(scenario) == (None, None, True, False)


def test_leave_disconnects_and_forgets():
    async def scenario():
        vc = FakeVoiceClient()
        manager = make_manager(vc)
        handle = await manager.play_track(vc, ZELDA, "audio/zelda01.mp3")
        left = await manager.leave(GUILD_ID)
        left_again = await manager.leave(GUILD_ID)
        return vc, manager, handle, left, left_again

    vc, manager, handle, left, left_again = run(scenario)
    assert (left, left_again) == (True, False)
    assert not vc.connected
    assert handle.stopping
    assert manager.current(GUILD_ID) is None


def test_reset_after_external_disconnect():
    async def scenario():
        vc = FakeVoiceClient()
        manager = make_manager(vc)
        handle = await manager.play_track(vc, ZELDA, "audio/zelda01.mp3")
        await manager.reset(GUILD_ID)
        await manager._playback_finished_task(handle, None)
        return vc, manager

    vc, manager = run(scenario)
    assert manager.current(GUILD_ID) is None
    assert len(vc.sources) == 1
