# -*- coding: utf-8 -*-
import asyncio

import pytest

import config
from core.music_types import LibrarySort, ListMode, MetadataField, Track
from data_manager import LibraryDatabase, TrackExists, TrackNotFound, like_pattern


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "database" / "library.sqlite3")


def run_with_library(db_path, scenario):
    """Opens a library, runs `scenario(library)` and closes it again."""
    async def runner():
        library = LibraryDatabase(db_path)
        await library.connect()
        try:
            return await scenario(library)
        finally:
            await library.close()
    return asyncio.run(runner())


async def _seed(library):
    await library.add_track(Track(id="zelda01", track_title="Zelda Theme", artist="Koji Kondo", origin="Zelda", tags=["nintendo"]))
    await library.add_track(Track(id="mario01", track_title="Overworld", artist="Koji Kondo", origin="Mario"))
    await library.add_track(Track(id="ff00001", track_title="Prelude", artist="Nobuo Uematsu", origin="Final Fantasy", tags=["rpg", "calm"]))


def test_like_pattern_escapes_wildcards():
    assert like_pattern("50%_A\\") == "%50\\%\\_a\\\\%"
    assert like_pattern(None) == "%%"


def test_connect_creates_directory_and_defaults(db_path):
    async def scenario(library):
        return await library.metadata_values(MetadataField.ARTIST, "")

    assert run_with_library(db_path, scenario) == [config.DEFAULT_ARTIST]


def test_add_and_get_track(db_path):
    async def scenario(library):
        stored = await library.add_track(Track(id="abc123", track_title="Song", upload_date="20200101", yt_title="Song (Official)", yt_channel="Chan", tags=["b", "a"]))
        missing = await library.get_track("nope")
        return stored, missing

    stored, missing = run_with_library(db_path, scenario)
    assert stored.track_title == "Song"
    assert stored.artist == config.DEFAULT_ARTIST
    assert stored.origin == config.DEFAULT_ORIGIN
    assert stored.yt_channel == "Chan"
    assert stored.tags == ["a", "b"]
    assert missing is None


def test_add_duplicate_track_raises(db_path):
    async def scenario(library):
        await library.add_track(Track(id="abc123", track_title="First"))
        await library.add_track(Track(id="abc123", track_title="Second"))

    with pytest.raises(TrackExists) as excinfo:
        run_with_library(db_path, scenario)
    assert str(excinfo.value) == "This track exists in the database already as `First`."


def test_unknown_track_raises(db_path):
    async def scenario(library):
        await library.add_tag("ghost", "tag")

    with pytest.raises(TrackNotFound) as excinfo:
        run_with_library(db_path, scenario)
    assert str(excinfo.value) == "The track `ghost` could not be found in the database."


def test_tags_are_idempotent_and_resettable(db_path):
    async def scenario(library):
        await library.add_track(Track(id="abc123", track_title="Song"))
        await library.add_tag("abc123", "chill")
        tagged = await library.add_tag("abc123", "chill")
        reset = await library.reset_tags("abc123")
        tag_values = await library.metadata_values(MetadataField.TAG, "")
        return tagged, reset, tag_values

    tagged, reset, tag_values = run_with_library(db_path, scenario)
    assert tagged.tags == ["chill"]
    assert reset.tags == []
    assert tag_values == ["chill"]


def test_set_metadata(db_path):
    async def scenario(library):
        await library.add_track(Track(id="abc123", track_title="Old"))
        renamed, old_title = await library.set_title("abc123", "New")
        await library.set_artist("abc123", "Someone")
        updated = await library.set_origin("abc123", "Somewhere")
        artists = await library.metadata_values(MetadataField.ARTIST, "some")
        return renamed, old_title, updated, artists

    renamed, old_title, updated, artists = run_with_library(db_path, scenario)
    assert old_title == "Old"
    assert renamed.track_title == "New"
    assert (updated.artist, updated.origin) == ("Someone", "Somewhere")
    assert artists == ["Someone"]


def test_full_listing_sorts(db_path):
    async def scenario(library):
        await _seed(library)
        by_title = await library.fetch_listing(ListMode.FULL)
        by_origin = await library.fetch_listing(ListMode.FULL, LibrarySort.ORIGIN)
        by_artist = await library.fetch_listing(ListMode.FULL, LibrarySort.ARTIST)
        return by_title, by_origin, by_artist

    by_title, by_origin, by_artist = run_with_library(db_path, scenario)
    assert [row[0] for row in by_title] == ["Overworld", "Prelude", "Zelda Theme"]
    assert [row[2] for row in by_origin] == ["Final Fantasy", "Mario", "Zelda"]
    assert [row[1] for row in by_artist] == ["Koji Kondo", "Koji Kondo", "Nobuo Uematsu"]
    overworld = by_title[0]
    assert overworld == ["Overworld", "Koji Kondo", "Mario", config.NO_TAGS_LABEL]
    assert sorted(by_title[1][3].split(", ")) == ["calm", "rpg"]


def test_focused_listings(db_path):
    async def scenario(library):
        await _seed(library)
        return (
            await library.fetch_listing(ListMode.TITLE),
            await library.fetch_listing(ListMode.ARTIST),
            await library.fetch_listing(ListMode.TAGS),
        )

    titles, artists, tags = run_with_library(db_path, scenario)
    assert titles == [["Overworld"], ["Prelude"], ["Zelda Theme"]]
    assert artists[0] == ["Koji Kondo", "Overworld"]
    assert tags == [
        ["calm", "Prelude"],
        ["nintendo", "Zelda Theme"],
        ["rpg", "Prelude"],
        [config.NO_TAG_LABEL, "Overworld"],
    ]


def test_search_listing_matches_any_field(db_path):
    async def scenario(library):
        await _seed(library)
        await library.add_track(Track(id="pct0001", track_title="100% Pure"))
        return (
            await library.search_listing("kondo"),
            await library.search_listing("RPG"),
            await library.search_listing("%"),
        )

    by_artist, by_tag, by_percent = run_with_library(db_path, scenario)
    assert [row[0] for row in by_artist] == ["Overworld", "Zelda Theme"]
    assert [row[0] for row in by_tag] == ["Prelude"]
    assert [row[0] for row in by_percent] == ["100% Pure"]


def test_matching_tracks_carry_all_tags(db_path):
    async def scenario(library):
        await _seed(library)
        return await library.matching_tracks("calm")

    tracks = run_with_library(db_path, scenario)
    assert [t.id for t in tracks] == ["ff00001"]
    assert tracks[0].tags == ["calm", "rpg"]


def test_matching_tracks_limit(db_path):
    async def scenario(library):
        for n in range(30):
            await library.add_track(Track(id=f"id{n:05d}", track_title=f"Track {n:02d}"))
        return await library.matching_tracks("", limit=25)

    assert len(run_with_library(db_path, scenario)) == 25


def test_import_legacy_record(db_path):
    record = {
        "id": "legacy1",
        "upload_date": "20190101",
        "yt_title": "Old Upload",
        "track_title": "Old Song",
        "track_artist": "Old Artist",
        "track_origin": "Old Game",
        "tags": ["retro"],
    }

    async def scenario(library):
        first = await library.import_legacy_record(record)
        second = await library.import_legacy_record(dict(record, track_title="Changed", tags=["retro", "new"]))
        return first, second, await library.get_track("legacy1")

    first, second, track = run_with_library(db_path, scenario)
    assert (first, second) == (True, False)
    assert track.track_title == "Old Song"
    assert track.artist == "Old Artist"
    assert track.tags == ["new", "retro"]


def test_library_persists_between_connections(db_path):
    async def write(library):
        await library.add_track(Track(id="keep001", track_title="Kept"))

    async def read(library):
        return await library.all_track_ids()

    run_with_library(db_path, write)
    assert run_with_library(db_path, read) == ["keep001"]


def test_use_before_connect_raises(db_path):
    with pytest.raises(RuntimeError):
        LibraryDatabase(db_path).conn
