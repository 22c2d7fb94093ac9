# -*- coding: utf-8 -*-
import os
import asyncio
import logging
import contextlib
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

import aiosqlite

import config # Import the config module
from core.music_types import ListMode, LibrarySort, MetadataField, Track

log = logging.getLogger('Chester.Database')

# --- Schema ---
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS artists (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    artist TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS origins (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    origin TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tag TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS tracks (
    id TEXT PRIMARY KEY,
    upload_date TEXT NOT NULL,
    yt_title TEXT NOT NULL,
    yt_channel TEXT NOT NULL DEFAULT '',
    track_title TEXT NOT NULL,
    artist_id INTEGER NOT NULL,
    origin_id INTEGER NOT NULL,
    FOREIGN KEY (artist_id) REFERENCES artists (id) ON DELETE CASCADE,
    FOREIGN KEY (origin_id) REFERENCES origins (id) ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS track_tags (
    track_id TEXT NOT NULL,
    tag_id INTEGER NOT NULL,
    PRIMARY KEY (track_id, tag_id),
    FOREIGN KEY (track_id) REFERENCES tracks (id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id) REFERENCES tags (id) ON DELETE CASCADE
);
"""

# --- Metadata lookups (one fixed statement pair per table) ---
METADATA_SQL: Dict[MetadataField, Dict[str, str]] = {
    MetadataField.ARTIST: {
        "insert": "INSERT OR IGNORE INTO artists (artist) VALUES (?)",
        "select": "SELECT id FROM artists WHERE artist = ?",
        "search": "SELECT DISTINCT artist FROM artists WHERE LOWER(artist) LIKE ? ESCAPE '\\' ORDER BY artist LIMIT ?",
    },
    MetadataField.ORIGIN: {
        "insert": "INSERT OR IGNORE INTO origins (origin) VALUES (?)",
        "select": "SELECT id FROM origins WHERE origin = ?",
        "search": "SELECT DISTINCT origin FROM origins WHERE LOWER(origin) LIKE ? ESCAPE '\\' ORDER BY origin LIMIT ?",
    },
    MetadataField.TAG: {
        "insert": "INSERT OR IGNORE INTO tags (tag) VALUES (?)",
        "select": "SELECT id FROM tags WHERE tag = ?",
        "search": "SELECT DISTINCT tag FROM tags WHERE LOWER(tag) LIKE ? ESCAPE '\\' ORDER BY tag LIMIT ?",
    },
}

# --- Track queries ---
TRACK_SQL = """
SELECT tracks.id, tracks.track_title, artists.artist, origins.origin,
       tracks.upload_date, tracks.yt_title, tracks.yt_channel
FROM tracks
LEFT JOIN artists ON tracks.artist_id = artists.id
LEFT JOIN origins ON tracks.origin_id = origins.id
WHERE tracks.id = ?
"""

TRACK_TAGS_SQL = """
SELECT tags.tag
FROM track_tags
JOIN tags ON track_tags.tag_id = tags.id
WHERE track_tags.track_id = ?
ORDER BY tags.tag
"""

MATCHING_TRACKS_SQL = """
SELECT tracks.id, tracks.track_title, artists.artist, origins.origin,
       tracks.upload_date, tracks.yt_title, tracks.yt_channel,
       GROUP_CONCAT(tags.tag, char(31)) AS tags
FROM tracks
LEFT JOIN track_tags ON tracks.id = track_tags.track_id
LEFT JOIN tags ON track_tags.tag_id = tags.id
LEFT JOIN artists ON tracks.artist_id = artists.id
LEFT JOIN origins ON tracks.origin_id = origins.id
WHERE tracks.id IN (
    SELECT tracks.id
    FROM tracks
    LEFT JOIN track_tags ON tracks.id = track_tags.track_id
    LEFT JOIN tags ON track_tags.tag_id = tags.id
    LEFT JOIN artists ON tracks.artist_id = artists.id
    LEFT JOIN origins ON tracks.origin_id = origins.id
    WHERE LOWER(tracks.track_title) LIKE :needle ESCAPE '\\'
       OR LOWER(artists.artist) LIKE :needle ESCAPE '\\'
       OR LOWER(origins.origin) LIKE :needle ESCAPE '\\'
       OR LOWER(tags.tag) LIKE :needle ESCAPE '\\'
)
GROUP BY tracks.id
ORDER BY tracks.track_title, tracks.id
LIMIT :limit
"""

# --- Library listings ---
FULL_LISTING_SQL: Dict[LibrarySort, str] = {
    LibrarySort.TITLE: """
        SELECT tracks.track_title, artists.artist, origins.origin, GROUP_CONCAT(tags.tag, ', ') AS tags
        FROM tracks
        LEFT JOIN track_tags ON tracks.id = track_tags.track_id
        LEFT JOIN tags ON track_tags.tag_id = tags.id
        LEFT JOIN artists ON tracks.artist_id = artists.id
        LEFT JOIN origins ON tracks.origin_id = origins.id
        GROUP BY tracks.id
        ORDER BY tracks.track_title, artists.artist, origins.origin
    """,
    LibrarySort.ARTIST: """
        SELECT tracks.track_title, artists.artist, origins.origin, GROUP_CONCAT(tags.tag, ', ') AS tags
        FROM tracks
        LEFT JOIN track_tags ON tracks.id = track_tags.track_id
        LEFT JOIN tags ON track_tags.tag_id = tags.id
        LEFT JOIN artists ON tracks.artist_id = artists.id
        LEFT JOIN origins ON tracks.origin_id = origins.id
        GROUP BY tracks.id
        ORDER BY artists.artist, tracks.track_title
    """,
    LibrarySort.ORIGIN: """
        SELECT tracks.track_title, artists.artist, origins.origin, GROUP_CONCAT(tags.tag, ', ') AS tags
        FROM tracks
        LEFT JOIN track_tags ON tracks.id = track_tags.track_id
        LEFT JOIN tags ON track_tags.tag_id = tags.id
        LEFT JOIN artists ON tracks.artist_id = artists.id
        LEFT JOIN origins ON tracks.origin_id = origins.id
        GROUP BY tracks.id
        ORDER BY origins.origin, tracks.track_title
    """,
}

LISTING_SQL: Dict[ListMode, str] = {
    ListMode.TITLE: """
        SELECT track_title
        FROM tracks
        ORDER BY track_title
    """,
    ListMode.ARTIST: """
        SELECT artists.artist, tracks.track_title
        FROM tracks
        LEFT JOIN artists ON tracks.artist_id = artists.id
        ORDER BY artists.artist, tracks.track_title
    """,
    ListMode.ORIGIN: """
        SELECT origins.origin, tracks.track_title
        FROM tracks
        LEFT JOIN origins ON tracks.origin_id = origins.id
        ORDER BY origins.origin, tracks.track_title
    """,
    ListMode.TAGS: """
        SELECT tags.tag, tracks.track_title
        FROM tracks
        LEFT JOIN track_tags ON tracks.id = track_tags.track_id
        LEFT JOIN tags ON track_tags.tag_id = tags.id
        ORDER BY
            CASE WHEN tags.tag IS NULL THEN 1 ELSE 0 END,
            tags.tag,
            tracks.track_title
    """,
}

SEARCH_SQL = """
SELECT tracks.track_title, artists.artist, origins.origin, GROUP_CONCAT(tags.tag, ', ') AS tags
FROM tracks
LEFT JOIN track_tags ON tracks.id = track_tags.track_id
LEFT JOIN tags ON track_tags.tag_id = tags.id
LEFT JOIN artists ON tracks.artist_id = artists.id
LEFT JOIN origins ON tracks.origin_id = origins.id
WHERE tracks.id IN (
    SELECT tracks.id
    FROM tracks
    LEFT JOIN track_tags ON tracks.id = track_tags.track_id
    LEFT JOIN tags ON track_tags.tag_id = tags.id
    LEFT JOIN artists ON tracks.artist_id = artists.id
    LEFT JOIN origins ON tracks.origin_id = origins.id
    WHERE LOWER(tracks.track_title) LIKE :needle ESCAPE '\\'
       OR LOWER(artists.artist) LIKE :needle ESCAPE '\\'
       OR LOWER(origins.origin) LIKE :needle ESCAPE '\\'
       OR LOWER(tags.tag) LIKE :needle ESCAPE '\\'
)
GROUP BY tracks.id
ORDER BY tracks.track_title, artists.artist
"""

_TAG_SEPARATOR = "\x1f" # char(31), never typed by users


class LibraryError(Exception):
    """Base class for library lookups that can't be satisfied."""


class TrackNotFound(LibraryError):
    def __init__(self, track_id: str):
        self.track_id = track_id
        super().__init__(f"The track `{track_id}` could not be found in the database.")


class TrackExists(LibraryError):
    def __init__(self, track_id: str, title: str):
        self.track_id = track_id
        self.title = title
        super().__init__(f"This track exists in the database already as `{title}`.")


def like_pattern(needle: Optional[str]) -> str:
    """Case-folded `%needle%` pattern with LIKE wildcards escaped."""
    escaped = (needle or "").lower().replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


def _text(value: Optional[Any], default: str = "") -> str:
    return default if value is None else str(value)


def _track_from_row(row: Sequence[Any], tags: Optional[List[str]] = None) -> Track:
    return Track(
        id=row[0],
        track_title=_text(row[1]),
        artist=_text(row[2], config.DEFAULT_ARTIST),
        origin=_text(row[3], config.DEFAULT_ORIGIN),
        upload_date=_text(row[4]),
        yt_title=_text(row[5]),
        yt_channel=_text(row[6]),
        tags=tags or [],
    )


class LibraryDatabase:
    """
    The track library, stored in SQLite and accessed through one aiosqlite
    connection. Reads go straight to the connection; every write runs as a
    single transaction under `_write_lock`.
    """
    def __init__(self, path: str = config.DATABASE_PATH):
        self.path = path
        self._conn: Optional[aiosqlite.Connection] = None
        self._write_lock = asyncio.Lock()

    # --- Connection lifecycle ---
    async def connect(self):
        if self._conn is not None:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._conn = await aiosqlite.connect(self.path)
        await self._conn.execute("PRAGMA foreign_keys = ON")
        await self._conn.executescript(SCHEMA_SQL)
        await self._conn.execute(METADATA_SQL[MetadataField.ARTIST]["insert"], (config.DEFAULT_ARTIST,))
        await self._conn.execute(METADATA_SQL[MetadataField.ORIGIN]["insert"], (config.DEFAULT_ORIGIN,))
        await self._conn.commit()
        log.info(f"Opened library database at {self.path}")

    async def close(self):
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            log.info("Closed library database.")

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("LibraryDatabase.connect() must be awaited before use")
        return self._conn

    @contextlib.asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        async with self._write_lock:
            try:
                yield self.conn
            except Exception:
                await self.conn.rollback()
                raise
            else:
                await self.conn.commit()

    async def _fetch_all(self, sql: str, params: Any = ()) -> List[Tuple[Any, ...]]:
        async with self.conn.execute(sql, params) as cursor:
            return list(await cursor.fetchall())

    async def _fetch_one(self, sql: str, params: Any = ()) -> Optional[Tuple[Any, ...]]:
        async with self.conn.execute(sql, params) as cursor:
            return await cursor.fetchone()

    async def _get_id_or_insert(self, conn: aiosqlite.Connection, kind: MetadataField, value: str) -> int:
        statements = METADATA_SQL[kind]
        await conn.execute(statements["insert"], (value,))
        async with conn.execute(statements["select"], (value,)) as cursor:
            row = await cursor.fetchone()
        return row[0]

    # --- Tracks ---
    async def get_track(self, track_id: str) -> Optional[Track]:
        row = await self._fetch_one(TRACK_SQL, (track_id,))
        if row is None:
            return None
        tags = [tag for (tag,) in await self._fetch_all(TRACK_TAGS_SQL, (track_id,))]
        return _track_from_row(row, tags)

    async def require_track(self, track_id: str) -> Track:
        track = await self.get_track(track_id)
        if track is None:
            raise TrackNotFound(track_id)
        return track

    async def all_track_ids(self) -> List[str]:
        return [track_id for (track_id,) in await self._fetch_all("SELECT id FROM tracks ORDER BY id")]

    async def add_track(self, track: Track) -> Track:
        """Inserts a downloaded track. Raises TrackExists if the id is already stored."""
        async with self._transaction() as conn:
            async with conn.execute("SELECT track_title FROM tracks WHERE id = ?", (track.id,)) as cursor:
                existing = await cursor.fetchone()
            if existing is not None:
                raise TrackExists(track.id, existing[0])
            artist_id = await self._get_id_or_insert(conn, MetadataField.ARTIST, track.artist)
            origin_id = await self._get_id_or_insert(conn, MetadataField.ORIGIN, track.origin)
            await conn.execute(
                "INSERT INTO tracks (id, upload_date, yt_title, yt_channel, track_title, artist_id, origin_id) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (track.id, track.upload_date, track.yt_title, track.yt_channel, track.track_title, artist_id, origin_id),
            )
            for tag in track.tags:
                tag_id = await self._get_id_or_insert(conn, MetadataField.TAG, tag)
                await conn.execute("INSERT OR IGNORE INTO track_tags (track_id, tag_id) VALUES (?, ?)", (track.id, tag_id))
        log.info(f"Added track '{track.track_title}' ({track.id}) to the library.")
        return await self.require_track(track.id)

    async def add_tag(self, track_id: str, tag: str) -> Track:
        await self.require_track(track_id)
        async with self._transaction() as conn:
            tag_id = await self._get_id_or_insert(conn, MetadataField.TAG, tag)
            await conn.execute("INSERT OR IGNORE INTO track_tags (track_id, tag_id) VALUES (?, ?)", (track_id, tag_id))
        log.info(f"Tagged track {track_id} with '{tag}'.")
        return await self.require_track(track_id)

    async def reset_tags(self, track_id: str) -> Track:
        await self.require_track(track_id)
        async with self._transaction() as conn:
            await conn.execute("DELETE FROM track_tags WHERE track_id = ?", (track_id,))
        log.info(f"Reset tags of track {track_id}.")
        return await self.require_track(track_id)

    async def set_title(self, track_id: str, new_title: str) -> Tuple[Track, str]:
        """Renames a track. Returns the updated track and its previous title."""
        old_title = (await self.require_track(track_id)).track_title
        async with self._transaction() as conn:
            await conn.execute("UPDATE tracks SET track_title = ? WHERE id = ?", (new_title, track_id))
        log.info(f"Renamed track {track_id} from '{old_title}' to '{new_title}'.")
        return await self.require_track(track_id), old_title

    async def set_artist(self, track_id: str, new_artist: str) -> Track:
        await self.require_track(track_id)
        async with self._transaction() as conn:
            artist_id = await self._get_id_or_insert(conn, MetadataField.ARTIST, new_artist)
            await conn.execute("UPDATE tracks SET artist_id = ? WHERE id = ?", (artist_id, track_id))
        log.info(f"Set artist of track {track_id} to '{new_artist}'.")
        return await self.require_track(track_id)

    async def set_origin(self, track_id: str, new_origin: str) -> Track:
        await self.require_track(track_id)
        async with self._transaction() as conn:
            origin_id = await self._get_id_or_insert(conn, MetadataField.ORIGIN, new_origin)
            await conn.execute("UPDATE tracks SET origin_id = ? WHERE id = ?", (origin_id, track_id))
        log.info(f"Set origin of track {track_id} to '{new_origin}'.")
        return await self.require_track(track_id)

    # --- Listings ---
    async def fetch_listing(self, mode: ListMode, sort: LibrarySort = LibrarySort.TITLE) -> List[List[str]]:
        """Rows for a library listing, with missing values replaced by their display labels."""
        if mode is ListMode.FULL:
            rows = await self._fetch_all(FULL_LISTING_SQL[sort])
            return [self._full_row(row) for row in rows]
        rows = await self._fetch_all(LISTING_SQL[mode])
        if mode is ListMode.TAGS:
            return [[_text(tag, config.NO_TAG_LABEL), _text(title)] for tag, title in rows]
        return [[_text(value) for value in row] for row in rows]

    async def search_listing(self, query: str) -> List[List[str]]:
        """Full-listing rows of every track matching `query` in its title, artist, origin or tags."""
        rows = await self._fetch_all(SEARCH_SQL, {"needle": like_pattern(query)})
        return [self._full_row(row) for row in rows]

    @staticmethod
    def _full_row(row: Sequence[Any]) -> List[str]:
        title, artist, origin, tags = row
        return [_text(title), _text(artist), _text(origin), _text(tags, config.NO_TAGS_LABEL)]

    # --- Autocomplete sources ---
    async def metadata_values(self, kind: MetadataField, needle: Optional[str],
                              limit: int = config.AUTOCOMPLETE_MAX_CHOICES) -> List[str]:
        rows = await self._fetch_all(METADATA_SQL[kind]["search"], (like_pattern(needle), limit))
        return [value for (value,) in rows]

    async def matching_tracks(self, needle: Optional[str],
                              limit: int = config.AUTOCOMPLETE_MAX_CHOICES) -> List[Track]:
        rows = await self._fetch_all(MATCHING_TRACKS_SQL, {"needle": like_pattern(needle), "limit": limit})
        tracks = []
        for row in rows:
            tags = sorted(row[7].split(_TAG_SEPARATOR)) if row[7] else []
            tracks.append(_track_from_row(row, tags))
        return tracks

    # --- Legacy import ---
    async def import_legacy_record(self, record: Dict[str, Any]) -> bool:
        """
        Stores one record from the old per-track JSON library (see
        file_helpers.load_legacy_json). Existing tracks and tags are left
        untouched. Returns True if the track was new.
        """
        async with self._transaction() as conn:
            artist_id = await self._get_id_or_insert(conn, MetadataField.ARTIST, record["track_artist"])
            origin_id = await self._get_id_or_insert(conn, MetadataField.ORIGIN, record["track_origin"])
            cursor = await conn.execute(
                "INSERT OR IGNORE INTO tracks (id, upload_date, yt_title, track_title, artist_id, origin_id) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (record["id"], record["upload_date"], record["yt_title"], record["track_title"], artist_id, origin_id),
            )
            inserted = cursor.rowcount == 1
            await cursor.close()
            for tag in record.get("tags", []):
                tag_id = await self._get_id_or_insert(conn, MetadataField.TAG, tag)
                await conn.execute("INSERT OR IGNORE INTO track_tags (track_id, tag_id) VALUES (?, ?)", (record["id"], tag_id))
        if inserted:
            log.info(f"Imported legacy track '{record['track_title']}' ({record['id']}).")
        else:
            log.debug(f"Legacy track {record['id']} already present, tags merged.")
        return inserted
