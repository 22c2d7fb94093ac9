# -*- coding: utf-8 -*-
import asyncio
import json

import migrate_json
from data_manager import LibraryDatabase


def _write(path, record):
    path.write_text(json.dumps(record), encoding="utf-8")
    return str(path)


def test_migrate_imports_files(tmp_path):
    db = str(tmp_path / "library.sqlite3")
    first = _write(tmp_path / "one.json", {"id": "one0001", "track_title": "One", "track_artist": "A", "tags": ["x"]})
    second = _write(tmp_path / "two.json", {"id": "two0001", "yt_title": "Two upload"})

    assert migrate_json.main([db, first, second]) == 0
    assert migrate_json.main([db, first]) == 0

    async def read():
        library = LibraryDatabase(db)
        await library.connect()
        try:
            return await library.get_track("one0001"), await library.get_track("two0001")
        finally:
            await library.close()

    one, two = asyncio.run(read())
    assert (one.track_title, one.artist, one.tags) == ("One", "A", ["x"])
    assert two.track_title == "Two upload"


def test_migrate_reports_unreadable_files(tmp_path):
    db = str(tmp_path / "library.sqlite3")
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    good = _write(tmp_path / "good.json", {"id": "good001"})

    counts = asyncio.run(migrate_json.migrate(db, [str(broken), good, str(tmp_path / "missing.json")]))
    assert counts == (1, 0, 2)
    assert migrate_json.main([db, str(broken)]) == 1
