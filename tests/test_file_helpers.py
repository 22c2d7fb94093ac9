# -*- coding: utf-8 -*-
import json

import pytest

import config
from utils import file_helpers


@pytest.mark.parametrize("link", [
    "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    "https://youtube.com/watch?v=dQw4w9WgXcQ&list=PL123&index=2",
    "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
    "https://music.youtube.com/watch?v=dQw4w9WgXcQ",
    "https://youtu.be/dQw4w9WgXcQ?t=42",
    "https://www.youtube.com/embed/dQw4w9WgXcQ",
    "https://www.youtube.com/shorts/dQw4w9WgXcQ",
    "  https://www.youtube.com/watch?v=dQw4w9WgXcQ  ",
])
def test_get_youtube_id(link):
    assert file_helpers.get_youtube_id(link) == "dQw4w9WgXcQ"


@pytest.mark.parametrize("link", [
    "https://example.com/watch?v=dQw4w9WgXcQ",
    "not a link",
    "https://www.youtube.com/",
    "https://youtu.be/",
    "https://youtu.be/../secrets",
    "https://www.youtube.com/watch?v=abc/../../x",
    None,
])
def test_get_youtube_id_rejects(link):
    assert file_helpers.get_youtube_id(link) is None


def test_track_audio_path_and_missing(tmp_path):
    (tmp_path / "have01.mp3").write_bytes(b"")
    assert file_helpers.track_audio_path("have01", str(tmp_path)).endswith("have01.mp3")
    assert file_helpers.audio_exists("have01", str(tmp_path))
    assert file_helpers.missing_audio(["have01", "gone01", "gone02"], str(tmp_path)) == ["gone01", "gone02"]


def test_slim_video_info():
    slim = file_helpers.slim_video_info({"id": "abc", "title": "Song", "uploader": "Uploader", "formats": [1, 2]})
    assert slim == {"id": "abc", "upload_date": "Unknown Date", "title": "Song", "channel": "Uploader"}


def test_slim_video_info_prefers_channel():
    slim = file_helpers.slim_video_info({"id": "abc", "upload_date": "20200101", "channel": "Chan", "uploader": "Up"})
    assert slim["channel"] == "Chan"
    assert slim["title"] == "Unknown Title"


def test_load_legacy_json(tmp_path):
    path = tmp_path / "abc.json"
    path.write_text(json.dumps({"id": "abc", "yt_title": "Upload", "tags": ["retro", ""]}), encoding="utf-8")
    record = file_helpers.load_legacy_json(str(path))
    assert record["track_title"] == "Upload"
    assert record["track_artist"] == config.DEFAULT_ARTIST
    assert record["track_origin"] == config.DEFAULT_ORIGIN
    assert record["tags"] == ["retro"]


@pytest.mark.parametrize("content", [
    {"title": "no id"},
    {"id": "abc", "tags": "retro"},
    ["not", "a", "record"],
])
def test_load_legacy_json_rejects(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(content), encoding="utf-8")
    with pytest.raises(ValueError):
        file_helpers.load_legacy_json(str(path))


def test_ensure_dir(tmp_path):
    target = tmp_path / "a" / "b"
    file_helpers.ensure_dir(str(target))
    assert target.is_dir()
    file_helpers.ensure_dir(str(target))
