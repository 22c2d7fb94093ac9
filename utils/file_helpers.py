# -*- coding: utf-8 -*-
import os
import re
import json
import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse, parse_qs

import config

log = logging.getLogger('Chester.Utils.FileHelpers')

YOUTUBE_HOSTS = ("www.youtube.com", "youtube.com", "m.youtube.com", "music.youtube.com")
SHORT_LINK_HOSTS = ("youtu.be",)
PATH_ID_MARKERS = ("embed", "shorts", "live", "v")
VIDEO_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


def ensure_dir(dir_path: str):
    """Creates a directory if it doesn't exist."""
    if dir_path and not os.path.exists(dir_path):
        try:
            os.makedirs(dir_path)
            log.info(f"Created directory: {dir_path}")
        except OSError as e:
            log.critical(f"CRITICAL: Could not create directory '{dir_path}': {e}", exc_info=True)
            raise RuntimeError(f"Failed to create essential directory: {dir_path}") from e


def get_youtube_id(link: str) -> Optional[str]:
    """
    Extracts the video id from a YouTube link, or None if it isn't one.
    Understands youtu.be short links, watch?v= links and /embed/, /shorts/,
    /live/ paths on the youtube.com hosts.
    """
    if not isinstance(link, str):
        return None
    try:
        url = urlparse(link.strip())
    except ValueError:
        return None
    host = (url.hostname or "").lower()
    segments = [s for s in url.path.split('/') if s]

    video_id: Optional[str] = None
    if host in SHORT_LINK_HOSTS:
        video_id = segments[0] if segments else None
    elif host in YOUTUBE_HOSTS:
        query_ids = parse_qs(url.query).get('v')
        if query_ids and query_ids[0]:
            video_id = query_ids[0]
        else:
            for marker in PATH_ID_MARKERS:
                if marker in segments:
                    position = segments.index(marker)
                    if position + 1 < len(segments):
                        video_id = segments[position + 1]
                        break

    # The id becomes a file name, so reject anything that isn't a plain id
    if video_id and VIDEO_ID_PATTERN.match(video_id):
        return video_id
    if video_id:
        log.warning(f"Rejected suspicious video id '{video_id}' from link '{link}'")
    return None


def track_audio_path(video_id: str, audio_dir: Optional[str] = None) -> str:
    return os.path.join(audio_dir or config.AUDIO_DIR, f"{video_id}.{config.AUDIO_CODEC}")


def audio_exists(video_id: str, audio_dir: Optional[str] = None) -> bool:
    return os.path.isfile(track_audio_path(video_id, audio_dir))


def missing_audio(video_ids: Iterable[str], audio_dir: Optional[str] = None) -> List[str]:
    """The ids whose audio file is not on disk, in input order."""
    return [video_id for video_id in video_ids if not audio_exists(video_id, audio_dir)]


def slim_video_info(info: Dict[str, Any]) -> Dict[str, str]:
    """Keeps the yt-dlp metadata the library stores."""
    return {
        "id": str(info.get("id") or ""),
        "upload_date": str(info.get("upload_date") or "Unknown Date"),
        "title": str(info.get("title") or "Unknown Title"),
        "channel": str(info.get("channel") or info.get("uploader") or ""),
    }


def load_legacy_json(path: str) -> Dict[str, Any]:
    """
    Reads one per-track JSON file from the pre-database library.
    Raises ValueError when the file isn't a track record.
    """
    with open(path, 'r', encoding='utf-8') as f:
        record = json.load(f)
    if not isinstance(record, dict) or not record.get("id"):
        raise ValueError(f"{path} is not a track record (missing 'id')")
    tags = record.get("tags") or []
    if not isinstance(tags, list):
        raise ValueError(f"{path} has a malformed 'tags' field")
    return {
        "id": str(record["id"]),
        "upload_date": str(record.get("upload_date") or "Unknown Date"),
        "yt_title": str(record.get("yt_title") or ""),
        "track_title": str(record.get("track_title") or record.get("yt_title") or "Unknown Title"),
        "track_artist": str(record.get("track_artist") or config.DEFAULT_ARTIST),
        "track_origin": str(record.get("track_origin") or config.DEFAULT_ORIGIN),
        "tags": [str(tag) for tag in tags if tag],
    }
