# -*- coding: utf-8 -*-
import os
import asyncio
import logging
from functools import partial
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yt_dlp

import config
from utils import audio_processor, file_helpers

log = logging.getLogger('Chester.Downloader')


class DownloadFailed(Exception):
    """yt-dlp couldn't produce the audio file for a video."""


def ytdl_options(audio_dir: Optional[str] = None) -> Dict[str, Any]:
    """yt-dlp options writing `<audio_dir>/<video id>.mp3`."""
    return {
        'format': 'bestaudio/best',
        'outtmpl': os.path.join(audio_dir or config.AUDIO_DIR, '%(id)s.%(ext)s'),
        'noplaylist': True,
        'nocheckcertificate': True,
        'ignoreerrors': False,
        'logtostderr': False,
        'quiet': True,
        'no_warnings': True,
        'noprogress': True,
        'postprocessors': [{
            'key': 'FFmpegExtractAudio',
            'preferredcodec': config.AUDIO_CODEC,
            'preferredquality': '192',
        }],
    }


def _download_sync(url: str, opts: Dict[str, Any]) -> Dict[str, Any]:
    log.debug(f"Download sync starting for '{url}' in executor thread.")
    with yt_dlp.YoutubeDL(opts) as ydl:
        info = ydl.extract_info(url, download=True)
        return ydl.sanitize_info(info) if info else {}


async def download_audio(url: str, video_id: str, normalize: Optional[bool] = None) -> Dict[str, str]:
    """
    Downloads a video's audio into the library folder and returns its slimmed
    metadata (id, upload_date, title, channel). Raises DownloadFailed.
    """
    normalize = config.NORMALIZE_DOWNLOADS if normalize is None else normalize
    loop = asyncio.get_running_loop()
    log.info(f"Attempting download for {video_id} ({url})")
    try:
        info = await loop.run_in_executor(None, partial(_download_sync, url, ytdl_options()))
    except yt_dlp.utils.DownloadError as e:
        log.error(f"yt-dlp DownloadError during download of {video_id}: {e}")
        raise DownloadFailed(f"yt-dlp failed with error: {e}") from e

    path = file_helpers.track_audio_path(video_id)
    if not os.path.isfile(path):
        log.error(f"Download finished for {video_id} but '{path}' doesn't exist.")
        raise DownloadFailed(f"yt-dlp finished but `{os.path.basename(path)}` was not written.")

    if normalize:
        try:
            await loop.run_in_executor(None, audio_processor.normalize_file, path)
        except Exception as e:
            # The raw download is still playable
            log.warning(f"Normalization failed for {video_id}, keeping the raw download: {e}", exc_info=True)

    slim = file_helpers.slim_video_info(info)
    slim["id"] = slim["id"] or video_id
    log.info(f"Download successful: '{slim['title'][:70]}' -> '{os.path.basename(path)}'")
    return slim


async def fetch_missing(video_ids: Iterable[str], jobs: int = config.DOWNLOAD_PARALLEL_JOBS) -> Tuple[List[str], List[str]]:
    """
    Re-downloads every id whose audio file is missing, at most `jobs` at a time.
    Returns (downloaded ids, failed ids).
    """
    missing = file_helpers.missing_audio(video_ids)
    semaphore = asyncio.Semaphore(max(jobs, 1))
    downloaded: List[str] = []
    failed: List[str] = []

    async def _fetch_one(video_id: str):
        async with semaphore:
            url = config.YOUTUBE_WATCH_URL.format(video_id=video_id)
            try:
                await download_audio(url, video_id)
                downloaded.append(video_id)
            except DownloadFailed as e:
                log.warning(f"Failed to download {video_id}: {e}")
                failed.append(video_id)

    log.info(f"Fetching {len(missing)} missing track(s) with {max(jobs, 1)} parallel job(s).")
    await asyncio.gather(*(_fetch_one(video_id) for video_id in missing))
    return downloaded, failed
