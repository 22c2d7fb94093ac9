# -*- coding: utf-8 -*-
import os
import math
import logging
from typing import Optional

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

import config # Import config for constants

log = logging.getLogger('Chester.AudioProcessor')


def compute_gain(peak_dbfs: float, target_dbfs: float = config.TARGET_LOUDNESS_DBFS,
                 gain_limit: float = config.MAX_NORMALIZE_GAIN_DB) -> Optional[float]:
    """
    Gain (dB) that moves a track's peak to the target. Positive gain is capped
    at `gain_limit`. Silent or near-silent audio gets None.
    """
    if math.isinf(peak_dbfs) or peak_dbfs <= -90.0:
        return None
    change_in_dbfs = target_dbfs - peak_dbfs
    return min(change_in_dbfs, gain_limit) if change_in_dbfs > 0 else change_in_dbfs


def normalize_file(path: str, target_dbfs: float = config.TARGET_LOUDNESS_DBFS,
                   gain_limit: float = config.MAX_NORMALIZE_GAIN_DB) -> Optional[float]:
    """
    Rewrites a downloaded track so its peak sits at the target loudness.
    Blocking (decodes and re-encodes through FFmpeg); run it in an executor.
    Returns the gain applied, or None if the file was left as is.
    """
    basename = os.path.basename(path)
    ext = os.path.splitext(path)[1].lower().strip('. ') or config.AUDIO_CODEC
    try:
        audio_segment = AudioSegment.from_file(path, format=ext)
    except CouldntDecodeError as decode_err:
        log.error(f"AUDIO: Pydub CouldntDecodeError for '{basename}'. Is FFmpeg installed and in PATH? Error: {decode_err}")
        return None
    except FileNotFoundError:
        log.error(f"AUDIO: File not found during normalization: '{path}'")
        return None

    peak_dbfs = audio_segment.max_dBFS
    gain = compute_gain(peak_dbfs, target_dbfs, gain_limit)
    if gain is None:
        log.warning(f"AUDIO: Skipping normalization for silent/very quiet audio '{basename}'. Peak: {peak_dbfs}")
        return None
    if abs(gain) < 0.1:
        log.debug(f"AUDIO: '{basename}' already at target loudness (peak {peak_dbfs:.2f} dBFS).")
        return None

    log.info(f"AUDIO: Normalizing '{basename}'. Peak:{peak_dbfs:.2f} Target:{target_dbfs:.2f} Gain:{gain:.2f} dB.")
    temp_path = f"{path}.normalizing.{ext}"
    try:
        audio_segment.apply_gain(gain).export(temp_path, format=ext, bitrate="192k")
        os.replace(temp_path, path)
    except Exception:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise
    return gain
