# -*- coding: utf-8 -*-
import os
from dotenv import load_dotenv

load_dotenv() # Load environment variables from .env file

# --- Core Settings ---
BOT_TOKEN = os.getenv('DISCORD_TOKEN')
AUDIO_DIR = os.getenv('AUDIO_DIR', "audio") # Downloaded tracks, stored as <video id>.mp3
DATABASE_PATH = os.getenv('DATABASE_PATH', os.path.join("database", "library.sqlite3"))
HELP_FOOTER = "Chester is a Discord music bot that won't ask for your money."

# --- Library Defaults ---
DEFAULT_ARTIST = "No artist provided"
DEFAULT_ORIGIN = "No origin provided"
NO_TAGS_LABEL = "No tags" # Full listing / autocomplete label for tag-less tracks
NO_TAG_LABEL = "No tag"   # Tag listing label for tag-less tracks

# --- Downloads (yt-dlp) ---
AUDIO_CODEC = "mp3"
DOWNLOAD_PARALLEL_JOBS = int(os.getenv('DOWNLOAD_PARALLEL_JOBS', "8"))
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

# --- Audio Processing ---
NORMALIZE_DOWNLOADS = os.getenv('NORMALIZE_DOWNLOADS', "1").lower() not in ("0", "false", "no", "off")
TARGET_LOUDNESS_DBFS = -14.0 # Target peak loudness for normalization
MAX_NORMALIZE_GAIN_DB = 6.0  # Never boost quiet tracks by more than this

# --- Discord Limits ---
AUTOCOMPLETE_MAX_CHOICES = 25  # max 25
AUTOCOMPLETE_MAX_LENGTH = 100  # max 100
LIBRARY_ROW_MAX_WIDTH = 56     # widest code-block line that doesn't wrap on mobile

# --- Display Formatting ---
ELLIPSIS = "…"
AUTOCOMPLETE_SEPARATOR = " | "
MAX_RESULTS_PER_PAGE = 20
LIBRARY_SEPARATOR = " "
ROW_SEPARATOR = "-"
ROWNUM_WIDTH = 3
ROWNUM_HEADER = "#"
MIN_COLUMN_WIDTH = 4
DUPLICATE_MARKER = "^^^"

# --- Cooldowns ---
COMMAND_COOLDOWN_SECONDS = 3
DOWNLOAD_COOLDOWN_SECONDS = 10
