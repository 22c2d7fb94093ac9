# -*- coding: utf-8 -*-
import discord
from discord.ext import commands
import os
import sys
import struct
import logging
import platform

# --- Import Core Components ---
import config # Bot config, paths, constants
import data_manager # SQLite track library
from core.playback_manager import PlaybackManager # Per-guild looping playback
from utils import file_helpers # For ensure_dir

# --- Logging Setup ---
log_formatter = logging.Formatter('%(asctime)s:%(levelname)s:%(name)s: %(message)s')
console_handler = logging.StreamHandler()
console_handler.setFormatter(log_formatter)
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)
root_logger.addHandler(console_handler)
logging.getLogger('discord').setLevel(logging.WARNING) # Reduce discord lib noise
logging.getLogger('Chester').setLevel(logging.INFO)
log = logging.getLogger('Chester.Main')

# --- Initial Dependency Checks ---
try: import nacl; NACL_OK = True
except ImportError: log.critical("CRITICAL: PyNaCl library not found. Voice WILL NOT WORK. Install: pip install PyNaCl"); NACL_OK = False

if not config.BOT_TOKEN or not NACL_OK:
    log.critical("CRITICAL ERROR: DISCORD_TOKEN missing or PyNaCl failed to import. Exiting.")
    sys.exit(1)

# --- Opus Loading Check ---
opus_load_success = discord.opus.is_loaded()
if not opus_load_success:
    log.info("Opus library not initially loaded. Attempting load...")
    candidates = []
    if sys.platform == 'win32':
        _target = 'x64' if struct.calcsize('P') * 8 > 32 else 'x86'
        candidates.append(os.path.join(os.path.dirname(os.path.abspath(discord.opus.__file__)), 'bin', f'libopus-0.{_target}.dll'))
    import ctypes.util
    found_path = ctypes.util.find_library('opus')
    if found_path:
        candidates.append(found_path)
    candidates.append('opus')
    for candidate in candidates:
        try:
            discord.opus.load_opus(candidate)
        except OSError as e:
            log.debug(f"Could not load Opus from '{candidate}': {e}")
            continue
        if discord.opus.is_loaded():
            log.info(f"Successfully loaded Opus: {candidate}")
            opus_load_success = True
            break

if not opus_load_success:
    log.error("❌ FAILED to confirm Opus library loading. Voice playback will not work.")

# --- Ensure Directories Exist ---
file_helpers.ensure_dir(config.AUDIO_DIR)
if os.path.dirname(config.DATABASE_PATH):
    file_helpers.ensure_dir(os.path.dirname(config.DATABASE_PATH))

# --- Bot Intents ---
intents = discord.Intents.default()
intents.voice_states = True # Needed for the caller's voice channel and our own disconnects
intents.guilds = True
intents.message_content = False # Not needed for slash commands


class ChesterBot(discord.Bot):
    """discord.Bot carrying the library, playback manager and config. Opens the database on start."""
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.config = config
        self.library = data_manager.LibraryDatabase(config.DATABASE_PATH)
        self.playback_manager = PlaybackManager(self)

    async def start(self, token: str, *, reconnect: bool = True):
        await self.library.connect()
        await super().start(token, reconnect=reconnect)

    async def close(self):
        await super().close()
        await self.library.close()


# --- Bot Instance Creation ---
bot = ChesterBot(intents=intents)
log.info("PlaybackManager initialized.")

# --- Load Cogs ---
log.info("Loading Cogs...")
cog_files = [
    'events', 'controls', 'management', 'library', 'admin'
]

loaded_cogs = 0
for cog_name in cog_files:
    cog_path = f"cogs.{cog_name}"
    try:
        bot.load_extension(cog_path)
        log.info(f"Successfully loaded Cog: {cog_path}")
        loaded_cogs += 1
    except discord.errors.ExtensionNotFound:
        log.error(f"Cog not found: {cog_path}. Skipping.")
    except discord.errors.ExtensionAlreadyLoaded:
        log.warning(f"Cog already loaded: {cog_path}. Skipping.")
    except Exception as e:
        log.error(f"Failed to load Cog {cog_path}: {e}", exc_info=True)

log.info(f"Finished loading Cogs ({loaded_cogs}/{len(cog_files)} successful).")

# --- Run the Bot ---
if __name__ == "__main__":
    log.info(f"Starting Chester (Python {platform.python_version()}, py-cord {discord.__version__})")
    try:
        bot.run(config.BOT_TOKEN)
    except discord.errors.LoginFailure:
        log.critical("CRITICAL STARTUP ERROR: Login Failure - Invalid DISCORD_TOKEN.")
    except discord.errors.PrivilegedIntentsRequired as e:
        log.critical(f"CRITICAL STARTUP ERROR: Missing Privileged Intents: {e}. Enable in Dev Portal.")
    except Exception as e:
        log.critical(f"FATAL RUNTIME ERROR: {e}", exc_info=True)
    finally:
        log.info("Bot process has ended.")
