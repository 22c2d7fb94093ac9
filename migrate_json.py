# -*- coding: utf-8 -*-
"""Imports the old one-JSON-file-per-track library into the SQLite database."""
import argparse
import asyncio
import json
import logging
import sys
from typing import Optional, Sequence, Tuple

from data_manager import LibraryDatabase
from utils import file_helpers

log = logging.getLogger('Chester.Migrate')


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import legacy JSON track files into Chester's library database.")
    parser.add_argument("database", metavar="DB", help="Path of the SQLite database (created if missing).")
    parser.add_argument("files", metavar="FILE", nargs="+", help="Legacy per-track JSON files.")
    return parser.parse_args(argv)


async def migrate(db_path: str, paths: Sequence[str]) -> Tuple[int, int, int]:
    """Returns (imported, already present, unreadable) file counts."""
    imported = skipped = failed = 0
    library = LibraryDatabase(db_path)
    await library.connect()
    try:
        for path in paths:
            try:
                record = file_helpers.load_legacy_json(path)
            except (OSError, ValueError, json.JSONDecodeError) as e:
                log.error(f"Skipping '{path}': {e}")
                failed += 1
                continue
            if await library.import_legacy_record(record):
                imported += 1
            else:
                skipped += 1
    finally:
        await library.close()
    return imported, skipped, failed


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s:%(levelname)s:%(name)s: %(message)s')
    args = parse_args(argv)
    imported, skipped, failed = asyncio.run(migrate(args.database, args.files))
    log.info(f"Done: {imported} imported, {skipped} already present, {failed} unreadable.")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
