# core/music_types.py

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import config
from utils import table_helpers
from utils.text_helpers import compose_display, format_list

# --- Enums and Dataclasses ---
class MetadataField(Enum):
    """Lookup tables a track points into. The value is the column name."""
    ARTIST = "artist"
    ORIGIN = "origin"
    TAG = "tag"


class LibrarySort(Enum):
    TITLE = "title"
    ARTIST = "artist"
    ORIGIN = "origin"


@dataclass(frozen=True)
class ListingLayout:
    headers: Tuple[str, ...]
    weights: Tuple[float, ...]
    suppress_duplicates: bool = True


class ListMode(Enum):
    """The library listings. Each mode has a fixed query in data_manager and a fixed layout."""
    FULL = "full"
    TITLE = "title"
    ARTIST = "artist"
    ORIGIN = "origin"
    TAGS = "tags"

    @property
    def layout(self) -> ListingLayout:
        return LISTING_LAYOUTS[self]

    def render(self, rows: Sequence[Sequence[str]]) -> List[str]:
        """Turns query rows into code-block pages."""
        layout = self.layout
        return table_helpers.build_table_pages(
            layout.headers,
            layout.weights,
            rows,
            suppress_duplicates=layout.suppress_duplicates,
        )


LISTING_LAYOUTS = {
    ListMode.FULL: ListingLayout(("TITLE", "ARTIST", "ORIGIN", "TAGS"), (16, 14, 14, 12)),
    ListMode.TITLE: ListingLayout(("TITLE",), (56,), suppress_duplicates=False),
    ListMode.ARTIST: ListingLayout(("ARTIST", "TITLE"), (23, 30)),
    ListMode.ORIGIN: ListingLayout(("ORIGIN", "TITLE"), (23, 30)),
    ListMode.TAGS: ListingLayout(("TAG", "TITLE"), (12, 44)),
}


@dataclass
class Track:
    id: str # YouTube video id
    track_title: str
    artist: str = config.DEFAULT_ARTIST
    origin: str = config.DEFAULT_ORIGIN
    upload_date: str = ""
    yt_title: str = ""
    yt_channel: str = ""
    tags: List[str] = field(default_factory=list)

    # --- Properties ---
    @property
    def tags_display(self) -> str:
        return format_list(self.tags, empty=config.NO_TAGS_LABEL)

    @property
    def autocomplete_label(self) -> str:
        return compose_display([self.track_title, self.artist, self.origin, self.tags_display])

    @property
    def search_text(self) -> str:
        """Everything a user might type to find this track."""
        return " ".join([self.track_title, self.artist, self.origin, *self.tags])


@dataclass
class TrackHandle:
    """What a guild is playing right now."""
    guild_id: int
    track_id: str
    title: str
    artist: str
    path: str
    looping: bool = True
    paused: bool = False
    stopping: bool = False # Set when replaced or stopped, so its end callback is ignored
