from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal

from .normalize import normalize
from .platforms import Platform, platform_keywords

Source = Literal["rawg", "wikipedia"]

BLOCKED_TERMS = (
    "dlc",
    "expansion",
    "expansion pack",
    "season pass",
    "soundtrack",
    "ost",
    "bundle",
    "pack",
    "collection",
    "beta",
    "alpha",
    "demo",
    "trailer",
    "episode",
    "chapter",
    "skin",
    "cosmetic",
    "test server",
    "public test",
    "prototype",
    "mod",
    "development",
    "impact",
    "history of",
    "list of",
    "characters of",
    "soundtrack of",
    "music of",
)

MIN_QUERY_LENGTH = 3
VIDEO_GAMES_CATEGORY = "video games"

TITLE_EXACT = 100.0
TITLE_PREFIX = 70.0
TITLE_SUBSTRING = 45.0
PLATFORM_MATCH = 25.0
CATEGORY_MATCH = 25.0
IMAGE_PRESENT = 10.0


@dataclass(slots=True)
class Candidate:
    id: str
    title: str
    thumbnail_url: str
    release_date: str = ""
    platforms: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    source: Source = "rawg"


@dataclass(slots=True)
class AutofillResult:
    title: str
    platform: Platform
    year: int
    cover_url: str


@dataclass(slots=True)
class ScoreSignals:
    """Everything the scorer looks at, extracted from one raw source record.

    ``platform_text`` is the source's free-text platform list (RAWG) or its
    category titles (Wikipedia); ``category_text`` is only set for the
    Wikipedia source.
    """

    title: str
    platform_text: str = ""
    category_text: str | None = None
    has_image: bool = False
    ratings_count: float | None = None
    added: float | None = None
    metacritic: float | None = None
    rating: float | None = None


def is_primary_candidate(name: str, query_title: str) -> bool:
    """Reject DLC, soundtracks, demos and unrelated fuzzy-search hits."""
    normalized_name = normalize(name)
    normalized_query = normalize(query_title)

    if any(term in normalized_name for term in BLOCKED_TERMS):
        return False
    if len(normalized_query) >= MIN_QUERY_LENGTH and normalized_query not in normalized_name:
        return False
    return True


def is_video_game_categorized(category_text: str) -> bool:
    return VIDEO_GAMES_CATEGORY in normalize(category_text)


def score(signals: ScoreSignals, query_title: str, platform: Platform) -> float:
    total = _title_score(normalize(signals.title), normalize(query_title))

    platform_text = normalize(signals.platform_text)
    if platform_text and any(keyword in platform_text for keyword in platform_keywords(platform)):
        total += PLATFORM_MATCH

    if signals.category_text is not None and is_video_game_categorized(signals.category_text):
        total += CATEGORY_MATCH

    if signals.has_image:
        total += IMAGE_PRESENT

    # popularity only breaks ties between plausible titles, hence the caps
    if signals.ratings_count is not None:
        total += min(signals.ratings_count / 200, 30)
    if signals.added is not None:
        total += min(signals.added / 400, 20)
    if signals.metacritic is not None:
        total += min(signals.metacritic / 4, 25)
    if signals.rating is not None:
        total += min(signals.rating * 2, 10)
    return total


def _title_score(title: str, query: str) -> float:
    if title == query:
        return TITLE_EXACT
    if title.startswith(query):
        return TITLE_PREFIX
    if query in title:
        return TITLE_SUBSTRING
    return 0.0


def dedupe_by_thumbnail(candidates: Iterable[Candidate]) -> list[Candidate]:
    seen: set[str] = set()
    unique: list[Candidate] = []
    for candidate in candidates:
        if candidate.thumbnail_url in seen:
            continue
        seen.add(candidate.thumbnail_url)
        unique.append(candidate)
    return unique
