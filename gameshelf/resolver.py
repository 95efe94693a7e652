from __future__ import annotations

import logging
from typing import Protocol, Sequence

from .candidates import AutofillResult, Candidate, dedupe_by_thumbnail, score
from .config import Config
from .platforms import Platform, infer_platform
from .rawg_client import (
    RawgClient,
    RawRecord,
    is_usable_record,
    pick_best_image,
    record_platform_names,
    record_signals,
    to_candidate,
)
from .wiki_client import WikipediaClient

LOG = logging.getLogger(__name__)

AUTOFILL_PAGE_SIZE = 15
MIN_YEAR = 1970
MAX_YEAR = 2030


class PrimarySource(Protocol):
    @property
    def has_credentials(self) -> bool: ...

    async def search(self, title: str, page_size: int) -> list[RawRecord]: ...


class FallbackSource(Protocol):
    async def search(self, title: str, platform: Platform, limit: int) -> list[Candidate]: ...


class CoverResolver:
    """Turns a free-text title into cover candidates and autofill data.

    Holds no per-call state: concurrent calls with different arguments are
    independent. None of the entry points raise; "nothing found" is an
    empty list, an empty string or the caller's fallback values.
    """

    def __init__(self, primary: PrimarySource, fallback: FallbackSource):
        self.primary = primary
        self.fallback = fallback

    async def resolve_cover_options(self, title: str, platform: Platform, limit: int = 6) -> list[Candidate]:
        if limit < 1:
            return []
        records = await self.primary.search(title, max(limit * 3, 12))
        options = dedupe_by_thumbnail(
            to_candidate(record) for record in rank_records(records, title, platform)
        )[:limit]
        # A configured primary source is authoritative even when it found nothing.
        if options or self.primary.has_credentials:
            LOG.info(
                "cover_options",
                extra={"query": title, "platform": platform, "source": "rawg", "count": len(options)},
            )
            return options

        fallback_options = await self.fallback.search(title, platform, limit)
        LOG.info(
            "cover_options",
            extra={
                "query": title,
                "platform": platform,
                "source": "wikipedia",
                "count": len(fallback_options),
            },
        )
        return fallback_options[:limit]

    async def resolve_best_cover(self, title: str, platform: Platform) -> str:
        options = await self.resolve_cover_options(title, platform, 1)
        if options:
            return options[0].thumbnail_url
        return ""

    async def resolve_autofill(
        self,
        title: str,
        fallback_platform: Platform,
        fallback_year: int,
    ) -> AutofillResult:
        records = await self.primary.search(title, AUTOFILL_PAGE_SIZE)
        ranked = rank_records(records, title, fallback_platform)
        if not ranked:
            cover = await self.resolve_best_cover(title, fallback_platform)
            LOG.info("autofill_fallback", extra={"query": title, "has_cover": cover != ""})
            return AutofillResult(title=title, platform=fallback_platform, year=fallback_year, cover_url=cover)

        best = ranked[0]
        platform = infer_platform(record_platform_names(best)) or fallback_platform
        year = parse_release_year(best.get("released"))
        result = AutofillResult(
            title=best["name"],
            platform=platform,
            year=year if year is not None else fallback_year,
            cover_url=pick_best_image(best),
        )
        LOG.info(
            "autofill_match",
            extra={"query": title, "title": result.title, "platform": result.platform, "year": result.year},
        )
        return result


def rank_records(records: Sequence[RawRecord], title: str, platform: Platform) -> list[RawRecord]:
    """Usable records, best first; ties keep the source's order."""
    usable = [record for record in records if is_usable_record(record, title)]
    return sorted(usable, key=lambda record: score(record_signals(record), title, platform), reverse=True)


def parse_release_year(released: object) -> int | None:
    if not isinstance(released, str):
        return None
    prefix = released[:4]
    if len(prefix) != 4 or not (prefix.isascii() and prefix.isdigit()):
        return None
    year = int(prefix)
    if year < MIN_YEAR or year > MAX_YEAR:
        return None
    return year


def build_resolver(cfg: Config) -> CoverResolver:
    return CoverResolver(RawgClient(cfg), WikipediaClient(cfg))
