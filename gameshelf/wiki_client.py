from __future__ import annotations

import asyncio
import logging
from typing import Any

import orjson
import requests

from .candidates import Candidate, ScoreSignals, dedupe_by_thumbnail, is_video_game_categorized, score
from .config import Config
from .http_utils import build_retryer, build_session, get_json
from .normalize import strip_parenthetical
from .platforms import Platform

LOG = logging.getLogger(__name__)

SEARCH_QUALIFIER = "video game"
PAGEIMAGES_MAX = 50


class WikipediaClient:
    """Fallback metadata source: Wikipedia's generator search.

    A general encyclopedia returns films, characters and franchise articles
    as well, so only pages filed under a "video games" category survive.
    """

    source = "wikipedia"

    def __init__(self, cfg: Config, session: requests.Session | None = None):
        self.cfg = cfg
        self.session = session or build_session(cfg)
        self._retryer = build_retryer(cfg)

    async def search(self, title: str, platform: Platform, limit: int) -> list[Candidate]:
        return await asyncio.to_thread(self._search_blocking, title, platform, limit)

    def _search_blocking(self, title: str, platform: Platform, limit: int) -> list[Candidate]:
        pages = self._fetch_pages(title, platform, max(limit * 3, 12))
        ranked: list[tuple[float, Candidate]] = []
        for page in pages:
            candidate = page_to_candidate(page)
            if candidate is None:
                continue
            ranked.append((score(page_signals(page), title, platform), candidate))
        ranked.sort(key=lambda item: item[0], reverse=True)
        candidates = dedupe_by_thumbnail(candidate for _, candidate in ranked)[:limit]
        LOG.info(
            "wikipedia_search",
            extra={"query": title, "pages": len(pages), "candidates": len(candidates)},
        )
        return candidates

    def _fetch_pages(self, title: str, platform: Platform, result_limit: int) -> list[dict[str, Any]]:
        params = {
            "action": "query",
            "format": "json",
            "generator": "search",
            "gsrsearch": build_search_query(title, platform),
            "gsrlimit": str(result_limit),
            "prop": "pageimages|categories",
            "piprop": "thumbnail",
            "pithumbsize": str(self.cfg.wikipedia.thumb_size),
            "pilimit": str(min(result_limit, PAGEIMAGES_MAX)),
            "cllimit": "max",
        }
        try:
            payload = get_json(
                self.session,
                self._retryer,
                self.cfg.wikipedia.api_url,
                params,
                self.cfg.wikipedia.timeout_seconds,
            )
        except requests.RequestException as exc:
            LOG.warning("wikipedia_search_failed", extra={"query": title, "error": str(exc)})
            return []
        except orjson.JSONDecodeError:
            LOG.warning("wikipedia_invalid_json", extra={"query": title})
            return []
        return extract_pages(payload)


def build_search_query(title: str, platform: Platform) -> str:
    return f"{title} {platform} {SEARCH_QUALIFIER}"


def extract_pages(payload: Any) -> list[dict[str, Any]]:
    """Pages of a query response, in search-rank order."""
    query = payload.get("query") if isinstance(payload, dict) else None
    pages = query.get("pages") if isinstance(query, dict) else None
    if isinstance(pages, dict):
        pages = list(pages.values())
    if not isinstance(pages, list):
        return []
    records = [page for page in pages if isinstance(page, dict)]
    # pages come keyed by page id; "index" carries the search rank
    return sorted(records, key=lambda page: _rank(page.get("index")))


def page_categories(page: dict[str, Any]) -> str:
    categories = page.get("categories")
    if not isinstance(categories, list):
        return ""
    return " ".join(
        item["title"] for item in categories if isinstance(item, dict) and isinstance(item.get("title"), str)
    )


def page_thumbnail(page: dict[str, Any]) -> str:
    thumbnail = page.get("thumbnail")
    source = thumbnail.get("source") if isinstance(thumbnail, dict) else None
    return source if isinstance(source, str) else ""


def page_signals(page: dict[str, Any]) -> ScoreSignals:
    categories = page_categories(page)
    return ScoreSignals(
        title=strip_parenthetical(str(page.get("title") or "")),
        platform_text=categories,
        category_text=categories,
        has_image=page_thumbnail(page) != "",
    )


def page_to_candidate(page: dict[str, Any]) -> Candidate | None:
    page_id = page.get("pageid")
    title = page.get("title")
    thumbnail = page_thumbnail(page)
    if not isinstance(page_id, int) or not isinstance(title, str) or not thumbnail:
        return None
    if not is_video_game_categorized(page_categories(page)):
        return None
    return Candidate(
        id=f"wiki-{page_id}",
        title=title,
        thumbnail_url=thumbnail,
        release_date="",
        platforms=[],
        genres=[],
        source="wikipedia",
    )


def _rank(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 1 << 30
