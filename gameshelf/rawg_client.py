from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import orjson
import requests

from .candidates import Candidate, ScoreSignals, is_primary_candidate
from .config import Config
from .http_utils import build_retryer, build_session, get_json

LOG = logging.getLogger(__name__)

RawRecord = Mapping[str, Any]


class RawgClient:
    """Primary metadata source: the RAWG games database.

    Every failure (no API key, HTTP error, network error, malformed
    payload) yields an empty result list; callers never see an exception.
    """

    source = "rawg"

    def __init__(self, cfg: Config, session: requests.Session | None = None):
        self.cfg = cfg
        self.session = session or build_session(cfg)
        self._retryer = build_retryer(cfg)

    @property
    def api_key(self) -> str:
        return self.cfg.rawg.resolved_key()

    @property
    def has_credentials(self) -> bool:
        return self.api_key != ""

    async def search(self, title: str, page_size: int) -> list[RawRecord]:
        if not self.has_credentials:
            LOG.debug("rawg_no_credentials", extra={"query": title})
            return []
        return await asyncio.to_thread(self._search_blocking, title, page_size)

    def _search_blocking(self, title: str, page_size: int) -> list[RawRecord]:
        params = {
            "key": self.api_key,
            "search": title,
            "page_size": str(page_size),
            "ordering": "-added",
            "search_precise": "false",
        }
        url = f"{self.cfg.rawg.base_url.rstrip('/')}/games"
        try:
            payload = get_json(self.session, self._retryer, url, params, self.cfg.rawg.timeout_seconds)
        except requests.RequestException as exc:
            LOG.warning("rawg_search_failed", extra={"query": title, "error": str(exc)})
            return []
        except orjson.JSONDecodeError:
            LOG.warning("rawg_invalid_json", extra={"query": title})
            return []

        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            LOG.warning("rawg_unexpected_payload", extra={"query": title})
            return []
        records = [item for item in results if isinstance(item, dict)]
        LOG.info("rawg_search", extra={"query": title, "results": len(records)})
        return records


def record_platform_names(record: RawRecord) -> list[str]:
    names: list[str] = []
    for node in _list_of_dicts(record.get("platforms")):
        platform = node.get("platform")
        name = platform.get("name") if isinstance(platform, dict) else None
        if isinstance(name, str) and name:
            names.append(name)
    return names


def record_genre_names(record: RawRecord) -> list[str]:
    return [
        genre["name"]
        for genre in _list_of_dicts(record.get("genres"))
        if isinstance(genre.get("name"), str) and genre["name"]
    ]


def pick_best_image(record: RawRecord) -> str:
    for key in ("background_image_additional", "background_image"):
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def is_usable_record(record: RawRecord, query_title: str) -> bool:
    record_id = record.get("id")
    name = record.get("name")
    return (
        isinstance(record_id, int)
        and not isinstance(record_id, bool)
        and isinstance(name, str)
        and is_primary_candidate(name, query_title)
        and pick_best_image(record) != ""
    )


def record_signals(record: RawRecord) -> ScoreSignals:
    background = record.get("background_image")
    return ScoreSignals(
        title=str(record.get("name") or ""),
        platform_text=" ".join(record_platform_names(record)),
        has_image=isinstance(background, str) and background != "",
        ratings_count=_number(record.get("ratings_count")),
        added=_number(record.get("added")),
        metacritic=_number(record.get("metacritic")),
        rating=_number(record.get("rating")),
    )


def to_candidate(record: RawRecord) -> Candidate:
    released = record.get("released")
    return Candidate(
        id=f"rawg-{record['id']}",
        title=record["name"],
        thumbnail_url=pick_best_image(record),
        release_date=released if isinstance(released, str) else "",
        platforms=record_platform_names(record),
        genres=record_genre_names(record),
        source="rawg",
    )


def _list_of_dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
