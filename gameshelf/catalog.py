from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

from .db import Database
from .platforms import PLATFORMS, Platform

if TYPE_CHECKING:
    from .resolver import CoverResolver

LOG = logging.getLogger(__name__)

MIN_YEAR = 1970
MAX_YEAR = 2030
MAX_RATING = 5


class CatalogError(Exception):
    """Raised for invalid records, unknown ids and unreadable imports."""


@dataclass(slots=True)
class GameDraft:
    title: str = ""
    platform: Platform = "PS5"
    year: int = 2024
    completed: bool = False
    cover_url: str = ""
    rating: int = 0


@dataclass(slots=True)
class GameRecord:
    id: str
    title: str
    platform: Platform
    year: int
    completed: bool
    cover_url: str
    rating: int

    def to_draft(self) -> GameDraft:
        return GameDraft(
            title=self.title,
            platform=self.platform,
            year=self.year,
            completed=self.completed,
            cover_url=self.cover_url,
            rating=self.rating,
        )

    def to_json(self) -> dict[str, Any]:
        """Shape used by the browser app's saved collections."""
        return {
            "id": self.id,
            "title": self.title,
            "platform": self.platform,
            "year": self.year,
            "completed": self.completed,
            "coverUrl": self.cover_url,
            "rating": self.rating,
        }


def validate_draft(draft: GameDraft) -> None:
    if not draft.title.strip():
        raise CatalogError("title must not be empty.")
    if draft.platform not in PLATFORMS:
        raise CatalogError(f"platform must be one of {', '.join(PLATFORMS)}.")
    if not MIN_YEAR <= draft.year <= MAX_YEAR:
        raise CatalogError(f"year must be between {MIN_YEAR} and {MAX_YEAR}.")
    if not 0 <= draft.rating <= MAX_RATING:
        raise CatalogError(f"rating must be between 0 and {MAX_RATING}.")


def add_game(db: Database, draft: GameDraft, game_id: str | None = None) -> GameRecord:
    validate_draft(draft)
    record = GameRecord(id=game_id or uuid.uuid4().hex, **asdict(draft))
    db.execute(
        "INSERT INTO games (id, title, platform, year, completed, cover_url, rating, created_at) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        [
            record.id,
            record.title,
            record.platform,
            record.year,
            int(record.completed),
            record.cover_url,
            record.rating,
            _now(),
        ],
    )
    LOG.info("game_added", extra={"game_id": record.id, "title": record.title})
    return record


def update_game(db: Database, game_id: str, draft: GameDraft) -> GameRecord:
    validate_draft(draft)
    cursor = db.execute(
        "UPDATE games SET title = ?, platform = ?, year = ?, completed = ?, cover_url = ?, rating = ? "
        "WHERE id = ?",
        [draft.title, draft.platform, draft.year, int(draft.completed), draft.cover_url, draft.rating, game_id],
    )
    if cursor.rowcount == 0:
        raise CatalogError(f"No game with id {game_id}.")
    LOG.info("game_updated", extra={"game_id": game_id})
    return GameRecord(id=game_id, **asdict(draft))


def delete_game(db: Database, game_id: str) -> None:
    cursor = db.execute("DELETE FROM games WHERE id = ?", [game_id])
    if cursor.rowcount == 0:
        raise CatalogError(f"No game with id {game_id}.")
    LOG.info("game_deleted", extra={"game_id": game_id})


def get_game(db: Database, game_id: str) -> GameRecord:
    rows = db.query("SELECT * FROM games WHERE id = ?", [game_id])
    if not rows:
        raise CatalogError(f"No game with id {game_id}.")
    return _row_to_record(rows[0])


def list_games(
    db: Database,
    platform: Platform | None = None,
    completed: bool | None = None,
) -> list[GameRecord]:
    clauses: list[str] = []
    params: list[object] = []
    if platform is not None:
        clauses.append("platform = ?")
        params.append(platform)
    if completed is not None:
        clauses.append("completed = ?")
        params.append(int(completed))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = db.query(f"SELECT * FROM games {where} ORDER BY created_at DESC, rowid DESC", params)
    return [_row_to_record(row) for row in rows]


async def create_game(db: Database, resolver: CoverResolver, draft: GameDraft) -> GameRecord:
    """Save a new game, filling title, platform, year and cover when no cover was chosen."""
    cover = draft.cover_url.strip()
    if cover:
        draft.cover_url = cover
        return add_game(db, draft)

    autofill = await resolver.resolve_autofill(draft.title.strip(), draft.platform, draft.year)
    cover = autofill.cover_url
    if not cover:
        cover = await resolver.resolve_best_cover(draft.title, draft.platform)
    draft.title = autofill.title
    draft.platform = autofill.platform
    draft.year = autofill.year
    draft.cover_url = cover
    return add_game(db, draft)


async def edit_game(db: Database, resolver: CoverResolver, game_id: str, draft: GameDraft) -> GameRecord:
    """Save changes; a blank cover is looked up again, keeping the old one if nothing is found."""
    existing = get_game(db, game_id)
    cover = draft.cover_url.strip()
    if not cover:
        cover = await resolver.resolve_best_cover(draft.title, draft.platform) or existing.cover_url
    draft.cover_url = cover
    return update_game(db, game_id, draft)


def import_games(db: Database, path: Path) -> dict[str, int]:
    """Load a JSON array saved by the browser version of the app.

    Older saves lack ``rating`` (and before that ``coverUrl``); those get
    defaults. Entries that still don't look like games are skipped.
    """
    try:
        data = orjson.loads(path.read_bytes())
    except OSError as exc:
        raise CatalogError(f"Cannot read {path}: {exc}") from exc
    except orjson.JSONDecodeError as exc:
        raise CatalogError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise CatalogError(f"{path} must contain a JSON array of games.")

    stats = {"imported": 0, "upgraded": 0, "skipped": 0, "existing": 0}
    # the array is newest first; insert oldest first so list order survives
    for item in reversed(data):
        parsed = _parse_saved_game(item)
        if parsed is None:
            stats["skipped"] += 1
            continue
        game_id, draft, upgraded = parsed
        try:
            add_game(db, draft, game_id=game_id)
        except CatalogError:
            stats["skipped"] += 1
            continue
        except sqlite3.IntegrityError:
            stats["existing"] += 1
            continue
        stats["imported"] += 1
        if upgraded:
            stats["upgraded"] += 1
    LOG.info("import_complete", extra={"path": str(path), **stats})
    return stats


def _parse_saved_game(item: Any) -> tuple[str, GameDraft, bool] | None:
    if not isinstance(item, dict):
        return None
    game_id = item.get("id")
    title = item.get("title")
    platform = item.get("platform")
    year = item.get("year")
    completed = item.get("completed")
    if not (
        isinstance(game_id, str)
        and isinstance(title, str)
        and platform in PLATFORMS
        and _is_number(year)
        and isinstance(completed, bool)
    ):
        return None

    cover = item.get("coverUrl", "")
    rating = item.get("rating", 0)
    if not isinstance(cover, str) or not _is_number(rating):
        return None
    upgraded = "coverUrl" not in item or "rating" not in item
    draft = GameDraft(
        title=title,
        platform=platform,
        year=int(year),
        completed=completed,
        cover_url=cover,
        rating=int(rating),
    )
    return game_id, draft, upgraded


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _row_to_record(row: sqlite3.Row) -> GameRecord:
    return GameRecord(
        id=row["id"],
        title=row["title"],
        platform=row["platform"],
        year=row["year"],
        completed=bool(row["completed"]),
        cover_url=row["cover_url"],
        rating=row["rating"],
    )


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()
