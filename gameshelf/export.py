from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Sequence

import orjson

from .catalog import GameRecord, list_games
from .config import Config
from .db import Database

LOG = logging.getLogger(__name__)


COLUMNS = ["id", "title", "platform", "year", "completed", "rating", "cover_url"]


def export_data(cfg: Config, db: Database, formats: Sequence[str]) -> dict[str, Path]:
    games = list_games(db)
    export_dir = cfg.export_path()
    export_dir.mkdir(parents=True, exist_ok=True)
    produced: dict[str, Path] = {}
    for fmt in formats:
        fmt_lower = fmt.lower()
        if fmt_lower == "csv":
            produced["csv"] = _export_csv(games, export_dir / "gameshelf.csv")
        elif fmt_lower == "json":
            produced["json"] = _export_json(games, export_dir / "gameshelf.json")
        else:
            LOG.warning("unsupported_export_format", extra={"format": fmt})
    return produced


def _export_csv(games: Iterable[GameRecord], path: Path) -> Path:
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=COLUMNS)
        writer.writeheader()
        for game in games:
            writer.writerow({key: getattr(game, key) for key in COLUMNS})
    return path


def _export_json(games: Iterable[GameRecord], path: Path) -> Path:
    # same array shape import_games reads back
    payload = [game.to_json() for game in games]
    path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    return path
