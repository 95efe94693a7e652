from __future__ import annotations

import logging

from .db import Database
from .platforms import PLATFORMS

LOG = logging.getLogger(__name__)


def collect_stats(db: Database) -> dict[str, object]:
    games_total = int(db.scalar("SELECT COUNT(1) FROM games") or 0)
    completed_total = int(db.scalar("SELECT COUNT(1) FROM games WHERE completed = 1") or 0)
    missing_cover = int(db.scalar("SELECT COUNT(1) FROM games WHERE cover_url = ''") or 0)
    by_platform = {platform: 0 for platform in PLATFORMS}
    for row in db.query("SELECT platform, COUNT(1) AS total FROM games GROUP BY platform"):
        by_platform[row["platform"]] = row["total"]
    # unrated games are stored as 0 and left out of the average
    average = db.scalar("SELECT AVG(rating) FROM games WHERE rating > 0")
    return {
        "games": games_total,
        "completed": completed_total,
        "pending": games_total - completed_total,
        "missing_cover": missing_cover,
        "platforms": by_platform,
        "average_rating": round(average, 2) if average is not None else None,
    }


def print_stats(stats: dict[str, object]) -> None:
    LOG.info("stats_summary", extra=stats)
    for key, value in stats.items():
        if key == "platforms":
            platforms = ", ".join(f"{platform}:{total}" for platform, total in value.items())
            print(f"{key}: {platforms}")
        else:
            print(f"{key}: {value if value is not None else '-'}")
