import asyncio
import csv
from pathlib import Path

import orjson
import pytest

from gameshelf.candidates import AutofillResult
from gameshelf.catalog import (
    CatalogError,
    GameDraft,
    add_game,
    create_game,
    delete_game,
    edit_game,
    get_game,
    import_games,
    list_games,
    update_game,
)
from gameshelf.config import config_from_mapping
from gameshelf.db import connect_database, init_database
from gameshelf.export import export_data
from gameshelf.stats import collect_stats


@pytest.fixture()
def config(tmp_path: Path):
    data = {
        "paths": {
            "db_path": str(tmp_path / "gameshelf.db"),
            "export_dir": str(tmp_path / "exports"),
        },
    }
    cfg = config_from_mapping(data)
    init_database(cfg)
    return cfg


class FakeResolver:
    def __init__(self, autofill=None, best_cover=""):
        self.autofill = autofill
        self.best_cover = best_cover
        self.autofill_calls = []
        self.best_cover_calls = []

    async def resolve_autofill(self, title, fallback_platform, fallback_year):
        self.autofill_calls.append((title, fallback_platform, fallback_year))
        if self.autofill is not None:
            return self.autofill
        return AutofillResult(title=title, platform=fallback_platform, year=fallback_year, cover_url="")

    async def resolve_best_cover(self, title, platform):
        self.best_cover_calls.append((title, platform))
        return self.best_cover


def test_add_list_update_delete(config):
    with connect_database(config) as db:
        first = add_game(db, GameDraft(title="Halo", platform="PC", year=2001))
        second = add_game(db, GameDraft(title="Zelda", platform="Nintendo", year=1998, completed=True, rating=5))

        assert [game.id for game in list_games(db)] == [second.id, first.id]
        assert [game.title for game in list_games(db, platform="PC")] == ["Halo"]
        assert [game.title for game in list_games(db, completed=True)] == ["Zelda"]

        draft = first.to_draft()
        draft.rating = 4
        update_game(db, first.id, draft)
        assert get_game(db, first.id).rating == 4

        delete_game(db, second.id)
        assert [game.id for game in list_games(db)] == [first.id]


@pytest.mark.parametrize(
    "draft",
    [
        GameDraft(title="  "),
        GameDraft(title="Halo", year=1969),
        GameDraft(title="Halo", year=2031),
        GameDraft(title="Halo", rating=6),
        GameDraft(title="Halo", rating=-1),
        GameDraft(title="Halo", platform="Xbox"),
    ],
)
def test_invalid_drafts_are_rejected(config, draft):
    with connect_database(config) as db:
        with pytest.raises(CatalogError):
            add_game(db, draft)
        assert list_games(db) == []


def test_unknown_ids_raise(config):
    with connect_database(config) as db:
        with pytest.raises(CatalogError):
            get_game(db, "missing")
        with pytest.raises(CatalogError):
            delete_game(db, "missing")
        with pytest.raises(CatalogError):
            update_game(db, "missing", GameDraft(title="Halo"))


def test_create_keeps_chosen_cover(config):
    resolver = FakeResolver()
    with connect_database(config) as db:
        record = asyncio.run(create_game(db, resolver, GameDraft(title="Halo", cover_url="  https://x/h.jpg ")))
    assert record.cover_url == "https://x/h.jpg"
    assert resolver.autofill_calls == []


def test_create_autofills_blank_cover(config):
    resolver = FakeResolver(
        autofill=AutofillResult(title="Demon's Souls", platform="PS5", year=2020, cover_url="https://x/ds.jpg")
    )
    with connect_database(config) as db:
        record = asyncio.run(create_game(db, resolver, GameDraft(title=" demon's souls ", platform="PC", year=2024)))
        stored = get_game(db, record.id)

    assert resolver.autofill_calls == [("demon's souls", "PC", 2024)]
    assert (stored.title, stored.platform, stored.year, stored.cover_url) == (
        "Demon's Souls",
        "PS5",
        2020,
        "https://x/ds.jpg",
    )


def test_create_falls_back_to_best_cover(config):
    resolver = FakeResolver(best_cover="https://w/x.jpg")
    with connect_database(config) as db:
        record = asyncio.run(create_game(db, resolver, GameDraft(title="Xyz", platform="PS2", year=2003)))

    assert resolver.best_cover_calls == [("Xyz", "PS2")]
    assert record.cover_url == "https://w/x.jpg"
    assert (record.title, record.platform, record.year) == ("Xyz", "PS2", 2003)


def test_create_without_any_cover_saves_empty_cover(config):
    with connect_database(config) as db:
        record = asyncio.run(create_game(db, FakeResolver(), GameDraft(title="Xyz")))
    assert record.cover_url == ""


def test_edit_looks_up_blank_cover_and_keeps_old_one(config):
    with connect_database(config) as db:
        record = add_game(db, GameDraft(title="Halo", platform="PC", year=2001, cover_url="https://x/old.jpg"))

        draft = record.to_draft()
        draft.cover_url = ""
        kept = asyncio.run(edit_game(db, FakeResolver(), record.id, draft))
        assert kept.cover_url == "https://x/old.jpg"

        draft.cover_url = ""
        found = asyncio.run(edit_game(db, FakeResolver(best_cover="https://x/new.jpg"), record.id, draft))
        assert found.cover_url == "https://x/new.jpg"
        assert get_game(db, record.id).cover_url == "https://x/new.jpg"


def test_import_upgrades_legacy_entries(config, tmp_path: Path):
    saved = [
        {"id": "c", "title": "Newest", "platform": "PS5", "year": 2023, "completed": False, "coverUrl": "", "rating": 3},
        {"id": "b", "title": "No Rating", "platform": "PS4", "year": 2015, "completed": True, "coverUrl": "https://x/b.jpg"},
        {"id": "a", "title": "Oldest", "platform": "PS1", "year": 1997, "completed": True},
        {"id": "bad", "title": "Bad Year", "platform": "PC", "year": 1800, "completed": False},
        {"title": "No Id", "platform": "PC", "year": 2000, "completed": False},
        "junk",
    ]
    path = tmp_path / "saved.json"
    path.write_bytes(orjson.dumps(saved))

    with connect_database(config) as db:
        stats = import_games(db, path)
        games = list_games(db)
        again = import_games(db, path)

    assert stats == {"imported": 3, "upgraded": 2, "skipped": 3, "existing": 0}
    assert [game.id for game in games] == ["c", "b", "a"]
    assert games[1].rating == 0
    assert games[2].cover_url == ""
    assert again == {"imported": 0, "upgraded": 0, "skipped": 3, "existing": 3}


def test_import_rejects_unreadable_files(config, tmp_path: Path):
    not_json = tmp_path / "broken.json"
    not_json.write_text("{", encoding="utf-8")
    not_list = tmp_path / "object.json"
    not_list.write_text('{"games": []}', encoding="utf-8")

    with connect_database(config) as db:
        for path in (not_json, not_list, tmp_path / "missing.json"):
            with pytest.raises(CatalogError):
                import_games(db, path)


def test_export_writes_csv_and_json(config):
    with connect_database(config) as db:
        add_game(db, GameDraft(title="Halo", platform="PC", year=2001, rating=4), game_id="h")
        add_game(db, GameDraft(title="Zelda", platform="Nintendo", year=1998, completed=True), game_id="z")
        produced = export_data(config, db, ["csv", "JSON", "xml"])

    assert set(produced) == {"csv", "json"}
    with produced["csv"].open(newline="", encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["title"] for row in rows] == ["Zelda", "Halo"]
    assert rows[1]["rating"] == "4"

    payload = orjson.loads(produced["json"].read_bytes())
    assert payload[0] == {
        "id": "z",
        "title": "Zelda",
        "platform": "Nintendo",
        "year": 1998,
        "completed": True,
        "coverUrl": "",
        "rating": 0,
    }


def test_exported_json_imports_back(config, tmp_path: Path):
    with connect_database(config) as db:
        add_game(db, GameDraft(title="Halo", platform="PC", year=2001), game_id="h")
        path = export_data(config, db, ["json"])["json"]

    other = config_from_mapping({"paths": {"db_path": str(tmp_path / "other.db")}})
    init_database(other)
    with connect_database(other) as db:
        assert import_games(db, path)["imported"] == 1
        assert get_game(db, "h").title == "Halo"


def test_collect_stats(config):
    with connect_database(config) as db:
        add_game(db, GameDraft(title="Halo", platform="PC", year=2001, rating=4, cover_url="https://x/h.jpg"))
        add_game(db, GameDraft(title="Zelda", platform="Nintendo", year=1998, completed=True, rating=5))
        add_game(db, GameDraft(title="Doom", platform="PC", year=1993))
        stats = collect_stats(db)

    assert stats["games"] == 3
    assert stats["completed"] == 1
    assert stats["pending"] == 2
    assert stats["missing_cover"] == 2
    assert stats["platforms"]["PC"] == 2
    assert stats["platforms"]["PS1"] == 0
    assert stats["average_rating"] == 4.5


def test_collect_stats_on_empty_collection(config):
    with connect_database(config) as db:
        stats = collect_stats(db)
    assert stats["games"] == 0
    assert stats["average_rating"] is None


def test_init_database_is_idempotent_and_versioned(config):
    add_count = 0
    with connect_database(config) as db:
        add_game(db, GameDraft(title="Halo"))
        add_count = len(list_games(db))
    init_database(config)
    with connect_database(config) as db:
        assert db.schema_version == 1
        assert len(list_games(db)) == add_count == 1
