from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .catalog import (
    CatalogError,
    GameDraft,
    GameRecord,
    create_game,
    delete_game,
    edit_game,
    get_game,
    import_games,
    list_games,
)
from .config import ConfigError, ensure_directories, load_config
from .db import connect_database, init_database
from .export import export_data
from .form_tui import run_form
from .logging_setup import configure_logging
from .platforms import Platform, parse_platform
from .resolver import build_resolver
from .stats import collect_stats, print_stats


def _platform_arg(value: str) -> Platform:
    try:
        return parse_platform(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _add_record_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--title", help="Game title.")
    parser.add_argument("--platform", type=_platform_arg, help="PS1..PS5, Nintendo or PC.")
    parser.add_argument("--year", type=int, help="Release year (1970-2030).")
    parser.add_argument("--rating", type=int, help="Rating from 0 to 5.")
    parser.add_argument("--cover", help="Cover image URL; leave out to look one up.")
    status = parser.add_mutually_exclusive_group()
    status.add_argument("--completed", dest="completed", action="store_true", default=None)
    status.add_argument("--pending", dest="completed", action="store_false")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gameshelf", description="Manage a personal video-game collection.")
    parser.add_argument("--config", type=Path, default=Path("config.toml"), help="Path to config.toml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("initdb", help="Initialize the SQLite schema.")

    add_parser = subparsers.add_parser("add", help="Add a game; without --title the interactive form opens.")
    _add_record_flags(add_parser)

    edit_parser = subparsers.add_parser("edit", help="Edit a game; omitted flags keep their value.")
    edit_parser.add_argument("game_id")
    _add_record_flags(edit_parser)

    list_parser = subparsers.add_parser("list", help="List the collection, newest first.")
    list_parser.add_argument("--platform", type=_platform_arg)
    status = list_parser.add_mutually_exclusive_group()
    status.add_argument("--completed", dest="completed", action="store_true", default=None)
    status.add_argument("--pending", dest="completed", action="store_false")

    delete_parser = subparsers.add_parser("delete", help="Delete a game.")
    delete_parser.add_argument("game_id")

    covers_parser = subparsers.add_parser("covers", help="Show cover candidates for a title.")
    covers_parser.add_argument("title")
    covers_parser.add_argument("--platform", type=_platform_arg, default="PS5")
    covers_parser.add_argument("--limit", type=int, default=None)

    autofill_parser = subparsers.add_parser("autofill", help="Show title, platform, year and cover for a title.")
    autofill_parser.add_argument("title")
    autofill_parser.add_argument("--platform", type=_platform_arg, default="PS5")
    autofill_parser.add_argument("--year", type=int, default=2024)

    import_parser = subparsers.add_parser("import", help="Import a JSON collection saved by the browser app.")
    import_parser.add_argument("path", type=Path)

    export_parser = subparsers.add_parser("export", help="Export the collection.")
    export_parser.add_argument("formats", nargs="*", help="Formats to export (csv, json).")

    subparsers.add_parser("stats", help="Show collection stats.")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        parser.error(str(exc))
        return 2

    configure_logging(cfg)
    ensure_directories(cfg)

    command = args.command
    if command == "initdb":
        init_database(cfg)
        print(f"Initialized database at {cfg.db_path()}")
        return 0

    resolver = build_resolver(cfg)

    if command == "covers":
        limit = args.limit or cfg.resolver.default_limit
        options = asyncio.run(resolver.resolve_cover_options(args.title, args.platform, limit))
        if not options:
            print("No covers found.")
            return 0
        for idx, option in enumerate(options, start=1):
            details = ", ".join(part for part in (option.release_date, ", ".join(option.platforms)) if part)
            print(f" {idx}. {option.title} [{option.source}] {details}".rstrip())
            print(f"    {option.thumbnail_url}")
        return 0

    if command == "autofill":
        result = asyncio.run(resolver.resolve_autofill(args.title, args.platform, args.year))
        print(f"title: {result.title}")
        print(f"platform: {result.platform}")
        print(f"year: {result.year}")
        print(f"cover: {result.cover_url or '-'}")
        return 0

    init_database(cfg)
    with connect_database(cfg) as db:
        try:
            if command == "add":
                if args.title is None:
                    record = run_form(cfg, db, resolver)
                    if record is None:
                        print("Cancelled.")
                        return 0
                else:
                    draft = _apply_flags(GameDraft(), args)
                    record = asyncio.run(create_game(db, resolver, draft))
                print(f"Added {_describe(record)}")
                return 0

            if command == "edit":
                existing = get_game(db, args.game_id)
                draft = _apply_flags(existing.to_draft(), args)
                record = asyncio.run(edit_game(db, resolver, args.game_id, draft))
                print(f"Updated {_describe(record)}")
                return 0

            if command == "list":
                games = list_games(db, platform=args.platform, completed=args.completed)
                if not games:
                    print("No games yet.")
                for game in games:
                    print(_describe(game))
                print(f"Total({len(games)})")
                return 0

            if command == "delete":
                delete_game(db, args.game_id)
                print(f"Deleted {args.game_id}")
                return 0

            if command == "import":
                stats = import_games(db, args.path)
                print(f"Import complete: {stats}")
                return 0

            if command == "export":
                formats = args.formats or ["json"]
                paths = export_data(cfg, db, formats)
                for fmt, path in paths.items():
                    print(f"{fmt}: {path}")
                return 0

            if command == "stats":
                print_stats(collect_stats(db))
                return 0
        except CatalogError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    parser.error(f"Unknown command {command}")
    return 2


def _apply_flags(draft: GameDraft, args: argparse.Namespace) -> GameDraft:
    if args.title is not None:
        draft.title = args.title
    if args.platform is not None:
        draft.platform = args.platform
    if args.year is not None:
        draft.year = args.year
    if args.rating is not None:
        draft.rating = args.rating
    if args.cover is not None:
        draft.cover_url = args.cover
    if args.completed is not None:
        draft.completed = args.completed
    return draft


def _describe(game: GameRecord) -> str:
    status = "completed" if game.completed else "pending"
    stars = "★" * game.rating + "☆" * (5 - game.rating)
    cover = game.cover_url or "no cover"
    return f"{game.id}  {game.title} ({game.platform}, {game.year}) {status} {stars}  {cover}"


if __name__ == "__main__":
    raise SystemExit(main())
