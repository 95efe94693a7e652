from __future__ import annotations

import logging
from typing import Callable

from rich.markup import escape
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Checkbox, Footer, Header, Input, Select, Static

from .candidates import Candidate
from .catalog import CatalogError, GameDraft, GameRecord, create_game
from .config import Config
from .db import Database
from .platforms import PLATFORMS
from .resolver import CoverResolver
from .suggest import SuggestionDriver

LOG = logging.getLogger(__name__)

MAX_CHOICES = 6


class FormController:
    """Form state behind the TUI: the draft, its suggestions and saving."""

    def __init__(
        self,
        cfg: Config,
        db: Database,
        resolver: CoverResolver,
        draft: GameDraft | None = None,
        on_suggestions: Callable[[list[Candidate]], None] | None = None,
    ):
        self.db = db
        self.resolver = resolver
        self.draft = draft or GameDraft()
        self.driver = SuggestionDriver(
            resolver,
            self.draft,
            on_update=on_suggestions,
            delay=cfg.resolver.debounce_ms / 1000,
            limit=min(cfg.resolver.default_limit, MAX_CHOICES),
        )

    @property
    def suggestions(self) -> list[Candidate]:
        return self.driver.suggestions

    def choose(self, idx: int) -> str:
        if idx >= len(self.suggestions):
            return "Invalid selection."
        candidate = self.suggestions[idx]
        self.driver.select(candidate)
        return f"Selected '{candidate.title}'."

    async def save(self) -> GameRecord:
        # closed only once the record is stored
        record = await create_game(self.db, self.resolver, self.draft)
        self.driver.close()
        return record

    def cancel(self) -> None:
        self.driver.close()


def run_form(cfg: Config, db: Database, resolver: CoverResolver) -> GameRecord | None:
    app = GameFormApp(cfg, db, resolver)
    return app.run()


class GameFormApp(App[GameRecord | None]):
    CSS = """
    Screen {
        align: center middle;
    }
    #form {
        width: 90%;
        height: auto;
    }
    #suggestions {
        height: auto;
        margin-top: 1;
    }
    """
    BINDINGS = [
        Binding(key="ctrl+s", action="save", description="Save"),
        Binding(key="f1", action="choose(0)", description="Pick 1"),
        Binding(key="f2", action="choose(1)", description="Pick 2"),
        Binding(key="f3", action="choose(2)", description="Pick 3"),
        Binding(key="f4", action="choose(3)", description="Pick 4"),
        Binding(key="f5", action="choose(4)", description="Pick 5"),
        Binding(key="f6", action="choose(5)", description="Pick 6"),
    ]

    def __init__(self, cfg: Config, db: Database, resolver: CoverResolver):
        super().__init__()
        self.controller = FormController(cfg, db, resolver, on_suggestions=self._show_suggestions)
        self.suggestion_list = Static(id="suggestions")
        self.message = Static("")

    def compose(self) -> ComposeResult:  # type: ignore[override]
        draft = self.controller.draft
        yield Header()
        with Vertical(id="form"):
            yield Input(value=draft.title, placeholder="Title", id="title")
            with Horizontal():
                yield Select(
                    [(platform, platform) for platform in PLATFORMS],
                    value=draft.platform,
                    allow_blank=False,
                    id="platform",
                )
                yield Input(value=str(draft.year), placeholder="Year", type="integer", id="year")
                yield Input(value=str(draft.rating), placeholder="Rating 0-5", type="integer", id="rating")
                yield Checkbox("Completed", value=draft.completed, id="completed")
            yield Input(value=draft.cover_url, placeholder="Cover URL (blank: look it up)", id="cover")
            yield self.suggestion_list
            yield self.message
        yield Footer()

    def on_input_changed(self, event: Input.Changed) -> None:
        draft = self.controller.draft
        if event.input.id == "title":
            self.controller.driver.title_changed(event.value)
        elif event.input.id == "cover":
            draft.cover_url = event.value
        elif event.input.id == "year" and event.value.isdigit():
            draft.year = int(event.value)
        elif event.input.id == "rating" and event.value.isdigit():
            draft.rating = int(event.value)

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id == "platform" and event.value in PLATFORMS:
            self.controller.driver.platform_changed(event.value)

    def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        self.controller.draft.completed = event.value

    def action_choose(self, index: int) -> None:
        message = self.controller.choose(index)
        self._sync_inputs()
        self._update_message(escape(message))

    async def action_save(self) -> None:
        try:
            record = await self.controller.save()
        except CatalogError as exc:
            self._update_message(f"[red]{escape(str(exc))}[/red]")
            return
        self.exit(record)

    def on_key(self, event: events.Key) -> None:  # type: ignore[override]
        if event.key == "escape":
            self.controller.cancel()
            self.exit(None)

    def _show_suggestions(self, options: list[Candidate]) -> None:
        if not options:
            self.suggestion_list.update("No suggestions.")
            return
        lines = ["[bold]Suggestions:[/bold]"]
        for idx, candidate in enumerate(options, start=1):
            details = [part for part in (candidate.release_date[:4], ", ".join(candidate.platforms[:3])) if part]
            suffix = f" ({' • '.join(details)})" if details else ""
            lines.append(escape(f"F{idx}. {candidate.title}{suffix} [{candidate.source}]"))
        self.suggestion_list.update("\n".join(lines))
        # the top candidate's cover is applied as a default
        self.query_one("#cover", Input).value = self.controller.draft.cover_url

    def _sync_inputs(self) -> None:
        draft = self.controller.draft
        self.query_one("#title", Input).value = draft.title
        self.query_one("#platform", Select).value = draft.platform
        self.query_one("#year", Input).value = str(draft.year)
        self.query_one("#cover", Input).value = draft.cover_url

    def _update_message(self, message: str) -> None:
        self.message.update(message)
