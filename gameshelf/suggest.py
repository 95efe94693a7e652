from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from .candidates import Candidate
from .catalog import GameDraft
from .normalize import normalize
from .platforms import Platform, infer_platform
from .resolver import parse_release_year

LOG = logging.getLogger(__name__)


class OptionsResolver(Protocol):
    async def resolve_cover_options(self, title: str, platform: Platform, limit: int = 6) -> list[Candidate]: ...


class SuggestionDriver:
    """Debounced cover suggestions for a game form.

    Every title or platform change restarts a quiet-period timer; only the
    last one fires a query. Each scheduled query gets a generation number
    and its result is applied only while that number is still the latest,
    so a slow response never overwrites a newer one. The HTTP request
    itself is not aborted.

    Picking a suggestion locks its normalized title: the title change the
    pick causes does not query again until the user edits the text.
    """

    def __init__(
        self,
        resolver: OptionsResolver,
        draft: GameDraft,
        on_update: Callable[[list[Candidate]], None] | None = None,
        delay: float = 0.3,
        limit: int = 6,
    ):
        self.resolver = resolver
        self.draft = draft
        self.on_update = on_update
        self.delay = delay
        self.limit = limit
        self.suggestions: list[Candidate] = []
        self.locked_title: str | None = None
        self._generation = 0
        self._timer: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    def title_changed(self, text: str) -> None:
        self.draft.title = text
        if self.locked_title is not None and normalize(text) != self.locked_title:
            self.locked_title = None
        self._schedule()

    def platform_changed(self, platform: Platform) -> None:
        self.draft.platform = platform
        self._schedule()

    def select(self, candidate: Candidate) -> None:
        # a pick supersedes whatever is still pending or in flight
        self._cancel_timer()
        self._generation += 1
        self.draft.title = candidate.title
        self.draft.platform = infer_platform(candidate.platforms) or self.draft.platform
        year = parse_release_year(candidate.release_date)
        if year is not None:
            self.draft.year = year
        self.draft.cover_url = candidate.thumbnail_url
        self.locked_title = normalize(candidate.title)
        LOG.info("suggestion_selected", extra={"candidate": candidate.id, "title": candidate.title})

    def close(self) -> None:
        self._closed = True
        self._cancel_timer()
        self._generation += 1

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule(self) -> None:
        if self._closed:
            return
        self._cancel_timer()
        self._generation += 1
        task = asyncio.get_running_loop().create_task(self._run(self._generation))
        self._timer = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _run(self, token: int) -> None:
        await asyncio.sleep(self.delay)
        if not self._is_current(token):
            return
        # past the quiet period the query runs to completion; superseding only discards it
        self._timer = None

        title = self.draft.title
        if not title.strip() or normalize(title) == self.locked_title:
            return
        options = await self.resolver.resolve_cover_options(title, self.draft.platform, self.limit)
        if not self._is_current(token):
            LOG.debug("suggestions_discarded", extra={"query": title, "token": token})
            return
        self._apply(options)

    def _is_current(self, token: int) -> bool:
        return not self._closed and token == self._generation

    def _apply(self, options: list[Candidate]) -> None:
        self.suggestions = options
        if options:
            self.draft.cover_url = options[0].thumbnail_url
        if self.on_update is not None:
            self.on_update(options)
