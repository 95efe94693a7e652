from __future__ import annotations

from typing import Callable, Iterable, Literal, get_args

from .normalize import normalize_all

Platform = Literal["PS1", "PS2", "PS3", "PS4", "PS5", "Nintendo", "PC"]

PLATFORMS: tuple[Platform, ...] = get_args(Platform)

PLATFORM_KEYWORDS: dict[Platform, tuple[str, ...]] = {
    "PS1": ("playstation", "ps1"),
    "PS2": ("playstation 2", "ps2"),
    "PS3": ("playstation 3", "ps3"),
    "PS4": ("playstation 4", "ps4"),
    "PS5": ("playstation 5", "ps5"),
    "Nintendo": ("nintendo", "switch", "wii", "gamecube", "3ds", "ds"),
    "PC": ("pc", "windows", "linux", "mac"),
}


def _contains_any(*keywords: str) -> Callable[[str], bool]:
    def predicate(text: str) -> bool:
        return any(keyword in text for keyword in keywords)

    return predicate


# Evaluated top to bottom. A PS5 listing also contains "playstation", so the
# numbered consoles must be tested before the bare PS1 rule.
PLATFORM_RULES: tuple[tuple[Callable[[str], bool], Platform], ...] = (
    (_contains_any("playstation 5", "ps5"), "PS5"),
    (_contains_any("playstation 4", "ps4"), "PS4"),
    (_contains_any("playstation 3", "ps3"), "PS3"),
    (_contains_any("playstation 2", "ps2"), "PS2"),
    (_contains_any("playstation", "ps1"), "PS1"),
    (_contains_any("nintendo", "switch", "wii", "gamecube", "game boy", "3ds", "ds"), "Nintendo"),
    (_contains_any("pc", "windows", "linux", "mac"), "PC"),
)


def infer_platform(names: Iterable[str]) -> Platform | None:
    text = normalize_all(names)
    if not text:
        return None
    for predicate, platform in PLATFORM_RULES:
        if predicate(text):
            return platform
    return None


def platform_keywords(platform: Platform) -> tuple[str, ...]:
    return PLATFORM_KEYWORDS.get(platform, ())


def parse_platform(raw: str) -> Platform:
    """Map user input such as "ps5" or "nintendo" to a Platform."""
    wanted = raw.strip().lower()
    for platform in PLATFORMS:
        if platform.lower() == wanted:
            return platform
    raise ValueError(f"Unknown platform {raw!r}; expected one of {', '.join(PLATFORMS)}")
