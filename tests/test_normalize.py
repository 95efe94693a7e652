import pytest

from gameshelf.normalize import normalize, normalize_all, strip_parenthetical


def test_normalize_strips_diacritics_and_case():
    assert normalize("Pokémon Red") == normalize("pokemon red") == "pokemon red"


def test_normalize_replaces_punctuation_runs_and_collapses_whitespace():
    assert normalize("  Assassin's   Creed:\tOrigins!! ") == "assassin s creed origins"
    assert normalize("Ratchet & Clank -- Rift Apart") == "ratchet clank rift apart"


@pytest.mark.parametrize(
    "raw",
    [
        "Pokémon Red",
        "İstanbul Kartalları",
        "Final Fantasy VII: Remake!!",
        "  spaced\tout\n title ",
        "Ōkami HD",
        "",
        "???",
    ],
)
def test_normalize_is_idempotent(raw):
    once = normalize(raw)
    assert normalize(once) == once


def test_normalize_all_joins_names():
    assert normalize_all(["PlayStation 5", "Xbox Series S/X"]) == "playstation 5 xbox series s x"
    assert normalize_all([]) == ""


def test_strip_parenthetical_removes_disambiguation():
    assert strip_parenthetical("Doom (2016 video game)") == "Doom"
    assert strip_parenthetical("Halo (video game) Combat Evolved") == "Halo Combat Evolved"
    assert strip_parenthetical("Chrono Trigger") == "Chrono Trigger"
