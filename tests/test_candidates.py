from gameshelf.candidates import (
    Candidate,
    ScoreSignals,
    dedupe_by_thumbnail,
    is_primary_candidate,
    is_video_game_categorized,
    score,
)


def test_primary_candidate_blocks_non_game_releases():
    assert not is_primary_candidate("Super Game: Definitive Edition Soundtrack", "Super Game")
    assert not is_primary_candidate("Halo Infinite - Season Pass", "Halo Infinite")
    assert not is_primary_candidate("Celeste Demo", "Celeste")


def test_blocked_terms_match_inside_words():
    # "demon s souls" contains "demo"
    assert not is_primary_candidate("Demon's Souls", "Demon's Souls")
    assert not is_primary_candidate("Ghost of Tsushima", "Ghost")
    assert is_primary_candidate("Bloodborne", "Bloodborne")


def test_primary_candidate_accepts_titles_containing_query():
    assert is_primary_candidate("Super Game 2", "Super Game")
    assert is_primary_candidate("Pokémon Red", "pokemon red")


def test_primary_candidate_rejects_unrelated_fuzzy_hits():
    assert not is_primary_candidate("Halo", "Zelda")


def test_primary_candidate_skips_containment_check_for_short_queries():
    assert is_primary_candidate("Ico", "ic")


def test_video_game_category_detection():
    assert is_video_game_categorized("Category:2016 video games Category:Id Software games")
    assert not is_video_game_categorized("Category:2016 films")


def test_exact_title_outscores_substring_match():
    exact = ScoreSignals(title="Halo", platform_text="PC", has_image=True, ratings_count=100)
    substring = ScoreSignals(title="The Halo Story", platform_text="PC", has_image=True, ratings_count=100)
    prefix = ScoreSignals(title="Halo 3", platform_text="PC", has_image=True, ratings_count=100)
    assert score(exact, "Halo", "PC") > score(prefix, "Halo", "PC") > score(substring, "Halo", "PC")


def test_title_scores():
    assert score(ScoreSignals(title="Halo"), "halo", "PC") == 100
    assert score(ScoreSignals(title="Halo 3"), "Halo", "PC") == 70
    assert score(ScoreSignals(title="The Halo Story"), "Halo", "PC") == 45
    assert score(ScoreSignals(title="Zelda"), "Halo", "PC") == 0


def test_platform_keyword_bonus():
    signals = ScoreSignals(title="Halo", platform_text="Xbox Series S/X, PC")
    assert score(signals, "Halo", "PC") == 125
    assert score(signals, "Halo", "PS5") == 100


def test_popularity_signals_are_capped():
    signals = ScoreSignals(
        title="Halo",
        ratings_count=1_000_000,
        added=1_000_000,
        metacritic=400,
        rating=50,
    )
    assert score(signals, "Halo", "PS5") == 100 + 30 + 20 + 25 + 10


def test_popularity_signals_scale_linearly():
    signals = ScoreSignals(title="Halo", ratings_count=200, added=400, metacritic=80, rating=2)
    assert score(signals, "Halo", "PS5") == 100 + 1 + 1 + 20 + 4


def test_category_and_image_bonus():
    signals = ScoreSignals(
        title="Chrono Trigger",
        platform_text="Category:Video games",
        category_text="Category:Video games",
        has_image=True,
    )
    assert score(signals, "Chrono Trigger", "PC") == 100 + 25 + 10


def test_dedupe_by_thumbnail_keeps_first_occurrence_in_order():
    options = [
        Candidate(id="rawg-1", title="A", thumbnail_url="https://x/1.jpg"),
        Candidate(id="rawg-2", title="B", thumbnail_url="https://x/2.jpg"),
        Candidate(id="rawg-3", title="C", thumbnail_url="https://x/1.jpg"),
        Candidate(id="rawg-4", title="D", thumbnail_url="https://x/3.jpg"),
    ]
    assert [option.id for option in dedupe_by_thumbnail(options)] == ["rawg-1", "rawg-2", "rawg-4"]
