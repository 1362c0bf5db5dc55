# pethero/services/test_themes.py
import random
from collections import Counter

from pethero.services.themes import HERO_THEMES, select_theme


def test_catalog_has_fifteen_unique_themes():
    assert len(HERO_THEMES) == 15
    assert len(set(HERO_THEMES)) == 15


def test_select_theme_returns_catalog_member():
    assert select_theme() in HERO_THEMES


def test_select_theme_is_roughly_uniform():
    rng = random.Random(1234)
    draws = 15000
    counts = Counter(select_theme(rng) for _ in range(draws))

    assert set(counts) == set(HERO_THEMES)
    expected = draws / len(HERO_THEMES)
    for theme, count in counts.items():
        assert abs(count - expected) < expected * 0.2, theme
