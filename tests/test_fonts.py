"""Tests for one-time font registration."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

from market_newsletter.render import fonts


def test_register_fonts_is_idempotent() -> None:
    fonts.register_fonts()
    first = fonts.registered_fonts()

    with patch("market_newsletter.render.fonts._find_font_path") as finder:
        fonts.register_fonts()
        fonts.register_fonts()
    finder.assert_not_called()
    assert fonts.registered_fonts() == first


def test_concurrent_registration_is_safe() -> None:
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: fonts.register_fonts(), range(16)))
    assert set(fonts.registered_fonts()) == {fonts.REGULAR, fonts.BOLD}


def test_get_font_is_cached_per_size() -> None:
    regular = fonts.get_font(False, 24)
    assert fonts.get_font(False, 24) is regular
    assert fonts.get_font(True, 24) is not regular
    assert fonts.get_font(False, 24).getlength("Anza") > 0


def test_missing_font_falls_back_to_default() -> None:
    with patch.dict(fonts._font_paths, {fonts.REGULAR: None}), patch.dict(fonts._font_cache, clear=True):
        font = fonts.get_font(False, 13)
        assert font.getlength("Market") > 0
