"""Tests for motioncompose.common utilities."""

import pytest
from PIL import ImageFont

from motioncompose.common import (
    load_font,
    measure_text,
    parse_hex_color,
    resolve_color,
    resolve_path_vars,
)
from motioncompose.scene import Color


class TestParseHexColor:
    def test_with_hash(self):
        assert parse_hex_color("#e04c77") == Color(224, 76, 119, 255)

    def test_without_hash(self):
        assert parse_hex_color("1A1A1A") == Color(26, 26, 26, 255)

    def test_with_alpha(self):
        assert parse_hex_color("#FFFFFF80") == Color(255, 255, 255, 128)

    def test_bad_length_raises(self):
        with pytest.raises(ValueError, match="Bad hex color"):
            parse_hex_color("#FFF")


class TestResolveColor:
    def test_palette_key(self):
        palette = {"accent": Color(224, 76, 119)}
        assert resolve_color("accent", palette) == Color(224, 76, 119)

    def test_inline_hex(self):
        assert resolve_color("#50DC78", {}) == Color(80, 220, 120)

    def test_channel_list(self):
        assert resolve_color([10, 20, 30], {}) == Color(10, 20, 30, 255)
        assert resolve_color([10, 20, 30, 40], {}) == Color(10, 20, 30, 40)

    def test_bad_channel_list_raises(self):
        with pytest.raises(ValueError, match="3 or 4 channels"):
            resolve_color([1, 2], {})

    def test_unknown_key_raises(self):
        with pytest.raises(ValueError, match="Unknown color"):
            resolve_color("nonexistent", {})


class TestResolvePathVars:
    def test_single_var(self):
        paths = {"assets": "/data/assets"}
        assert resolve_path_vars("${assets}/a.mp4", paths) == "/data/assets/a.mp4"

    def test_no_vars(self):
        assert resolve_path_vars("/absolute/path.mp4", {}) == "/absolute/path.mp4"

    def test_unknown_var_raises(self):
        with pytest.raises(ValueError, match="Unknown path variable"):
            resolve_path_vars("${missing}/a.mp4", {})


class TestFonts:
    def test_default_font_loads(self):
        font = load_font(None, 24)
        assert isinstance(font, (ImageFont.FreeTypeFont, ImageFont.ImageFont))

    def test_font_is_cached(self):
        assert load_font(None, 18) is load_font(None, 18)

    def test_missing_explicit_font_raises(self, tmp_path):
        with pytest.raises(OSError):
            load_font(str(tmp_path / "nope.ttf"), 20)

    def test_measure_empty_is_zero(self):
        assert measure_text(load_font(None, 20), "") == 0.0

    def test_spacing_adds_between_glyphs(self):
        font = load_font(None, 20)
        plain = measure_text(font, "abcd")
        spaced = measure_text(font, "abcd", spacing=3.0)
        assert spaced == pytest.approx(plain + 9.0)
