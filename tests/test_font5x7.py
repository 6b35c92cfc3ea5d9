import pytest

from font5x7 import FONT, GLYPH_COUNT, GLYPH_WIDTH, glyph_bytes


def test_table_covers_every_code():
    assert len(FONT) == GLYPH_COUNT * GLYPH_WIDTH == 1280


def test_known_glyphs():
    assert glyph_bytes(ord('A')) == bytes((0x7E, 0x11, 0x11, 0x11, 0x7E))
    assert glyph_bytes(ord('0')) == bytes((0x3E, 0x51, 0x49, 0x45, 0x3E))
    assert glyph_bytes(ord(' ')) == bytes(5)


def test_printable_glyphs_are_drawn():
    blank = [chr(code) for code in range(0x21, 0x7F) if not any(glyph_bytes(code))]
    assert blank == []


@pytest.mark.parametrize("code", [0x00, 0x0A, 0x1F, 0x7F, 0x80, 0xFF])
def test_non_printable_codes_blank(code):
    assert glyph_bytes(code) == bytes(5)


@pytest.mark.parametrize("code", [-1, 256])
def test_out_of_table_code(code):
    with pytest.raises(IndexError):
        glyph_bytes(code)
