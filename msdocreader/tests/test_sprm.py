import logging
import unittest

import pytest

from msdocreader.exceptions import OutOfRangeError
from msdocreader.extractors.data_types import FontEntry
from msdocreader.extractors.ms_legacy.doc.sprm import (
    SGC_CHARACTER,
    SPRA_VALUE,
    SPRA_VALUE_OPPOSITE,
    SGC_PARAGRAPH,
    SGC_TABLE,
    decode_opcode,
    read_operand,
    read_prl,
)
from msdocreader.tests.doc_builder import i16, sprm, u8, u16, u32

logger = logging.getLogger(__name__)

tc = unittest.TestCase()

FONTS = [FontEntry(name="Times New Roman"), FontEntry(name="Arial", alt_name="Helvetica")]


def test_decode_opcode() -> None:
    bold = decode_opcode(0x0835)
    tc.assertEqual(0x35, bold.is_pmd)
    tc.assertEqual(SGC_CHARACTER, bold.sgc)
    tc.assertEqual(0, bold.spra)
    tc.assertEqual(0, bold.f)

    ilfo = decode_opcode(0x460B)
    tc.assertEqual(0x0B, ilfo.is_pmd)
    tc.assertEqual(SGC_PARAGRAPH, ilfo.sgc)
    tc.assertEqual(2, ilfo.spra)

    table = decode_opcode(0xD608)
    tc.assertEqual(SGC_TABLE, table.sgc)
    tc.assertEqual(6, table.spra)


def test_bold_and_size() -> None:
    data = sprm(0x0835, u8(0x01)) + sprm(0x4A43, u16(24))
    result = read_prl(data, 0, 7)

    tc.assertEqual(7, result.length)
    tc.assertTrue(result.style.font.bold)
    tc.assertEqual(12.0, result.style.font.size)
    tc.assertIsNone(result.style.font.italic)
    tc.assertIsNone(result.style.paragraph)
    tc.assertIsNone(result.style.section)


def test_toggle_operands() -> None:
    data = (
        sprm(0x0835, u8(0x80))
        + sprm(0x0836, u8(0x81))
        + sprm(0x0837, u8(0x00))
    )
    font = read_prl(data, 0, len(data)).style.font
    tc.assertFalse(font.bold)
    tc.assertTrue(font.italic)
    tc.assertFalse(font.strikethrough)

    # undefined toggle values leave the property alone
    result = read_prl(sprm(0x0835, u8(0x02)), 0, 3)
    tc.assertEqual(3, result.length)
    tc.assertIsNone(result.style.font)


def test_character_properties() -> None:
    data = (
        sprm(0x2A3E, u8(0x03))  # kul
        + sprm(0x2A42, u8(0x0D))  # ico
        + sprm(0x2A48, u8(0x01))  # iss
        + sprm(0x4A4F, u16(1))  # rgftc0
        + sprm(0x0855, u8(0x01))  # fSpec
    )
    font = read_prl(data, 0, len(data), fonts=FONTS).style.font
    tc.assertEqual("double", font.underline)
    tc.assertEqual("800000", font.color)
    tc.assertTrue(font.superscript)
    tc.assertFalse(font.subscript)
    tc.assertEqual("Arial", font.name)
    tc.assertTrue(font.special)

    font = read_prl(sprm(0x4A4F, u16(7)), 0, 4, fonts=FONTS).style.font
    tc.assertEqual("", font.name)

    font = read_prl(sprm(0x2A3E, u8(0x3F)), 0, 3).style.font
    tc.assertEqual("none", font.underline)


def test_picture_location_stays_unresolved() -> None:
    data = sprm(0x6A03, u32(0x200)) + sprm(0x0806, u8(0x00))
    result = read_prl(data, 0, len(data))
    tc.assertEqual(9, result.length)
    tc.assertEqual(0x200, result.style.font.picture_offset)
    tc.assertFalse(result.style.font.has_data)


def test_shading_consumes_extra_bytes() -> None:
    data = sprm(0x4866, u16(0xFFFF)) + b"\x00\x00" + sprm(0x0835, u8(0x01))
    result = read_prl(data, 0, len(data))
    tc.assertEqual(9, result.length)
    tc.assertTrue(result.style.font.bold)


def test_colour_reads_from_word_document() -> None:
    # the RGB bytes are taken from the WordDocument stream at the PRL position
    table = sprm(0x6870) + bytes(4)
    word_document = b"\x00\x00\x12\x34\x56\x00"
    result = read_prl(table, 0, 6, word_document=word_document)
    tc.assertEqual(6, result.length)
    tc.assertEqual("123456", result.style.font.color)

    # defaults to the PRL buffer itself
    data = sprm(0x6870) + b"\xab\xcd\xef\x00"
    tc.assertEqual("abcdef", read_prl(data, 0, 6).style.font.color)


def test_paragraph_properties() -> None:
    data = sprm(0x2403, u8(2)) + sprm(0x260A, u8(3)) + sprm(0x460B, u16(1))
    paragraph = read_prl(data, 0, len(data)).style.paragraph
    tc.assertEqual("right", paragraph.alignment)
    tc.assertEqual(3, paragraph.list_level)
    tc.assertEqual(1, paragraph.list_override)
    tc.assertTrue(paragraph.is_list)
    tc.assertIsNone(paragraph.indent_preserved)

    style = read_prl(sprm(0x460B, u16(0)), 0, 4).style
    tc.assertFalse(style.paragraph.is_list)
    tc.assertFalse(style.is_list)

    style = read_prl(sprm(0x460B, u16(0xF801)), 0, 4).style
    tc.assertFalse(style.is_list)

    paragraph = read_prl(sprm(0x460B, u16(0xF802)), 0, 4).style.paragraph
    tc.assertTrue(paragraph.is_list)
    tc.assertTrue(paragraph.indent_preserved)

    paragraph = read_prl(sprm(0x2403, u8(9)), 0, 3).style.paragraph
    tc.assertEqual("left", paragraph.alignment)


def test_section_properties() -> None:
    data = (
        sprm(0xB01F, u16(12240))
        + sprm(0xB020, u16(15840))
        + sprm(0xB021, u16(1800))
        + sprm(0x3009, u8(2))  # bkc, not decoded
    )
    result = read_prl(data, 0, len(data))
    section = result.style.section
    tc.assertEqual(15, result.length)
    tc.assertEqual(12240, section.page_width)
    tc.assertEqual(15840, section.page_height)
    tc.assertEqual(1800, section.margin_left)
    tc.assertIsNone(section.margin_top)


def test_variable_operands() -> None:
    # sprmTDefTable: 2-byte size counting itself minus one
    table_def = sprm(0xD608, u16(5) + bytes(4))
    result = read_prl(table_def + sprm(0x0835, u8(1)), 0, 11)
    tc.assertEqual(11, result.length)
    tc.assertTrue(result.style.font.bold)

    # sprmPChgTabs with the 255 escape: delete and add lists follow
    tabs = sprm(0xC615, u8(255) + u8(1) + bytes(4) + u8(1) + bytes(3))
    tc.assertEqual(12, read_prl(tabs, 0, len(tabs)).length)

    # any other spra 6 operand: 1-byte size
    generic = sprm(0xC60D, u8(3) + bytes(3))
    tc.assertEqual(6, read_prl(generic, 0, len(generic)).length)

    operand, width = read_operand(generic, 2, decode_opcode(0xC60D))
    tc.assertEqual(bytes(3), operand)
    tc.assertEqual(4, width)


def test_three_byte_operand_is_skipped() -> None:
    data = sprm(0xE87F, b"\x01\x02\x03")
    result = read_prl(data, 0, 5)
    tc.assertEqual(5, result.length)
    tc.assertIsNone(result.style.font)

    operand, width = read_operand(data, 2, decode_opcode(0xE87F))
    tc.assertEqual(0x030201, operand)
    tc.assertEqual(3, width)


def test_empty_prl() -> None:
    result = read_prl(b"", 0, 0)
    tc.assertEqual(0, result.length)
    tc.assertIsNone(result.style.font)
    tc.assertIsNone(result.style.paragraph)
    tc.assertIsNone(result.style.section)


def test_truncated_prl() -> None:
    with pytest.raises(OutOfRangeError):
        read_prl(sprm(0x4A43, b"\x18"), 0, 4)


def test_raw_toggle_bytes_are_not_style_references() -> None:
    operand, _ = read_operand(u8(0x80), 0, decode_opcode(0x0835))
    tc.assertIs(SPRA_VALUE, operand)
    operand, _ = read_operand(u8(0x81), 0, decode_opcode(0x0835))
    tc.assertIs(SPRA_VALUE_OPPOSITE, operand)

    # 0x0A and 0x14 are plain values, not toggles
    for raw in (0x0A, 0x14):
        operand, width = read_operand(u8(raw), 0, decode_opcode(0x0835))
        tc.assertEqual(raw, operand)
        tc.assertEqual(1, width)
        tc.assertIsNone(read_prl(sprm(0x0835, u8(raw)), 0, 3).style.font)


def test_sprm_after_variable_operand() -> None:
    # the operand bytes look like an italic sprm but must be skipped whole
    data = sprm(0xC60D, u8(3) + sprm(0x0836, u8(1))) + sprm(0x0835, u8(1))
    result = read_prl(data, 0, len(data))
    tc.assertEqual(9, result.length)
    tc.assertTrue(result.style.font.bold)
    tc.assertIsNone(result.style.font.italic)

    data = (
        sprm(0xD608, u16(4) + sprm(0x4A43, b"\x30"))
        + sprm(0x4A43, u16(20))
        + sprm(0x2403, u8(1))
    )
    result = read_prl(data, 0, len(data))
    tc.assertEqual(len(data), result.length)
    tc.assertEqual(10.0, result.style.font.size)
    tc.assertEqual("center", result.style.paragraph.alignment)


def test_signed_section_margins() -> None:
    data = (
        sprm(0x9023, i16(-1440))  # sprmSDyaTop
        + sprm(0x9024, i16(720))  # sprmSDyaBottom
        + sprm(0xB021, u16(0x9000))  # sprmSDxaLeft, unsigned
    )
    section = read_prl(data, 0, len(data)).style.section
    tc.assertEqual(-1440, section.margin_top)
    tc.assertEqual(720, section.margin_bottom)
    tc.assertEqual(0x9000, section.margin_left)
