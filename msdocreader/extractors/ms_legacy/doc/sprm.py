"""
SPRM / PRL Decoder
==================

A PRL is a run of SPRMs (single property modifiers). Each SPRM is a 16-bit
opcode followed by an operand whose width is encoded in the opcode itself:

    bits 0-8    isPmd   property id within the group
    bit  9      f       special handling flag
    bits 10-12  sgc     group: 1 paragraph, 2 character, 3 picture,
                        4 section, 5 table
    bits 13-15  spra    operand size selector

Operand sizes by spra:

    0 -> 1 byte toggle (0x00 off, 0x01 on, 0x80 style value, 0x81 opposite)
    1 -> 1 byte
    2 -> 2 bytes
    3 -> 4 bytes
    4 -> 2 bytes
    5 -> 2 bytes
    6 -> variable, size prefixed (sprmTDefTable: 2-byte size; sprmPChgTabs
         with size 255: delete and add lists)
    7 -> 3 bytes

``read_prl`` only records what it sees. A picture location found in a
character PRL stays an unresolved Data stream offset in
``FontDelta.picture_offset``; ``picture.resolve_picture`` turns it into an
image once the whole PRL has been read.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from msdocreader.extractors.data_types import (
    FontDelta,
    FontEntry,
    ParagraphDelta,
    SectionDelta,
    StyleDelta,
)
from msdocreader.extractors.util.byte_reader import (
    read_bytes,
    read_i16,
    read_u8,
    read_u16,
    read_u24,
    read_u32,
)

logger = logging.getLogger(__name__)


class ToggleOperand(Enum):
    """Toggle operands (spra 0) that refer to the style value."""

    SAME_AS_STYLE = 0x80
    OPPOSITE_OF_STYLE = 0x81


SPRA_VALUE = ToggleOperand.SAME_AS_STYLE
SPRA_VALUE_OPPOSITE = ToggleOperand.OPPOSITE_OF_STYLE

SGC_PARAGRAPH = 1
SGC_CHARACTER = 2
SGC_PICTURE = 3
SGC_SECTION = 4
SGC_TABLE = 5

SPRA_OPERAND_SIZES = {0: 1, 1: 1, 2: 2, 3: 4, 4: 2, 5: 2, 7: 3}
SPRA_VARIABLE = 6

# Opcodes whose variable operand does not use a 1-byte size prefix
SPRM_T_DEF_TABLE = 0xD608
SPRM_T_DEF_TABLE_10 = 0xD606
SPRM_P_CHG_TABS = 0xC615

# Paragraph group
PMD_P_JC80 = 0x03
PMD_P_ILVL = 0x0A
PMD_P_ILFO = 0x0B

# Character group
PMD_C_PIC_LOCATION = 0x03
PMD_C_F_DATA = 0x06
PMD_C_F_BOLD = 0x35
PMD_C_F_ITALIC = 0x36
PMD_C_F_STRIKE = 0x37
PMD_C_KUL = 0x3E
PMD_C_ICO = 0x42
PMD_C_HPS = 0x43
PMD_C_ISS = 0x48
PMD_C_RGFTC0 = 0x4F
PMD_C_F_SPEC = 0x55
PMD_C_SHD80 = 0x66
PMD_C_CV = 0x70

# Section group
SECTION_FIELDS = {
    0x1F: "page_width",
    0x20: "page_height",
    0x21: "margin_left",
    0x22: "margin_right",
    0x23: "margin_top",
    0x24: "margin_bottom",
}
# top and bottom margins are signed, a negative value marks an exact margin
SIGNED_SECTION_FIELDS = (0x23, 0x24)

ALIGNMENTS = {
    0: "left",
    1: "center",
    2: "right",
    3: "justified",
    4: "justified",
    5: "justified",
}

UNDERLINE_STYLES = {
    0x00: "none",
    0x01: "single",
    0x02: "words",
    0x03: "double",
    0x04: "dotted",
    0x06: "thick",
    0x07: "dash",
    0x09: "dotDash",
    0x0A: "dotDotDash",
    0x0B: "wave",
    0x14: "dottedHeavy",
    0x17: "dashedHeavy",
    0x19: "dashDotHeavy",
    0x1A: "dashDotDotHeavy",
    0x1B: "wavyHeavy",
    0x27: "dashLong",
    0x2B: "wavyDouble",
    0x37: "dashLongHeavy",
}

# Ico colour indexes (0 is "auto")
ICO_COLORS = {
    0x00: "000000",
    0x01: "000000",
    0x02: "0000FF",
    0x03: "00FFFF",
    0x04: "00FF00",
    0x05: "FF00FF",
    0x06: "FF0000",
    0x07: "FFFF00",
    0x08: "FFFFFF",
    0x09: "000080",
    0x0A: "008080",
    0x0B: "008000",
    0x0C: "800080",
    0x0D: "800000",
    0x0E: "808000",
    0x0F: "808080",
    0x10: "C0C0C0",
}

# sprmPIlfo values
ILFO_NO_LIST = 0x0000
ILFO_NO_LIST_RESET = 0xF801
ILFO_LIST_LAST = 0x07FE
ILFO_PRESERVE_INDENT_FIRST = 0xF802


@dataclass(frozen=True)
class Sprm:
    opcode: int
    is_pmd: int
    f: int
    sgc: int
    spra: int


@dataclass(frozen=True)
class PrlResult:
    style: StyleDelta
    # bytes consumed, including any bytes read past the declared operands
    length: int


def decode_opcode(sprm: int) -> Sprm:
    return Sprm(
        opcode=sprm,
        is_pmd=sprm & 0x01FF,
        f=(sprm >> 9) & 0x01,
        sgc=(sprm >> 10) & 0x07,
        spra=(sprm >> 13) & 0x07,
    )


def _variable_operand(data: bytes, offset: int, sprm: Sprm) -> tuple[bytes, int]:
    if sprm.opcode in (SPRM_T_DEF_TABLE, SPRM_T_DEF_TABLE_10):
        # cb counts the rest of the operand plus one
        cb = read_u16(data, offset)
        size = max(cb - 1, 0)
        return read_bytes(data, offset + 2, size), 2 + size
    cb = read_u8(data, offset)
    if sprm.opcode == SPRM_P_CHG_TABS and cb == 255:
        pos = offset + 1
        c_del = read_u8(data, pos)
        pos += 1 + c_del * 4
        c_add = read_u8(data, pos)
        pos += 1 + c_add * 3
        length = pos - offset
        return read_bytes(data, offset + 1, length - 1), length
    return read_bytes(data, offset + 1, cb), 1 + cb


def read_operand(data: bytes, offset: int, sprm: Sprm) -> tuple[Any, int]:
    """
    Read the operand that follows an opcode.

    Args:
        data: Buffer holding the PRL.
        offset: Position right after the 2-byte opcode.
        sprm: The decoded opcode.

    Returns:
        ``(operand, length)`` where ``length`` is the number of bytes the
        operand occupies. Toggle operands come back as ``False``/``True`` or
        one of the ``SPRA_VALUE`` sentinels; variable operands as raw bytes.
    """
    if sprm.spra == 0:
        value = read_u8(data, offset)
        if value == 0x00:
            return False, 1
        if value == 0x01:
            return True, 1
        if value == 0x80:
            return SPRA_VALUE, 1
        if value == 0x81:
            return SPRA_VALUE_OPPOSITE, 1
        return value, 1
    if sprm.spra == 1:
        return read_u8(data, offset), 1
    if sprm.spra in (2, 4, 5):
        return read_u16(data, offset), 2
    if sprm.spra == 3:
        if sprm.sgc == SGC_CHARACTER and sprm.is_pmd == PMD_C_CV:
            # colour is read by read_prl from the WordDocument stream
            return None, 0
        return read_u32(data, offset), 4
    if sprm.spra == 7:
        return read_u24(data, offset), 3
    return _variable_operand(data, offset, sprm)


def _toggle(operand: Any) -> Optional[bool]:
    if operand is False or operand is True:
        return operand
    if operand is SPRA_VALUE:
        return False
    if operand is SPRA_VALUE_OPPOSITE:
        return True
    return None


def _apply_paragraph(sprm: Sprm, operand: Any, paragraph: dict) -> None:
    if sprm.is_pmd == PMD_P_JC80:
        paragraph["alignment"] = ALIGNMENTS.get(operand, "left")
    elif sprm.is_pmd == PMD_P_ILVL:
        paragraph["list_level"] = operand
    elif sprm.is_pmd == PMD_P_ILFO:
        paragraph["list_override"] = operand
        if operand in (ILFO_NO_LIST, ILFO_NO_LIST_RESET):
            paragraph["is_list"] = False
        elif 0x0001 <= operand <= ILFO_LIST_LAST:
            paragraph["is_list"] = True
        elif operand >= ILFO_PRESERVE_INDENT_FIRST:
            paragraph["is_list"] = True
            paragraph["indent_preserved"] = True
    else:
        logger.debug("Skipping paragraph sprm %s", hex(sprm.opcode))


def _apply_character(
    sprm: Sprm, operand: Any, font: dict, fonts: Sequence[FontEntry]
) -> None:
    pmd = sprm.is_pmd
    if pmd == PMD_C_PIC_LOCATION:
        font["picture_offset"] = operand
    elif pmd == PMD_C_F_DATA:
        font["has_data"] = bool(operand)
    elif pmd in (PMD_C_F_BOLD, PMD_C_F_ITALIC, PMD_C_F_STRIKE):
        value = _toggle(operand)
        if value is not None:
            key = {
                PMD_C_F_BOLD: "bold",
                PMD_C_F_ITALIC: "italic",
                PMD_C_F_STRIKE: "strikethrough",
            }[pmd]
            font[key] = value
    elif pmd == PMD_C_KUL:
        font["underline"] = UNDERLINE_STYLES.get(operand, "none")
    elif pmd == PMD_C_ICO:
        if operand in ICO_COLORS:
            font["color"] = ICO_COLORS[operand]
    elif pmd == PMD_C_HPS:
        font["size"] = operand / 2
    elif pmd == PMD_C_ISS:
        font["superscript"] = operand == 1
        font["subscript"] = operand == 2
    elif pmd == PMD_C_RGFTC0:
        font["name"] = fonts[operand].name if 0 <= operand < len(fonts) else ""
    elif pmd == PMD_C_F_SPEC:
        font["special"] = bool(operand)
    else:
        logger.debug("Skipping character sprm %s", hex(sprm.opcode))


def read_prl(
    data: bytes,
    offset: int,
    cb_num: int,
    *,
    word_document: Optional[bytes] = None,
    fonts: Sequence[FontEntry] = (),
) -> PrlResult:
    """
    Decode ``cb_num`` bytes of SPRMs starting at ``offset``.

    Args:
        data: Buffer holding the PRL (table or WordDocument stream).
        offset: Position of the first opcode.
        cb_num: Declared byte length of the PRL.
        word_document: The WordDocument stream. The direct colour property
            always takes its RGB bytes from this stream, at the current
            position, whichever buffer the PRL itself lives in. Defaults to
            ``data``.
        fonts: Decoded font table, used to name the font of a run.

    Returns:
        PrlResult with the sparse style and the exact number of bytes
        consumed, including the extra bytes of the shading and colour
        properties.

    Raises:
        OutOfRangeError: An opcode or operand runs past the buffer.
    """
    if word_document is None:
        word_document = data
    pos = offset
    font: dict = {}
    paragraph: dict = {}
    section: dict = {}

    while cb_num > 0:
        sprm = decode_opcode(read_u16(data, pos))
        pos += 2
        cb_num -= 2

        operand, width = read_operand(data, pos, sprm)
        pos += width
        cb_num -= width

        if sprm.sgc == SGC_PARAGRAPH:
            _apply_paragraph(sprm, operand, paragraph)
        elif sprm.sgc == SGC_CHARACTER:
            if sprm.is_pmd == PMD_C_SHD80:
                pos += 2
                cb_num -= 2
            elif sprm.is_pmd == PMD_C_CV:
                red, green, blue = read_bytes(word_document, pos, 3)
                font["color"] = f"{red:02x}{green:02x}{blue:02x}"
                pos += 4
                cb_num -= 4
            else:
                _apply_character(sprm, operand, font, fonts)
        elif sprm.sgc == SGC_SECTION:
            if sprm.is_pmd in SIGNED_SECTION_FIELDS and sprm.spra in (2, 4, 5):
                operand = read_i16(data, pos - width)
            if sprm.is_pmd in SECTION_FIELDS:
                section[SECTION_FIELDS[sprm.is_pmd]] = operand
            else:
                logger.debug("Skipping section sprm %s", hex(sprm.opcode))
        else:
            logger.debug("Skipping sprm %s (sgc %d)", hex(sprm.opcode), sprm.sgc)

    style = StyleDelta(
        font=FontDelta(**font) if font else None,
        paragraph=ParagraphDelta(**paragraph) if paragraph else None,
        section=SectionDelta(**section) if section else None,
    )
    return PrlResult(style=style, length=pos - offset)
