"""
PLC walkers
===========

A PLC is an array of N+1 CPs (or FCs) followed by N data records of a fixed
size, so ``N = (lcb - 4) / (4 + record_size)``. The walkers here locate each
PLC through its FIB pair and decode the records it points to:

    PlcfSed      section descriptors -> SEPX in WordDocument
    SttbfFfn     font table (not a PLC, a string table of FFN records)
    PlcfBtePapx  page numbers of PAPX FKPs (512-byte pages in WordDocument)
    PlcfBteChpx  page numbers of CHPX FKPs
    PlfLfo       list format overrides (count-prefixed, not a PLC)

All walkers return new lists of frozen records; none of them keeps a
reference to the stream buffers.
"""

import logging
from typing import List, Optional, Sequence

from msdocreader.exceptions import PlcSizeError
from msdocreader.extractors.data_types import (
    CharacterRun,
    FibFields,
    FontEntry,
    ListFormatOverride,
    ParagraphDescriptor,
    SectionDescriptor,
    StyleDelta,
)
from msdocreader.extractors.ms_legacy.doc.picture import resolve_picture
from msdocreader.extractors.ms_legacy.doc.sprm import read_prl
from msdocreader.extractors.util.byte_reader import (
    read_u8,
    read_u16,
    read_u32,
    read_utf16z,
)
from msdocreader.extractors.util.options import (
    DEFAULT_DOC_READER_OPTIONS,
    DocReaderOptions,
)

logger = logging.getLogger(__name__)

FKP_PAGE_SIZE = 512
FKP_COUNT_OFFSET = 511  # last byte of an FKP page holds the entry count
PN_MASK = 0x3FFFFF  # 22 bits, the upper 10 are reserved

SED_SIZE = 12
BTE_SIZE = 4
PAPX_BX_SIZE = 13  # bOffset + 12-byte PHE
CHPX_BX_SIZE = 1

FFN_IXCH_SZ_ALT_OFFSET = 5
FFN_NAME_OFFSET = 40
STTBF_FFN_MAX_ENTRIES = 0x7FF0

LFO_SIZE = 16
LFO_MAX_ENTRIES = 0x7FFF

FC_SEPX_ABSENT = 0xFFFFFFFF


def plc_element_count(
    lcb: int,
    record_size: int,
    *,
    strict: bool = False,
    name: str = "PLC",
    warnings: Optional[List[str]] = None,
) -> int:
    """
    Number of data records in a PLC of ``lcb`` bytes.

    A size with trailing bytes is truncated to the whole records it holds.
    The truncation is logged and, when ``warnings`` is given, appended to it
    so callers can tell the result is partial.

    Raises:
        PlcSizeError: ``strict`` is set and ``lcb`` is not a whole number of
            CP + record pairs plus the trailing CP.
    """
    if lcb < 4:
        return 0
    count, remainder = divmod(lcb - 4, 4 + record_size)
    if remainder:
        if strict:
            raise PlcSizeError(lcb, record_size)
        message = (
            f"{name} of {lcb} bytes is not a whole number of {record_size}-byte "
            f"records, reading {count} record(s)"
        )
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)
    return count


def _page_numbers(table: bytes, fc: int, count: int) -> List[int]:
    pos = fc + 4 * (count + 1)  # skip the FCs
    return [read_u32(table, pos + 4 * i) & PN_MASK for i in range(count)]


def read_sections(
    table: bytes,
    word_document: bytes,
    fib: FibFields,
    fonts: Sequence[FontEntry] = (),
    *,
    options: DocReaderOptions = DEFAULT_DOC_READER_OPTIONS,
    warnings: Optional[List[str]] = None,
) -> List[SectionDescriptor]:
    """
    Decode every SED and the SEPX it points to.

    The SED array follows all N + 1 section boundary CPs, so a document
    with several sections reads each SED from its own slot.
    """
    if not fib.has("PlcfSed"):
        return []
    fc, lcb = fib.get("PlcfSed")
    count = plc_element_count(
        lcb, SED_SIZE, strict=options.strict_plc, name="PlcfSed", warnings=warnings
    )
    pos = fc + 4 * (count + 1)

    sections = []
    for i in range(count):
        fc_sepx = read_u32(table, pos + i * SED_SIZE + 2)
        if fc_sepx == FC_SEPX_ABSENT or fc_sepx + 2 > len(word_document):
            logger.debug("SED %d has no SEPX in WordDocument", i)
            sections.append(SectionDescriptor(fc_sepx=fc_sepx))
            continue
        cb = read_u16(word_document, fc_sepx)
        prl = read_prl(
            word_document,
            fc_sepx + 2,
            cb,
            word_document=word_document,
            fonts=fonts,
        )
        sections.append(
            SectionDescriptor(fc_sepx=fc_sepx, style=prl.style, length=prl.length)
        )
    return sections


def read_font_table(table: bytes, fib: FibFields) -> List[FontEntry]:
    """
    Decode the SttbfFfn font names.

    Tables with extra data per entry or an implausible entry count are
    treated as absent.
    """
    if not fib.has("SttbfFfn"):
        return []
    pos = fib.fc("SttbfFfn")
    c_data = read_u16(table, pos)
    cb_extra = read_u16(table, pos + 2)
    if c_data >= STTBF_FFN_MAX_ENTRIES or cb_extra != 0:
        logger.debug(
            "Ignoring font table (cData=%d, cbExtra=%d)", c_data, cb_extra
        )
        return []
    pos += 4

    fonts = []
    for _ in range(c_data):
        cb_ffn_m1 = read_u8(table, pos)
        ixch_sz_alt = read_u8(table, pos + FFN_IXCH_SZ_ALT_OFFSET)
        name, after = read_utf16z(table, pos + FFN_NAME_OFFSET)
        alt_name = ""
        if ixch_sz_alt > 0:
            alt_name, _ = read_utf16z(table, after)
        fonts.append(FontEntry(name=name, alt_name=alt_name))
        pos += cb_ffn_m1 + 1
    logger.debug("Read %d font(s)", len(fonts))
    return fonts


def papx_length(data: bytes, offset: int) -> tuple[int, int]:
    """
    Decode the length prefix of a PAPX inside an FKP page.

    A lead byte of 0 means the next byte holds the length in words; any
    other lead byte ``cb`` gives a length of ``cb * 2 - 1``.

    Returns:
        ``(length, offset)`` where ``offset`` is the position of the 2-byte
        style index that starts the PAPX body.
    """
    cb = read_u8(data, offset)
    if cb == 0:
        return read_u8(data, offset + 1) * 2, offset + 2
    return cb * 2 - 1, offset + 1


def _read_papx(
    word_document: bytes, offset: int, fonts: Sequence[FontEntry]
) -> Optional[StyleDelta]:
    cb, pos = papx_length(word_document, offset)
    # istd
    pos += 2
    cb -= 2
    if cb <= 0:
        return None
    return read_prl(
        word_document, pos, cb, word_document=word_document, fonts=fonts
    ).style


def read_paragraphs(
    table: bytes,
    word_document: bytes,
    fib: FibFields,
    fonts: Sequence[FontEntry] = (),
    *,
    options: DocReaderOptions = DEFAULT_DOC_READER_OPTIONS,
    warnings: Optional[List[str]] = None,
) -> List[ParagraphDescriptor]:
    """
    Walk PlcfBtePapx and decode every PAPX FKP page it references.

    Returns:
        One ParagraphDescriptor per FKP page, in document order.
    """
    if not fib.has("PlcfBtePapx"):
        return []
    fc, lcb = fib.get("PlcfBtePapx")
    count = plc_element_count(
        lcb,
        BTE_SIZE,
        strict=options.strict_plc,
        name="PlcfBtePapx",
        warnings=warnings,
    )

    paragraphs = []
    for pn in _page_numbers(table, fc, count):
        base = pn * FKP_PAGE_SIZE
        cpara = read_u8(word_document, base + FKP_COUNT_OFFSET)
        fcs = [read_u32(word_document, base + 4 * j) for j in range(cpara + 1)]
        bx_start = base + 4 * (cpara + 1)
        rgbs = [
            read_u8(word_document, bx_start + PAPX_BX_SIZE * j) for j in range(cpara)
        ]
        styles = [
            _read_papx(word_document, base + rgb * 2, fonts) if rgb else None
            for rgb in rgbs
        ]
        paragraphs.append(
            ParagraphDescriptor(page_number=pn, fcs=fcs, rgbs=rgbs, styles=styles)
        )
    logger.debug("Read %d PAPX page(s)", len(paragraphs))
    return paragraphs


def read_character_runs(
    table: bytes,
    word_document: bytes,
    data: bytes,
    fib: FibFields,
    fonts: Sequence[FontEntry] = (),
    *,
    options: DocReaderOptions = DEFAULT_DOC_READER_OPTIONS,
    warnings: Optional[List[str]] = None,
) -> List[CharacterRun]:
    """
    Walk PlcfBteChpx and decode every CHPX FKP page it references.

    Inline pictures referenced by a run are resolved against the Data
    stream unless ``options.extract_images`` is off.

    ``start`` counts bytes from the first run of the first page and keeps
    growing across FKP pages.
    """
    if not fib.has("PlcfBteChpx"):
        return []
    fc, lcb = fib.get("PlcfBteChpx")
    count = plc_element_count(
        lcb,
        BTE_SIZE,
        strict=options.strict_plc,
        name="PlcfBteChpx",
        warnings=warnings,
    )

    runs = []
    start = 0
    image_number = 0
    for pn in _page_numbers(table, fc, count):
        base = pn * FKP_PAGE_SIZE
        crun = read_u8(word_document, base + FKP_COUNT_OFFSET)
        fcs = [read_u32(word_document, base + 4 * j) for j in range(crun + 1)]
        bx_start = base + 4 * (crun + 1)

        for j in range(1, crun + 1):
            rgb = read_u8(word_document, bx_start + CHPX_BX_SIZE * (j - 1))
            length = fcs[j] - fcs[j - 1]
            style = None
            image = None
            if rgb > 0:
                pos = base + rgb * 2
                cb = read_u8(word_document, pos)
                style = read_prl(
                    word_document,
                    pos + 1,
                    cb,
                    word_document=word_document,
                    fonts=fonts,
                ).style
                if options.extract_images:
                    image = resolve_picture(data, style.font)
                    if image is not None:
                        image_number += 1
                        image.image_number = image_number
            runs.append(
                CharacterRun(
                    start=start,
                    fc_start=fcs[j - 1],
                    length=length,
                    style=style,
                    image=image,
                )
            )
            start += length
    logger.debug("Read %d character run(s), %d image(s)", len(runs), image_number)
    return runs


def read_list_overrides(table: bytes, fib: FibFields) -> List[ListFormatOverride]:
    if not fib.has("PlfLfo"):
        return []
    fc, lcb = fib.get("PlfLfo")
    count = read_u32(table, fc)
    if 4 + LFO_SIZE * count > lcb or count >= LFO_MAX_ENTRIES:
        logger.debug("Ignoring implausible LFO table (%d entries)", count)
        return []

    overrides = []
    for i in range(count):
        pos = fc + 4 + LFO_SIZE * i
        overrides.append(
            ListFormatOverride(
                lsid=read_u32(table, pos),
                clfolvl=read_u8(table, pos + 12),
                ibst_flt_auto_num=read_u8(table, pos + 13),
                grfhic=read_u8(table, pos + 14),
            )
        )
    return overrides
