"""
SummaryInformation / DocumentSummaryInformation decoders.

Both streams are OLE property sets:

    header      28 bytes: byte order 0xFFFE, must-be-zero, OS/version dword,
                CLSID, section count (1 or 2) at 24
    sections    20 bytes each: FMTID (16) + offset (4)
    section     size (4), property count (4), then (pid, offset) pairs;
                offsets are relative to the section start

Only a fixed set of properties is decoded; everything else is ignored.
"""

import codecs
import logging
from typing import Optional

from msdocreader.exceptions import InvalidPropertySetError
from msdocreader.extractors.util.byte_reader import (
    read_bytes,
    read_i32,
    read_u16,
    read_u32,
)
from msdocreader.extractors.util.conversions import filetime_to_unix

logger = logging.getLogger(__name__)

PROPERTY_SET_BYTE_ORDER = 0xFFFE
PROPERTY_SET_HEADER_SIZE = 28
PROPERTY_SET_SECTION_COUNT_OFFSET = 24
SECTION_LIST_ENTRY_SIZE = 20
SECTION_OFFSET_IN_ENTRY = 16

OS_NAMES = {0: "Win16", 1: "Macintosh", 2: "Win32"}

# Property types
VT_I2 = 2
VT_I4 = 3
VT_LPSTR = 30
VT_FILETIME = 64

# SummaryInformation property ids
PID_CODEPAGE = 1
PID_TITLE = 2
PID_SUBJECT = 3
PID_AUTHOR = 4
PID_CREATE_DTM = 12
PID_LASTSAVE_DTM = 13
PID_PAGECOUNT = 14
PID_WORDCOUNT = 15
PID_CHARCOUNT = 16
PID_APPNAME = 18

# DocumentSummaryInformation property ids
PIDD_MANAGER = 14
PIDD_COMPANY = 15

SUMMARY_STRINGS = {
    PID_TITLE: "title",
    PID_SUBJECT: "subject",
    PID_AUTHOR: "author",
    PID_APPNAME: "app_name",
}
SUMMARY_FILETIMES = {PID_CREATE_DTM: "created", PID_LASTSAVE_DTM: "modified"}
SUMMARY_COUNTS = {
    PID_PAGECOUNT: "num_pages",
    PID_WORDCOUNT: "num_words",
    PID_CHARCOUNT: "num_chars",
}
DOCUMENT_SUMMARY_STRINGS = {PIDD_MANAGER: "manager", PIDD_COMPANY: "company"}

# Code pages Python does not know as "cp<number>"
CODEPAGE_ENCODINGS = {
    936: "cp936",
    1200: "utf-16-le",
    10000: "mac_roman",
    10008: "gb2312",
    65001: "utf-8",
}

LPSTR_WHITESPACE = b" \t\r\n\x0b\x0c"


def codepage_encoding(codepage: Optional[int]) -> Optional[str]:
    """Python codec for a Windows code page, or None when unknown."""
    if codepage is None:
        return None
    if codepage in CODEPAGE_ENCODINGS:
        return CODEPAGE_ENCODINGS[codepage]
    try:
        return codecs.lookup(f"cp{codepage}").name
    except LookupError:
        return None


def decode_lpstr(raw: bytes, codepage: Optional[int]) -> str:
    """
    Decode a VT_LPSTR payload with the code page of its property set.

    Unknown code pages keep every byte as the code point of the same value.
    """
    encoding = codepage_encoding(codepage)
    if encoding is None:
        return raw.decode("latin-1")
    return raw.decode(encoding, errors="replace")


def property_set_section(stream: bytes) -> bytes:
    """
    Validate the property set header and return the first section.

    Raises:
        InvalidPropertySetError: The header or section list is malformed.
    """
    if len(stream) < PROPERTY_SET_HEADER_SIZE + SECTION_LIST_ENTRY_SIZE:
        raise InvalidPropertySetError(
            f"Property set stream too short: {len(stream)} byte(s)"
        )
    byte_order = read_u16(stream, 0)
    if byte_order != PROPERTY_SET_BYTE_ORDER:
        raise InvalidPropertySetError(f"Bad property set byte order {hex(byte_order)}")
    if read_u16(stream, 2) != 0:
        raise InvalidPropertySetError("Property set reserved field is not zero")

    os_version = read_u32(stream, 4)
    logger.debug(
        "Property set written on %s, version %d",
        OS_NAMES.get(os_version >> 16, "unknown OS"),
        os_version & 0xFFFF,
    )

    count = read_i32(stream, PROPERTY_SET_SECTION_COUNT_OFFSET)
    if count not in (1, 2):
        raise InvalidPropertySetError(f"Unexpected property set count {count}")

    offset = read_u32(stream, PROPERTY_SET_HEADER_SIZE + SECTION_OFFSET_IN_ENTRY)
    if offset not in (
        PROPERTY_SET_HEADER_SIZE + SECTION_LIST_ENTRY_SIZE,
        PROPERTY_SET_HEADER_SIZE + 2 * SECTION_LIST_ENTRY_SIZE,
    ):
        raise InvalidPropertySetError(f"Unexpected section offset {offset}")

    size_offset = PROPERTY_SET_HEADER_SIZE + count * SECTION_LIST_ENTRY_SIZE
    if size_offset + 4 > len(stream):
        raise InvalidPropertySetError("Section size lies past the end of the stream")
    length = read_u32(stream, size_offset)
    if offset + length > len(stream):
        raise InvalidPropertySetError(
            f"Section of {length} byte(s) at {offset} exceeds the stream"
        )
    return read_bytes(stream, offset, length)


def _properties(section: bytes) -> list[tuple[int, int, int]]:
    """(pid, offset, type) of every property in a section."""
    count = read_u32(section, 4)
    entries = []
    for i in range(count):
        pid = read_u32(section, 8 + i * 8)
        offset = read_u32(section, 12 + i * 8)
        entries.append((pid, offset, read_u16(section, offset)))
    return entries


def _codepage(entries: list[tuple[int, int, int]], section: bytes) -> Optional[int]:
    for pid, offset, prop_type in entries:
        if pid == PID_CODEPAGE and prop_type == VT_I2:
            return read_u16(section, offset + 4)
    return None


def _lpstr(section: bytes, offset: int) -> Optional[bytes]:
    size = read_u32(section, offset + 4)
    if size == 0:
        return None
    raw = read_bytes(section, offset + 8, size)
    raw = raw.lstrip(LPSTR_WHITESPACE).rstrip(LPSTR_WHITESPACE + b"\x00")
    return raw or None


def _read_strings(
    section: bytes, entries: list[tuple[int, int, int]], names: dict, result: dict
) -> None:
    codepage = _codepage(entries, section)
    for pid, offset, prop_type in entries:
        if pid in names and prop_type == VT_LPSTR:
            raw = _lpstr(section, offset)
            if raw is not None:
                result[names[pid]] = decode_lpstr(raw, codepage)


def read_summary_information(stream: bytes) -> dict:
    """
    Decode the SummaryInformation property set.

    Returns:
        A dict with any of ``codepage``, ``title``, ``subject``, ``author``,
        ``app_name``, ``created``, ``modified`` (Unix seconds),
        ``num_pages``, ``num_words`` and ``num_chars``.

    Raises:
        InvalidPropertySetError: The header is malformed.
        OutOfRangeError: A property runs past its section.
    """
    section = property_set_section(stream)
    entries = _properties(section)

    result: dict = {}
    codepage = _codepage(entries, section)
    if codepage is not None:
        result["codepage"] = codepage
    _read_strings(section, entries, SUMMARY_STRINGS, result)

    for pid, offset, prop_type in entries:
        if pid in SUMMARY_FILETIMES and prop_type == VT_FILETIME:
            result[SUMMARY_FILETIMES[pid]] = filetime_to_unix(
                read_u32(section, offset + 4), read_u32(section, offset + 8)
            )
        elif pid in SUMMARY_COUNTS and prop_type == VT_I4:
            result[SUMMARY_COUNTS[pid]] = read_i32(section, offset + 4)
    return result


def read_document_summary_information(stream: bytes) -> dict:
    """Decode ``manager`` and ``company`` from DocumentSummaryInformation."""
    section = property_set_section(stream)
    entries = _properties(section)
    result: dict = {}
    _read_strings(section, entries, DOCUMENT_SUMMARY_STRINGS, result)
    return result
