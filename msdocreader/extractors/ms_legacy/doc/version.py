"""
Word version detection.

``detect_word_version`` guesses the producer from the first bytes of a file
(used to explain why a non-OLE file is rejected); ``version_from_fib``
reads the nFib of an OLE document's WordDocument stream. Only version 8
(Word 97 and later) has the FIB layout this package decodes.
"""

import logging
from dataclasses import dataclass

from msdocreader.extractors.util.byte_reader import (
    read_u8,
    read_u16,
    read_u16_be,
)

logger = logging.getLogger(__name__)

OLE_SIGNATURE = bytes([0xD0, 0xCF, 0x11, 0xE0, 0xA1, 0xB1, 0x1A, 0xE1])
DOS_SIGNATURE = bytes([0x31, 0xBE, 0x00, 0x00, 0x00, 0xAB])
MAC_WORD_SIGNATURES = (
    bytes([0xFE, 0x37, 0x00, 0x1C, 0x00, 0x00]),  # Mac Word 4
    bytes([0xFE, 0x37, 0x00, 0x23, 0x00, 0x00]),  # Mac Word 5
)
RTF_SIGNATURE = b"{\\rtf1"
WIN_WORD_12_SIGNATURES = (
    bytes([0x9B, 0xA5, 0x21, 0x00]),  # Win Word 1.x
    bytes([0xDB, 0xA5, 0x2D, 0x00]),  # Win Word 2.0
)
WORDPERFECT_SIGNATURE = b"\xffWPC"

BIG_BLOCK_SIZE = 512
MIN_DOS_SIZE = 128
MIN_WIN_WORD_12_SIZE = 384

VERSION_UNKNOWN = -1
VERSION_WORD_97 = 8

FIB_NFIB_OFFSET = 0x02
FIB_ENVR_OFFSET = 0x05
FIB_CHSE_OFFSET = 0x14
NFIB_BIG_ENDIAN_THRESHOLD = 0x1000
NFIB_WORD_97_MIN = 192
CHSE_MAC = 256
ENVR_WINDOWS = 0xE0


@dataclass(frozen=True)
class WordVersion:
    number: int
    old_mac: bool = False
    name: str = ""

    @property
    def supported(self) -> bool:
        return self.number >= VERSION_WORD_97


def _is_ole_size(size: int) -> bool:
    if size < BIG_BLOCK_SIZE * 3:
        return False
    tail = size % BIG_BLOCK_SIZE
    if tail == 0:
        return True
    # one or two stray bytes appended by some mail programs
    return tail in (1, 2) and size % 3 != tail


def detect_word_version(data: bytes) -> WordVersion:
    """Guess the word processor that wrote ``data`` from its signature."""
    size = len(data)
    if size >= MIN_DOS_SIZE and data.startswith(DOS_SIGNATURE):
        return WordVersion(0, name="Word for DOS")
    if size >= MIN_WIN_WORD_12_SIZE:
        if data.startswith(WIN_WORD_12_SIGNATURES[0]):
            return WordVersion(1, name="Word for Windows 1.x")
        if data.startswith(WIN_WORD_12_SIGNATURES[1]):
            return WordVersion(2, name="Word for Windows 2.0")
    if data.startswith(MAC_WORD_SIGNATURES[0]):
        return WordVersion(4, old_mac=True, name="Mac Word 4")
    if data.startswith(MAC_WORD_SIGNATURES[1]):
        return WordVersion(5, old_mac=True, name="Mac Word 5")
    if data.startswith(OLE_SIGNATURE) and _is_ole_size(size):
        return WordVersion(6, name="OLE compound document")
    if data.startswith(RTF_SIGNATURE):
        return WordVersion(VERSION_UNKNOWN, name="RTF")
    if data.startswith(WORDPERFECT_SIGNATURE):
        return WordVersion(VERSION_UNKNOWN, name="WordPerfect")
    return WordVersion(VERSION_UNKNOWN, name="unknown")


def version_from_fib(header: bytes) -> WordVersion:
    """
    Map the nFib of a FIB to a Word version.

    Mac Word writes the FIB big-endian, which shows as an nFib of 0x1000 or
    more when read little-endian. nFib 103/104 is shared by Word 7 and Mac
    Word 6; the character set and environment bytes tell them apart.
    """
    nfib = read_u16(header, FIB_NFIB_OFFSET)
    if nfib >= NFIB_BIG_ENDIAN_THRESHOLD:
        nfib = read_u16_be(header, FIB_NFIB_OFFSET)

    if nfib == 0:
        return WordVersion(0, name="Word for DOS")
    if nfib == 28:
        return WordVersion(4, old_mac=True, name="Mac Word 4")
    if nfib == 33:
        return WordVersion(1, name="Word for Windows 1.x")
    if nfib == 35:
        return WordVersion(5, old_mac=True, name="Mac Word 5")
    if nfib == 45:
        return WordVersion(2, name="Word for Windows 2.0")
    if nfib in (101, 102):
        return WordVersion(6, name="Word 6")
    if nfib in (103, 104):
        chse = read_u16(header, FIB_CHSE_OFFSET)
        if chse == 0:
            return WordVersion(7, name="Word 7")
        if chse == CHSE_MAC:
            return WordVersion(6, old_mac=True, name="Mac Word 6")
        if read_u8(header, FIB_ENVR_OFFSET) == ENVR_WINDOWS:
            return WordVersion(7, name="Word 7")
        return WordVersion(6, old_mac=True, name="Mac Word 6")
    if nfib < NFIB_WORD_97_MIN:
        logger.debug("Unknown nFib %d", nfib)
        return WordVersion(VERSION_UNKNOWN, name="unknown")
    return WordVersion(VERSION_WORD_97, name="Word 97 or later")
