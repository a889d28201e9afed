"""
Text Assembler
==============

Rebuilds the document text from the piece table.

Piece Table
-----------
The CLX structure at ``fcClx`` in the table stream is a tagged sequence:

    0x00    one padding byte follows
    0x01    Prc: u16 cbGrpprl + PRL (formatting shared by pieces)
    0x02    Pcdt: u32 lcb + PlcPcd, the piece table itself, ends the CLX

PlcPcd holds N+1 CPs followed by N 8-byte PCDs. Bytes 2-5 of a PCD hold the
FC of the piece in the WordDocument stream. When bit 30 of the FC is set the
piece is stored as 8-bit text at ``(fc & ~bit30) >> 1``, otherwise as
UTF-16LE at ``fc``.

Text Regions
------------
The concatenated pieces hold the subdocuments back to back: main text
(ccpText), footnotes (ccpFtn), headers (ccpHdd) and comments (ccpAtn). The
main text is split on 0x05, the mark Word leaves where a comment is
anchored.

Text Cleaning
-------------
``clean_text`` normalizes Word control characters for plain-text output:
    - \\x07 (cell marker) -> tab
    - \\x0b (vertical tab) -> newline
    - \\x0c (page break) -> double newline
    - \\x0d (carriage return) -> newline
    - \\x13, \\x14, \\x15 (field markers) -> removed or space
    - Various other control chars -> removed
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

from msdocreader.exceptions import LegacyMicrosoftParsingError
from msdocreader.extractors.data_types import (
    CommentRecord,
    FibFields,
    FontEntry,
    ParagraphDescriptor,
    StyleDelta,
    TextPiece,
)
from msdocreader.extractors.ms_legacy.doc.plc import plc_element_count
from msdocreader.extractors.ms_legacy.doc.sprm import read_prl
from msdocreader.extractors.util.byte_reader import (
    read_bytes,
    read_u8,
    read_u16,
    read_u32,
)

logger = logging.getLogger(__name__)

CLX_PADDING = 0x00
CLX_PRC = 0x01
CLX_PCDT = 0x02

PCD_SIZE = 8
PCD_FC_OFFSET = 2
PCD_PRM_OFFSET = 6
FC_COMPRESSED = 0x40000000  # bit 30

COMMENT_ANCHOR = "\x05"
LIST_MARKER = "*\t"

COMPRESSED_ENCODING = "cp1252"


@dataclass(frozen=True)
class Clx:
    pieces: List[TextPiece] = field(default_factory=list)
    styles: List[StyleDelta] = field(default_factory=list)


@dataclass(frozen=True)
class AssembledText:
    # main text with comment anchors removed
    main_text: str = ""
    segments: List[str] = field(default_factory=list)
    comment_text: str = ""
    comments: List[CommentRecord] = field(default_factory=list)


def piece_byte_length(start_cp: int, end_cp: int, compressed: bool) -> int:
    chars = end_cp - start_cp
    return chars if compressed else chars * 2


def _read_pcdt(
    table: bytes, pos: int, *, strict: bool, warnings: Optional[List[str]]
) -> List[TextPiece]:
    lcb = read_u32(table, pos)
    pos += 4
    if lcb < 4:
        raise LegacyMicrosoftParsingError(f"Invalid piece table size: {lcb}")
    count = plc_element_count(
        lcb, PCD_SIZE, strict=strict, name="PlcPcd", warnings=warnings
    )
    pcd_start = pos + 4 * (count + 1)

    pieces = []
    for i in range(count):
        start_cp = read_u32(table, pos + 4 * i)
        end_cp = read_u32(table, pos + 4 * (i + 1))
        fc = read_u32(table, pcd_start + PCD_SIZE * i + PCD_FC_OFFSET)
        prm = read_u16(table, pcd_start + PCD_SIZE * i + PCD_PRM_OFFSET)
        compressed = bool(fc & FC_COMPRESSED)
        if compressed:
            fc = (fc & ~FC_COMPRESSED) >> 1
        pieces.append(
            TextPiece(
                start_cp=start_cp,
                end_cp=end_cp,
                fc=fc,
                compressed=compressed,
                prm=prm,
                byte_length=piece_byte_length(start_cp, end_cp, compressed),
            )
        )
    return pieces


def read_piece_table(
    table: bytes,
    fib: FibFields,
    *,
    word_document: Optional[bytes] = None,
    fonts: Sequence[FontEntry] = (),
    strict: bool = False,
    warnings: Optional[List[str]] = None,
) -> Clx:
    """
    Decode the CLX: the Prc formatting blocks and the piece table.

    Args:
        table: The table stream.
        fib: The decoded FIB, locating the CLX through ``Clx``.
        word_document: WordDocument stream handed to the PRL decoder.
        fonts: Font table handed to the PRL decoder.
        strict: Reject piece tables whose size is not a whole number of
            pieces.
        warnings: Collects a note when the piece table is truncated.

    Returns:
        Clx with the pieces in CP order and the Prc styles.

    Raises:
        LegacyMicrosoftParsingError: The document has no CLX, or the CLX
            holds an unknown tag or an invalid piece table.
    """
    if not fib.has("Clx"):
        raise LegacyMicrosoftParsingError("Document has no piece table (CLX)")
    fc, lcb = fib.get("Clx")
    pos = fc
    end = fc + lcb

    styles = []
    pieces: List[TextPiece] = []
    while pos < end:
        tag = read_u8(table, pos)
        pos += 1
        if tag == CLX_PADDING:
            pos += 1
            continue
        if tag == CLX_PRC:
            cb_grpprl = read_u16(table, pos)
            pos += 2
            prl = read_prl(
                table, pos, cb_grpprl, word_document=word_document, fonts=fonts
            )
            styles.append(prl.style)
            pos += prl.length
            continue
        if tag != CLX_PCDT:
            raise LegacyMicrosoftParsingError(
                f"Unexpected CLX tag {hex(tag)} at offset {pos - 1}"
            )
        pieces = _read_pcdt(table, pos, strict=strict, warnings=warnings)
        break
    else:
        logger.warning("CLX ended without a piece table")

    logger.debug("Read %d piece(s), %d Prc block(s)", len(pieces), len(styles))
    return Clx(pieces=pieces, styles=styles)


def decode_pieces(word_document: bytes, pieces: Sequence[TextPiece]) -> str:
    """Concatenate the text of every piece, with ``\\r`` turned into ``\\n``."""
    parts = []
    for piece in pieces:
        raw = read_bytes(word_document, piece.fc, piece.byte_length)
        if piece.compressed:
            text = raw.decode(COMPRESSED_ENCODING, errors="replace")
        else:
            text = raw.decode("utf-16-le", errors="replace")
        parts.append(text.replace("\r", "\n"))
    return "".join(parts)


def _fc_to_cp(fc: int, pieces: Sequence[TextPiece], *, end: bool) -> Optional[int]:
    for piece in pieces:
        upper = piece.fc + piece.byte_length
        inside = piece.fc < fc <= upper if end else piece.fc <= fc < upper
        if inside:
            delta = fc - piece.fc
            if not piece.compressed:
                delta >>= 1
            return piece.start_cp + delta
    return None


def _mark_list_paragraphs(
    text: str,
    pieces: Sequence[TextPiece],
    paragraphs: Sequence[ParagraphDescriptor],
) -> str:
    start_cps = set()
    for descriptor in paragraphs:
        for j, style in enumerate(descriptor.styles):
            if style is None or not style.is_list or j + 1 >= len(descriptor.fcs):
                continue
            start_cp = _fc_to_cp(descriptor.fcs[j], pieces, end=False)
            end_cp = _fc_to_cp(descriptor.fcs[j + 1], pieces, end=True)
            if start_cp is None or end_cp is None or end_cp <= start_cp:
                continue
            if start_cp < len(text):
                start_cps.add(start_cp)

    # insert back to front so earlier CPs stay valid
    for start_cp in sorted(start_cps, reverse=True):
        text = text[:start_cp] + LIST_MARKER + text[start_cp:]
    return text


def assemble_text(
    word_document: bytes,
    fib: FibFields,
    clx: Clx,
    paragraphs: Sequence[ParagraphDescriptor] = (),
    comments: Sequence[CommentRecord] = (),
    *,
    mark_list_paragraphs: bool = True,
) -> AssembledText:
    """
    Split the piece text into the main text and the comment subdocument.

    Args:
        word_document: The WordDocument stream.
        fib: The decoded FIB, for the ccp* region lengths.
        clx: The decoded piece table.
        paragraphs: PAPX pages; list paragraphs get a ``*\\t`` prefix.
        comments: Comment records whose ``text`` is filled in from the
            comment subdocument.
        mark_list_paragraphs: Turn the list prefix off.

    Returns:
        AssembledText with the main text, its comment-anchor segments, the
        comment subdocument text and the comments with their text.
    """
    stream = decode_pieces(word_document, clx.pieces)

    comment_start = fib.ccp_text + fib.ccp_ftn + fib.ccp_hdd
    comment_chars = stream[comment_start : comment_start + fib.ccp_atn]

    main = stream[: fib.ccp_text]
    if mark_list_paragraphs and paragraphs:
        main = _mark_list_paragraphs(main, clx.pieces, paragraphs)
    segments = main.split(COMMENT_ANCHOR)

    with_text = []
    for comment in comments:
        chars = comment_chars[comment.start_cp : comment.start_cp + comment.length]
        with_text.append(
            replace(comment, text=chars.replace(COMMENT_ANCHOR, "").strip())
        )

    return AssembledText(
        main_text="".join(segments),
        segments=segments,
        comment_text=comment_chars.replace(COMMENT_ANCHOR, ""),
        comments=with_text,
    )


def format_comment(comment: CommentRecord, number: int) -> str:
    if not comment.has_timestamp:
        return f"Comment {number}: {comment.text}"
    return (
        f"Comment {number} {comment.year}/{comment.month}/{comment.day} "
        f"{comment.hour}:{comment.minute:02d}: {comment.text}"
    )


def render_text(segments: Sequence[str], comments: Sequence[CommentRecord]) -> str:
    """
    Interleave the main text segments with their comments.

    The k-th comment that has text is appended, in parentheses, after the
    k-th segment. Comments keep their position in the comment table as
    their number, so an empty comment leaves a gap in the numbering.
    """
    rendered = [
        format_comment(comment, number)
        for number, comment in enumerate(comments, start=1)
        if comment.text
    ]
    parts = []
    for key, segment in enumerate(segments):
        parts.append(segment)
        if key < len(rendered):
            parts.append(f"({rendered[key]})")
    return "".join(parts)


def clean_text(text: str) -> str:
    """
    Clean extracted text by replacing/removing control characters.

    Multiple spaces/tabs are collapsed to a single space and three or more
    newlines to a double newline.
    """
    if not text:
        return ""

    replacements = {
        "\x07": "\t",
        "\x0b": "\n",
        "\x0c": "\n\n",
        "\x0d": "\n",
        "\x13": "",
        "\x14": " ",
        "\x15": "",
        "\x01": "",
        "\x08": "",
        "\x19": "",
        "\x1e": "",
        "\x1f": "",
        "\xa0": " ",
    }
    for old, new in replacements.items():
        text = text.replace(old, new)

    text = re.sub(r"[\x00-\x08\x0e-\x1f\x7f]", "", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
