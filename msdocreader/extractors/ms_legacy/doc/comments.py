"""
Comment (annotation) tables.

Comments are described by four structures in the table stream that have to
be read together:

    PlcfandTxt       CPs delimiting each comment in the comment subdocument
    GrpXstAtnOwners  author names, u16 length + UTF-16LE each
    PlcfandRef       CPs of the comment marks in the main text, then one
                     30-byte ATRDPre10 per comment (initials, author index,
                     bookmark tag)
    AtrdExtra        optional 18-byte records with the timestamp (DTTM),
                     nesting depth and parent of each comment

ATRDPre10 and AtrdExtra must describe the same number of comments.
"""

import logging
from typing import List, Optional

from msdocreader.exceptions import CorruptCommentTableError
from msdocreader.extractors.data_types import CommentRecord, FibFields
from msdocreader.extractors.ms_legacy.doc.plc import plc_element_count
from msdocreader.extractors.util.byte_reader import (
    read_i32,
    read_u16,
    read_u32,
    read_utf16,
)

logger = logging.getLogger(__name__)

ATRD_SIZE = 30
ATRD_MAX_INITIALS = 9
ATRD_INITIALS_OFFSET = 2
ATRD_AUTHOR_INDEX_OFFSET = 20
ATRD_BOOKMARK_OFFSET = 26

ATRD_EXTRA_SIZE = 18
ATRD_EXTRA_DEPTH_OFFSET = 6
ATRD_EXTRA_PARENT_OFFSET = 10


def decode_dttm(dttm: int) -> dict:
    """Split a packed DTTM into its date and time fields."""
    return {
        "minute": dttm & 0x3F,
        "hour": (dttm >> 6) & 0x1F,
        "day": (dttm >> 11) & 0x1F,
        "month": (dttm >> 16) & 0x0F,
        "year": 1900 + ((dttm >> 20) & 0x1FF),
        "weekday": (dttm >> 29) & 0x07,
    }


def _read_author_names(table: bytes, fib: FibFields) -> List[str]:
    if not fib.has("GrpXstAtnOwners"):
        return []
    pos, remaining = fib.get("GrpXstAtnOwners")
    names = []
    while remaining > 0:
        cch = read_u16(table, pos)
        names.append(read_utf16(table, pos + 2, cch))
        pos += 2 + cch * 2
        remaining -= 2 + cch * 2
    return names


def _read_extra(table: bytes, fib: FibFields, expected: int) -> Optional[List[dict]]:
    if not fib.has("AtrdExtra"):
        return None
    fc, lcb = fib.get("AtrdExtra")
    count, remainder = divmod(lcb, ATRD_EXTRA_SIZE)
    if remainder or count != expected:
        raise CorruptCommentTableError(
            f"AtrdExtra holds {lcb / ATRD_EXTRA_SIZE:g} record(s), "
            f"PlcfandRef holds {expected}"
        )
    extra = []
    for i in range(count):
        pos = fc + i * ATRD_EXTRA_SIZE
        fields = decode_dttm(read_u32(table, pos))
        fields["depth"] = read_u32(table, pos + ATRD_EXTRA_DEPTH_OFFSET)
        fields["parent"] = read_i32(table, pos + ATRD_EXTRA_PARENT_OFFSET)
        extra.append(fields)
    return extra


def read_comments(
    table: bytes,
    fib: FibFields,
    *,
    strict: bool = False,
    warnings: Optional[List[str]] = None,
) -> List[CommentRecord]:
    """
    Correlate the comment tables into one record per comment.

    The returned records carry CP ranges only; their ``text`` is filled in
    by the text assembler.

    Args:
        table: The table stream.
        fib: The decoded FIB.
        strict: Reject PlcfandRef sizes that are not a whole number of
            records.
        warnings: Collects a note when PlcfandRef is truncated.

    Returns:
        The comments in document order, empty when the document has none.

    Raises:
        CorruptCommentTableError: The tables disagree on the number of
            comments, or an ATRDPre10 record is malformed.
    """
    if not fib.has("PlcfandTxt") or not fib.has("PlcfandRef"):
        return []

    fc_txt, lcb_txt = fib.get("PlcfandTxt")
    cps = [read_u32(table, fc_txt + 4 * i) for i in range(lcb_txt // 4)]

    authors = _read_author_names(table, fib)

    fc_ref, lcb_ref = fib.get("PlcfandRef")
    num_refs = plc_element_count(
        lcb_ref, ATRD_SIZE, strict=strict, name="PlcfandRef", warnings=warnings
    )
    ref_cps = [read_u32(table, fc_ref + 4 * i) for i in range(num_refs + 1)]

    atrds = []
    pos = fc_ref + 4 * (num_refs + 1)
    for i in range(num_refs):
        cch = read_u16(table, pos)
        if cch > ATRD_MAX_INITIALS:
            raise CorruptCommentTableError(
                f"Comment {i} has {cch} initials, at most {ATRD_MAX_INITIALS} allowed"
            )
        author_index = read_u16(table, pos + ATRD_AUTHOR_INDEX_OFFSET)
        atrds.append(
            {
                "initials": read_utf16(table, pos + ATRD_INITIALS_OFFSET, cch),
                "author_index": author_index,
                "author": authors[author_index] if author_index < len(authors) else "",
                "bookmark_id": read_i32(table, pos + ATRD_BOOKMARK_OFFSET),
            }
        )
        pos += ATRD_SIZE

    extra = _read_extra(table, fib, num_refs)

    count = max(len(cps) - 2, 0)
    if count > num_refs:
        raise CorruptCommentTableError(
            f"PlcfandTxt holds {count} comment(s), PlcfandRef holds {num_refs}"
        )

    comments = []
    for i in range(count):
        fields = dict(atrds[i])
        if extra is not None:
            fields.update(extra[i])
        comments.append(
            CommentRecord(
                start_cp=cps[i],
                length=cps[i + 1] - cps[i],
                ref_cp=ref_cps[i],
                **fields,
            )
        )
    logger.debug("Read %d comment(s) by %d author(s)", len(comments), len(authors))
    return comments
