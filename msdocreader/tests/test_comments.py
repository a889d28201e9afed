import logging
import unittest

import pytest

from msdocreader.exceptions import CorruptCommentTableError
from msdocreader.extractors.data_types import CommentRecord
from msdocreader.extractors.ms_legacy.doc.comments import decode_dttm, read_comments
from msdocreader.extractors.ms_legacy.doc.fib import decode_fib
from msdocreader.tests.doc_builder import (
    TableBuilder,
    atrd,
    atrd_extra,
    build_fib,
    pack_dttm,
    plc,
    u16,
    xst_owners,
)

logger = logging.getLogger(__name__)

tc = unittest.TestCase()
tc.maxDiff = None

DTTM = pack_dttm(2016, 3, 5, 14, 30, 6)


def _comment_table(
    text_cps: list,
    ref_cps: list,
    atrds: list,
    *,
    authors: list = ("Jane Doe", "John Smith"),
    extras: list | None = None,
) -> tuple[bytes, object]:
    table = TableBuilder()
    table.add("PlcfandTxt", plc(text_cps))
    table.add("PlcfandRef", plc(ref_cps, atrds))
    table.add("GrpXstAtnOwners", xst_owners(list(authors)))
    if extras is not None:
        table.add("AtrdExtra", b"".join(extras))
    return table.bytes(), decode_fib(build_fib(table.pairs))


def test_decode_dttm() -> None:
    tc.assertEqual(
        {
            "minute": 30,
            "hour": 14,
            "day": 5,
            "month": 3,
            "year": 2016,
            "weekday": 6,
        },
        decode_dttm(DTTM),
    )
    tc.assertEqual(2, decode_dttm(pack_dttm(2016, 3, 5, 14, 30, 2))["weekday"])
    tc.assertEqual(1900, decode_dttm(0)["year"])


def test_read_comments() -> None:
    table, fib = _comment_table(
        [0, 6, 12, 13],
        [5, 40, 60],
        [atrd("JD", 0, 7), atrd("JS", 1)],
        extras=[atrd_extra(DTTM), atrd_extra(DTTM, depth=1, parent=0)],
    )

    comments = read_comments(table, fib)
    tc.assertEqual(2, len(comments))

    first, second = comments
    tc.assertEqual("Jane Doe", first.author)
    tc.assertEqual("JD", first.initials)
    tc.assertEqual(0, first.author_index)
    tc.assertEqual(7, first.bookmark_id)
    tc.assertEqual(0, first.start_cp)
    tc.assertEqual(6, first.length)
    tc.assertEqual(5, first.ref_cp)
    tc.assertEqual(2016, first.year)
    tc.assertEqual(3, first.month)
    tc.assertEqual("March", first.month_name)
    tc.assertEqual("Saturday", first.weekday_name)
    tc.assertEqual(-1, first.parent)
    tc.assertEqual("", first.text)

    tc.assertEqual("John Smith", second.author)
    tc.assertEqual(6, second.start_cp)
    tc.assertEqual(6, second.length)
    tc.assertEqual(40, second.ref_cp)
    tc.assertEqual(1, second.depth)
    tc.assertEqual(0, second.parent)


def test_comments_without_timestamps() -> None:
    table, fib = _comment_table([0, 4, 5], [2, 9], [atrd("A", 0)])
    comments = read_comments(table, fib)
    tc.assertEqual(1, len(comments))
    tc.assertFalse(comments[0].has_timestamp)
    tc.assertIsNone(comments[0].year)
    tc.assertEqual("Undefined", comments[0].month_name)


def test_unknown_author_index() -> None:
    table, fib = _comment_table([0, 4, 5], [2, 9], [atrd("Q", 9)], authors=["Solo"])
    tc.assertEqual("", read_comments(table, fib)[0].author)


def test_no_comment_tables() -> None:
    word_document = build_fib()
    tc.assertEqual([], read_comments(b"", decode_fib(word_document)))


def test_extra_count_mismatch() -> None:
    table, fib = _comment_table(
        [0, 4, 5],
        [2, 9],
        [atrd("A", 0)],
        extras=[atrd_extra(DTTM), atrd_extra(DTTM)],
    )
    with pytest.raises(CorruptCommentTableError):
        read_comments(table, fib)


def test_extra_size_not_a_multiple() -> None:
    table, fib = _comment_table(
        [0, 4, 5], [2, 9], [atrd("A", 0)], extras=[atrd_extra(DTTM) + b"\x00"]
    )
    with pytest.raises(CorruptCommentTableError):
        read_comments(table, fib)


def test_more_texts_than_references() -> None:
    table, fib = _comment_table([0, 4, 8, 9], [2, 9], [atrd("A", 0)])
    with pytest.raises(CorruptCommentTableError):
        read_comments(table, fib)


def test_too_many_initials() -> None:
    record = bytearray(atrd("A", 0))
    record[0:2] = u16(10)
    table, fib = _comment_table([0, 4, 5], [2, 9], [bytes(record)])
    with pytest.raises(CorruptCommentTableError):
        read_comments(table, fib)


def test_comment_record_defaults() -> None:
    comment = CommentRecord(month=13, weekday=9)
    tc.assertEqual("Undefined", comment.month_name)
    tc.assertEqual("", comment.weekday_name)
