import logging
import unittest

import pytest

from msdocreader.exceptions import LegacyMicrosoftParsingError
from msdocreader.extractors.data_types import (
    CommentRecord,
    FibFields,
    ParagraphDelta,
    ParagraphDescriptor,
    StyleDelta,
    TextPiece,
)
from msdocreader.extractors.ms_legacy.doc.text import (
    Clx,
    assemble_text,
    clean_text,
    decode_pieces,
    format_comment,
    piece_byte_length,
    read_piece_table,
    render_text,
)
from msdocreader.tests.doc_builder import clx, sprm, u8, u32, utf16

logger = logging.getLogger(__name__)

tc = unittest.TestCase()
tc.maxDiff = None


def _fib(table: bytes, **counts) -> FibFields:
    return FibFields(pairs={"Clx": (0, len(table))}, **counts)


def _single_piece(text: str) -> Clx:
    return Clx(
        pieces=[
            TextPiece(
                start_cp=0,
                end_cp=len(text),
                fc=0,
                byte_length=piece_byte_length(0, len(text), False),
            )
        ]
    )


def test_piece_byte_length() -> None:
    tc.assertEqual(100, piece_byte_length(100, 150, False))
    tc.assertEqual(50, piece_byte_length(100, 150, True))


def test_read_piece_table() -> None:
    table = clx([(0, 2, 0, False), (2, 6, 100, True)], prcs=[sprm(0x0835, u8(1))])
    result = read_piece_table(table, _fib(table))

    tc.assertEqual(1, len(result.styles))
    tc.assertTrue(result.styles[0].font.bold)

    tc.assertEqual(2, len(result.pieces))
    tc.assertEqual(
        [
            TextPiece(start_cp=0, end_cp=2, fc=0, compressed=False, byte_length=4),
            TextPiece(start_cp=2, end_cp=6, fc=100, compressed=True, byte_length=4),
        ],
        result.pieces,
    )

    word_document = utf16("Hi") + bytes(96) + b"caf\xe9"
    tc.assertEqual("Hicaf\xe9", decode_pieces(word_document, result.pieces))


def test_read_piece_table_skips_padding() -> None:
    table = b"\x00\x00" + clx([(0, 3, 0, False)])
    result = read_piece_table(table, _fib(table))
    tc.assertEqual(1, len(result.pieces))
    tc.assertEqual([], result.styles)


def test_clx_without_piece_table() -> None:
    table = b"\x00\x00\x00\x00"
    result = read_piece_table(table, _fib(table))
    tc.assertEqual([], result.pieces)


def test_clx_errors() -> None:
    with pytest.raises(LegacyMicrosoftParsingError):
        read_piece_table(b"", FibFields())

    table = b"\x07" + bytes(8)
    with pytest.raises(LegacyMicrosoftParsingError):
        read_piece_table(table, _fib(table))

    table = b"\x02" + u32(2) + bytes(2)
    with pytest.raises(LegacyMicrosoftParsingError):
        read_piece_table(table, _fib(table))


def test_assemble_text_with_comments() -> None:
    text = "A\x05B\x05C\r" + "\x05one\r" + "\x05\r" + "\r"
    comments = [
        CommentRecord(
            start_cp=0, length=5, year=2016, month=3, day=5, hour=14, minute=5
        ),
        CommentRecord(start_cp=5, length=2),
    ]
    assembled = assemble_text(
        utf16(text),
        FibFields(ccp_text=6, ccp_atn=7),
        _single_piece(text),
        comments=comments,
    )

    tc.assertEqual("ABC\n", assembled.main_text)
    tc.assertEqual(["A", "B", "C\n"], assembled.segments)
    tc.assertEqual("one\n\n", assembled.comment_text)
    tc.assertEqual(["one", ""], [comment.text for comment in assembled.comments])
    # the input records are left untouched
    tc.assertEqual("", comments[0].text)

    tc.assertEqual(
        "A(Comment 1 2016/3/5 14:05: one)BC\n",
        render_text(assembled.segments, assembled.comments),
    )


def test_comment_region_skips_other_subdocuments() -> None:
    text = "Body\r" + "foot" + "head" + "\x05note\r"
    assembled = assemble_text(
        utf16(text),
        FibFields(ccp_text=5, ccp_ftn=4, ccp_hdd=4, ccp_atn=6),
        _single_piece(text),
        comments=[CommentRecord(start_cp=0, length=6)],
    )
    tc.assertEqual("Body\n", assembled.main_text)
    tc.assertEqual("note", assembled.comments[0].text)


def test_list_paragraphs_are_marked() -> None:
    text = "Intro\rItem\rEnd\r"
    list_style = StyleDelta(paragraph=ParagraphDelta(is_list=True))
    paragraphs = [
        ParagraphDescriptor(fcs=[0, 12, 22, 30], styles=[None, list_style, None])
    ]

    assembled = assemble_text(
        utf16(text), FibFields(ccp_text=15), _single_piece(text), paragraphs
    )
    tc.assertEqual("Intro\n*\tItem\nEnd\n", assembled.main_text)

    assembled = assemble_text(
        utf16(text),
        FibFields(ccp_text=15),
        _single_piece(text),
        paragraphs,
        mark_list_paragraphs=False,
    )
    tc.assertEqual("Intro\nItem\nEnd\n", assembled.main_text)


def test_list_marks_outside_the_pieces_are_ignored() -> None:
    text = "Intro\r"
    list_style = StyleDelta(paragraph=ParagraphDelta(is_list=True))
    paragraphs = [ParagraphDescriptor(fcs=[400, 420], styles=[list_style])]
    assembled = assemble_text(
        utf16(text), FibFields(ccp_text=6), _single_piece(text), paragraphs
    )
    tc.assertEqual("Intro\n", assembled.main_text)


def test_format_comment() -> None:
    dated = CommentRecord(year=2016, month=3, day=5, hour=9, minute=7, text="Check")
    tc.assertEqual("Comment 3 2016/3/5 9:07: Check", format_comment(dated, 3))
    tc.assertEqual("Comment 1: Plain", format_comment(CommentRecord(text="Plain"), 1))


def test_render_text_numbering_keeps_gaps() -> None:
    comments = [CommentRecord(text=""), CommentRecord(text="two")]
    tc.assertEqual(
        "first(Comment 2: two)second",
        render_text(["first", "second"], comments),
    )
    # more comments than anchors
    tc.assertEqual(
        "only(Comment 1: a)",
        render_text(["only"], [CommentRecord(text="a"), CommentRecord(text="b")]),
    )


def test_clean_text() -> None:
    raw = "a\x07b\x0bc\x0cd\x13field\x14res\x15  e\n\n\n\nf\xa0g\x01"
    tc.assertEqual("a b\nc\n\ndfield res e\n\nf g", clean_text(raw))
    tc.assertEqual("", clean_text(""))
