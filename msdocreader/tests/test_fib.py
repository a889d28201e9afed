import logging
import unittest

import pytest

from msdocreader.exceptions import OutOfRangeError, UnrecognizedFibSizeError
from msdocreader.extractors.ms_legacy.doc.fib import (
    FIB_FLAG_ENCRYPTED,
    FIB_FLAG_WHICH_TABLE,
    FIB_RG_FC_LCB_97,
    FIB_RG_FC_LCB_2000,
    FIB_RG_FC_LCB_2002,
    FIB_RG_FC_LCB_2003,
    FIB_RG_FC_LCB_2007,
    KNOWN_CB_RG_FC_LCB,
    blocks_for_size,
    decode_fib,
)
from msdocreader.extractors.util.options import DocReaderOptions
from msdocreader.tests.doc_builder import build_fib

logger = logging.getLogger(__name__)

tc = unittest.TestCase()
tc.maxDiff = None


def test_block_sizes_match_known_sizes() -> None:
    totals = []
    total = 0
    for names in (
        FIB_RG_FC_LCB_97,
        FIB_RG_FC_LCB_2000,
        FIB_RG_FC_LCB_2002,
        FIB_RG_FC_LCB_2003,
        FIB_RG_FC_LCB_2007,
    ):
        total += len(names)
        totals.append(total)
    tc.assertEqual(list(KNOWN_CB_RG_FC_LCB), totals)

    tc.assertEqual(["97"], [version for version, _ in blocks_for_size(0x5D)])
    tc.assertEqual(
        ["97", "2000", "2002", "2003", "2007"],
        [version for version, _ in blocks_for_size(0xB7)],
    )
    tc.assertEqual([], blocks_for_size(0x10))


def test_decode_fib_header_and_counts() -> None:
    pairs = {"Clx": (0x100, 0x15), "PlcfSed": (0, 20), "AtrdExtra": (0x200, 18)}
    word_document = build_fib(pairs, ccp_text=13, ccp_atn=6, ccp_hdd=2)
    fib = decode_fib(word_document)

    tc.assertEqual(0xA5EC, fib.w_ident)
    tc.assertEqual(0x00C1, fib.nfib)
    tc.assertEqual(0x0409, fib.lid)
    tc.assertEqual("1Table", fib.which_table)
    tc.assertFalse(fib.encrypted)
    tc.assertEqual(13, fib.ccp_text)
    tc.assertEqual(6, fib.ccp_atn)
    tc.assertEqual(2, fib.ccp_hdd)
    tc.assertEqual(0, fib.ccp_ftn)
    tc.assertEqual(["97", "2000", "2002"], fib.versions)
    tc.assertTrue(fib.size_recognized)
    tc.assertEqual(len(word_document), fib.end_offset)

    tc.assertEqual((0x100, 0x15), fib.get("Clx"))
    tc.assertEqual(0x200, fib.fc("AtrdExtra"))
    tc.assertEqual(18, fib.lcb("AtrdExtra"))
    tc.assertTrue(fib.has("PlcfSed"))
    # present in the blob but empty
    tc.assertFalse(fib.has("PlcfandTxt"))
    tc.assertEqual((0, 0), fib.get("PlcfandTxt"))
    # not part of the blocks in this file
    tc.assertIsNone(fib.get("OssTheme"))
    tc.assertFalse(fib.has("OssTheme"))


ONE_NAME_PER_BLOCK = {
    "Clx": (0x10, 0x20),  # 97
    "PlcfTch": (0x30, 0x08),  # 2000
    "AtrdExtra": (0x40, 0x12),  # 2002
    "Hplxsdr": (0x60, 0x04),  # 2003
    "Plcfmthd": (0x70, 0x04),  # 2007
}


def _visible(fib) -> list:
    return [name for name in ONE_NAME_PER_BLOCK if fib.has(name)]


def test_word_97_fib_hides_later_blocks() -> None:
    word_document = build_fib(ONE_NAME_PER_BLOCK, cb_rg_fc_lcb=0x5D)
    fib = decode_fib(word_document)

    tc.assertTrue(fib.size_recognized)
    tc.assertEqual(["97"], fib.versions)
    tc.assertEqual(93, len(fib.pairs))
    tc.assertEqual(["Clx"], _visible(fib))
    tc.assertIsNone(fib.get("PlcfTch"))
    tc.assertIsNone(fib.get("AtrdExtra"))
    tc.assertEqual(len(word_document), fib.end_offset)


def test_word_2000_fib_adds_its_block() -> None:
    fib = decode_fib(build_fib(ONE_NAME_PER_BLOCK, cb_rg_fc_lcb=0x6C))

    tc.assertTrue(fib.size_recognized)
    tc.assertEqual(["97", "2000"], fib.versions)
    tc.assertEqual(108, len(fib.pairs))
    tc.assertEqual(["Clx", "PlcfTch"], _visible(fib))
    tc.assertEqual((0x30, 0x08), fib.get("PlcfTch"))
    tc.assertIsNone(fib.get("AtrdExtra"))


def test_word_2002_fib_adds_its_block() -> None:
    fib = decode_fib(build_fib(ONE_NAME_PER_BLOCK, cb_rg_fc_lcb=0x88))

    tc.assertTrue(fib.size_recognized)
    tc.assertEqual(["97", "2000", "2002"], fib.versions)
    tc.assertEqual(136, len(fib.pairs))
    tc.assertEqual(["Clx", "PlcfTch", "AtrdExtra"], _visible(fib))
    tc.assertIsNone(fib.get("Hplxsdr"))
    tc.assertIsNone(fib.get("Plcfmthd"))


def test_table_and_encryption_flags() -> None:
    fib = decode_fib(build_fib(flags=0))
    tc.assertEqual("0Table", fib.which_table)

    fib = decode_fib(build_fib(flags=FIB_FLAG_WHICH_TABLE | FIB_FLAG_ENCRYPTED))
    tc.assertTrue(fib.encrypted)
    tc.assertEqual("1Table", fib.which_table)


def test_csw_new_holds_nfib_new() -> None:
    fib = decode_fib(build_fib(cb_rg_fc_lcb=0xB7, csw_new=2))
    tc.assertEqual(0x0112, fib.nfib_new)
    tc.assertEqual(2, fib.csw_new)
    tc.assertEqual(["97", "2000", "2002", "2003", "2007"], fib.versions)

    fib = decode_fib(build_fib())
    tc.assertIsNone(fib.nfib_new)


def test_unrecognized_size_reads_matching_prefix() -> None:
    word_document = build_fib({"Clx": (7, 9)}, cb_rg_fc_lcb=0x60)
    fib = decode_fib(word_document)
    tc.assertFalse(fib.size_recognized)
    tc.assertEqual(["97"], fib.versions)
    tc.assertEqual((7, 9), fib.get("Clx"))
    tc.assertEqual(len(word_document), fib.end_offset)


def test_unrecognized_size_strict() -> None:
    word_document = build_fib(cb_rg_fc_lcb=0x60)
    with pytest.raises(UnrecognizedFibSizeError) as exc_info:
        decode_fib(word_document, options=DocReaderOptions(strict_fib=True))
    tc.assertEqual(0x60, exc_info.value.cb_rg_fc_lcb)


def test_truncated_fib() -> None:
    word_document = build_fib()
    with pytest.raises(OutOfRangeError):
        decode_fib(word_document[:200])
