"""
File Information Block (FIB) decoder.

The FIB sits at offset 0 of the WordDocument stream and locates every other
structure of the document through (fc, lcb) pairs: ``fc`` is an offset into
the table or WordDocument stream, ``lcb`` a byte length (0 = absent).

Layout walked positionally:

    FibBase         32 bytes (wIdent, nFib, lid, flags, ...)
    csw             u16, followed by csw 16-bit words (FibRgW97)
    cslw            u16, followed by cslw 32-bit words (FibRgLw97)
    cbRgFcLcb       u16, number of 8-byte pairs in FibRgFcLcbBlob
    FibRgFcLcbBlob  version blocks 97, 2000, 2002, 2003, 2007
    cswNew          u16, followed by cswNew 16-bit words (FibRgCswNew)

Each version block only adds pairs to the previous one, so the declared
``cbRgFcLcb`` tells how many blocks are present.
"""

import logging

from msdocreader.exceptions import UnrecognizedFibSizeError
from msdocreader.extractors.data_types import FibFields
from msdocreader.extractors.util.byte_reader import read_u16, read_u32
from msdocreader.extractors.util.options import (
    DEFAULT_DOC_READER_OPTIONS,
    DocReaderOptions,
)

logger = logging.getLogger(__name__)

# FibBase offsets
FIB_IDENT_OFFSET = 0x00
FIB_NFIB_OFFSET = 0x02
FIB_LID_OFFSET = 0x06
FIB_FLAGS_OFFSET = 0x0A
FIB_BASE_SIZE = 0x20

FIB_MAGIC_WORD97 = 0xA5EC  # Word 97-2003 document
FIB_MAGIC_WORD95 = 0xA5DC  # Word 95 document

FIB_FLAG_ENCRYPTED = 0x0100  # fEncrypted
FIB_FLAG_WHICH_TABLE = 0x0200  # fWhichTblStm: 1Table when set

# Indexes into FibRgLw97
LW_CB_MAC = 0
LW_CCP_TEXT = 3
LW_CCP_FTN = 4
LW_CCP_HDD = 5
LW_CCP_ATN = 7
LW_CCP_EDN = 8
LW_CCP_TXBX = 9
LW_CCP_HDR_TXBX = 10

VERSION_97 = "97"
VERSION_2000 = "2000"
VERSION_2002 = "2002"
VERSION_2003 = "2003"
VERSION_2007 = "2007"

FIB_RG_FC_LCB_97 = (
    "StshfOrig",
    "Stshf",
    "PlcffndRef",
    "PlcffndTxt",
    "PlcfandRef",
    "PlcfandTxt",
    "PlcfSed",
    "PlcPad",
    "PlcfPhe",
    "SttbfGlsy",
    "PlcfGlsy",
    "PlcfHdd",
    "PlcfBteChpx",
    "PlcfBtePapx",
    "PlcfSea",
    "SttbfFfn",
    "PlcfFldMom",
    "PlcfFldHdr",
    "PlcfFldFtn",
    "PlcfFldAtn",
    "PlcfFldMcr",
    "SttbfBkmk",
    "PlcfBkf",
    "PlcfBkl",
    "Cmds",
    "Unused1",
    "SttbfMcr",
    "PrDrvr",
    "PrEnvPort",
    "PrEnvLand",
    "Wss",
    "Dop",
    "SttbfAssoc",
    "Clx",
    "PlcfPgdFtn",
    "AutosaveSource",
    "GrpXstAtnOwners",
    "SttbfAtnBkmk",
    "Unused2",
    "Unused3",
    "PlcSpaMom",
    "PlcSpaHdr",
    "PlcfAtnBkf",
    "PlcfAtnBkl",
    "Pms",
    "FormFldSttbs",
    "PlcfendRef",
    "PlcfendTxt",
    "PlcfFldEdn",
    "Unused4",
    "DggInfo",
    "SttbfRMark",
    "SttbfCaption",
    "SttbfAutoCaption",
    "PlcfWkb",
    "PlcfSpl",
    "PlcftxbxTxt",
    "PlcfFldTxbx",
    "PlcfHdrtxbxTxt",
    "PlcffldHdrTxbx",
    "StwUser",
    "SttbTtmbd",
    "CookieData",
    "PgdMotherOldOld",
    "BkdMotherOldOld",
    "PgdFtnOldOld",
    "BkdFtnOldOld",
    "PgdEdnOldOld",
    "BkdEdnOldOld",
    "SttbfIntlFld",
    "RouteSlip",
    "SttbSavedBy",
    "SttbFnm",
    "PlfLst",
    "PlfLfo",
    "PlcfTxbxBkd",
    "PlcfTxbxHdrBkd",
    "DocUndoWord9",
    "RgbUse",
    "Usp",
    "Uskf",
    "PlcupcRgbUse",
    "PlcupcUsp",
    "SttbGlsyStyle",
    "Plgosl",
    "Plcocx",
    "PlcfBteLvc",
    # dwLowDateTime / dwHighDateTime, stored as a pair
    "LvcDateTime",
    "PlcfLvcPre10",
    "PlcfAsumy",
    "PlcfGram",
    "SttbListNames",
    "SttbfUssr",
)

FIB_RG_FC_LCB_2000 = (
    "PlcfTch",
    "RmdThreading",
    "Mid",
    "SttbRgtplc",
    "MsoEnvelope",
    "PlcfLad",
    "RgDofr",
    "Plcosl",
    "PlcfCookieOld",
    "PgdMotherOld",
    "BkdMotherOld",
    "PgdFtnOld",
    "BkdFtnOld",
    "PgdEdnOld",
    "BkdEdnOld",
)

FIB_RG_FC_LCB_2002 = (
    "Unused2002_1",
    "PlcfPgp",
    "Plcfuim",
    "PlfguidUim",
    "AtrdExtra",
    "Plrsid",
    "SttbfBkmkFactoid",
    "PlcfBkfFactoid",
    "Plcfcookie",
    "PlcfBklFactoid",
    "FactoidData",
    "DocUndo",
    "SttbfBkmkFcc",
    "PlcfBkfFcc",
    "PlcfBklFcc",
    "SttbfbkmkBPRepairs",
    "PlcfbkfBPRepairs",
    "PlcfbklBPRepairs",
    "PmsNew",
    "ODSO",
    "PlcfpmiOldXP",
    "PlcfpmiNewXP",
    "PlcfpmiMixedXP",
    "Unused2002_2",
    "Plcffactoid",
    "PlcflvcOldXP",
    "PlcflvcNewXP",
    "PlcflvcMixedXP",
)

FIB_RG_FC_LCB_2003 = (
    "Hplxsdr",
    "SttbfBkmkSdt",
    "PlcfBkfSdt",
    "PlcfBklSdt",
    "CustomXForm",
    "SttbfBkmkProt",
    "PlcfBkfProt",
    "PlcfBklProt",
    "SttbProtUser",
    "Unused2003",
    "PlcfpmiOld",
    "PlcfpmiOldInline",
    "PlcfpmiNew",
    "PlcfpmiNewInline",
    "PlcflvcOld",
    "PlcflvcOldInline",
    "PlcflvcNew",
    "PlcflvcNewInline",
    "PgdMother",
    "BkdMother",
    "AfdMother",
    "PgdFtn",
    "BkdFtn",
    "AfdFtn",
    "PgdEdn",
    "BkdEdn",
    "AfdEdn",
    "Afd",
)

FIB_RG_FC_LCB_2007 = (
    "Plcfmthd",
    "SttbfBkmkMoveFrom",
    "PlcfBkfMoveFrom",
    "PlcfBklMoveFrom",
    "SttbfBkmkMoveTo",
    "PlcfBkfMoveTo",
    "PlcfBklMoveTo",
    "Unused2007_1",
    "Unused2007_2",
    "Unused2007_3",
    "SttbfBkmkArto",
    "PlcfBkfArto",
    "PlcfBklArto",
    "ArtoData",
    "Unused2007_4",
    "Unused2007_5",
    "Unused2007_6",
    "OssTheme",
    "ColorSchemeMapping",
)

# Ordered version blocks; cumulative pair counts are 0x5D, 0x6C, 0x88, 0xA4, 0xB7
FIB_VERSION_BLOCKS = (
    (VERSION_97, FIB_RG_FC_LCB_97),
    (VERSION_2000, FIB_RG_FC_LCB_2000),
    (VERSION_2002, FIB_RG_FC_LCB_2002),
    (VERSION_2003, FIB_RG_FC_LCB_2003),
    (VERSION_2007, FIB_RG_FC_LCB_2007),
)

KNOWN_CB_RG_FC_LCB = (0x005D, 0x006C, 0x0088, 0x00A4, 0x00B7)


def blocks_for_size(cb_rg_fc_lcb: int) -> list[tuple[str, tuple[str, ...]]]:
    """Return the version blocks whose cumulative pair count fits ``cb_rg_fc_lcb``."""
    blocks = []
    total = 0
    for version, names in FIB_VERSION_BLOCKS:
        total += len(names)
        if total > cb_rg_fc_lcb:
            break
        blocks.append((version, names))
    return blocks


def decode_fib(
    word_document: bytes,
    *,
    options: DocReaderOptions = DEFAULT_DOC_READER_OPTIONS,
) -> FibFields:
    """
    Decode the FIB at the start of the WordDocument stream.

    Args:
        word_document: Raw bytes of the WordDocument stream.
        options: Reader options; ``strict_fib`` turns an unknown
            cbRgFcLcb value into an error.

    Returns:
        FibFields with the header values, the character counts and every
        (fc, lcb) pair of the version blocks present in the file.

    Raises:
        OutOfRangeError: The stream ends inside the FIB.
        UnrecognizedFibSizeError: ``strict_fib`` is set and cbRgFcLcb is
            not one of the five documented sizes.
    """
    w_ident = read_u16(word_document, FIB_IDENT_OFFSET)
    nfib = read_u16(word_document, FIB_NFIB_OFFSET)
    lid = read_u16(word_document, FIB_LID_OFFSET)
    flags = read_u16(word_document, FIB_FLAGS_OFFSET)

    pos = FIB_BASE_SIZE
    csw = read_u16(word_document, pos)
    pos += 2 + csw * 2

    cslw = read_u16(word_document, pos)
    pos += 2
    rg_lw = [read_u32(word_document, pos + i * 4) for i in range(cslw)]
    pos += cslw * 4

    def lw(index: int) -> int:
        return rg_lw[index] if index < len(rg_lw) else 0

    cb_rg_fc_lcb = read_u16(word_document, pos)
    pos += 2
    blob_start = pos

    size_recognized = cb_rg_fc_lcb in KNOWN_CB_RG_FC_LCB
    if not size_recognized:
        if options.strict_fib:
            raise UnrecognizedFibSizeError(cb_rg_fc_lcb)
        logger.warning(
            "Unrecognized cbRgFcLcb %s, decoding the matching prefix only",
            hex(cb_rg_fc_lcb),
        )

    pairs: dict[str, tuple[int, int]] = {}
    versions = []
    for version, names in blocks_for_size(cb_rg_fc_lcb):
        for name in names:
            pairs[name] = (
                read_u32(word_document, pos),
                read_u32(word_document, pos + 4),
            )
            pos += 8
        versions.append(version)
    logger.debug("FIB blocks read: %s", ", ".join(versions) or "none")

    pos = blob_start + cb_rg_fc_lcb * 8
    csw_new = read_u16(word_document, pos)
    nfib_new = read_u16(word_document, pos + 2) if csw_new > 0 else None
    pos += 2 + csw_new * 2

    return FibFields(
        w_ident=w_ident,
        nfib=nfib,
        lid=lid,
        flags=flags,
        encrypted=bool(flags & FIB_FLAG_ENCRYPTED),
        which_table="1Table" if flags & FIB_FLAG_WHICH_TABLE else "0Table",
        cb_mac=lw(LW_CB_MAC),
        ccp_text=lw(LW_CCP_TEXT),
        ccp_ftn=lw(LW_CCP_FTN),
        ccp_hdd=lw(LW_CCP_HDD),
        ccp_atn=lw(LW_CCP_ATN),
        ccp_edn=lw(LW_CCP_EDN),
        ccp_txbx=lw(LW_CCP_TXBX),
        ccp_hdr_txbx=lw(LW_CCP_HDR_TXBX),
        cb_rg_fc_lcb=cb_rg_fc_lcb,
        csw_new=csw_new,
        nfib_new=nfib_new,
        versions=versions,
        size_recognized=size_recognized,
        end_offset=pos,
        pairs=pairs,
    )
