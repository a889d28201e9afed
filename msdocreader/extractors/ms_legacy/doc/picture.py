"""
Inline Picture Extractor
========================

Resolves the Data stream offset recorded by ``sprmCPicLocation`` into an
image. The Data stream holds, at that offset:

    PICF            68 bytes: lcb, cbHeader, metafile header (mm at +6),
                    dxaGoal/dyaGoal at +28/+30, mx/my scaling at +32/+34,
                    crop left/top/right/bottom at +36..+42
    stPicName       only when mm == 0x66: 1-byte length + name
    OfficeArt       an optional shape container (0xF004) followed by file
                    blocks: blip store entries (0xF007) wrapping a blip, or
                    blips stored directly (0xF018 - 0xF117)

Only JPEG blips are decoded. Other blip types are recognized and skipped.
"""

import logging
from typing import Optional

from msdocreader.exceptions import OutOfRangeError, UnsupportedImageFormatError
from msdocreader.extractors.data_types import DocImage, FontDelta
from msdocreader.extractors.util.byte_reader import (
    read_bytes,
    read_i16,
    read_u8,
    read_u16,
)
from msdocreader.extractors.util.conversions import twips_to_pixels
from msdocreader.extractors.util.image_utils import (
    BLIP_TYPE_NAMES,
    JPEG_BLIP_TYPES,
    JPEG_TWO_UID_INSTANCES,
    OFFICEART_FBSE,
    OFFICEART_SP_CONTAINER,
    RECORD_HEADER_SIZE,
    RecordHeader,
    detect_image_type,
    read_record_header,
)

logger = logging.getLogger(__name__)

# PICF field offsets
PICF_MM_OFFSET = 6
PICF_DXA_GOAL_OFFSET = 28
PICF_DYA_GOAL_OFFSET = 30
PICF_MX_OFFSET = 32
PICF_MY_OFFSET = 34
PICF_CROP_LEFT_OFFSET = 36
PICF_CROP_TOP_OFFSET = 38
PICF_CROP_RIGHT_OFFSET = 40
PICF_CROP_BOTTOM_OFFSET = 42
PICF_SIZE = 68

MM_SHAPE_FILE = 0x66  # picture name follows the PICF

# OfficeArtFBSE fixed part before the name
FBSE_HEADER_SIZE = 36
FBSE_CB_NAME_OFFSET = 33

BLIP_UID_SIZE = 16
BLIP_TAG_SIZE = 1


def _scaled_size(goal: int, crop_a: int, crop_b: int, scale: int) -> int:
    cropped = goal - (crop_a + crop_b)
    if cropped <= 0:
        cropped = 1
    return twips_to_pixels(cropped * scale / 1000)


def _read_jpeg(data: bytes, offset: int, header: RecordHeader) -> bytes:
    """Return the JPEG bytes of the blip whose header starts at ``offset``."""
    skip = BLIP_UID_SIZE + BLIP_TAG_SIZE
    if header.rec_instance in JPEG_TWO_UID_INSTANCES:
        skip += BLIP_UID_SIZE
    size = header.rec_len - skip
    if size <= 0:
        return b""
    return read_bytes(data, offset + RECORD_HEADER_SIZE + skip, size)


def _blip_bytes(data: bytes, offset: int, header: RecordHeader) -> bytes:
    if header.rec_type not in JPEG_BLIP_TYPES:
        raise UnsupportedImageFormatError(header.rec_type)
    return _read_jpeg(data, offset, header)


def extract_picture(data: bytes, offset: int) -> Optional[DocImage]:
    """
    Decode the PICF and OfficeArt records at ``offset`` in the Data stream.

    Args:
        data: The Data stream.
        offset: Position of the PICF, as recorded by sprmCPicLocation.

    Returns:
        A DocImage for the first JPEG blip found, or None when the picture
        holds no JPEG.

    Raises:
        OutOfRangeError: The PICF or a record header runs past the stream.
    """
    mm = read_u16(data, offset + PICF_MM_OFFSET)
    dxa_goal = read_i16(data, offset + PICF_DXA_GOAL_OFFSET)
    dya_goal = read_i16(data, offset + PICF_DYA_GOAL_OFFSET)
    mx = read_u16(data, offset + PICF_MX_OFFSET)
    my = read_u16(data, offset + PICF_MY_OFFSET)
    crop_left = read_i16(data, offset + PICF_CROP_LEFT_OFFSET)
    crop_top = read_i16(data, offset + PICF_CROP_TOP_OFFSET)
    crop_right = read_i16(data, offset + PICF_CROP_RIGHT_OFFSET)
    crop_bottom = read_i16(data, offset + PICF_CROP_BOTTOM_OFFSET)
    pos = offset + PICF_SIZE

    name = ""
    if mm == MM_SHAPE_FILE:
        cch = read_u8(data, pos)
        name = read_bytes(data, pos + 1, cch).decode("latin-1")
        pos += 1 + cch

    shape = read_record_header(data, pos)
    if (
        shape.rec_ver == 0xF
        and shape.rec_instance == 0
        and shape.rec_type == OFFICEART_SP_CONTAINER
    ):
        pos += RECORD_HEADER_SIZE + shape.rec_len

    while pos + RECORD_HEADER_SIZE <= len(data):
        block = read_record_header(data, pos)
        if not block.is_file_block:
            break

        blip_offset, blip = pos, block
        if block.rec_type == OFFICEART_FBSE:
            cb_name = read_u8(data, pos + RECORD_HEADER_SIZE + FBSE_CB_NAME_OFFSET)
            blip_offset = pos + RECORD_HEADER_SIZE + FBSE_HEADER_SIZE + cb_name
            blip = read_record_header(data, blip_offset)
        pos += RECORD_HEADER_SIZE + block.rec_len

        try:
            blob = _blip_bytes(data, blip_offset, blip)
        except UnsupportedImageFormatError as exc:
            logger.debug(
                "Skipping %s blip: %s",
                BLIP_TYPE_NAMES.get(blip.rec_type, "unknown"),
                exc.message,
            )
            continue

        if detect_image_type(blob) is None:
            logger.debug("JPEG blip at %d has no JPEG signature", blip_offset)
        return DocImage(
            data=blob,
            size_bytes=len(blob),
            width=_scaled_size(dxa_goal, crop_left, crop_right, mx),
            height=_scaled_size(dya_goal, crop_top, crop_bottom, my),
            description=name,
        )
    return None


def resolve_picture(data: bytes, font: Optional[FontDelta]) -> Optional[DocImage]:
    """
    Second phase of the picture decode: turn the offset a character PRL
    recorded into an image.

    Runs flagged with fData carry hyperlink or OLE data at the offset, not a
    picture, and are left alone. A reference that points outside the Data
    stream is logged and yields no image.
    """
    if font is None or font.picture_offset is None or font.has_data:
        return None
    try:
        return extract_picture(data, font.picture_offset)
    except OutOfRangeError as exc:
        logger.warning(
            "Picture at Data offset %d could not be read: %s",
            font.picture_offset,
            exc.message,
        )
        return None
