"""
OfficeArt Image Utilities
=========================

Record header parsing and BLIP (Binary Large Image Picture) constants for the
OfficeArt containers that Word embeds in the Data stream for inline pictures.
"""

from dataclasses import dataclass

from msdocreader.extractors.util.byte_reader import read_u16, read_u32

# =============================================================================
# OfficeArt Record Type Constants (from MS-ODRAW specification)
# =============================================================================
RECORD_HEADER_SIZE = 8
OFFICEART_SP_CONTAINER = 0xF004  # OfficeArtSpContainer - shape container
OFFICEART_FBSE = 0xF007  # OfficeArtFBSE - blip store entry
OFFICEART_BLIP_FIRST = 0xF018  # First recType reserved for blips
OFFICEART_BLIP_LAST = 0xF117  # Last recType reserved for blips

BLIP_TYPE_EMF = 0xF01A  # OfficeArtBlipEMF - Enhanced Metafile
BLIP_TYPE_WMF = 0xF01B  # OfficeArtBlipWMF - Windows Metafile
BLIP_TYPE_PICT = 0xF01C  # OfficeArtBlipPICT - Macintosh PICT
BLIP_TYPE_JPEG = 0xF01D  # OfficeArtBlipJPEG - JPEG image
BLIP_TYPE_PNG = 0xF01E  # OfficeArtBlipPNG - PNG image
BLIP_TYPE_DIB = 0xF01F  # OfficeArtBlipDIB - Device Independent Bitmap
BLIP_TYPE_TIFF = 0xF029  # OfficeArtBlipTIFF - TIFF image
BLIP_TYPE_JPEG_CMYK = 0xF02A  # OfficeArtBlipJPEG stored as CMYK

JPEG_BLIP_TYPES = (BLIP_TYPE_JPEG, BLIP_TYPE_JPEG_CMYK)

BLIP_TYPE_NAMES = {
    BLIP_TYPE_EMF: "emf",
    BLIP_TYPE_WMF: "wmf",
    BLIP_TYPE_PICT: "pict",
    BLIP_TYPE_JPEG: "jpeg",
    BLIP_TYPE_PNG: "png",
    BLIP_TYPE_DIB: "dib",
    BLIP_TYPE_TIFF: "tiff",
    BLIP_TYPE_JPEG_CMYK: "jpeg",
}

# =============================================================================
# recInstance Values for BLIP Type Detection
# =============================================================================
# JPEG blips carry a second 16-byte UID for these instances
BLIP_INSTANCE_JPEG = 0x46A
BLIP_INSTANCE_JPEG_2 = 0x46B  # Has secondary UID
BLIP_INSTANCE_JPEG_CMYK = 0x6E2
BLIP_INSTANCE_JPEG_CMYK_2 = 0x6E3  # Has secondary UID
JPEG_TWO_UID_INSTANCES = (BLIP_INSTANCE_JPEG_2, BLIP_INSTANCE_JPEG_CMYK_2)

# =============================================================================
# Image Signatures for Format Detection
# =============================================================================
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"


@dataclass(frozen=True)
class RecordHeader:
    """OfficeArtRecordHeader: 4-bit version, 12-bit instance, type and length."""

    rec_ver: int
    rec_instance: int
    rec_type: int
    rec_len: int

    @property
    def is_blip(self) -> bool:
        return OFFICEART_BLIP_FIRST <= self.rec_type <= OFFICEART_BLIP_LAST

    @property
    def is_file_block(self) -> bool:
        return self.rec_type == OFFICEART_FBSE or self.is_blip


def read_record_header(data: bytes, offset: int) -> RecordHeader:
    ver_inst = read_u16(data, offset)
    return RecordHeader(
        rec_ver=ver_inst & 0x000F,
        rec_instance=(ver_inst >> 4) & 0x0FFF,
        rec_type=read_u16(data, offset + 2),
        rec_len=read_u32(data, offset + 4),
    )


def detect_image_type(data: bytes) -> tuple[str, str] | None:
    """
    Detect image type from binary data by checking file signatures.

    Returns:
        Tuple of (extension, content_type) or None if not recognized.
    """
    if data[:8] == PNG_SIGNATURE:
        return ("png", "image/png")
    if data[:3] == JPEG_SIGNATURE:
        return ("jpeg", "image/jpeg")
    return None
