"""Unit and timestamp conversions shared by the .doc decoders."""

import datetime
import math

# Twips per pixel used for inline picture sizes
TWIPS_PER_PIXEL = 15.873015873016

# 100ns ticks between 1601-01-01 and 1970-01-01 (0x019DB1DE_D53E8000)
FILETIME_UNIX_EPOCH_TICKS = 0x019DB1DED53E8000
FILETIME_TICKS_PER_SECOND = 10_000_000


def round_half_away_from_zero(value: float) -> int:
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def twips_to_pixels(twips: float) -> int:
    if not twips:
        return 0
    return round_half_away_from_zero(twips / TWIPS_PER_PIXEL)


def filetime_to_unix(low: int, high: int) -> int:
    """
    Convert a Win32 FILETIME split into two unsigned dwords to Unix seconds.

    The division is exact integer arithmetic with halves rounded away from
    zero, so dates before 1970 come out negative.
    """
    ticks = ((high & 0xFFFFFFFF) << 32 | (low & 0xFFFFFFFF)) - FILETIME_UNIX_EPOCH_TICKS
    seconds, remainder = divmod(abs(ticks), FILETIME_TICKS_PER_SECOND)
    if remainder * 2 >= FILETIME_TICKS_PER_SECOND:
        seconds += 1
    return -seconds if ticks < 0 else seconds


def unix_to_iso(seconds: int | None) -> str | None:
    if seconds is None:
        return None
    moment = datetime.datetime(
        1970, 1, 1, tzinfo=datetime.timezone.utc
    ) + datetime.timedelta(seconds=seconds)
    return moment.isoformat()
