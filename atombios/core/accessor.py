#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
Bounds-checked field access on a ROM buffer.

Reads and writes unsigned little-endian 8/16/32-bit fields at absolute
offsets. Nothing here raises on bad offsets: reads return None, writes
return False and leave the buffer untouched.
"""

import struct
import logging
from typing import List, Optional

from atombios.platforms.legacy import FieldWidth, FIELD_FORMATS

logger = logging.getLogger(__name__)


def _field_format(width) -> Optional[str]:
    try:
        return FIELD_FORMATS[FieldWidth(width)]
    except ValueError:
        return None


def in_bounds(data, offset: int, width: int) -> bool:
    """Check that [offset, offset + width) lies inside the buffer"""
    if data is None:
        return False
    return offset >= 0 and offset + width <= len(data)


def read_field(data, offset_abs: int, width=FieldWidth.UINT16) -> Optional[int]:
    """
    Read an unsigned little-endian value.

    Args:
        data: ROM buffer
        offset_abs: Absolute byte offset
        width: 1, 2 or 4 bytes

    Returns:
        Decoded value, or None if the width is unsupported or out of bounds
    """
    fmt = _field_format(width)
    if fmt is None:
        logger.debug(f"Unsupported field width {width}")
        return None
    if not in_bounds(data, offset_abs, int(width)):
        return None
    return struct.unpack_from(fmt, data, offset_abs)[0]


def write_field(data, offset_abs: int, width, value: int) -> bool:
    """
    Overwrite an unsigned little-endian value in place.

    Either every byte of the field is written or none is: the value is
    encoded before the buffer is touched, and the slice assignment keeps
    the buffer length.

    Returns:
        True on success, False if rejected (bounds, width, value range,
        immutable buffer)
    """
    fmt = _field_format(width)
    if fmt is None:
        logger.debug(f"Unsupported field width {width}")
        return False
    if not in_bounds(data, offset_abs, int(width)):
        logger.debug(f"Write at 0x{offset_abs:x} (width {int(width)}) out of bounds")
        return False

    try:
        encoded = struct.pack(fmt, value)
    except struct.error:
        logger.debug(f"Value {value} does not fit in {int(width)} byte(s)")
        return False

    try:
        data[offset_abs:offset_abs + len(encoded)] = encoded
    except TypeError:
        logger.debug("Buffer is read-only")
        return False
    return True


def read_u16(data, offset_abs: int) -> Optional[int]:
    return read_field(data, offset_abs, FieldWidth.UINT16)


def write_u16(data, offset_abs: int, value: int) -> bool:
    return write_field(data, offset_abs, FieldWidth.UINT16, value)


def _clamp_region(data, start_abs: int, length: int, width: int):
    if data is None or len(data) < width:
        return None
    if start_abs < 0:
        start_abs = 0
    if start_abs >= len(data):
        return None
    end_abs = min(start_abs + length, len(data))
    return start_abs, end_abs


def find_all_pattern(data, start_abs: int, length: int, pattern: bytes) -> List[int]:
    """Every (overlapping) position of pattern fully inside the clamped region"""
    region = _clamp_region(data, start_abs, length, len(pattern))
    if region is None:
        return []
    start, end = region

    results = []
    pos = data.find(pattern, start, end)
    while pos != -1:
        results.append(pos)
        pos = data.find(pattern, pos + 1, end)
    return results


def find_all_u16(data, start_abs: int, length: int, value: int) -> List[int]:
    """Find all positions of a u16 value, at any byte alignment"""
    return find_all_pattern(data, start_abs, length, struct.pack('<H', value))


def find_all_u32(data, start_abs: int, length: int, value: int) -> List[int]:
    """Find all positions of a u32 value, at any byte alignment"""
    return find_all_pattern(data, start_abs, length, struct.pack('<I', value))
