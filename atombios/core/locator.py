#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
ATOM table discovery module.

Finds the ATOM ROM header by its signature, resolves the master data table
and enumerates the data tables it references. Malformed or truncated images
are expected input: every function reports "not found" (None / empty list)
instead of raising.
"""

import struct
import logging
from typing import List, Optional

from atombios.platforms.legacy import (
    AtomTableInfo,
    LEGACY_BASE,
    ATOM_SIGNATURE,
    HEADER_SEARCH_WINDOW,
    HEADER_LOOKAHEAD,
    MIN_ROM_SIZE,
    HEADER_SIZE_MIN,
    HEADER_SIZE_MAX,
    SIGNATURE_OFFSET,
    MASTER_DATA_SLOT,
    MASTER_TABLE_MIN_SIZE,
    TABLE_HEADER_SIZE,
)

logger = logging.getLogger(__name__)


def find_atom_header(data) -> Optional[int]:
    """
    Locate the ATOM ROM header.

    Scans [LEGACY_BASE, min(len - 16, LEGACY_BASE + 0x4000)) for "ATOM".
    The header starts 4 bytes before the signature, and is accepted only
    if its u16 size field lies in [0x20, 0x80]. First match wins.

    Returns:
        Absolute header offset, or None
    """
    if not data or len(data) < MIN_ROM_SIZE:
        return None

    end = min(len(data) - HEADER_LOOKAHEAD, LEGACY_BASE + HEADER_SEARCH_WINDOW)
    pos = data.find(ATOM_SIGNATURE, LEGACY_BASE, end + len(ATOM_SIGNATURE) - 1)
    while pos != -1:
        start = pos - SIGNATURE_OFFSET
        if start >= 0:
            size = struct.unpack_from('<H', data, start)[0]
            if HEADER_SIZE_MIN <= size <= HEADER_SIZE_MAX:
                logger.debug(f"ATOM header at 0x{start:x} (size 0x{size:x})")
                return start
            logger.debug(f"Rejected ATOM signature at 0x{pos:x}: header size 0x{size:x}")
        pos = data.find(ATOM_SIGNATURE, pos + 1, end + len(ATOM_SIGNATURE) - 1)

    return None


def find_master_data_table(data) -> Optional[int]:
    """
    Resolve the absolute offset of the master data table.

    Returns:
        Absolute offset, or None if the header is missing or the
        table would not fit in the buffer
    """
    header = find_atom_header(data)
    if header is None:
        return None

    slot = header + MASTER_DATA_SLOT
    if slot + 2 > len(data):
        return None

    rel = struct.unpack_from('<H', data, slot)[0]
    master_abs = LEGACY_BASE + rel
    if master_abs <= 0 or master_abs + TABLE_HEADER_SIZE > len(data):
        logger.debug(f"Master data table offset 0x{master_abs:x} outside image")
        return None

    return master_abs


def list_data_tables(data) -> List[AtomTableInfo]:
    """
    Enumerate data tables from the master data table.

    Empty slots (offset 0) and slots pointing outside the buffer are
    skipped, so the returned indices may have gaps.
    """
    if not data:
        return []

    master_abs = find_master_data_table(data)
    if master_abs is None:
        logger.warning("No ATOM master data table found")
        return []

    master_size = struct.unpack_from('<H', data, master_abs)[0]
    if master_size < MASTER_TABLE_MIN_SIZE:
        logger.warning(f"Master data table at 0x{master_abs:x} too small ({master_size} bytes)")
        return []

    count = (master_size - TABLE_HEADER_SIZE) // 2
    tables = []

    for idx in range(count):
        entry = master_abs + TABLE_HEADER_SIZE + idx * 2
        if entry + 2 > len(data):
            break

        rel = struct.unpack_from('<H', data, entry)[0]
        if rel == 0:
            continue

        table_abs = LEGACY_BASE + rel
        if table_abs < 0 or table_abs + TABLE_HEADER_SIZE > len(data):
            logger.debug(f"Skipping table [{idx}]: offset 0x{table_abs:x} outside image")
            continue

        size, fmt_rev, content_rev = struct.unpack_from('<HBB', data, table_abs)
        tables.append(AtomTableInfo(idx, rel, size, fmt_rev, content_rev))

    logger.info(f"Found {len(tables)} ATOM data tables (master at 0x{master_abs:x}, {count} slots)")
    return tables


def get_large_tables(tables: List[AtomTableInfo], min_size: int) -> List[AtomTableInfo]:
    """Return tables whose declared size is at least min_size"""
    if not tables:
        return []
    return [t for t in tables if t is not None and t.size >= min_size]


def select_scan_tables(tables: List[AtomTableInfo], min_size: int) -> List[AtomTableInfo]:
    """Large tables only, falling back to all tables if none qualify"""
    large = get_large_tables(tables, min_size)
    if large:
        return large
    if tables:
        logger.debug(f"No tables >= {min_size} bytes, scanning all {len(tables)}")
    return list(tables or [])
