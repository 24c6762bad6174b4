#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
Create mock GPU ROM images with an embedded ATOM BIOS for testing.

The images are zero-filled apart from the ATOM ROM header, the master data
table and the data tables placed into it, so every plausible value in the
image is one that was put there on purpose.
"""

import struct
import sys
from pathlib import Path
from typing import Dict, List, Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

from atombios.platforms.legacy import LEGACY_BASE, ATOM_SIGNATURE, MASTER_DATA_SLOT

DEFAULT_ROM_SIZE = LEGACY_BASE + 0x8000
DEFAULT_MASTER_REL = 0x80


def build_table(payload: bytes = b'', size: Optional[int] = None,
                fmt_rev: int = 0, content_rev: int = 0) -> bytes:
    """
    Create a data table: 4-byte header followed by the payload.

    Args:
        payload: Table content after the header
        size: Declared size (default header + payload). Larger sizes are
              zero-padded, so the whole declared table is present.
        fmt_rev: Format revision byte
        content_rev: Content revision byte
    """
    declared = size if size is not None else len(payload) + 4
    table = struct.pack('<HBB', declared, fmt_rev, content_rev) + payload
    if len(table) < declared:
        table += b'\x00' * (declared - len(table))
    return table


def build_payload(size: int, values: Dict[int, int], width: int = 2) -> bytes:
    """
    Create a zero-filled payload with little-endian values at given offsets.

    Offsets are relative to the start of the table (header included), so
    offset 4 is the first payload byte.
    """
    fmt = {2: '<H', 4: '<I'}[width]
    table = bytearray(size)
    for offset, value in values.items():
        struct.pack_into(fmt, table, offset, value)
    return bytes(table[4:])


def create_mock_rom(entries: List[int], tables: Optional[Dict[int, bytes]] = None,
                    rom_size: int = DEFAULT_ROM_SIZE, header_size: int = 0x20,
                    header_rel: int = 0, master_rel: int = DEFAULT_MASTER_REL,
                    signature: bytes = ATOM_SIGNATURE) -> bytearray:
    """
    Create a mock ROM image.

    Args:
        entries: Master data table slots (offsets relative to LEGACY_BASE, 0 = empty)
        tables: Table blobs keyed by relative offset
        rom_size: Total image size
        header_size: Value of the ATOM ROM header size field
        header_rel: Header position relative to LEGACY_BASE
        master_rel: Master data table position relative to LEGACY_BASE
        signature: Header signature bytes

    Returns:
        Mutable ROM buffer
    """
    rom = bytearray(rom_size)

    header = LEGACY_BASE + header_rel
    struct.pack_into('<H', rom, header, header_size)
    rom[header + 4:header + 4 + len(signature)] = signature
    struct.pack_into('<H', rom, header + MASTER_DATA_SLOT, master_rel)

    master = LEGACY_BASE + master_rel
    struct.pack_into('<HBB', rom, master, 4 + 2 * len(entries), 1, 1)
    for idx, rel in enumerate(entries):
        struct.pack_into('<H', rom, master + 4 + idx * 2, rel)

    for rel, blob in (tables or {}).items():
        start = LEGACY_BASE + rel
        rom[start:start + len(blob)] = blob

    return rom


def create_mock_tuning_rom() -> bytearray:
    """
    ROM with a small table, a large "PowerPlay" table holding a 304W limit
    block, and a second large table with a clock cluster.
    """
    small = build_table(build_payload(0x40, {0x08: 300}), size=0x40)

    powerplay_values = {
        # power limit block
        0x100: 304, 0x102: 250, 0x104: 280, 0x106: 320,
        # voltage block
        0x200: 800, 0x202: 900, 0x204: 1000, 0x206: 1100,
    }
    powerplay = build_table(build_payload(0x1100, powerplay_values), size=0x1100)

    clock_values = {0x300 + i * 2: 1600 + i * 0x20 for i in range(6)}
    clocks = build_table(build_payload(0x1200, clock_values), size=0x1200)

    # Slot 15 is PowerPlayInfo
    entries = [0] * 16
    entries[4] = 0x100
    entries[15] = 0x200
    entries[14] = 0x1400
    return create_mock_rom(entries, {0x100: small, 0x200: powerplay, 0x1400: clocks},
                           rom_size=LEGACY_BASE + 0x4000)


def main():
    output_dir = Path(__file__).parent.parent / 'data' / 'roms'
    output_dir.mkdir(parents=True, exist_ok=True)

    scenarios = [
        ('test_tuning_rom', 'PowerPlay table with a 304W limit block', create_mock_tuning_rom()),
        ('test_no_signature', 'No ATOM header', bytearray(LEGACY_BASE + 0x1000)),
        ('test_empty_master', 'Header and master table with only empty slots',
         create_mock_rom([0, 0, 0])),
    ]

    print("Creating mock ROM test suite...")
    print(f"Output directory: {output_dir}\n")

    for name, description, rom in scenarios:
        output_file = output_dir / f"{name}.rom"
        print(f"Creating: {name}")
        print(f"  {description}")
        with open(output_file, 'wb') as f:
            f.write(rom)
        print(f"  Created: {output_file} ({len(rom)} bytes)\n")

    print("Try:")
    print(f"  python3 atom2tune.py scan -i {output_dir}/test_tuning_rom.rom --mode exact-scored")
    return 0


if __name__ == '__main__':
    sys.exit(main())
