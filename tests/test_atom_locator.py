#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
Tests for ATOM header location, master table resolution and table enumeration.
"""

import sys
import struct
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from atombios.core.locator import (
    find_atom_header,
    find_master_data_table,
    list_data_tables,
    get_large_tables,
    select_scan_tables,
)
from atombios.platforms.legacy import LEGACY_BASE, AtomTableInfo
from tools.create_mock_rom import create_mock_rom, build_table


def _rom_with_signature(header_abs, size, rom_size=LEGACY_BASE + 0x1000):
    rom = bytearray(rom_size)
    struct.pack_into('<H', rom, header_abs, size)
    rom[header_abs + 4:header_abs + 8] = b'ATOM'
    return rom


class TestFindAtomHeader:
    def test_no_signature(self):
        assert find_atom_header(bytearray(LEGACY_BASE + 0x1000)) is None

    def test_empty_and_none(self):
        assert find_atom_header(b'') is None
        assert find_atom_header(None) is None

    def test_minimal_header(self):
        rom = _rom_with_signature(LEGACY_BASE, 0x20)
        assert find_atom_header(rom) == LEGACY_BASE

    def test_buffer_too_short(self):
        rom = _rom_with_signature(LEGACY_BASE, 0x20, rom_size=LEGACY_BASE + 0x1FF)
        assert find_atom_header(rom) is None

    @pytest.mark.parametrize('size,found', [
        (0x1F, False),
        (0x20, True),
        (0x80, True),
        (0x81, False),
    ])
    def test_header_size_bounds(self, size, found):
        rom = _rom_with_signature(LEGACY_BASE + 0x40, size)
        result = find_atom_header(rom)
        assert (result == LEGACY_BASE + 0x40) if found else (result is None)

    def test_first_valid_match_wins(self):
        rom = _rom_with_signature(LEGACY_BASE, 0x10)  # rejected: size too small
        struct.pack_into('<H', rom, LEGACY_BASE + 0x100, 0x24)
        rom[LEGACY_BASE + 0x104:LEGACY_BASE + 0x108] = b'ATOM'
        struct.pack_into('<H', rom, LEGACY_BASE + 0x200, 0x30)
        rom[LEGACY_BASE + 0x204:LEGACY_BASE + 0x208] = b'ATOM'
        assert find_atom_header(rom) == LEGACY_BASE + 0x100

    def test_signature_outside_window(self):
        rom = _rom_with_signature(LEGACY_BASE + 0x4000, 0x20, rom_size=LEGACY_BASE + 0x8000)
        assert find_atom_header(rom) is None

    def test_signature_before_legacy_base_ignored(self):
        rom = _rom_with_signature(0x100, 0x20)
        assert find_atom_header(rom) is None

    def test_last_position_in_window(self):
        # Signature at LEGACY_BASE + 0x3FFF is the last position searched
        rom = _rom_with_signature(LEGACY_BASE + 0x3FFF - 4, 0x20, rom_size=LEGACY_BASE + 0x8000)
        assert find_atom_header(rom) == LEGACY_BASE + 0x3FFF - 4


class TestFindMasterDataTable:
    def test_resolves_relative_offset(self):
        rom = create_mock_rom([0x100, 0x200], master_rel=0x80)
        assert find_master_data_table(rom) == LEGACY_BASE + 0x80

    def test_no_header(self):
        assert find_master_data_table(bytearray(LEGACY_BASE + 0x1000)) is None

    def test_master_outside_image(self):
        rom = create_mock_rom([0x100, 0x200], master_rel=0x80, rom_size=LEGACY_BASE + 0x1000)
        struct.pack_into('<H', rom, LEGACY_BASE + 32, 0xFFFE)
        assert find_master_data_table(rom) is None


class TestListDataTables:
    def test_skips_empty_slots(self):
        tables = {
            0x100: build_table(size=0x40, fmt_rev=2, content_rev=1),
            0x200: build_table(size=0x80, fmt_rev=1, content_rev=3),
        }
        rom = create_mock_rom([0, 0x100, 0x200], tables)

        result = list_data_tables(rom)

        assert len(result) == 2
        assert [t.offset_abs for t in result] == [LEGACY_BASE + 0x100, LEGACY_BASE + 0x200]
        assert [t.index for t in result] == [1, 2]
        assert [t.offset_rel for t in result] == [0x100, 0x200]

    def test_descriptor_fields(self):
        rom = create_mock_rom([0x100, 0], {0x100: build_table(size=0x123, fmt_rev=2, content_rev=7)})

        table = list_data_tables(rom)[0]

        assert table.size == 0x123
        assert table.fmt_rev == 2
        assert table.content_rev == 7

    def test_skips_out_of_range_entries(self):
        rom = create_mock_rom([0x100, 0xFFFF, 0x200],
                              {0x100: build_table(size=0x40), 0x200: build_table(size=0x40)},
                              rom_size=LEGACY_BASE + 0x1000)

        result = list_data_tables(rom)

        assert [t.index for t in result] == [0, 2]

    def test_entry_at_image_end(self):
        # Table header must fit entirely: abs + 4 <= len
        rom = create_mock_rom([0xFFC, 0xFFD], rom_size=LEGACY_BASE + 0x1000)
        result = list_data_tables(rom)
        assert [t.index for t in result] == [0]

    def test_master_too_small(self):
        # One entry gives a master size of 6
        rom = create_mock_rom([0x100], {0x100: build_table(size=0x40)})
        assert list_data_tables(rom) == []

    def test_no_header(self):
        assert list_data_tables(bytearray(LEGACY_BASE + 0x1000)) == []
        assert list_data_tables(b'') == []

    def test_table_names(self):
        entries = [0] * 16
        entries[15] = 0x200
        rom = create_mock_rom(entries, {0x200: build_table(size=0x40)})

        table = list_data_tables(rom)[0]

        assert table.name == 'PowerPlayInfo'
        assert 'PowerPlayInfo' in table.display()
        assert table.display().startswith('[15] Rel=0x200  Abs=0x40200  Size=64  Rev=0.0')


class TestLargeTables:
    def _tables(self):
        return [
            AtomTableInfo(0, 0x100, 64, 1, 1),
            AtomTableInfo(1, 0x200, 1024, 1, 1),
            AtomTableInfo(2, 0x800, 4096, 1, 1),
        ]

    def test_filter(self):
        result = get_large_tables(self._tables(), 1024)
        assert [t.index for t in result] == [1, 2]

    def test_select_falls_back_to_all(self):
        tables = self._tables()[:1]
        assert select_scan_tables(tables, 1024) == tables

    def test_select_empty(self):
        assert select_scan_tables([], 1024) == []
        assert get_large_tables(None, 1024) == []
