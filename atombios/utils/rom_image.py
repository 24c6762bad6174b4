#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
ROM image file handling.

Loads a GPU ROM dump into a mutable buffer, keeps its table list, converts
user-facing (legacy-relative) offsets and saves modified copies.
"""

import logging
from pathlib import Path
from typing import List, Optional

from atombios.core.accessor import read_field, write_field
from atombios.core.locator import list_data_tables
from atombios.platforms.legacy import AtomTableInfo, FieldWidth, LEGACY_BASE

logger = logging.getLogger(__name__)


def parse_hex_int(text: str) -> Optional[int]:
    """Parse '0x1A2' or '1A2' as hex; None if invalid"""
    if text is None:
        return None
    text = text.strip()
    if text.lower().startswith('0x'):
        text = text[2:]
    if not text:
        return None
    try:
        return int(text, 16)
    except ValueError:
        return None


def default_output_path(rom_path: Path) -> Path:
    """<stem>_mod<suffix> next to the input file"""
    rom_path = Path(rom_path)
    return rom_path.with_name(f"{rom_path.stem}_mod{rom_path.suffix}")


def scale_to_value(raw: int, scale: float) -> float:
    if scale <= 0:
        scale = 1.0
    return raw * scale


def value_to_raw(value: float, scale: float) -> int:
    if scale <= 0:
        scale = 1.0
    return max(0, int(round(value / scale)))


class RomImage:
    """A loaded ROM dump and its ATOM data tables"""

    def __init__(self, rom_path: str):
        """
        Load a ROM image.

        Args:
            rom_path: Path to the ROM/BIN dump
        """
        # Resolve absolute path immediately to avoid CWD issues
        self.path = Path(rom_path).resolve()
        if not self.path.exists():
            raise FileNotFoundError(f"ROM image not found: {rom_path}")

        with open(self.path, 'rb') as f:
            self.data = bytearray(f.read())

        self.tables: List[AtomTableInfo] = []
        self.refresh_tables()

    def refresh_tables(self) -> List[AtomTableInfo]:
        """
        Re-derive the table list from the current bytes.

        Edits do not do this implicitly; call it after touching header or
        table bytes.
        """
        self.tables = list_data_tables(self.data)
        return self.tables

    def resolve_offset(self, offset: int, absolute: bool = False) -> int:
        return offset if absolute else LEGACY_BASE + offset

    def read(self, offset: int, width=FieldWidth.UINT16, absolute: bool = False) -> Optional[int]:
        return read_field(self.data, self.resolve_offset(offset, absolute), width)

    def write(self, offset: int, width, value: int, absolute: bool = False) -> bool:
        offset_abs = self.resolve_offset(offset, absolute)
        old = read_field(self.data, offset_abs, width)
        if not write_field(self.data, offset_abs, width, value):
            logger.warning(f"Write rejected at 0x{offset_abs:x} (width {int(width)}, value {value})")
            return False
        logger.info(f"Field changed @ 0x{offset_abs:x}: {old} -> {value}")
        return True

    def save(self, output_path: Optional[str] = None) -> Path:
        """Write the buffer to output_path (default <stem>_mod<suffix>)"""
        target = Path(output_path) if output_path else default_output_path(self.path)
        with open(target, 'wb') as f:
            f.write(self.data)
        logger.info(f"Saved {len(self.data)} bytes to {target}")
        return target

    def __len__(self):
        return len(self.data)
