#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
Legacy ATOM BIOS layout definitions.

This module defines the structural constants and record types for the
legacy ATOM BIOS image found inside AMD/ATI GPU ROMs, plus the value ranges
used to recognise tunable parameters (power limits, voltages, clocks).

Layout (all multi-byte fields little-endian):
- ATOM ROM header: u16 size at +0, "ATOM" signature at +4,
  master data table offset at +8 + 12*2
- Master data table: u16 size, u8 fmt rev, u8 content rev,
  then (size - 4) / 2 u16 offsets (0 = empty slot)
- Data table: u16 size, u8 fmt rev, u8 content rev, opaque payload

Based on:
- linux drivers/gpu/drm/amd/include/atombios.h (ATOM_ROM_HEADER,
  ATOM_MASTER_LIST_OF_DATA_TABLES)
"""

from typing import Dict, List, Optional
from enum import IntEnum


# Legacy VBIOS image starts here inside a full flash dump. All relative
# offsets (master table, data tables, user-facing offsets) are relative to it.
LEGACY_BASE = 0x40000

ATOM_SIGNATURE = b'ATOM'

# Header search window, starting at LEGACY_BASE
HEADER_SEARCH_WINDOW = 0x4000
# Header lookahead kept free at the end of the buffer
HEADER_LOOKAHEAD = 16
MIN_ROM_SIZE = LEGACY_BASE + 0x200

HEADER_SIZE_MIN = 0x20
HEADER_SIZE_MAX = 0x80
# The signature is preceded by the header's own u16 size field
SIGNATURE_OFFSET = 4
# usMasterDataTableOffset: 12th u16 after the signature area
MASTER_DATA_SLOT = 8 + 12 * 2

MASTER_TABLE_MIN_SIZE = 8
# u16 size + u8 format revision + u8 content revision
TABLE_HEADER_SIZE = 4

# Tables at least this large hold the interesting parameter blocks
LARGE_TABLE_MIN_SIZE = 1024


class FieldWidth(IntEnum):
    """Unsigned little-endian field widths supported by the accessor"""
    BYTE = 1
    UINT16 = 2
    UINT32 = 4


FIELD_FORMATS = {
    FieldWidth.BYTE: '<B',
    FieldWidth.UINT16: '<H',
    FieldWidth.UINT32: '<I',
}


# Plausible value ranges for tunable parameters.
#   max_results: per-kind cap for the naive scan
#   min_score:   neighbourhood score needed in the smart scan
CANDIDATE_KINDS = {
    'power': {'label': 'Power (W)', 'unit': 'W', 'min': 150, 'max': 600,
              'max_results': 60, 'min_score': 3},
    'voltage': {'label': 'Voltage (mV)', 'unit': 'mV', 'min': 600, 'max': 1600,
                'max_results': 80, 'min_score': 4},
    'clock': {'label': 'Clock (MHz)', 'unit': 'MHz', 'min': 500, 'max': 4000,
              'max_results': 120, 'min_score': 4},
}

# Order in which kinds are scanned and classified
KIND_ORDER = ['power', 'voltage', 'clock']

NEIGHBORHOOD_WINDOW = 64
NEIGHBORHOOD_STRIDE = 2
SMART_MAX_RESULTS = 400

# Scored exact search: limits tend to sit in blocks, so the power window is wider
EXACT_POWER_WINDOW = 96
EXACT_VOLTAGE_WINDOW = 64
EXACT_CLOCK_WINDOW = 64
EXACT_POWER_WEIGHT = 3
DEFAULT_POWER_TARGET = 304

# Fixed-point encodings tried when looking for a known wattage
U16_SCALE_CASES = [
    (1, 'UInt16: W'),
    (2, 'UInt16: W*2 (0.5W steps)'),
    (4, 'UInt16: W*4 (0.25W steps)'),
    (8, 'UInt16: W*8 (0.125W steps)'),
    (10, 'UInt16: W*10 (0.1W)'),
    (16, 'UInt16: W*16 (1/16W)'),
]

U32_SCALE_CASES = [
    (1, 'UInt32: W'),
    (256, 'UInt32: W*256 (1/256W)'),
    (1000, 'UInt32: mW (W*1000)'),
]

# ATOM_MASTER_LIST_OF_DATA_TABLES slot names
DATA_TABLE_NAMES = [
    'UtilityPipeLine',
    'MultimediaCapabilityInfo',
    'MultimediaConfigInfo',
    'StandardVESA_Timing',
    'FirmwareInfo',
    'PaletteData',
    'LCD_Info',
    'DIGTransmitterInfo',
    'SMU_Info',
    'SupportedDevicesInfo',
    'GPIO_I2C_Info',
    'VRAM_UsageByFirmware',
    'GPIO_Pin_LUT',
    'VESA_ToInternalModeLUT',
    'GFX_Info',
    'PowerPlayInfo',
    'GPUVirtualizationInfo',
    'SaveRestoreInfo',
    'PPLL_SS_Info',
    'OemInfo',
    'XTMDS_Info',
    'MclkSS_Info',
    'Object_Header',
    'IndirectIOAccess',
    'MC_InitParameter',
    'ASIC_VDDC_Info',
    'ASIC_InternalSS_Info',
    'TV_VideoMode',
    'VRAM_Info',
    'MemoryTrainingInfo',
    'IntegratedSystemInfo',
    'ASIC_ProfilingInfo',
    'VoltageObjectInfo',
    'PowerSourceInfo',
    'ServiceInfo',
]


def get_table_name(index: int) -> Optional[str]:
    if 0 <= index < len(DATA_TABLE_NAMES):
        return DATA_TABLE_NAMES[index]
    return None


def to_legacy_relative(offset_abs: int) -> int:
    return offset_abs - LEGACY_BASE


def to_absolute(offset_rel: int) -> int:
    return LEGACY_BASE + offset_rel


class AtomTableInfo:
    """
    One data table referenced from the master data table.

    Only the 4-byte table header is decoded; the payload after it is an
    opaque region for the candidate scanners.
    """

    def __init__(self, index: int, offset_rel: int, size: int,
                 fmt_rev: int, content_rev: int):
        """
        Args:
            index: Slot position in the master data table (not list position)
            offset_rel: Offset as stored in the master table (relative to LEGACY_BASE)
            size: Table size from the table's own header
            fmt_rev: Format revision byte
            content_rev: Content revision byte
        """
        self.index = index
        self.offset_rel = offset_rel
        self.offset_abs = to_absolute(offset_rel)
        self.size = size
        self.fmt_rev = fmt_rev
        self.content_rev = content_rev

    @property
    def name(self) -> Optional[str]:
        return get_table_name(self.index)

    def display(self) -> str:
        text = (f"[{self.index}] Rel=0x{self.offset_rel:X}  Abs=0x{self.offset_abs:X}  "
                f"Size={self.size}  Rev={self.fmt_rev}.{self.content_rev}")
        if self.name:
            text += f"  {self.name}"
        return text

    def to_dict(self) -> Dict:
        """Convert to dictionary representation"""
        return {
            'index': self.index,
            'name': self.name,
            'offset_rel': f'0x{self.offset_rel:x}',
            'offset_abs': f'0x{self.offset_abs:x}',
            'size': self.size,
            'fmt_rev': self.fmt_rev,
            'content_rev': self.content_rev,
        }

    def __repr__(self):
        return f"AtomTableInfo({self.display()})"


class ScanCandidate:
    """
    A byte offset whose value plausibly holds a tunable parameter.

    Candidates are plain values: they remember the offset, not the buffer,
    and go stale as soon as the bytes around them change.
    """

    def __init__(self, kind: str, unit: str, offset_abs: int, raw_value: int,
                 table_index: int = -1, value: Optional[float] = None,
                 score: int = 0, table_size: int = 0, name: Optional[str] = None,
                 width: int = FieldWidth.UINT16, note: Optional[str] = None):
        self.kind = kind
        self.unit = unit
        self.name = name or f"{kind} Candidate"
        self.table_index = table_index
        self.offset_abs = offset_abs
        self.raw_value = raw_value
        self.value = float(raw_value if value is None else value)
        self.score = score
        self.table_size = table_size
        self.width = int(width)
        self.note = note
        # (power, voltage, clock) scores for the scored exact search
        self.sub_scores = None
        self.display_text = None

    @property
    def offset_rel_legacy(self) -> int:
        return to_legacy_relative(self.offset_abs)

    def display(self) -> str:
        if self.display_text:
            return self.display_text
        return (f"{self.kind}: {self.raw_value} {self.unit}   "
                f"(Rel 0x{self.offset_rel_legacy:X} / Abs 0x{self.offset_abs:X})   "
                f"Table [{self.table_index}]")

    def to_dict(self) -> Dict:
        """Convert to dictionary representation"""
        result = {
            'kind': self.kind,
            'name': self.name,
            'unit': self.unit,
            'table_index': self.table_index,
            'offset_abs': f'0x{self.offset_abs:x}',
            'offset_rel_legacy': f'0x{self.offset_rel_legacy:x}',
            'raw_value': self.raw_value,
            'value': self.value,
            'width': self.width,
            'score': self.score,
            'table_size': self.table_size,
        }
        if self.note:
            result['note'] = self.note
        if self.sub_scores:
            result['sub_scores'] = dict(zip(KIND_ORDER, self.sub_scores))
        return result

    def __repr__(self):
        return f"ScanCandidate({self.display()})"
