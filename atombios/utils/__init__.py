#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""ROM file handling and reporting helpers"""

from .rom_image import RomImage, parse_hex_int, default_output_path
from .report import build_report, export_json, print_tables, print_candidates

__all__ = [
    'RomImage',
    'parse_hex_int',
    'default_output_path',
    'build_report',
    'export_json',
    'print_tables',
    'print_candidates',
]
