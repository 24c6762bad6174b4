#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""Core ATOM table discovery, field access and candidate scanning"""

from .locator import (
    find_atom_header,
    find_master_data_table,
    list_data_tables,
    get_large_tables,
    select_scan_tables,
)
from .accessor import read_field, write_field, find_all_u16, find_all_u32
from .config import ScanConfig, KindRange
from .scanner import CandidateScanner, score_neighborhood

__all__ = [
    'find_atom_header',
    'find_master_data_table',
    'list_data_tables',
    'get_large_tables',
    'select_scan_tables',
    'read_field',
    'write_field',
    'find_all_u16',
    'find_all_u32',
    'ScanConfig',
    'KindRange',
    'CandidateScanner',
    'score_neighborhood',
]
