#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""Platform package initialization"""

from .legacy import (
    AtomTableInfo,
    ScanCandidate,
    FieldWidth,
    LEGACY_BASE,
    ATOM_SIGNATURE,
    CANDIDATE_KINDS,
    KIND_ORDER,
    DATA_TABLE_NAMES,
    get_table_name,
    to_absolute,
    to_legacy_relative,
)

__all__ = [
    'AtomTableInfo',
    'ScanCandidate',
    'FieldWidth',
    'LEGACY_BASE',
    'ATOM_SIGNATURE',
    'CANDIDATE_KINDS',
    'KIND_ORDER',
    'DATA_TABLE_NAMES',
    'get_table_name',
    'to_absolute',
    'to_legacy_relative',
]
