#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
Report output for table lists and scan results.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from atombios.platforms.legacy import AtomTableInfo, ScanCandidate, LEGACY_BASE

logger = logging.getLogger(__name__)


def build_report(rom_path: Optional[Path], rom_size: int,
                 tables: List[AtomTableInfo],
                 candidates: Optional[List[ScanCandidate]] = None,
                 mode: Optional[str] = None) -> Dict:
    report = {
        'file': str(rom_path) if rom_path else None,
        'size': rom_size,
        'legacy_base': f'0x{LEGACY_BASE:x}',
        'tables': [t.to_dict() for t in tables],
    }
    if candidates is not None:
        report['mode'] = mode
        report['candidates'] = [c.to_dict() for c in candidates]
    return report


def export_json(report: Dict, output_path: Path):
    """Export report data to JSON file."""
    with open(output_path, 'w') as f:
        json.dump(report, f, indent=2)
    logger.info(f"Exported report to {output_path}")


def print_tables(tables: List[AtomTableInfo]):
    """Print human-readable table list"""
    print("=" * 72)
    print(f"ATOM Data Tables: {len(tables)}")
    print("=" * 72)
    for table in tables:
        print(f"  {table.display()}")


def print_candidates(candidates: List[ScanCandidate], limit: Optional[int] = None):
    """Print human-readable candidate list"""
    shown = candidates if limit is None else candidates[:limit]
    print("=" * 72)
    print(f"Candidates: {len(candidates)}")
    print("=" * 72)
    for candidate in shown:
        print(f"  {candidate.display()}")
    if len(shown) < len(candidates):
        print(f"  ... and {len(candidates) - len(shown)} more")
