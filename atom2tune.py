#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
atom2tune - Find tunable parameter candidates in ATOM BIOS images
"""

import sys
import argparse
import logging
from pathlib import Path

from atombios.core.config import ScanConfig
from atombios.core.locator import find_atom_header, get_large_tables
from atombios.core.scanner import CandidateScanner
from atombios.platforms.legacy import FieldWidth
from atombios.utils.rom_image import RomImage, parse_hex_int, scale_to_value, value_to_raw
from atombios.utils.report import build_report, export_json, print_tables, print_candidates

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def cmd_tables(args, rom: RomImage) -> int:
    tables = rom.tables
    if args.min_size:
        tables = get_large_tables(tables, args.min_size)

    print_tables(tables)

    if args.json:
        export_json(build_report(rom.path, len(rom), tables), Path(args.json))
    return 0


def cmd_scan(args, rom: RomImage) -> int:
    config = ScanConfig.load(Path(args.config)) if args.config else None
    scanner = CandidateScanner(platform=args.platform, config=config)

    candidates = scanner.scan(rom.data, rom.tables, mode=args.mode, target=args.target)
    print_candidates(candidates, limit=args.limit)

    if args.json:
        report = build_report(rom.path, len(rom), rom.tables, candidates, mode=args.mode)
        export_json(report, Path(args.json))

    if not candidates:
        logger.warning("No candidates found. The value may not be stored as a literal.")
    return 0


def _resolve_field_offset(args):
    offset = parse_hex_int(args.offset)
    if offset is None:
        logger.error(f"Invalid offset: {args.offset}")
    return offset


def cmd_read(args, rom: RomImage) -> int:
    offset = _resolve_field_offset(args)
    if offset is None:
        return 1

    width = FieldWidth(args.width)
    raw = rom.read(offset, width, absolute=args.absolute)
    if raw is None:
        logger.error(f"Offset 0x{offset:x} outside the image")
        return 1

    offset_abs = rom.resolve_offset(offset, args.absolute)
    print(f"Abs 0x{offset_abs:X}  {width.name}  raw={raw} (0x{raw:X})  "
          f"value={scale_to_value(raw, args.scale):g}")
    return 0


def cmd_write(args, rom: RomImage) -> int:
    offset = _resolve_field_offset(args)
    if offset is None:
        return 1

    raw = value_to_raw(args.value, args.scale)
    if not rom.write(offset, FieldWidth(args.width), raw, absolute=args.absolute):
        logger.error("Write rejected, image not saved")
        return 1

    rom.save(args.output)
    return 0


COMMANDS = {
    'tables': cmd_tables,
    'scan': cmd_scan,
    'read': cmd_read,
    'write': cmd_write,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Find tunable parameter candidates in ATOM BIOS images'
    )
    parser.add_argument('--verbose', '-v', action='store_true')
    parser.add_argument('--platform', default='legacy', choices=['legacy'])

    subparsers = parser.add_subparsers(dest='command', required=True)

    def add_command(name, help_text):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('--input', '-i', required=True, help='ROM image file')
        return sub

    tables = add_command('tables', 'List ATOM data tables')
    tables.add_argument('--min-size', type=int, default=0, help='Only tables at least this large')
    tables.add_argument('--json', '-j', help='Export table list as JSON')

    scan = add_command('scan', 'Scan data tables for parameter candidates')
    scan.add_argument('--mode', default='smart', choices=CandidateScanner.SCAN_MODES)
    scan.add_argument('--target', type=int, help='Known wattage for the exact modes')
    scan.add_argument('--limit', type=int, default=50, help='Number of candidates to print')
    scan.add_argument('--config', '-c', help='JSON file with scan parameter overrides')
    scan.add_argument('--json', '-j', help='Export candidates as JSON')

    for name, help_text in (('read', 'Read a field'), ('write', 'Write a field and save a copy')):
        sub = add_command(name, help_text)
        sub.add_argument('--offset', required=True, help='Hex offset, relative to the legacy base')
        sub.add_argument('--absolute', action='store_true', help='Offset is absolute in the file')
        sub.add_argument('--width', type=int, default=2, choices=[1, 2, 4])
        sub.add_argument('--scale', type=float, default=1.0, help='Display value = raw * scale')
        if name == 'write':
            sub.add_argument('--value', type=float, required=True)
            sub.add_argument('--output', '-o', help='Output file (default <name>_mod<ext>)')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        rom = RomImage(str(input_path))
        logger.info(f"atom2tune - {input_path} ({len(rom):,} bytes)")

        if args.command in ('tables', 'scan'):
            header = find_atom_header(rom.data)
            if header is None:
                logger.error("No ATOM ROM header found")
                return 1
            logger.info(f"ATOM header at 0x{header:x}")

            if not rom.tables:
                logger.error("No ATOM data tables found")
                return 1

        return COMMANDS[args.command](args, rom)

    except Exception as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        return 1


if __name__ == '__main__':
    sys.exit(main())
