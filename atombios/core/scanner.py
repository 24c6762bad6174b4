#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
Tunable parameter candidate scanning.

The ATOM data table payloads are opaque, so parameters are located
heuristically. Four strategies share one neighbourhood scorer:

- naive:        every u16 in a kind's range, first-seen per offset, per-kind
                cap applied in table order (cheap, early exit)
- smart:        large tables only, hits kept when enough same-kind values
                cluster around them, ranked by score then table size, capped
                after ranking (complete, ranked)
- exact:        a known wattage under a fixed set of u16/u32 encodings
- exact-scored: a known wattage as u16, ranked by power/voltage/clock density
"""

import logging
from typing import Dict, List, Optional, Tuple

from atombios.core.accessor import find_all_u16, find_all_u32
from atombios.core.config import ScanConfig, KindRange
from atombios.core.locator import select_scan_tables
from atombios.platforms.legacy import (
    AtomTableInfo,
    ScanCandidate,
    FieldWidth,
    KIND_ORDER,
    TABLE_HEADER_SIZE,
    U16_SCALE_CASES,
    U32_SCALE_CASES,
)

logger = logging.getLogger(__name__)


def _u16(data, pos: int) -> int:
    return data[pos] | (data[pos + 1] << 8)


def score_neighborhood(data, offset_abs: int, start_abs: int, end_abs: int,
                       min_value: int, max_value: int, window: int, stride: int) -> int:
    """
    Count plausible values around a hit.

    Visits positions offset-window, offset-window+stride, ... up to
    offset+window, clamped to [start_abs, end_abs - 2], and counts the u16
    values inside [min_value, max_value]. The hit itself is counted when it
    falls on the stride grid.
    """
    left = max(offset_abs - window, start_abs)
    right = min(offset_abs + window, end_abs - 2)

    score = 0
    for pos in range(left, right + 1, stride):
        if min_value <= _u16(data, pos) <= max_value:
            score += 1
    return score


def table_bounds(data, table: AtomTableInfo) -> Optional[Tuple[int, int]]:
    """Clamp a table's declared extent to the buffer; None if unusable"""
    start = table.offset_abs
    length = table.size
    if start < 0 or start >= len(data):
        return None
    if length <= 0:
        return None
    if start + length > len(data):
        length = len(data) - start
    return start, start + length


class CandidateScanner:
    SCAN_MODES = ['naive', 'smart', 'exact', 'exact-scored']

    def __init__(self, platform='legacy', config: Optional[ScanConfig] = None):
        """
        Initialize candidate scanner.

        Args:
            platform: Platform name (currently only 'legacy' ATOM BIOS supported)
            config: Scan parameters (defaults if None)
        """
        self.platform = platform

        if platform != 'legacy':
            raise ValueError(f"Unsupported platform: {platform}")

        self.config = config or ScanConfig()
        self.strategies = {
            'naive': lambda data, tables, target: self.scan_naive(data, tables),
            'smart': lambda data, tables, target: self.scan_smart(data, tables),
            'exact': lambda data, tables, target: self.scan_exact(data, tables, target),
            'exact-scored': lambda data, tables, target: self.scan_exact_scored(data, tables, target),
        }

    def scan(self, data, tables: List[AtomTableInfo], mode: str = 'smart',
             target: Optional[int] = None) -> List[ScanCandidate]:
        """
        Run one scan strategy.

        Args:
            data: ROM buffer (not modified)
            tables: Table descriptors from list_data_tables()
            mode: One of SCAN_MODES
            target: Wattage for the exact modes (config default if None)
        """
        if mode not in self.strategies:
            raise ValueError(f"Unknown scan mode: {mode}")
        if target is None:
            target = self.config.exact_target

        candidates = self.strategies[mode](data, tables, target)
        logger.info(f"{mode} scan: {len(candidates)} candidates")
        return candidates

    # --- naive ---

    def scan_naive(self, data, tables: List[AtomTableInfo]) -> List[ScanCandidate]:
        """
        Scan every table for u16 values in each kind's range.

        Kinds run in order (power, voltage, clock) into one shared list, so
        an offset claimed by an earlier kind is not reported again. A kind
        stops for the whole scan once its cap is reached, which means
        later tables can go unrepresented.
        """
        results = []
        if data is None or tables is None:
            return results

        seen = set()
        for key in KIND_ORDER:
            self._scan_u16_range(data, tables, self.config.kind(key), results, seen)
        return results

    def _scan_u16_range(self, data, tables: List[AtomTableInfo], kind: KindRange,
                        results: List[ScanCandidate], seen: set):
        count = 0
        if kind.max_results <= 0:
            return

        for table in tables:
            bounds = table_bounds(data, table)
            if bounds is None:
                continue
            start, end = bounds

            # Stride 1: overlapping reads so no unaligned value is missed
            for pos in range(start, end - 1):
                value = _u16(data, pos)
                if not kind.contains(value):
                    continue
                if pos in seen:
                    continue

                candidate = ScanCandidate(kind.label, kind.unit, pos, value,
                                          table_index=table.index, table_size=table.size)
                results.append(candidate)
                seen.add(pos)
                count += 1

                if count >= kind.max_results:
                    logger.debug(f"{kind.label}: cap of {kind.max_results} reached in table [{table.index}]")
                    return

    # --- smart ---

    def scan_smart(self, data, tables: List[AtomTableInfo]) -> List[ScanCandidate]:
        """
        Scan large tables, keeping only hits inside clusters of same-kind values.

        A position may qualify for several kinds. Duplicates by offset keep
        the higher score; the result is sorted by score, then table size,
        and truncated after ranking.
        """
        if data is None or tables is None:
            return []

        cfg = self.config
        scan_tables = select_scan_tables(tables, cfg.large_table_min_size)
        kinds = [cfg.kind(key) for key in KIND_ORDER]

        hits = []
        for table in scan_tables:
            bounds = table_bounds(data, table)
            if bounds is None:
                continue
            start, end = bounds

            for pos in range(start, end - 1):
                value = _u16(data, pos)
                for kind in kinds:
                    if not kind.contains(value):
                        continue
                    # Table header (size/revisions) is structural, not data
                    if table.offset_abs <= pos < table.offset_abs + TABLE_HEADER_SIZE:
                        continue

                    score = score_neighborhood(data, pos, start, end, kind.min, kind.max,
                                               cfg.window, cfg.stride)
                    if score < kind.min_score:
                        continue

                    candidate = ScanCandidate(kind.label, kind.unit, pos, value,
                                              table_index=table.index, score=score,
                                              table_size=table.size)
                    candidate.display_text = (
                        f"{kind.label}: {value} {kind.unit}   Score={score}   "
                        f"(Rel 0x{candidate.offset_rel_legacy:X} / Abs 0x{pos:X})   "
                        f"Table [{table.index}] Size={table.size}"
                    )
                    hits.append(candidate)

        ranked = self._dedupe_best(hits)
        ranked.sort(key=lambda c: (c.score, c.table_size), reverse=True)

        if len(ranked) > cfg.smart_max_results:
            logger.debug(f"Truncating {len(ranked)} smart candidates to {cfg.smart_max_results}")
            ranked = ranked[:cfg.smart_max_results]
        return ranked

    # --- exact ---

    def scan_exact(self, data, tables: List[AtomTableInfo], watts: int) -> List[ScanCandidate]:
        """
        Search for a known wattage under several fixed-point encodings.

        Every hit is labelled with the scale hypothesis that produced it.
        Duplicates by offset keep the first one recorded (u16 cases before
        u32 cases, within each table).
        """
        if data is None or tables is None:
            return []
        if watts is None or watts <= 0:
            logger.warning(f"Exact search needs a positive target, got {watts}")
            return []

        scan_tables = select_scan_tables(tables, self.config.large_table_min_size)
        kind = f"PowerLimit {watts}W"

        u16_cases = [(watts * scale, note) for scale, note in U16_SCALE_CASES
                     if watts * scale <= 0xFFFF]
        u32_cases = [(watts * scale, note) for scale, note in U32_SCALE_CASES
                     if watts * scale <= 0xFFFFFFFF]
        cases = ([(raw, note, FieldWidth.UINT16, find_all_u16) for raw, note in u16_cases] +
                 [(raw, note, FieldWidth.UINT32, find_all_u32) for raw, note in u32_cases])

        found = {}
        for table in scan_tables:
            bounds = table_bounds(data, table)
            if bounds is None:
                continue
            start, end = bounds

            for raw, note, width, finder in cases:
                for pos in finder(data, start, end - start, raw):
                    if pos in found:
                        continue

                    candidate = ScanCandidate(kind, 'W', pos, raw, table_index=table.index,
                                              value=watts, table_size=table.size,
                                              name='Power Limit (W)', width=width, note=note)
                    raw_label = 'Raw' if width == FieldWidth.UINT16 else 'RawU32'
                    candidate.display_text = (
                        f"Power EXACT {watts}W | {note} | {raw_label}={raw} (0x{raw:X}) | "
                        f"Rel 0x{candidate.offset_rel_legacy:X} Abs 0x{pos:X} | "
                        f"Table[{table.index}] Size={table.size}"
                    )
                    found[pos] = candidate

        return list(found.values())

    def scan_exact_scored(self, data, tables: List[AtomTableInfo],
                          target: Optional[int] = None) -> List[ScanCandidate]:
        """
        Search for a known wattage as u16 and rank hits by local density.

        Score = power_score * weight + voltage_score + clock_score, each
        from its own neighbourhood window. Duplicates keep the highest
        score; results are sorted by score.
        """
        if data is None or tables is None:
            return []

        cfg = self.config
        if target is None:
            target = cfg.exact_target
        if target <= 0 or target > 0xFFFF:
            logger.warning(f"Scored exact search needs a u16 target, got {target}")
            return []

        scan_tables = select_scan_tables(tables, cfg.large_table_min_size)
        power, voltage, clock = (cfg.kind(key) for key in KIND_ORDER)

        hits = []
        for table in scan_tables:
            bounds = table_bounds(data, table)
            if bounds is None:
                continue
            start, end = bounds

            for pos in find_all_u16(data, start, end - start, target):
                sub_scores = tuple(
                    score_neighborhood(data, pos, start, end, kind.min, kind.max,
                                       cfg.exact_windows[kind.key], cfg.stride)
                    for kind in (power, voltage, clock)
                )
                total = sub_scores[0] * cfg.exact_power_weight + sub_scores[1] + sub_scores[2]

                candidate = ScanCandidate(f"PowerLimit {target}W", 'W', pos, target,
                                          table_index=table.index, score=total,
                                          table_size=table.size, name='Power Limit (W)')
                candidate.sub_scores = sub_scores
                candidate.display_text = (
                    f"PowerLimit EXACT: {target} W   Score={total} "
                    f"(P{sub_scores[0]}/V{sub_scores[1]}/C{sub_scores[2]})   "
                    f"Rel 0x{candidate.offset_rel_legacy:X} Abs 0x{pos:X}   "
                    f"Table[{table.index}] Size={table.size}"
                )
                hits.append(candidate)

        ranked = self._dedupe_best(hits)
        ranked.sort(key=lambda c: c.score, reverse=True)
        return ranked

    @staticmethod
    def _dedupe_best(candidates: List[ScanCandidate]) -> List[ScanCandidate]:
        """One candidate per offset; a later one replaces only with a strictly higher score"""
        best: Dict[int, ScanCandidate] = {}
        for candidate in candidates:
            current = best.get(candidate.offset_abs)
            if current is None or candidate.score > current.score:
                best[candidate.offset_abs] = candidate
        return list(best.values())
