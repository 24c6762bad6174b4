#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
Scan configuration.

Collects the value ranges, neighbourhood parameters and result caps used by
the candidate scanners. Defaults come from the platform definitions; any
subset can be overridden from a dict or a JSON file.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from atombios.platforms.legacy import (
    CANDIDATE_KINDS,
    KIND_ORDER,
    LARGE_TABLE_MIN_SIZE,
    NEIGHBORHOOD_WINDOW,
    NEIGHBORHOOD_STRIDE,
    SMART_MAX_RESULTS,
    EXACT_POWER_WINDOW,
    EXACT_VOLTAGE_WINDOW,
    EXACT_CLOCK_WINDOW,
    EXACT_POWER_WEIGHT,
    DEFAULT_POWER_TARGET,
)

logger = logging.getLogger(__name__)


class KindRange:
    """Value range and limits for one candidate kind"""

    def __init__(self, key: str, label: str, unit: str, min: int, max: int,
                 max_results: int, min_score: int):
        self.key = key
        self.label = label
        self.unit = unit
        self.min = min
        self.max = max
        self.max_results = max_results
        self.min_score = min_score

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max

    def validate(self):
        if not 0 <= self.min <= self.max <= 0xFFFF:
            raise ValueError(f"Invalid range for '{self.key}': [{self.min}, {self.max}]")
        if self.max_results < 0:
            raise ValueError(f"Invalid max_results for '{self.key}': {self.max_results}")
        if self.min_score < 0:
            raise ValueError(f"Invalid min_score for '{self.key}': {self.min_score}")

    def to_dict(self) -> Dict:
        return {
            'label': self.label,
            'unit': self.unit,
            'min': self.min,
            'max': self.max,
            'max_results': self.max_results,
            'min_score': self.min_score,
        }


class ScanConfig:
    """
    Parameters for all scan modes.

    Attributes:
        kinds: KindRange per kind key ('power', 'voltage', 'clock')
        window: Neighbourhood half-width in bytes for the smart scan
        stride: Neighbourhood step in bytes
        large_table_min_size: Tables below this are skipped by smart/exact scans
        smart_max_results: Result cap after ranking in the smart scan
        exact_windows: Per-kind neighbourhood half-widths for the scored exact scan
        exact_power_weight: Weight of the power score in the scored exact total
        exact_target: Default wattage for the scored exact scan
    """

    def __init__(self, kinds: Optional[Dict[str, Dict]] = None, **options):
        merged = copy.deepcopy(CANDIDATE_KINDS)
        for key, overrides in (kinds or {}).items():
            if key not in merged:
                raise ValueError(f"Unknown candidate kind: {key}")
            merged[key].update(overrides)

        try:
            self.kinds = {key: KindRange(key, **merged[key]) for key in KIND_ORDER}
        except TypeError as e:
            raise ValueError(f"Invalid candidate kind settings: {e}")

        self.window = options.pop('window', NEIGHBORHOOD_WINDOW)
        self.stride = options.pop('stride', NEIGHBORHOOD_STRIDE)
        self.large_table_min_size = options.pop('large_table_min_size', LARGE_TABLE_MIN_SIZE)
        self.smart_max_results = options.pop('smart_max_results', SMART_MAX_RESULTS)
        self.exact_windows = {
            'power': EXACT_POWER_WINDOW,
            'voltage': EXACT_VOLTAGE_WINDOW,
            'clock': EXACT_CLOCK_WINDOW,
        }
        self.exact_windows.update(options.pop('exact_windows', {}))
        self.exact_power_weight = options.pop('exact_power_weight', EXACT_POWER_WEIGHT)
        self.exact_target = options.pop('exact_target', DEFAULT_POWER_TARGET)

        if options:
            raise ValueError(f"Unknown scan options: {', '.join(sorted(options))}")

        self.validate()

    def validate(self):
        for kind in self.kinds.values():
            kind.validate()
        if self.window < 0:
            raise ValueError(f"Invalid window: {self.window}")
        if self.stride < 1:
            raise ValueError(f"Invalid stride: {self.stride}")
        if self.large_table_min_size < 0:
            raise ValueError(f"Invalid large_table_min_size: {self.large_table_min_size}")
        if self.smart_max_results < 0:
            raise ValueError(f"Invalid smart_max_results: {self.smart_max_results}")
        for key, window in self.exact_windows.items():
            if key not in self.kinds:
                raise ValueError(f"Unknown candidate kind: {key}")
            if window < 0:
                raise ValueError(f"Invalid exact window for '{key}': {window}")

    def kind(self, key: str) -> KindRange:
        return self.kinds[key]

    @classmethod
    def from_dict(cls, data: Dict) -> 'ScanConfig':
        data = dict(data or {})
        kinds = data.pop('kinds', None)
        return cls(kinds=kinds, **data)

    @classmethod
    def load(cls, path: Path) -> 'ScanConfig':
        """Load overrides from a JSON file"""
        with open(path, 'r') as f:
            data = json.load(f)
        logger.info(f"Loaded scan configuration from {path}")
        return cls.from_dict(data)

    def to_dict(self) -> Dict:
        return {
            'kinds': {key: kind.to_dict() for key, kind in self.kinds.items()},
            'window': self.window,
            'stride': self.stride,
            'large_table_min_size': self.large_table_min_size,
            'smart_max_results': self.smart_max_results,
            'exact_windows': dict(self.exact_windows),
            'exact_power_weight': self.exact_power_weight,
            'exact_target': self.exact_target,
        }
