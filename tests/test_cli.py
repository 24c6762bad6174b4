#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-2.0-only

"""
End-to-end tests for the atom2tune command line.
"""

import sys
import json
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from atom2tune import main
from atombios.platforms.legacy import LEGACY_BASE
from atombios.utils.rom_image import RomImage
from tools.create_mock_rom import create_mock_tuning_rom


@pytest.fixture
def rom_file(tmp_path):
    path = tmp_path / 'card.rom'
    path.write_bytes(bytes(create_mock_tuning_rom()))
    return path


@pytest.fixture
def blank_file(tmp_path):
    path = tmp_path / 'blank.rom'
    path.write_bytes(bytes(LEGACY_BASE + 0x1000))
    return path


def test_missing_input(tmp_path):
    assert main(['tables', '-i', str(tmp_path / 'missing.rom')]) == 1


def test_unknown_mode(rom_file):
    with pytest.raises(SystemExit):
        main(['scan', '-i', str(rom_file), '--mode', 'fuzzy'])


class TestTables:
    def test_list(self, rom_file, capsys):
        assert main(['tables', '-i', str(rom_file)]) == 0

        out = capsys.readouterr().out
        assert 'ATOM Data Tables: 3' in out
        assert '[15] Rel=0x200' in out
        assert 'PowerPlayInfo' in out

    def test_min_size(self, rom_file, capsys):
        assert main(['tables', '-i', str(rom_file), '--min-size', '1024']) == 0
        assert 'ATOM Data Tables: 2' in capsys.readouterr().out

    def test_json(self, rom_file, tmp_path):
        output = tmp_path / 'tables.json'

        assert main(['tables', '-i', str(rom_file), '--json', str(output)]) == 0

        report = json.loads(output.read_text())
        assert [t['index'] for t in report['tables']] == [4, 14, 15]
        assert 'candidates' not in report

    def test_no_header(self, blank_file):
        assert main(['tables', '-i', str(blank_file)]) == 1


class TestScan:
    @pytest.mark.parametrize('mode', ['naive', 'smart', 'exact', 'exact-scored'])
    def test_modes(self, rom_file, tmp_path, mode):
        output = tmp_path / f'{mode}.json'

        assert main(['scan', '-i', str(rom_file), '--mode', mode, '--json', str(output)]) == 0

        report = json.loads(output.read_text())
        assert report['mode'] == mode
        assert report['candidates']

    def test_exact_scored_output(self, rom_file, capsys):
        assert main(['scan', '-i', str(rom_file), '--mode', 'exact-scored', '--target', '304']) == 0

        out = capsys.readouterr().out
        assert 'Candidates: 1' in out
        assert 'Score=12 (P4/V0/C0)' in out
        assert 'Rel 0x300' in out

    def test_no_match_is_not_an_error(self, rom_file, capsys):
        assert main(['scan', '-i', str(rom_file), '--mode', 'exact', '--target', '123']) == 0
        assert 'Candidates: 0' in capsys.readouterr().out

    def test_limit(self, rom_file, capsys):
        assert main(['scan', '-i', str(rom_file), '--mode', 'naive', '--limit', '1']) == 0
        assert '... and' in capsys.readouterr().out

    def test_config_file(self, rom_file, tmp_path):
        config = tmp_path / 'scan.json'
        config.write_text(json.dumps({'kinds': {'power': {'min_score': 5}}}))
        output = tmp_path / 'smart.json'

        assert main(['scan', '-i', str(rom_file), '-c', str(config), '--json', str(output)]) == 0

        kinds = {c['kind'] for c in json.loads(output.read_text())['candidates']}
        assert 'Power (W)' not in kinds

    def test_invalid_config(self, rom_file, tmp_path):
        config = tmp_path / 'scan.json'
        config.write_text(json.dumps({'stride': 0}))

        assert main(['scan', '-i', str(rom_file), '-c', str(config)]) == 1

    def test_no_header(self, blank_file):
        assert main(['scan', '-i', str(blank_file)]) == 1


class TestReadWrite:
    def test_read(self, rom_file, capsys):
        assert main(['read', '-i', str(rom_file), '--offset', '0x300']) == 0

        out = capsys.readouterr().out
        assert 'Abs 0x40300' in out
        assert 'raw=304 (0x130)' in out
        assert 'value=304' in out

    def test_read_scaled(self, rom_file, capsys):
        assert main(['read', '-i', str(rom_file), '--offset', '300', '--scale', '0.5']) == 0
        assert 'value=152' in capsys.readouterr().out

    def test_read_absolute_without_header(self, blank_file, capsys):
        assert main(['read', '-i', str(blank_file), '--offset', '0x10', '--absolute', '--width', '4']) == 0
        assert 'raw=0' in capsys.readouterr().out

    def test_read_out_of_bounds(self, rom_file):
        assert main(['read', '-i', str(rom_file), '--offset', '0x4000']) == 1

    def test_read_invalid_offset(self, rom_file):
        assert main(['read', '-i', str(rom_file), '--offset', 'zz']) == 1

    def test_write(self, rom_file, tmp_path):
        output = tmp_path / 'tuned.rom'

        assert main(['write', '-i', str(rom_file), '--offset', '0x300',
                     '--value', '350', '-o', str(output)]) == 0

        assert RomImage(str(output)).read(0x300) == 350
        assert RomImage(str(rom_file)).read(0x300) == 304

    def test_write_scaled_default_output(self, rom_file):
        assert main(['write', '-i', str(rom_file), '--offset', '0x300',
                     '--value', '175', '--scale', '0.5']) == 0

        saved = rom_file.with_name('card_mod.rom')
        assert RomImage(str(saved)).read(0x300) == 350

    def test_write_rejected(self, rom_file, tmp_path):
        output = tmp_path / 'tuned.rom'

        assert main(['write', '-i', str(rom_file), '--offset', '0x300', '--width', '1',
                     '--value', '300', '-o', str(output)]) == 1

        assert not output.exists()
