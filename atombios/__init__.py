# atom2tune - Find tunable parameter candidates in ATOM BIOS images

from .core.locator import find_atom_header, find_master_data_table, list_data_tables
from .core.accessor import read_field, write_field
from .core.config import ScanConfig
from .core.scanner import CandidateScanner
from .utils.rom_image import RomImage

__version__ = "1.0.0"
__all__ = [
    "find_atom_header",
    "find_master_data_table",
    "list_data_tables",
    "read_field",
    "write_field",
    "ScanConfig",
    "CandidateScanner",
    "RomImage",
]
