"""machobin - Mach-O load command and symbol table decoder."""

from machobin.loader import (
    CPUType,
    FileType,
    FormatError,
    LoadCommand,
    LoadCommandType,
    MachOBinary,
    MachOError,
    MachOFormat,
    MachOHeader,
    SegmentCommand,
    Symbol,
    SymbolTableEntry,
    SymbolType,
    SymtabCommand,
    UnknownCode,
)

__version__ = "0.1.0"
__all__ = [
    "MachOBinary",
    "MachOFormat",
    "MachOHeader",
    "MachOError",
    "FormatError",
    "LoadCommand",
    "LoadCommandType",
    "SegmentCommand",
    "SymtabCommand",
    "SymbolTableEntry",
    "Symbol",
    "SymbolType",
    "CPUType",
    "FileType",
    "UnknownCode",
    "load",
]


def load(path) -> MachOBinary:
    """Load a Mach-O file from disk."""
    return MachOBinary.load(path)
