"""Binary loader module for parsing Mach-O files."""

from machobin.loader.commands import LoadCommand, LoadCommandType
from machobin.loader.errors import FormatError, MachOError
from machobin.loader.header import CPUType, FileType, MachOHeader, UnknownCode
from machobin.loader.macho import MachOBinary, MachOFormat
from machobin.loader.segments import SegmentCommand
from machobin.loader.symbols import Symbol, SymbolTableEntry, SymbolType, SymtabCommand

__all__ = [
    "CPUType",
    "FileType",
    "FormatError",
    "LoadCommand",
    "LoadCommandType",
    "MachOBinary",
    "MachOError",
    "MachOFormat",
    "MachOHeader",
    "SegmentCommand",
    "Symbol",
    "SymbolTableEntry",
    "SymbolType",
    "SymtabCommand",
    "UnknownCode",
]
