"""Symbol table handling."""

from dataclasses import dataclass
from enum import IntEnum, auto
from typing import BinaryIO

from machobin.loader.commands import LoadCommand
from machobin.loader.reader import restore_position


# n_type bit masks
N_STAB = 0xE0
N_TYPE = 0x0E
N_EXT = 0x01
N_UNDF = 0x00


class SymbolType(IntEnum):
    """Symbol type classification."""

    UNDEFINED = auto()  # External/imported symbol
    LOCAL = auto()  # Local symbol
    GLOBAL = auto()  # Global/exported symbol
    DEBUG = auto()  # Debug symbol


@dataclass(frozen=True)
class SymbolTableEntry:
    """One nlist record. ``name_offset`` is relative to the string table."""

    name_offset: int
    type: int
    value: int

    @classmethod
    def read(cls, reader) -> "SymbolTableEntry":
        name_offset = reader.read_i32()
        n_type = reader.read_u8()
        reader.read_u8()  # n_sect
        reader.read_u16()  # n_desc
        value = reader.read_u32()
        return cls(name_offset=name_offset, type=n_type, value=value)

    @property
    def symbol_type(self) -> SymbolType:
        if self.type & N_STAB:
            return SymbolType.DEBUG
        if (self.type & N_TYPE) == N_UNDF:
            return SymbolType.UNDEFINED
        if self.type & N_EXT:
            return SymbolType.GLOBAL
        return SymbolType.LOCAL


@dataclass(frozen=True)
class Symbol:
    """A symbol table entry with its name resolved."""

    name: str
    entry: SymbolTableEntry

    @property
    def value(self) -> int:
        return self.entry.value

    @property
    def symbol_type(self) -> SymbolType:
        return self.entry.symbol_type

    def __repr__(self) -> str:
        return f"Symbol({self.name!r}, {self.value:#x}, {self.symbol_type.name.lower()})"


@dataclass(frozen=True)
class SymtabCommand(LoadCommand):
    """LC_SYMTAB, with its entries read from ``symoff``."""

    symoff: int
    nsyms: int
    stroff: int
    strsize: int
    entries: tuple[SymbolTableEntry, ...]

    @classmethod
    def parse(cls, cmd: int, cmdsize: int, reader, stream: BinaryIO, offset: int) -> "SymtabCommand":
        symoff = reader.read_u32()
        nsyms = reader.read_u32()
        stroff = reader.read_u32()
        strsize = reader.read_u32()

        with restore_position(stream):
            stream.seek(symoff)
            entries = tuple(SymbolTableEntry.read(reader) for _ in range(nsyms))

        return cls(
            cmd=cmd,
            cmdsize=cmdsize,
            offset=offset,
            symoff=symoff,
            nsyms=nsyms,
            stroff=stroff,
            strsize=strsize,
            entries=entries,
        )

    def name_position(self, entry: SymbolTableEntry) -> int:
        """Absolute file offset of an entry's name."""
        return self.stroff + entry.name_offset

    def render(self) -> list[str]:
        return [
            f"{self.name:<22} {self.nsyms} symbols at {self.symoff:#x}, "
            f"strings {self.stroff:#x}+{self.strsize:#x}"
        ]
