"""Mach-O load command records."""

from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO, TextIO

from machobin.loader.reader import read_c_string, restore_position


LC_REQ_DYLD = 0x80000000


class LoadCommandType(IntEnum):
    """Load command tags this loader accepts."""

    LC_SEGMENT = 0x01
    LC_SYMTAB = 0x02
    LC_DYSYMTAB = 0x0B
    LC_LOAD_DYLIB = 0x0C
    LC_ID_DYLIB = 0x0D
    LC_SEGMENT_64 = 0x19
    LC_UUID = 0x1B
    LC_DYLD_INFO_ONLY = 0x22 | LC_REQ_DYLD
    LC_VERSION_MIN_MACOSX = 0x24
    LC_FUNCTION_STARTS = 0x26
    LC_DATA_IN_CODE = 0x29
    LC_SOURCE_VERSION = 0x2A


def command_name(cmd: int) -> str:
    try:
        return LoadCommandType(cmd).name
    except ValueError:
        return f"{cmd:#x}"


@dataclass(frozen=True)
class LoadCommand:
    """Fields shared by every load command.

    ``offset`` is the absolute file offset of the command's first byte.
    """

    cmd: int
    cmdsize: int
    offset: int

    @classmethod
    def parse(cls, cmd: int, cmdsize: int, reader, stream: BinaryIO, offset: int) -> "LoadCommand":
        """Build the record from the bytes following the (cmd, cmdsize) prefix."""
        return cls(cmd=cmd, cmdsize=cmdsize, offset=offset)

    @property
    def name(self) -> str:
        return command_name(self.cmd)

    @property
    def end_offset(self) -> int:
        return self.offset + self.cmdsize

    def render(self) -> list[str]:
        """Text lines describing this command; empty if it has nothing to show."""
        return []

    def disassemble(self, writer: TextIO) -> None:
        for line in self.render():
            writer.write(line + "\n")


@dataclass(frozen=True)
class DylibCommand(LoadCommand):
    """LC_LOAD_DYLIB / LC_ID_DYLIB."""

    name_offset: int
    library: str
    timestamp: int
    current_version: int
    compatibility_version: int

    @classmethod
    def parse(cls, cmd: int, cmdsize: int, reader, stream: BinaryIO, offset: int) -> "DylibCommand":
        name_offset = reader.read_u32()
        with restore_position(stream):
            stream.seek(offset + name_offset)
            library = read_c_string(reader)
        timestamp = reader.read_u32()
        current_version = reader.read_u32()
        compatibility_version = reader.read_u32()
        return cls(
            cmd=cmd,
            cmdsize=cmdsize,
            offset=offset,
            name_offset=name_offset,
            library=library,
            timestamp=timestamp,
            current_version=current_version,
            compatibility_version=compatibility_version,
        )

    def render(self) -> list[str]:
        return [
            f"{self.name:<22} {self.library} "
            f"(current {format_version(self.current_version)}, "
            f"compatibility {format_version(self.compatibility_version)})"
        ]


def format_version(version: int) -> str:
    """Format a packed xxxx.yy.zz version number."""
    return f"{version >> 16}.{(version >> 8) & 0xFF}.{version & 0xFF}"


DYSYMTAB_FIELDS = (
    "ilocalsym",
    "nlocalsym",
    "iextdefsym",
    "nextdefsym",
    "iundefsym",
    "nundefsym",
    "tocoff",
    "ntoc",
    "modtaboff",
    "nmodtab",
    "extrefsymoff",
    "nextrefsyms",
    "indirectsymoff",
    "nindirectsyms",
    "extreloff",
    "nextrel",
    "locreloff",
    "nlocrel",
)


@dataclass(frozen=True)
class DysymtabCommand(LoadCommand):
    """LC_DYSYMTAB. The index fields are read but not kept."""

    @classmethod
    def parse(cls, cmd: int, cmdsize: int, reader, stream: BinaryIO, offset: int) -> "DysymtabCommand":
        for _field in DYSYMTAB_FIELDS:
            reader.read_u32()
        return cls(cmd=cmd, cmdsize=cmdsize, offset=offset)


@dataclass(frozen=True)
class DyldInfoCommand(LoadCommand):
    pass


@dataclass(frozen=True)
class UuidCommand(LoadCommand):
    pass


@dataclass(frozen=True)
class VersionMinCommand(LoadCommand):
    pass


@dataclass(frozen=True)
class SourceVersionCommand(LoadCommand):
    pass


@dataclass(frozen=True)
class LinkEditDataCommand(LoadCommand):
    """Commands pointing at a blob in __LINKEDIT."""


@dataclass(frozen=True)
class FunctionStartsCommand(LinkEditDataCommand):
    pass


@dataclass(frozen=True)
class DataInCodeCommand(LinkEditDataCommand):
    pass
